"""
Unit tests for the credit ledger.

Tests cover:
1. Delta reservation on first bid and re-bids
2. Exact credit and one-short boundaries
3. Other bidders' bids don't count toward the delta
4. No release of credit when outbid
"""

import pytest
from datetime import datetime, timedelta, timezone

from bidengine.core.credit import CreditLedger
from bidengine.core.errors import BidErrorKind
from bidengine.core.model import Bid, Sale, User


NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def ledger():
    return CreditLedger()


@pytest.fixture
def sale():
    seller = User(user_id=2, email="seller@example.com")
    return Sale(
        sale_id=1,
        starting_date=NOW,
        ending_date=NOW + timedelta(days=1),
        starting_price=150,
        seller=seller,
        bids=[],
    )


def bid(amount, user_id):
    return Bid(bid_time=NOW, bid_amount=amount, sale_id=1, user_id=user_id)


class TestPreviousOwnBid:
    """Tests for the bidder's own previous bid lookup."""

    def test_no_bids(self, ledger, sale):
        user = User(user_id=1, email="u1@example.com")
        assert ledger.previous_own_bid(user, sale) == 0

    def test_not_loaded(self, ledger, sale):
        sale.bids = None
        user = User(user_id=1, email="u1@example.com")
        assert ledger.previous_own_bid(user, sale) == 0

    def test_only_own_bids_count(self, ledger, sale):
        sale.bids = [bid(140, 1), bid(150, 3), bid(120, 1)]
        user = User(user_id=1, email="u1@example.com")
        assert ledger.previous_own_bid(user, sale) == 140

    def test_required_credit(self, ledger, sale):
        sale.bids = [bid(140, 1)]
        user = User(user_id=1, email="u1@example.com")
        assert ledger.required_credit(user, sale, 160) == 20


class TestReserve:
    """Tests for reserving credit."""

    def test_first_bid_charges_full_amount(self, ledger, sale):
        user = User(user_id=1, email="u1@example.com", credit=200)
        assert ledger.reserve(user, sale, 160) is None
        assert user.credit == 40

    def test_exact_credit_reaches_zero(self, ledger, sale):
        user = User(user_id=1, email="u1@example.com", credit=160)
        assert ledger.reserve(user, sale, 160) is None
        assert user.credit == 0

    def test_one_short_fails_unchanged(self, ledger, sale):
        user = User(user_id=1, email="u1@example.com", credit=159)
        error = ledger.reserve(user, sale, 160)
        assert error.kind is BidErrorKind.INSUFFICIENT_CREDIT
        assert error.code == "bid.user.credit.insufficient"
        assert user.credit == 159

    def test_rebid_charges_only_increase(self, ledger, sale):
        """Previous own bid of 140, re-bid at 160 with 20 left."""
        sale.bids = [bid(140, 1)]
        user = User(user_id=1, email="u1@example.com", credit=20)
        assert ledger.reserve(user, sale, 160) is None
        assert user.credit == 0

    def test_rebid_insufficient(self, ledger, sale):
        """Previous own bid of 140, re-bid at 160 with only 10 left."""
        sale.bids = [bid(140, 1)]
        user = User(user_id=1, email="u1@example.com", credit=10)
        error = ledger.reserve(user, sale, 160)
        assert error is not None
        assert error.kind is BidErrorKind.INSUFFICIENT_CREDIT
        assert user.credit == 10

    def test_outbid_user_keeps_reservation(self, ledger, sale):
        """Being outbid does not give credit back."""
        first = User(user_id=1, email="u1@example.com", credit=200)
        second = User(user_id=3, email="u3@example.com", credit=300)

        ledger.reserve(first, sale, 160)
        sale.bids.append(bid(160, 1))
        ledger.reserve(second, sale, 200)
        sale.bids.append(bid(200, 3))

        assert first.credit == 40
        assert second.credit == 100


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
