"""
Unit tests for the entity model and price resolution.

Tests cover:
1. Sale status around the ending date, naive dates included
2. Current price from bids, settled price and starting price
3. Loaded vs. not-loaded bid collections
4. Independent copies and snapshots
"""

import pytest
from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone

from bidengine.core.model import (
    Bid,
    BidCandidate,
    BidSnapshot,
    Item,
    Sale,
    SaleStatus,
    User,
)
from bidengine.core.pricing import current_price, highest_bid


NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def seller():
    return User(user_id=2, email="seller@example.com", first_name="Sam", last_name="Seller")


@pytest.fixture
def sale(seller):
    """Sale starting at 150 with no bids."""
    return Sale(
        sale_id=1,
        starting_date=NOW - timedelta(days=1),
        ending_date=NOW + timedelta(days=1),
        starting_price=150,
        seller=seller,
        item=Item(item_id=7, name="Lamp"),
        bids=[],
    )


def make_bid(amount, user_id=1, minutes=0, sale_id=1):
    return Bid(
        bid_time=NOW + timedelta(minutes=minutes),
        bid_amount=amount,
        sale_id=sale_id,
        user_id=user_id,
    )


# =============================================================================
# User Tests
# =============================================================================


class TestUser:
    """Tests for the user entity."""

    def test_negative_credit_rejected(self):
        """A user can never be created with negative credit."""
        with pytest.raises(ValueError):
            User(user_id=1, email="a@example.com", credit=-1)

    def test_full_name(self):
        user = User(user_id=1, email="a@example.com", first_name="Ada", last_name="Lovelace")
        assert user.full_name == "Ada Lovelace"

    def test_can_bid(self):
        assert User(user_id=1, email="a@example.com", credit=1).can_bid()
        assert not User(user_id=1, email="a@example.com", credit=0).can_bid()

    def test_copy_is_independent(self):
        user = User(user_id=1, email="a@example.com", credit=100)
        clone = user.copy()
        clone.credit = 0
        assert user.credit == 100


# =============================================================================
# Sale Tests
# =============================================================================


class TestSaleStatus:
    """Tests for the derived sale status."""

    def test_ongoing_before_end(self, sale):
        assert sale.is_ongoing(NOW)

    def test_over_at_end(self, sale):
        assert not sale.is_ongoing(sale.ending_date)

    def test_status_uses_clock(self, sale):
        """Status is recomputed from the real clock."""
        sale.ending_date = datetime.now(timezone.utc) + timedelta(hours=1)
        assert sale.status is SaleStatus.ONGOING

        sale.ending_date = datetime.now(timezone.utc) - timedelta(hours=1)
        assert sale.status is SaleStatus.OVER

    def test_naive_dates_taken_as_utc(self, seller):
        naive_end = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=1)
        naive = Sale(
            sale_id=3,
            starting_date=naive_end - timedelta(days=1),
            ending_date=naive_end,
            starting_price=10,
            seller=seller,
        )

        assert naive.ending_date.tzinfo is timezone.utc
        assert naive.ending_date == naive_end.replace(tzinfo=timezone.utc)
        assert naive.status is SaleStatus.ONGOING
        assert naive.is_ongoing(naive_end - timedelta(minutes=1))
        assert not naive.is_ongoing(naive_end)


class TestCurrentPrice:
    """Tests for price resolution."""

    def test_starting_price_without_bids(self, sale):
        """No bids and no settled price: starting price."""
        assert current_price(sale) == 150

    def test_sale_price_without_bids(self, sale):
        """No bids and a settled price: settled price."""
        sale.sale_price = 300
        assert current_price(sale) == 300

    def test_highest_bid_wins(self, sale):
        """With bids, the highest amount regardless of the other prices."""
        sale.sale_price = 1000
        sale.bids = [make_bid(160), make_bid(210, user_id=3), make_bid(180)]
        assert current_price(sale) == 210
        assert sale.current_price == 210

    def test_bid_below_starting_price_still_binding(self, sale):
        """The bid set alone decides once it is non-empty."""
        sale.bids = [make_bid(20)]
        assert current_price(sale) == 20

    def test_not_loaded_bids_price_like_empty(self, sale):
        sale.bids = None
        assert not sale.bids_loaded
        assert current_price(sale) == 150

    def test_recomputed_on_each_access(self, sale):
        """Adding a bid is reflected immediately."""
        assert sale.current_price == 150
        sale.bids.append(make_bid(175))
        assert sale.current_price == 175

    def test_missing_sale(self):
        with pytest.raises(ValueError):
            current_price(None)

    def test_highest_bid(self, sale):
        assert highest_bid(sale) is None
        top = make_bid(300, user_id=4)
        sale.bids = [make_bid(200), top]
        assert highest_bid(sale) is top


# =============================================================================
# Bid & Snapshot Tests
# =============================================================================


class TestBid:
    """Tests for immutable bids."""

    def test_bid_is_frozen(self):
        bid = make_bid(100)
        with pytest.raises(FrozenInstanceError):
            bid.bid_amount = 200

    def test_with_id_returns_new_bid(self):
        bid = make_bid(100)
        stored = bid.with_id(42)
        assert stored.bid_id == 42
        assert bid.bid_id is None

    def test_candidate_to_bid(self, sale):
        bidder = User(user_id=1, email="b@example.com", first_name="Bea")
        candidate = BidCandidate(sale=sale, user=bidder, bid_amount=160, bid_time=NOW)
        bid = candidate.to_bid()
        assert (bid.sale_id, bid.user_id, bid.bid_amount, bid.bidder_name) == (1, 1, 160, "Bea")

    def test_candidate_without_references(self):
        with pytest.raises(ValueError):
            BidCandidate(sale=None, user=None, bid_amount=10).to_bid()


class TestSnapshot:
    """Tests for snapshots handed back after a bid."""

    def test_new_bid_prepended(self, sale):
        sale.bids = [make_bid(160)]
        bidder = User(user_id=3, email="c@example.com", credit=10)
        new_bid = make_bid(170, user_id=3, minutes=5).with_id(2)

        snapshot = BidSnapshot.capture(sale, bidder, new_bid)

        assert snapshot.sale.bids[0] is new_bid
        assert [b.bid_amount for b in snapshot.sale.bids] == [170, 160]
        assert snapshot.sale.current_price == 170

    def test_snapshot_is_detached(self, sale):
        """Mutating the snapshot never touches the source objects."""
        bidder = User(user_id=3, email="c@example.com", credit=10)
        snapshot = BidSnapshot.capture(sale, bidder, make_bid(170, user_id=3))

        snapshot.sale.bids.clear()
        snapshot.sale.seller.credit = 999
        snapshot.sale.item.name = "Changed"
        snapshot.user.credit = 0

        assert sale.bids == []
        assert sale.seller.credit == 0
        assert sale.item.name == "Lamp"
        assert bidder.credit == 10


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
