"""
Bid Validator - ordered rule chain for candidate bids.

Rules run in this order and the first failure stops evaluation:

1. Referential completeness: sale and bidder are present
2. Sale liveness: the sale has not ended (only when enabled)
3. Price sufficiency: amount strictly above the current price
4. Seller exclusion: the seller cannot bid on their own sale
5. Credit sufficiency: the bidder can afford the delta reservation

The last rule reserves credit on success, so a passing validation has
already settled the bidder's credit. Persisting it is up to the caller.
"""

from datetime import datetime
from typing import Callable, Optional

from bidengine.core.credit import CreditLedger
from bidengine.core.errors import BidError, BidErrorKind
from bidengine.core.model import BidCandidate, utcnow
from bidengine.core.pricing import current_price
from bidengine.utils.logger import get_logger

logger = get_logger("validation")


class BidValidator:
    """
    Validates candidate bids against the auction rules.

    The liveness rule is disabled by default: out of the box the engine
    accepts bids on sales whose end time has passed.
    """

    def __init__(
        self,
        enforce_sale_liveness: bool = False,
        ledger: Optional[CreditLedger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            enforce_sale_liveness: Reject bids on sales that are over
            ledger: Credit ledger used for the reservation rule
            clock: Source of the current time (for liveness)
        """
        self.enforce_sale_liveness = enforce_sale_liveness
        self.ledger = ledger or CreditLedger()
        self.clock = clock or utcnow

    # =========================================================================
    # Individual rules
    # =========================================================================

    def check_references(self, candidate: BidCandidate) -> Optional[BidError]:
        if candidate.sale is None:
            return BidError(BidErrorKind.MISSING_SALE, "Bid has no sale")
        if candidate.user is None:
            return BidError(BidErrorKind.MISSING_USER, "Bid has no bidder")
        return None

    def check_sale_ongoing(self, candidate: BidCandidate) -> Optional[BidError]:
        if not candidate.sale.is_ongoing(self.clock()):
            return BidError(BidErrorKind.SALE_CLOSED, "Sale is over")
        return None

    def check_higher_bid(self, candidate: BidCandidate) -> Optional[BidError]:
        price = current_price(candidate.sale)
        if candidate.bid_amount <= price:
            return BidError(
                BidErrorKind.BID_TOO_LOW,
                f"Bid {candidate.bid_amount} must exceed current price {price}",
            )
        return None

    def check_not_seller(self, candidate: BidCandidate) -> Optional[BidError]:
        if candidate.sale.seller.user_id == candidate.user.user_id:
            return BidError(BidErrorKind.SELLER_CANNOT_BID, "Sellers cannot bid on their own sale")
        return None

    def check_credit(self, candidate: BidCandidate) -> Optional[BidError]:
        return self.ledger.reserve(candidate.user, candidate.sale, candidate.bid_amount)

    # =========================================================================
    # Chain
    # =========================================================================

    def validate(self, candidate: BidCandidate) -> Optional[BidError]:
        """
        Run the rule chain.

        Args:
            candidate: Bid to validate

        Returns:
            None if the bid is acceptable (credit reserved), else the first
            failing rule's error
        """
        rules = [self.check_references]
        if self.enforce_sale_liveness:
            rules.append(self.check_sale_ongoing)
        rules += [self.check_higher_bid, self.check_not_seller, self.check_credit]

        for rule in rules:
            error = rule(candidate)
            if error is not None:
                logger.debug(f"Bid rejected by {rule.__name__}: {error}")
                return error

        return None
