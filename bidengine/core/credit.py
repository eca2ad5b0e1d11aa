"""
Credit Ledger - spendable capacity reserved by bidding.

Conceptual Background:
---------------------
A user's credit is the pool of capacity not yet reserved by bids. Bidding
on a sale reserves the bid amount. Re-bidding on the same sale only
reserves the increase over the user's own previous highest bid there:
the earlier reservation is superseded, not refunded and re-charged.

    previous = max(own bids on the sale) or 0
    delta    = new_amount - previous
    credit  -= delta            (refused if credit would go negative)

Being outbid by someone else does not release anything. Reservations stay
held until the sale is settled, which happens outside this engine.
"""

from typing import Optional

from bidengine.core.errors import BidError, BidErrorKind
from bidengine.core.model import Sale, User
from bidengine.utils.logger import get_logger

logger = get_logger("credit")


class CreditLedger:
    """Applies the delta reservation rule to a user's credit."""

    @staticmethod
    def previous_own_bid(user: User, sale: Sale) -> int:
        """Highest amount ``user`` has already bid on ``sale`` (0 if none)."""
        if not sale.bids:
            return 0
        return max(
            (bid.bid_amount for bid in sale.bids if bid.user_id == user.user_id),
            default=0,
        )

    def required_credit(self, user: User, sale: Sale, amount: int) -> int:
        """Credit a bid of ``amount`` would consume."""
        return amount - self.previous_own_bid(user, sale)

    def reserve(self, user: User, sale: Sale, amount: int) -> Optional[BidError]:
        """
        Reserve credit for a new bid, mutating ``user.credit`` in place.

        Args:
            user: Bidder, its credit is decreased on success
            sale: Sale with its bid history loaded
            amount: New bid amount

        Returns:
            None on success, an INSUFFICIENT_CREDIT error otherwise (credit
            left unchanged)
        """
        delta = self.required_credit(user, sale, amount)

        if user.credit - delta < 0:
            logger.debug(
                f"User {user.user_id} short of credit on sale {sale.sale_id}: "
                f"needs {delta}, has {user.credit}"
            )
            return BidError(
                BidErrorKind.INSUFFICIENT_CREDIT,
                f"Bid needs {delta} credit, {user.credit} available",
            )

        user.credit -= delta
        logger.debug(f"Reserved {delta} credit for user {user.user_id} on sale {sale.sale_id}")
        return None
