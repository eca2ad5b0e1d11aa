"""
Bid Placement - the transactional use case behind "place a bid".

Steps for one call:
1. Guard the inputs
2. Lock the sale, then the bidder (bounded by a timeout)
3. Inside one storage transaction:
   a. load the sale with its bids and the bidder
   b. run the validator (reserves the bidder's credit on success)
   c. append the bid and save the bidder
4. Hand back an independent snapshot of the sale and the bidder

Two calls on the same sale are serialized by the sale lock, so the price
and the credit each of them sees already include the other's effects.
The locks belong to the storage, so separate services on one storage
still exclude each other. Across processes sharing a SQLite file the
database write lock plays the same role. Waiting past the deadline on
either one yields BUSY. Calls on different sales only contend when the
same bidder is involved.
"""

import time
from datetime import datetime
from typing import Optional

from bidengine.core.config import EngineConfig, config as default_config
from bidengine.core.errors import BidError, BidErrorKind, BidOutcome, LockTimeout
from bidengine.core.locking import KeyedLockManager, sale_key, user_key
from bidengine.core.model import BidCandidate, BidSnapshot, utcnow
from bidengine.core.storage.base import Storage
from bidengine.core.validation import BidValidator
from bidengine.utils.logger import get_logger
from bidengine.utils.validation import (
    validate_bid_amount,
    validate_identifier,
    validate_identity,
)

logger = get_logger("placement")


class BidPlacementService:
    """
    Places bids on sales.

    Attributes:
        storage: Persistence collaborator
        config: Engine configuration (liveness rule, lock timeout)
        locks: Lock manager, by default the one owned by the storage so
            every service on the same storage is serialized together
        validator: Rule chain applied to each candidate bid
    """

    def __init__(
        self,
        storage: Storage,
        config: Optional[EngineConfig] = None,
        locks: Optional[KeyedLockManager] = None,
        validator: Optional[BidValidator] = None,
    ):
        self.storage = storage
        self.config = config or default_config
        self.locks = locks or storage.locks
        self.validator = validator or BidValidator(
            enforce_sale_liveness=self.config.enforce_sale_liveness,
        )

    # =========================================================================
    # Public API
    # =========================================================================

    def place_bid(
        self,
        sale_id: int,
        bidder_identity: str,
        bid_amount: int,
        bid_time: Optional[datetime] = None,
        timeout: Optional[float] = None,
    ) -> BidOutcome:
        """
        Place a bid on behalf of an authenticated bidder.

        Args:
            sale_id: Sale to bid on
            bidder_identity: Identity supplied by the authentication layer
            bid_amount: Offered amount
            bid_time: When the bid was made (default: now)
            timeout: Seconds to wait for the sale and bidder locks and for
                the storage write lock, default config.lock_timeout

        Returns:
            BidOutcome holding either the updated snapshot or the error

        Raises:
            StorageError: on infrastructure failure (after rollback)
        """
        error = self._check_inputs(sale_id, bidder_identity, bid_amount)
        if error is not None:
            logger.info(f"Bid refused before lookup: {error}")
            return BidOutcome.failure(error)

        bid_time = bid_time or utcnow()
        timeout = self.config.lock_timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout

        try:
            with self.locks.hold(sale_key(sale_id), user_key(bidder_identity), timeout=timeout):
                remaining = max(0.0, deadline - time.monotonic())
                return self._place_locked(sale_id, bidder_identity, bid_amount, bid_time, remaining)
        except LockTimeout:
            return BidOutcome.failure(
                BidError(BidErrorKind.BUSY, f"Sale {sale_id} is busy, try again")
            )

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _check_inputs(sale_id, bidder_identity, bid_amount) -> Optional[BidError]:
        valid, err = validate_identifier(sale_id, "sale_id")
        if not valid:
            return BidError(BidErrorKind.SALE_NOT_FOUND, err)

        valid, err = validate_identity(bidder_identity)
        if not valid:
            return BidError(BidErrorKind.USER_NOT_FOUND, err)

        valid, err = validate_bid_amount(bid_amount)
        if not valid:
            return BidError(BidErrorKind.INVALID_AMOUNT, err)

        return None

    def _place_locked(
        self,
        sale_id: int,
        bidder_identity: str,
        bid_amount: int,
        bid_time: datetime,
        wait: float,
    ) -> BidOutcome:
        with self.storage.transaction(timeout=wait):
            sale = self.storage.load_sale_with_bids(sale_id)
            if sale is None:
                logger.info(f"Bid refused: sale {sale_id} not found")
                return BidOutcome.failure(
                    BidError(BidErrorKind.SALE_NOT_FOUND, f"Sale {sale_id} does not exist")
                )

            user = self.storage.load_user_by_identity(bidder_identity)
            if user is None:
                logger.info(f"Bid refused: unknown bidder on sale {sale_id}")
                return BidOutcome.failure(
                    BidError(BidErrorKind.USER_NOT_FOUND, "Bidder does not exist")
                )

            candidate = BidCandidate(
                sale=sale,
                user=user,
                bid_amount=bid_amount,
                bid_time=bid_time,
            )
            error = self.validator.validate(candidate)
            if error is not None:
                logger.info(f"Bid refused on sale {sale_id} for user {user.user_id}: {error.code}")
                return BidOutcome.failure(error)

            bid = self.storage.append_bid(candidate.to_bid())
            self.storage.save_user(user)

        logger.info(
            f"Bid {bid.bid_id} accepted: sale={sale_id}, user={user.user_id}, "
            f"amount={bid_amount}, credit left={user.credit}"
        )
        return BidOutcome.success(BidSnapshot.capture(sale, user, bid))
