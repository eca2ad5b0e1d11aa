"""Auction domain: entities, rules, credit and bid placement"""
from bidengine.core.config import EngineConfig, load_config
from bidengine.core.credit import CreditLedger
from bidengine.core.errors import (
    BidEngineError,
    BidError,
    BidErrorKind,
    BidOutcome,
    ErrorCategory,
    LockTimeout,
    StorageError,
)
from bidengine.core.locking import KeyedLockManager
from bidengine.core.model import (
    Bid,
    BidCandidate,
    BidSnapshot,
    Item,
    Sale,
    SaleStatus,
    User,
)
from bidengine.core.placement import BidPlacementService
from bidengine.core.pricing import current_price, highest_bid
from bidengine.core.validation import BidValidator

__all__ = [
    "EngineConfig",
    "load_config",
    "CreditLedger",
    "BidEngineError",
    "BidError",
    "BidErrorKind",
    "BidOutcome",
    "ErrorCategory",
    "LockTimeout",
    "StorageError",
    "KeyedLockManager",
    "Bid",
    "BidCandidate",
    "BidSnapshot",
    "Item",
    "Sale",
    "SaleStatus",
    "User",
    "BidPlacementService",
    "current_price",
    "highest_bid",
    "BidValidator",
]
