"""
Error taxonomy for bid placement.

Business outcomes are values, not exceptions: every rejected bid carries a
BidError with a stable machine-readable code (e.g. ``bid.amount.tooLow``)
that the presentation layer can localize. Exceptions are reserved for
infrastructure faults (StorageError) and lock timeouts inside the engine.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from bidengine.core.model import BidSnapshot


# =============================================================================
# Business Errors
# =============================================================================


class ErrorCategory(str, Enum):
    """Class of a business error."""
    NOT_FOUND = "not_found"      # Reference to state that doesn't exist
    VALIDATION = "validation"    # Well-formed bid that violates a rule
    CONFLICT = "conflict"        # Concurrent access, caller may retry


class BidErrorKind(Enum):
    """Every way a bid placement can be refused."""

    SALE_NOT_FOUND = ("sale.not.found", ErrorCategory.NOT_FOUND)
    USER_NOT_FOUND = ("user.not.found", ErrorCategory.NOT_FOUND)

    MISSING_SALE = ("bid.sale.undefined", ErrorCategory.VALIDATION)
    MISSING_USER = ("bid.user.undefined", ErrorCategory.VALIDATION)
    INVALID_AMOUNT = ("bid.amount.invalid", ErrorCategory.VALIDATION)
    SALE_CLOSED = ("bid.sale.over", ErrorCategory.VALIDATION)
    BID_TOO_LOW = ("bid.amount.tooLow", ErrorCategory.VALIDATION)
    SELLER_CANNOT_BID = ("bid.user.isSeller", ErrorCategory.VALIDATION)
    INSUFFICIENT_CREDIT = ("bid.user.credit.insufficient", ErrorCategory.VALIDATION)

    BUSY = ("bid.busy", ErrorCategory.CONFLICT)

    def __init__(self, code: str, category: ErrorCategory):
        self.code = code
        self.category = category


@dataclass(frozen=True)
class BidError:
    """
    A refused bid.

    Attributes:
        kind: Which rule refused the bid
        message: Human readable detail, safe to show to the bidder
    """
    kind: BidErrorKind
    message: str = ""

    @property
    def code(self) -> str:
        return self.kind.code

    @property
    def category(self) -> ErrorCategory:
        return self.kind.category

    @property
    def retryable(self) -> bool:
        """Only conflicts are worth retrying, and only by the caller."""
        return self.kind.category is ErrorCategory.CONFLICT

    def __str__(self) -> str:
        return f"{self.code}: {self.message}" if self.message else self.code


@dataclass(frozen=True)
class BidOutcome:
    """Result of a bid placement: either a snapshot or an error."""
    snapshot: Optional["BidSnapshot"] = None
    error: Optional[BidError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, snapshot: "BidSnapshot") -> "BidOutcome":
        return cls(snapshot=snapshot)

    @classmethod
    def failure(cls, error: BidError) -> "BidOutcome":
        return cls(error=error)


# =============================================================================
# Exceptions
# =============================================================================


class BidEngineError(Exception):
    """Base class for exceptions raised by bidengine."""


class StorageError(BidEngineError):
    """Infrastructure fault in the storage backend (connectivity, corruption)."""


class LockTimeout(BidEngineError):
    """A lock could not be acquired before the deadline."""

    def __init__(self, key: str, timeout: float):
        super().__init__(f"Timed out after {timeout:.2f}s waiting for {key}")
        self.key = key
        self.timeout = timeout
