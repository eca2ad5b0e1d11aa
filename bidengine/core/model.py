"""
Entity model for the auction.

Users, sales, items and bids as plain dataclasses. A Sale owns the bids
placed on it; a Bid is immutable once accepted and only references its
sale and bidder by id.

Derived attributes (sale status, current price) are recomputed on every
access because they depend on the clock and on the live bid set.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; aware ones are left as they are."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SaleStatus(str, Enum):
    """Status of a sale relative to its ending date."""
    ONGOING = "ONGOING"
    OVER = "OVER"


# =============================================================================
# User
# =============================================================================


@dataclass
class User:
    """
    A platform member, bidder and/or seller.

    Attributes:
        user_id: Unique identifier
        email: Identity resolved by the authentication layer
        credit: Remaining spending capacity, never negative
        is_admin: Administrative rights
        created_at: Account creation time
    """
    user_id: int
    email: str
    first_name: str = ""
    last_name: str = ""
    phone: Optional[str] = None
    user_img: Optional[str] = None
    credit: int = 0
    is_admin: bool = False
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if self.credit < 0:
            raise ValueError(f"credit must be >= 0, got {self.credit}")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def can_bid(self) -> bool:
        """Whether the user has any credit left at all."""
        return self.credit > 0

    def copy(self) -> "User":
        return replace(self)


# =============================================================================
# Item
# =============================================================================


@dataclass
class Item:
    """Object put up for sale. Descriptive only."""
    item_id: int
    name: str
    description: str = ""
    image: Optional[str] = None
    category: Optional[str] = None

    def copy(self) -> "Item":
        return replace(self)


# =============================================================================
# Bid
# =============================================================================


@dataclass(frozen=True)
class Bid:
    """
    An accepted offer. Never mutated after creation.

    bid_id stays None until storage assigns one.
    """
    bid_time: datetime
    bid_amount: int
    sale_id: int
    user_id: int
    bidder_name: str = ""
    bid_id: Optional[int] = None

    def with_id(self, bid_id: int) -> "Bid":
        return replace(self, bid_id=bid_id)


# =============================================================================
# Sale
# =============================================================================


@dataclass
class Sale:
    """
    An auction listing.

    ``bids`` is None while the bid history has not been fetched and an
    empty list when the sale has genuinely received no bid. Naive
    starting and ending dates are taken as UTC.
    """
    sale_id: int
    starting_date: datetime
    ending_date: datetime
    starting_price: int
    seller: User
    item: Optional[Item] = None
    sale_price: int = 0
    bids: Optional[List[Bid]] = None

    def __post_init__(self):
        self.starting_date = as_utc(self.starting_date)
        self.ending_date = as_utc(self.ending_date)

    @property
    def bids_loaded(self) -> bool:
        return self.bids is not None

    def is_ongoing(self, at: Optional[datetime] = None) -> bool:
        """Whether the auction window is still open at ``at`` (default: now)."""
        return as_utc(at or utcnow()) < self.ending_date

    @property
    def status(self) -> SaleStatus:
        return SaleStatus.ONGOING if self.is_ongoing() else SaleStatus.OVER

    @property
    def current_price(self) -> int:
        from bidengine.core.pricing import current_price
        return current_price(self)

    def copy(self) -> "Sale":
        """Independent copy: seller, item and bid list are copied too."""
        return Sale(
            sale_id=self.sale_id,
            starting_date=self.starting_date,
            ending_date=self.ending_date,
            starting_price=self.starting_price,
            seller=self.seller.copy(),
            item=self.item.copy() if self.item is not None else None,
            sale_price=self.sale_price,
            bids=list(self.bids) if self.bids is not None else None,
        )


# =============================================================================
# Placement values
# =============================================================================


@dataclass
class BidCandidate:
    """A bid under validation. References may be missing."""
    sale: Optional[Sale]
    user: Optional[User]
    bid_amount: int
    bid_time: datetime = field(default_factory=utcnow)

    def to_bid(self) -> Bid:
        if self.sale is None or self.user is None:
            raise ValueError("Cannot build a bid without sale and user")
        return Bid(
            bid_time=self.bid_time,
            bid_amount=self.bid_amount,
            sale_id=self.sale.sale_id,
            user_id=self.user.user_id,
            bidder_name=self.user.full_name,
        )


@dataclass(frozen=True)
class BidSnapshot:
    """State handed back to the caller after an accepted bid."""
    sale: Sale
    user: User
    bid: Bid

    @classmethod
    def capture(cls, sale: Sale, user: User, bid: Bid) -> "BidSnapshot":
        """Copy sale and user, with ``bid`` prepended to the sale's bids."""
        sale_copy = sale.copy()
        sale_copy.bids = [bid] + (sale_copy.bids or [])
        return cls(sale=sale_copy, user=user.copy(), bid=bid)
