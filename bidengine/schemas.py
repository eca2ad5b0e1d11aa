"""
Presentation schemas.

Pydantic models describing what leaves and enters the engine: the bid
request, the updated sale and bidder returned after an accepted bid, and
the error body of a refused one.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

from bidengine.core.errors import BidError
from bidengine.core.model import Bid, BidSnapshot, Item, Sale, SaleStatus, User


class BidRequest(BaseModel):
    """Inbound bid, the bidder identity comes from authentication."""
    model_config = ConfigDict(extra="forbid")

    sale_id: PositiveInt
    bid_amount: PositiveInt
    bid_time: Optional[datetime] = None


class UserView(BaseModel):
    user_id: int
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    user_img: Optional[str] = None
    credit: int
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserView":
        return cls(
            user_id=user.user_id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone=user.phone,
            user_img=user.user_img,
            credit=user.credit,
            created_at=user.created_at,
        )


class ItemView(BaseModel):
    item_id: int
    name: str
    description: str = ""
    image: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def from_item(cls, item: Item) -> "ItemView":
        return cls(
            item_id=item.item_id,
            name=item.name,
            description=item.description,
            image=item.image,
            category=item.category,
        )


class BidView(BaseModel):
    bid_id: Optional[int] = None
    bid_time: datetime
    bid_amount: int
    user_id: int
    bidder_name: str = ""

    @classmethod
    def from_bid(cls, bid: Bid) -> "BidView":
        return cls(
            bid_id=bid.bid_id,
            bid_time=bid.bid_time,
            bid_amount=bid.bid_amount,
            user_id=bid.user_id,
            bidder_name=bid.bidder_name,
        )


class SaleView(BaseModel):
    """
    A sale as shown to clients.

    ``sale_price`` carries the current price, as the listing pages expect.
    """
    sale_id: int
    starting_date: datetime
    ending_date: datetime
    starting_price: int
    sale_price: int
    status: SaleStatus
    seller: UserView
    item: Optional[ItemView] = None
    bids: List[BidView] = Field(default_factory=list)

    @classmethod
    def from_sale(cls, sale: Sale) -> "SaleView":
        return cls(
            sale_id=sale.sale_id,
            starting_date=sale.starting_date,
            ending_date=sale.ending_date,
            starting_price=sale.starting_price,
            sale_price=sale.current_price,
            status=sale.status,
            seller=UserView.from_user(sale.seller),
            item=ItemView.from_item(sale.item) if sale.item is not None else None,
            bids=[BidView.from_bid(b) for b in sale.bids or []],
        )


class BidResponse(BaseModel):
    sale: SaleView
    user: UserView

    @classmethod
    def from_snapshot(cls, snapshot: BidSnapshot) -> "BidResponse":
        return cls(
            sale=SaleView.from_sale(snapshot.sale),
            user=UserView.from_user(snapshot.user),
        )


class ErrorView(BaseModel):
    code: str
    category: str
    message: str = ""
    retryable: bool = False

    @classmethod
    def from_error(cls, error: BidError) -> "ErrorView":
        return cls(
            code=error.code,
            category=error.category.value,
            message=error.message,
            retryable=error.retryable,
        )
