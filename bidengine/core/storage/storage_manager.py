import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional

from bidengine.core.errors import LockTimeout, StorageError
from bidengine.core.model import Bid, Item, Sale, User
from bidengine.core.storage.base import Storage
from bidengine.core.storage.sqlite_adapter import SQLiteAdapter
from bidengine.utils.logger import get_logger

logger = get_logger("storage.manager")


_BUSY_CODES = {sqlite3.SQLITE_BUSY, sqlite3.SQLITE_LOCKED}


def _is_busy(error: sqlite3.Error) -> bool:
    """Whether sqlite gave up waiting for another connection's lock."""
    if getattr(error, "sqlite_errorcode", None) in _BUSY_CODES:
        return True
    return isinstance(error, sqlite3.OperationalError) and "database is locked" in str(error)


@contextmanager
def _storage_errors(wait: Optional[float] = None) -> Iterator[None]:
    """
    Surface sqlite3 failures as opaque StorageError.

    A busy database becomes LockTimeout instead, so callers can report a
    retryable conflict.
    """
    try:
        yield
    except sqlite3.Error as e:
        if _is_busy(e):
            logger.warning(f"Database write lock still held after {wait or 0:.2f}s")
            raise LockTimeout("database", wait or 0.0) from e
        logger.error(f"Storage failure: {e}")
        raise StorageError("Storage backend failure") from e


def _ts(value: datetime) -> str:
    return value.isoformat()


def _dt(value: str) -> datetime:
    return datetime.fromisoformat(value)


class StorageManager(Storage):
    """
    SQLite-backed Storage.

    Maps rows from SQLiteAdapter to the entity model and back, and
    exposes the adapter's transaction as the unit of work.
    """

    def __init__(self, data_dir: Path, db_name: str = "auction.db"):
        super().__init__()
        self.data_dir = data_dir
        self.db_path = data_dir / db_name
        with _storage_errors():
            self.adapter = SQLiteAdapter(self.db_path)

        logger.info(f"StorageManager initialized at {self.db_path}")

    # =========================================================================
    # Unit of work
    # =========================================================================

    @contextmanager
    def transaction(self, timeout: Optional[float] = None) -> Iterator[None]:
        wait = self.adapter.timeout if timeout is None else timeout
        with _storage_errors(wait):
            with self.adapter.transaction(timeout):
                yield

    # =========================================================================
    # Row mapping
    # =========================================================================

    @staticmethod
    def _user_from_row(row: sqlite3.Row) -> User:
        return User(
            user_id=row["user_id"],
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            phone=row["phone"],
            user_img=row["user_img"],
            credit=row["credit"],
            is_admin=bool(row["is_admin"]),
            created_at=_dt(row["created_at"]),
        )

    @staticmethod
    def _bid_from_row(row: sqlite3.Row) -> Bid:
        bidder_name = f"{row['first_name'] or ''} {row['last_name'] or ''}".strip()
        return Bid(
            bid_id=row["bid_id"],
            bid_time=_dt(row["bid_time"]),
            bid_amount=row["bid_amount"],
            sale_id=row["sale_id"],
            user_id=row["user_id"],
            bidder_name=bidder_name,
        )

    def _sale_from_row(self, row: sqlite3.Row) -> Sale:
        seller_row = self.adapter.get_user(row["seller_id"])
        if seller_row is None:
            raise StorageError(f"Sale {row['sale_id']} references a missing seller")

        item = None
        if row["item_id"] is not None:
            item = Item(
                item_id=row["item_id"],
                name=row["item_name"],
                description=row["item_desc"],
                image=row["item_img"],
                category=row["category"],
            )

        return Sale(
            sale_id=row["sale_id"],
            starting_date=_dt(row["starting_date"]),
            ending_date=_dt(row["ending_date"]),
            starting_price=row["starting_price"],
            sale_price=row["sale_price"],
            seller=self._user_from_row(seller_row),
            item=item,
        )

    # =========================================================================
    # Bid placement
    # =========================================================================

    def load_sale_with_bids(self, sale_id: int) -> Optional[Sale]:
        with _storage_errors():
            row = self.adapter.get_sale(sale_id)
            if row is None:
                return None
            sale = self._sale_from_row(row)
            sale.bids = [self._bid_from_row(r) for r in self.adapter.get_bids_for_sale(sale_id)]
            return sale

    def load_user_by_identity(self, identity: str) -> Optional[User]:
        with _storage_errors():
            row = self.adapter.get_user_by_email(identity)
            return self._user_from_row(row) if row is not None else None

    def append_bid(self, bid: Bid) -> Bid:
        with _storage_errors():
            bid_id = self.adapter.insert_bid(bid.sale_id, bid.user_id, bid.bid_amount, _ts(bid.bid_time))
        return bid.with_id(bid_id)

    def save_user(self, user: User) -> None:
        with _storage_errors():
            changed = self.adapter.update_user(
                user.user_id,
                user.first_name,
                user.last_name,
                user.phone,
                user.user_img,
                user.credit,
            )
        if changed != 1:
            raise StorageError(f"User {user.user_id} could not be updated")

    # =========================================================================
    # Administration
    # =========================================================================

    def add_user(self, user: User) -> User:
        with _storage_errors():
            user_id = self.adapter.insert_user(
                user.email,
                user.first_name,
                user.last_name,
                user.phone,
                user.user_img,
                user.credit,
                user.is_admin,
                _ts(user.created_at),
                user_id=user.user_id or None,
            )
        stored = user.copy()
        stored.user_id = user_id
        return stored

    def add_sale(self, sale: Sale) -> Sale:
        stored = sale.copy()
        stored.bids = None
        with self.transaction():
            with _storage_errors():
                if stored.item is not None:
                    stored.item.item_id = self.adapter.insert_item(
                        stored.item.name,
                        stored.item.description,
                        stored.item.image,
                        stored.item.category,
                        item_id=stored.item.item_id or None,
                    )
                stored.sale_id = self.adapter.insert_sale(
                    _ts(stored.starting_date),
                    _ts(stored.ending_date),
                    stored.starting_price,
                    stored.sale_price,
                    stored.seller.user_id,
                    stored.item.item_id if stored.item is not None else None,
                    sale_id=stored.sale_id or None,
                )
        return stored

    def load_user(self, user_id: int) -> Optional[User]:
        with _storage_errors():
            row = self.adapter.get_user(user_id)
            return self._user_from_row(row) if row is not None else None

    def list_sales(self) -> List[Sale]:
        with _storage_errors():
            return [self._sale_from_row(row) for row in self.adapter.get_all_sales()]

    def close(self) -> None:
        self.adapter.close()
