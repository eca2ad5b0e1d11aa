"""
In-memory storage backend.

Used by tests and the CLI demo. Each thread keeps an undo journal while a
transaction is open; rolling back replays it in reverse, which only
touches what that transaction wrote.
"""

import itertools
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Dict, Iterator, List, Optional

from bidengine.core.model import Bid, Sale, User
from bidengine.core.storage.base import Storage
from bidengine.utils.logger import get_logger

logger = get_logger("storage.memory")


class MemoryStorage(Storage):
    """Dict-backed storage returning detached copies."""

    def __init__(self):
        super().__init__()
        self._users: Dict[int, User] = {}
        self._sales: Dict[int, Sale] = {}
        self._bids: Dict[int, List[Bid]] = {}

        self._user_ids = itertools.count(1)
        self._sale_ids = itertools.count(1)
        self._item_ids = itertools.count(1)
        self._bid_ids = itertools.count(1)

        self._mutex = threading.RLock()
        self._local = threading.local()

    # =========================================================================
    # Unit of work
    # =========================================================================

    @property
    def _journal(self) -> Optional[List[Callable[[], None]]]:
        return getattr(self._local, "journal", None)

    @contextmanager
    def transaction(self, timeout: Optional[float] = None) -> Iterator[None]:
        # Single process: the storage locks already serialize writers
        if self._journal is not None:
            yield
            return

        self._local.journal = []
        try:
            yield
        except BaseException:
            undo = self._local.journal
            with self._mutex:
                for action in reversed(undo):
                    action()
            logger.warning(f"Rolled back {len(undo)} write(s)")
            raise
        finally:
            self._local.journal = None

    def _record(self, undo: Callable[[], None]) -> None:
        journal = self._journal
        if journal is not None:
            journal.append(undo)

    # =========================================================================
    # Bid placement
    # =========================================================================

    def load_sale_with_bids(self, sale_id: int) -> Optional[Sale]:
        with self._mutex:
            stored = self._sales.get(sale_id)
            if stored is None:
                return None
            sale = stored.copy()
            seller = self._users.get(stored.seller.user_id)
            if seller is not None:
                sale.seller = seller.copy()
            sale.bids = sorted(
                self._bids.get(sale_id, []),
                key=lambda b: (b.bid_amount, b.bid_time),
                reverse=True,
            )
            return sale

    def load_user_by_identity(self, identity: str) -> Optional[User]:
        with self._mutex:
            for user in self._users.values():
                if user.email == identity:
                    return user.copy()
            return None

    def append_bid(self, bid: Bid) -> Bid:
        with self._mutex:
            if bid.sale_id not in self._sales:
                raise KeyError(f"Unknown sale {bid.sale_id}")
            stored = bid.with_id(next(self._bid_ids))
            bids = self._bids.setdefault(bid.sale_id, [])
            bids.append(stored)
            self._record(lambda: bids.remove(stored))
            return stored

    def save_user(self, user: User) -> None:
        with self._mutex:
            previous = self._users.get(user.user_id)
            if previous is None:
                raise KeyError(f"Unknown user {user.user_id}")
            self._users[user.user_id] = user.copy()
            self._record(lambda: self._users.__setitem__(user.user_id, previous))

    # =========================================================================
    # Administration
    # =========================================================================

    def add_user(self, user: User) -> User:
        with self._mutex:
            if any(u.email == user.email for u in self._users.values()):
                raise ValueError(f"User {user.email} already exists")
            stored = replace(user, user_id=user.user_id or next(self._user_ids))
            self._users[stored.user_id] = stored
            self._record(lambda: self._users.pop(stored.user_id, None))
            return stored.copy()

    def add_sale(self, sale: Sale) -> Sale:
        with self._mutex:
            if sale.seller.user_id not in self._users:
                raise KeyError(f"Unknown seller {sale.seller.user_id}")
            stored = sale.copy()
            stored.sale_id = sale.sale_id or next(self._sale_ids)
            if stored.item is not None and not stored.item.item_id:
                stored.item.item_id = next(self._item_ids)
            stored.bids = None
            self._sales[stored.sale_id] = stored
            self._bids.setdefault(stored.sale_id, [])
            self._record(lambda: self._sales.pop(stored.sale_id, None))
            return stored.copy()

    def load_user(self, user_id: int) -> Optional[User]:
        with self._mutex:
            user = self._users.get(user_id)
            return user.copy() if user is not None else None

    def list_sales(self) -> List[Sale]:
        with self._mutex:
            return [sale.copy() for sale in self._sales.values()]
