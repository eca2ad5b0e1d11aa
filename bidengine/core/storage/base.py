"""
Storage contract consumed by the bid placement use case.

Backends return detached copies: mutating a loaded Sale or User never
changes stored state until it is explicitly saved inside a transaction.

Every backend owns the KeyedLockManager that serializes bids on its
sales, so all services placing bids on the same storage share one set of
locks.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List, Optional

from bidengine.core.locking import KeyedLockManager
from bidengine.core.model import Bid, Sale, User


class Storage(ABC):
    """Persistence collaborator for sales, users and bids."""

    def __init__(self):
        self.locks = KeyedLockManager()

    # =========================================================================
    # Unit of work
    # =========================================================================

    @abstractmethod
    @contextmanager
    def transaction(self, timeout: Optional[float] = None) -> Iterator[None]:
        """
        All-or-nothing scope. Re-entrant: nested scopes join the outer one.

        Everything written inside is rolled back if the block raises.

        Args:
            timeout: Seconds to wait for a backend-level write lock held by
                another process, None for the backend default

        Raises:
            LockTimeout: if that lock is still held when the timeout expires
        """

    # =========================================================================
    # Bid placement
    # =========================================================================

    @abstractmethod
    def load_sale_with_bids(self, sale_id: int) -> Optional[Sale]:
        """Sale with its bids (highest amount first), or None."""

    @abstractmethod
    def load_user_by_identity(self, identity: str) -> Optional[User]:
        """User whose identity (email) matches, or None."""

    @abstractmethod
    def append_bid(self, bid: Bid) -> Bid:
        """Store a new bid and return it with its assigned id."""

    @abstractmethod
    def save_user(self, user: User) -> None:
        """Persist the user's mutable fields (credit, profile)."""

    # =========================================================================
    # Administration (registration and listing flows)
    # =========================================================================

    @abstractmethod
    def add_user(self, user: User) -> User:
        """Insert a user, assigning an id when user_id is 0."""

    @abstractmethod
    def add_sale(self, sale: Sale) -> Sale:
        """Insert a sale (and its item), assigning ids when they are 0."""

    @abstractmethod
    def load_user(self, user_id: int) -> Optional[User]:
        """User by id, or None."""

    @abstractmethod
    def list_sales(self) -> List[Sale]:
        """All sales, without their bids."""
