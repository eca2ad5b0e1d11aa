import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from bidengine.utils.logger import get_logger

logger = get_logger("storage.sqlite")


class SQLiteAdapter:
    """
    SQLite backend for the auction tables.

    Provides:
    1. Users with their credit balance
    2. Items and the sales listing them
    3. Append-only bid history

    Connections run in autocommit mode; units of work are opened explicitly
    with BEGIN IMMEDIATE so that concurrent writers queue up on the
    database lock instead of reading stale state.
    """

    def __init__(self, db_path: Path, timeout: float = 30.0):
        self.db_path = db_path
        self.timeout = timeout
        self._conn_local = threading.local()

        # Ensure directory exists
        if not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        if not hasattr(self._conn_local, "conn"):
            conn = sqlite3.connect(
                self.db_path,
                timeout=self.timeout,
                check_same_thread=False,
                isolation_level=None,
            )
            conn.row_factory = sqlite3.Row
            # Enable WAL mode for better concurrency
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.execute("PRAGMA foreign_keys=ON;")
            self._conn_local.conn = conn
            self._conn_local.depth = 0
        return self._conn_local.conn

    def _begin(self, conn: sqlite3.Connection, timeout: Optional[float]) -> None:
        """BEGIN IMMEDIATE, waiting at most ``timeout`` for another writer."""
        if timeout is None:
            conn.execute("BEGIN IMMEDIATE")
            return

        conn.execute(f"PRAGMA busy_timeout = {int(timeout * 1000)};")
        try:
            conn.execute("BEGIN IMMEDIATE")
        finally:
            conn.execute(f"PRAGMA busy_timeout = {int(self.timeout * 1000)};")

    @contextmanager
    def transaction(self, timeout: Optional[float] = None) -> Iterator[sqlite3.Connection]:
        """
        Open (or join) a write transaction on this thread's connection.

        Commits when the outermost block exits normally, rolls back if it
        raises. ``timeout`` bounds the wait for the database write lock
        (default: the connection timeout); a nested block joins the outer
        transaction and ignores it.

        Raises:
            sqlite3.OperationalError: "database is locked" when the write
                lock is still held by another connection after ``timeout``
        """
        conn = self._get_conn()
        if self._conn_local.depth:
            self._conn_local.depth += 1
            try:
                yield conn
            finally:
                self._conn_local.depth -= 1
            return

        self._begin(conn, timeout)
        self._conn_local.depth = 1
        try:
            yield conn
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        else:
            conn.execute("COMMIT")
        finally:
            self._conn_local.depth = 0

    def _init_schema(self):
        """Initialize database schema."""
        with self.transaction() as conn:
            # 1. Users
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    user_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL UNIQUE,
                    first_name TEXT NOT NULL DEFAULT '',
                    last_name TEXT NOT NULL DEFAULT '',
                    phone TEXT,
                    user_img TEXT,
                    credit INTEGER NOT NULL DEFAULT 0 CHECK (credit >= 0),
                    is_admin INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
            """)

            # 2. Items
            conn.execute("""
                CREATE TABLE IF NOT EXISTS items (
                    item_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    item_name TEXT NOT NULL,
                    item_desc TEXT NOT NULL DEFAULT '',
                    item_img TEXT,
                    category TEXT
                )
            """)

            # 3. Sales
            conn.execute("""
                CREATE TABLE IF NOT EXISTS sales (
                    sale_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    starting_date TEXT NOT NULL,
                    ending_date TEXT NOT NULL,
                    starting_price INTEGER NOT NULL CHECK (starting_price >= 0),
                    sale_price INTEGER NOT NULL DEFAULT 0,
                    seller_id INTEGER NOT NULL REFERENCES users(user_id),
                    item_id INTEGER REFERENCES items(item_id)
                )
            """)

            # 4. Bids (append-only)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS bids (
                    bid_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    bid_time TEXT NOT NULL,
                    bid_amount INTEGER NOT NULL CHECK (bid_amount > 0),
                    sale_id INTEGER NOT NULL REFERENCES sales(sale_id),
                    user_id INTEGER NOT NULL REFERENCES users(user_id)
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_bids_sale ON bids(sale_id);")

    # =========================================================================
    # Users
    # =========================================================================

    def insert_user(
        self,
        email: str,
        first_name: str,
        last_name: str,
        phone: Optional[str],
        user_img: Optional[str],
        credit: int,
        is_admin: bool,
        created_at: str,
        user_id: Optional[int] = None,
    ) -> int:
        with self.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO users (user_id, email, first_name, last_name, phone,
                                   user_img, credit, is_admin, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (user_id, email, first_name, last_name, phone, user_img,
                 credit, int(is_admin), created_at)
            )
            return cursor.lastrowid

    def update_user(
        self,
        user_id: int,
        first_name: str,
        last_name: str,
        phone: Optional[str],
        user_img: Optional[str],
        credit: int,
    ) -> int:
        """Update profile fields and credit. Returns the number of rows changed."""
        with self.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE users
                SET first_name = ?, last_name = ?, phone = ?, user_img = ?, credit = ?
                WHERE user_id = ?
                """,
                (first_name, last_name, phone, user_img, credit, user_id)
            )
            return cursor.rowcount

    def get_user(self, user_id: int) -> Optional[sqlite3.Row]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT * FROM users WHERE user_id = ?", (user_id,))
        return cursor.fetchone()

    def get_user_by_email(self, email: str) -> Optional[sqlite3.Row]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT * FROM users WHERE email = ?", (email,))
        return cursor.fetchone()

    # =========================================================================
    # Items & Sales
    # =========================================================================

    def insert_item(
        self,
        name: str,
        description: str,
        image: Optional[str],
        category: Optional[str],
        item_id: Optional[int] = None,
    ) -> int:
        with self.transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO items (item_id, item_name, item_desc, item_img, category) VALUES (?, ?, ?, ?, ?)",
                (item_id, name, description, image, category)
            )
            return cursor.lastrowid

    def insert_sale(
        self,
        starting_date: str,
        ending_date: str,
        starting_price: int,
        sale_price: int,
        seller_id: int,
        item_id: Optional[int],
        sale_id: Optional[int] = None,
    ) -> int:
        with self.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO sales (sale_id, starting_date, ending_date, starting_price,
                                   sale_price, seller_id, item_id)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (sale_id, starting_date, ending_date, starting_price, sale_price,
                 seller_id, item_id)
            )
            return cursor.lastrowid

    _SALE_QUERY = """
        SELECT s.sale_id, s.starting_date, s.ending_date, s.starting_price,
               s.sale_price, s.seller_id, s.item_id,
               i.item_name, i.item_desc, i.item_img, i.category
        FROM sales s
        LEFT OUTER JOIN items i ON i.item_id = s.item_id
    """

    def get_sale(self, sale_id: int) -> Optional[sqlite3.Row]:
        """Sale row joined with its item."""
        conn = self._get_conn()
        cursor = conn.execute(self._SALE_QUERY + " WHERE s.sale_id = ?", (sale_id,))
        return cursor.fetchone()

    def get_all_sales(self) -> List[sqlite3.Row]:
        conn = self._get_conn()
        cursor = conn.execute(self._SALE_QUERY + " ORDER BY s.ending_date ASC")
        return cursor.fetchall()

    # =========================================================================
    # Bids
    # =========================================================================

    def insert_bid(self, sale_id: int, user_id: int, bid_amount: int, bid_time: str) -> int:
        with self.transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO bids (bid_amount, bid_time, user_id, sale_id) VALUES (?, ?, ?, ?)",
                (bid_amount, bid_time, user_id, sale_id)
            )
            return cursor.lastrowid

    def get_bids_for_sale(self, sale_id: int) -> List[sqlite3.Row]:
        """Bids of a sale with bidder names, highest amount first."""
        conn = self._get_conn()
        cursor = conn.execute(
            """
            SELECT b.bid_id, b.bid_amount, b.bid_time, b.sale_id, b.user_id,
                   u.first_name, u.last_name
            FROM bids b
            LEFT OUTER JOIN users u ON u.user_id = b.user_id
            WHERE b.sale_id = ?
            ORDER BY b.bid_amount DESC, b.bid_time DESC
            """,
            (sale_id,)
        )
        return cursor.fetchall()

    def close(self):
        """Close this thread's connection."""
        conn = getattr(self._conn_local, "conn", None)
        if conn is not None:
            conn.close()
            del self._conn_local.conn
