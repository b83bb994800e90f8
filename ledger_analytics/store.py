"""Ledger store interface and the SQLite reference adapter.

The engine never talks to persistence directly: a caller-owned
:class:`~ledger_analytics.session.LedgerSession` asks a ``LedgerStore`` for
the full record set and hands snapshots to the pure analytics functions.
Every backend failure is reported as :class:`StoreError`.
"""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from .config import DB_PATH
from .errors import StoreError
from .logging_setup import get_logger
from .models import Purpose, Transaction

logger = get_logger(__name__)

UPDATABLE_FIELDS = ('date', 'amount', 'type', 'description', 'purpose_id')

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS purposes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date TEXT NOT NULL,
    amount REAL NOT NULL CHECK (amount >= 0),
    type TEXT NOT NULL CHECK (type IN ('income', 'expense')),
    description TEXT NOT NULL DEFAULT '',
    purpose_id INTEGER REFERENCES purposes(id) ON DELETE SET NULL,
    created_at TEXT,
    updated_at TEXT
);

CREATE INDEX IF NOT EXISTS ix_txn_date ON transactions (date);
CREATE INDEX IF NOT EXISTS ix_txn_purpose ON transactions (purpose_id);
"""

_SELECT_TRANSACTIONS = """
SELECT t.id, t.date, t.amount, t.type, t.description, t.purpose_id,
       p.name AS purpose_name, t.created_at, t.updated_at
FROM transactions t
LEFT JOIN purposes p ON p.id = t.purpose_id
"""

TransactionInput = Union[Transaction, Mapping[str, Any]]


class LedgerStore(ABC):
    """Authoritative source of transactions and purposes."""

    @abstractmethod
    def fetch_all(self) -> List[Transaction]:
        """All transactions, newest first by date."""

    @abstractmethod
    def fetch_purposes(self, search: str = '') -> List[Purpose]:
        """Purposes, newest first; ``search`` is a case-insensitive name filter."""

    @abstractmethod
    def get_purpose(self, purpose_id: Any) -> Purpose:
        ...

    @abstractmethod
    def create(self, transaction: TransactionInput) -> Transaction:
        ...

    @abstractmethod
    def update(self, transaction_id: Any, fields: Mapping[str, Any]) -> Transaction:
        ...

    @abstractmethod
    def delete(self, transaction_id: Any) -> None:
        ...

    @abstractmethod
    def delete_many(self, transaction_ids: Iterable[Any]) -> None:
        ...

    @abstractmethod
    def create_purpose(self, name: str) -> Purpose:
        ...

    @abstractmethod
    def update_purpose(self, purpose_id: Any, name: str) -> Purpose:
        ...

    @abstractmethod
    def delete_purpose(self, purpose_id: Any) -> None:
        ...


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _escape_like(text: str) -> str:
    return text.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def _storage_date(txn: Transaction, tz: Optional[str]) -> str:
    # UTC ISO strings sort chronologically as text
    return txn.local_date(tz).tz_convert('UTC').isoformat()


class SQLiteLedgerStore(LedgerStore):
    """Ledger store backed by a local SQLite file."""

    def __init__(self, db_path: Union[str, Path, None] = None, tz: Optional[str] = None):
        self.db_path = Path(db_path) if db_path is not None else DB_PATH
        self.tz = tz
        self.init_db()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as exc:
            logger.error("Ledger store %s failed: %s", operation, exc)
            raise StoreError(str(exc), operation=operation) from exc

    def init_db(self) -> None:
        with self._guard('init'), self.connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    # -- transactions ----------------------------------------------------

    def _row_to_transaction(self, row: sqlite3.Row) -> Transaction:
        return Transaction.from_record(dict(row), self.tz)

    def _fetch_one(self, conn: sqlite3.Connection, transaction_id: Any) -> Transaction:
        row = conn.execute(_SELECT_TRANSACTIONS + " WHERE t.id = ?", (transaction_id,)).fetchone()
        if row is None:
            raise StoreError(f"Transaction {transaction_id!r} not found")
        return self._row_to_transaction(row)

    def fetch_all(self) -> List[Transaction]:
        with self._guard('fetch_all'), self.connect() as conn:
            rows = conn.execute(_SELECT_TRANSACTIONS + " ORDER BY t.date DESC, t.id DESC").fetchall()
        return [self._row_to_transaction(r) for r in rows]

    def create(self, transaction: TransactionInput) -> Transaction:
        txn = transaction if isinstance(transaction, Transaction) else Transaction.from_record(transaction, self.tz)
        stamp = _now()
        with self._guard('create'), self.connect() as conn:
            cursor = conn.execute(
                "INSERT INTO transactions (date, amount, type, description, purpose_id, created_at, updated_at)"
                " VALUES (?, ?, ?, ?, ?, ?, ?)",
                (_storage_date(txn, self.tz), txn.amount, txn.type, txn.description, txn.purpose_id, stamp, stamp),
            )
            conn.commit()
            return self._fetch_one(conn, cursor.lastrowid)

    def update(self, transaction_id: Any, fields: Mapping[str, Any]) -> Transaction:
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise StoreError(f"Cannot update fields: {', '.join(sorted(unknown))}", operation='update')
        with self._guard('update'), self.connect() as conn:
            current = self._fetch_one(conn, transaction_id)
            merged: Dict[str, Any] = current.to_record()
            merged.update(fields)
            if 'purpose_id' in fields:
                merged['purpose_name'] = None
            txn = Transaction.from_record(merged, self.tz)
            conn.execute(
                "UPDATE transactions SET date = ?, amount = ?, type = ?, description = ?,"
                " purpose_id = ?, updated_at = ? WHERE id = ?",
                (_storage_date(txn, self.tz), txn.amount, txn.type, txn.description, txn.purpose_id, _now(), transaction_id),
            )
            conn.commit()
            return self._fetch_one(conn, transaction_id)

    def delete(self, transaction_id: Any) -> None:
        with self._guard('delete'), self.connect() as conn:
            cursor = conn.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))
            conn.commit()
        if cursor.rowcount == 0:
            raise StoreError(f"Transaction {transaction_id!r} not found", operation='delete')

    def delete_many(self, transaction_ids: Iterable[Any]) -> None:
        ids = list(transaction_ids)
        if not ids:
            return
        placeholders = ",".join("?" for _ in ids)
        with self._guard('delete_many'), self.connect() as conn:
            conn.execute(f"DELETE FROM transactions WHERE id IN ({placeholders})", ids)
            conn.commit()

    # -- purposes --------------------------------------------------------

    def _fetch_purpose(self, conn: sqlite3.Connection, purpose_id: Any) -> Purpose:
        row = conn.execute("SELECT id, name, created_at FROM purposes WHERE id = ?", (purpose_id,)).fetchone()
        if row is None:
            raise StoreError(f"Purpose {purpose_id!r} not found")
        return Purpose.from_record(dict(row))

    def fetch_purposes(self, search: str = '') -> List[Purpose]:
        sql = "SELECT id, name, created_at FROM purposes"
        params: List[Any] = []
        if search:
            sql += " WHERE name LIKE ? ESCAPE '\\'"
            params.append('%' + _escape_like(search) + '%')
        sql += " ORDER BY created_at DESC, id DESC"
        with self._guard('fetch_purposes'), self.connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [Purpose.from_record(dict(r)) for r in rows]

    def get_purpose(self, purpose_id: Any) -> Purpose:
        with self._guard('get_purpose'), self.connect() as conn:
            return self._fetch_purpose(conn, purpose_id)

    def create_purpose(self, name: str) -> Purpose:
        purpose = Purpose(id=None, name=name)
        with self._guard('create_purpose'), self.connect() as conn:
            cursor = conn.execute(
                "INSERT INTO purposes (name, created_at) VALUES (?, ?)", (purpose.name, _now())
            )
            conn.commit()
            return self._fetch_purpose(conn, cursor.lastrowid)

    def update_purpose(self, purpose_id: Any, name: str) -> Purpose:
        purpose = Purpose(id=purpose_id, name=name)
        with self._guard('update_purpose'), self.connect() as conn:
            cursor = conn.execute("UPDATE purposes SET name = ? WHERE id = ?", (purpose.name, purpose_id))
            conn.commit()
            if cursor.rowcount == 0:
                raise StoreError(f"Purpose {purpose_id!r} not found", operation='update_purpose')
            return self._fetch_purpose(conn, purpose_id)

    def delete_purpose(self, purpose_id: Any) -> None:
        with self._guard('delete_purpose'), self.connect() as conn:
            cursor = conn.execute("DELETE FROM purposes WHERE id = ?", (purpose_id,))
            conn.commit()
        if cursor.rowcount == 0:
            raise StoreError(f"Purpose {purpose_id!r} not found", operation='delete_purpose')
