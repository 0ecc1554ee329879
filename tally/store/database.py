"""Transactional access to the sqlite database.

Every service operation runs inside one Transaction obtained from
Database.begin(). The transaction is a context manager that rolls back on
every exit path that did not commit, so callers write:

    with db.begin(ctx) as tx:
        ...
        tx.commit()
"""

import sqlite3
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from types import TracebackType
from typing import Any

import structlog

from tally.context import RequestContext
from tally.errors import ErrorCode, RequestCancelled, SystemFailure
from tally.store.schema import get_db_path

log = structlog.get_logger(__name__)

# Virtual machine instructions between two cancellation checks
_PROGRESS_INTERVAL = 1000

_DUPLICATE_KEY_ERRORS = frozenset({"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"})


def to_db_time(value: datetime) -> str:
    """Store timestamps as fixed-width UTC text so they sort chronologically."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def from_db_time(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value).astimezone(UTC)


def is_duplicate_key(error: BaseException) -> tuple[str, bool]:
    """Classify an error as a unique-constraint violation.

    Args:
        error: Error raised by the store, or a SystemFailure wrapping it.

    Returns:
        Tuple of (detail, duplicated) where detail is the driver's message.
    """
    candidate: BaseException | None = error
    while candidate is not None:
        if isinstance(candidate, sqlite3.IntegrityError):
            name = getattr(candidate, "sqlite_errorname", "")
            return str(candidate), name in _DUPLICATE_KEY_ERRORS
        candidate = candidate.__cause__
    return "", False


class Transaction:
    """One unit of work on a dedicated connection.

    Statement failures are raised as SystemFailure(DATABASE_STATE) chained to
    the driver error, so is_duplicate_key() can still classify them.
    """

    def __init__(self, conn: sqlite3.Connection, ctx: RequestContext) -> None:
        self._conn = conn
        self._ctx = ctx
        self._finished = False
        self.committed = False

    @property
    def ctx(self) -> RequestContext:
        return self._ctx

    def _run(self, method: str, sql: str, params: Any) -> sqlite3.Cursor:
        if self._finished:
            raise SystemFailure(ErrorCode.DATABASE_STATE, "Transaction already finished")
        self._ctx.raise_if_done()
        try:
            return getattr(self._conn, method)(sql, params)
        except sqlite3.OperationalError as err:
            if self._ctx.done():
                raise RequestCancelled() from err
            raise SystemFailure(ErrorCode.DATABASE_STATE, "Database statement failed") from err
        except sqlite3.Error as err:
            raise SystemFailure(ErrorCode.DATABASE_STATE, "Database statement failed") from err

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self._run("execute", sql, params)

    def executemany(self, sql: str, rows: Iterable[Sequence[Any]]) -> sqlite3.Cursor:
        """Run one prepared statement for every row."""
        return self._run("executemany", sql, rows)

    @contextmanager
    def savepoint(self, name: str) -> Iterator[None]:
        """Undo only the statements of the block if it raises, keeping the transaction open."""
        self.execute(f"SAVEPOINT {name}")
        try:
            yield
        except BaseException:
            if not self._finished and not self._ctx.done():
                self.execute(f"ROLLBACK TO {name}")
                self.execute(f"RELEASE {name}")
            raise
        self.execute(f"RELEASE {name}")

    def commit(self) -> None:
        """Make the transaction's writes durable.

        Raises:
            RequestCancelled: If the request was cancelled first. Nothing is written.
            SystemFailure: DATABASE_CONNECTIVITY if the commit itself fails.
        """
        if self._finished:
            raise SystemFailure(ErrorCode.DATABASE_STATE, "Transaction already finished")
        if self._ctx.done():
            self.rollback()
            raise RequestCancelled()
        try:
            self._conn.commit()
        except sqlite3.Error as err:
            self.rollback()
            raise SystemFailure(ErrorCode.DATABASE_CONNECTIVITY, "Failed to commit transaction") from err
        self.committed = True
        self._close()

    def rollback(self) -> None:
        """Discard the transaction's writes. Safe to call more than once."""
        if self._finished:
            return
        try:
            self._conn.rollback()
        except sqlite3.Error as err:
            log.error("rollback_failed", error=str(err))
        finally:
            self._close()

    def _close(self) -> None:
        self._finished = True
        self._conn.close()

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self.committed:
            if exc is not None:
                log.info("transaction_rolled_back", reason=type(exc).__name__, detail=str(exc))
            self.rollback()


def rollback(tx: Transaction | None) -> None:
    """Roll back tx if there is one."""
    if tx is not None:
        tx.rollback()


class Database:
    """Handle on the database file, shared by every service.

    Each transaction opens its own connection, so a Database may be used from
    several threads at once.
    """

    def __init__(self, path: Path | None = None, timeout: float = 5.0) -> None:
        self.path = path if path is not None else get_db_path()
        self.timeout = timeout

    def connect(self) -> sqlite3.Connection:
        """Open a connection in autocommit mode with foreign keys enforced."""
        conn = sqlite3.connect(self.path, timeout=self.timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def begin(self, ctx: RequestContext) -> Transaction:
        """Start a write transaction bound to ctx.

        Raises:
            RequestCancelled: If ctx is already done.
            SystemFailure: DATABASE_CONNECTIVITY if the database can't be opened.
        """
        ctx.raise_if_done()
        try:
            conn = self.connect()
        except sqlite3.Error as err:
            raise SystemFailure(ErrorCode.DATABASE_CONNECTIVITY, f"Cannot open database {self.path}") from err

        try:
            conn.set_progress_handler(lambda: 1 if ctx.done() else 0, _PROGRESS_INTERVAL)
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as err:
            conn.close()
            raise SystemFailure(ErrorCode.DATABASE_CONNECTIVITY, "Cannot begin transaction") from err
        return Transaction(conn, ctx)

    def ping(self) -> bool:
        """True if the database file can be opened and queried."""
        if not self.path.exists():
            return False
        try:
            conn = sqlite3.connect(f"{self.path.resolve().as_uri()}?mode=rw", uri=True, timeout=self.timeout)
        except sqlite3.Error as err:
            log.warning("database_ping_failed", db_path=str(self.path), error=str(err))
            return False
        try:
            conn.execute("SELECT 1 FROM schema_version LIMIT 1").fetchall()
            return True
        except sqlite3.Error as err:
            log.warning("database_ping_failed", db_path=str(self.path), error=str(err))
            return False
        finally:
            conn.close()
