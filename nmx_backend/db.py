# db.py
import logging
import random
import sqlite3
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, TypeVar

from . import config
from .errors import StorageConflict, StorageUnavailable

log = logging.getLogger(__name__)

T = TypeVar("T")


def _storage_error(e: sqlite3.OperationalError) -> Exception:
    msg = str(e).lower()
    if "locked" in msg or "busy" in msg:
        return StorageConflict()
    return StorageUnavailable(f"storage unavailable: {e}")


def db(path: Optional[str] = None) -> sqlite3.Connection:
    try:
        con = sqlite3.connect(path or config.DB_PATH, timeout=30, isolation_level=None)  # autocommit
        con.execute("PRAGMA journal_mode=WAL;")
        con.execute("PRAGMA synchronous=NORMAL;")
    except sqlite3.OperationalError as e:
        raise _storage_error(e) from e
    return con


def init_db(path: Optional[str] = None) -> None:
    con = db(path)
    try:
        con.execute("""
        CREATE TABLE IF NOT EXISTS accounts (
          account_id TEXT PRIMARY KEY,
          created_at INTEGER NOT NULL,
          balance INTEGER NOT NULL DEFAULT 0 CHECK (balance >= 0),
          total_earned INTEGER NOT NULL DEFAULT 0 CHECK (total_earned >= 0),
          countdown_end INTEGER NOT NULL,
          last_claim INTEGER,
          locked_nano INTEGER NOT NULL DEFAULT 0 CHECK (locked_nano >= 0)
        );
        """)
        con.execute("""
        CREATE TABLE IF NOT EXISTS wallets (
          account_id TEXT PRIMARY KEY,
          address TEXT,
          ton_balance_nano INTEGER NOT NULL DEFAULT 0 CHECK (ton_balance_nano >= 0),
          updated_at INTEGER NOT NULL
        );
        """)
        con.execute("""
        CREATE TABLE IF NOT EXISTS daily_trade_limits (
          account_id TEXT NOT NULL,
          trade_date TEXT NOT NULL,
          total_nano INTEGER NOT NULL CHECK (total_nano >= 0),
          PRIMARY KEY(account_id, trade_date)
        );
        """)
        con.execute("""
        CREATE TABLE IF NOT EXISTS trades (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          created_at INTEGER NOT NULL,
          account_id TEXT NOT NULL,
          ton_spent_nano INTEGER NOT NULL,
          nmx_received_nano INTEGER NOT NULL,
          rate INTEGER NOT NULL,
          status TEXT NOT NULL
        );
        """)
        con.execute(
            "CREATE INDEX IF NOT EXISTS idx_trades_account_created ON trades(account_id, created_at DESC);"
        )
    finally:
        con.close()


@contextmanager
def transaction(con: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run the block inside BEGIN IMMEDIATE ... COMMIT.

    The write lock is taken up front, so every read inside the block sees
    state no other writer can change until we commit or roll back. Busy or
    locked databases surface as StorageConflict, other operational errors as
    StorageUnavailable. Any exception rolls the whole block back.
    """
    try:
        con.execute("BEGIN IMMEDIATE;")
    except sqlite3.OperationalError as e:
        raise _storage_error(e) from e
    try:
        yield con
        con.execute("COMMIT;")
    except sqlite3.OperationalError as e:
        _rollback(con)
        raise _storage_error(e) from e
    except BaseException:
        _rollback(con)
        raise


def _rollback(con: sqlite3.Connection) -> None:
    try:
        con.execute("ROLLBACK;")
    except sqlite3.Error as e:
        # Nothing to roll back (e.g. COMMIT already failed and closed the tx)
        log.debug("[db] rollback skipped: %s", e)


def run_with_retry(op: Callable[[], T], attempts: Optional[int] = None, label: str = "ledger") -> T:
    """Re-run a full read-validate-write operation on StorageConflict.

    ``op`` must open its own connection and transaction so every attempt
    starts from fresh reads.
    """
    attempts = max(1, int(attempts if attempts is not None else config.LEDGER_RETRIES))
    for attempt in range(1, attempts + 1):
        try:
            return op()
        except StorageConflict:
            if attempt >= attempts:
                log.warning("[%s] conflict, giving up after %d attempts", label, attempts)
                raise
            log.warning("[%s] conflict on attempt %d/%d, retrying", label, attempt, attempts)
            time.sleep(random.uniform(0.005, 0.02) * attempt)
    raise StorageConflict()
