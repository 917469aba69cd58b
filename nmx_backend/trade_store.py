# trade_store.py
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from .helpers import from_nano


def _clamp(limit: int, offset: int, max_limit: int) -> Tuple[int, int]:
    limit = int(limit)
    offset = int(offset)
    if limit < 1:
        limit = 1
    if limit > max_limit:
        limit = max_limit
    if offset < 0:
        offset = 0
    return limit, offset


def get_daily_total(con: sqlite3.Connection, account_id: str, trade_date: str) -> Optional[int]:
    """Return today's traded NMX (nano) or None if no record exists yet."""
    row = con.execute(
        "SELECT total_nano FROM daily_trade_limits WHERE account_id=? AND trade_date=?",
        (account_id, trade_date),
    ).fetchone()
    return int(row[0]) if row else None


def fetch_trades_for_account(
    con: sqlite3.Connection,
    account_id: str,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    limit, offset = _clamp(limit, offset, 50)

    rows = con.execute(
        """
        SELECT id, created_at, ton_spent_nano, nmx_received_nano, rate, status
        FROM trades
        WHERE account_id = ?
        ORDER BY created_at DESC, id DESC
        LIMIT ? OFFSET ?
        """,
        (str(account_id), limit, offset),
    ).fetchall()
    out: List[Dict[str, Any]] = []
    for r in rows:
        out.append(
            dict(
                trade_id=int(r[0]),
                created_at=int(r[1]),
                ton_spent=from_nano(r[2]),
                nmx_received=from_nano(r[3]),
                rate=int(r[4]),
                status=str(r[5]),
            )
        )
    return out


def trade_totals_for_account(con: sqlite3.Connection, account_id: str) -> Tuple[int, int]:
    """Return (trade_count, ton_spent_nano) for one account."""
    row = con.execute(
        "SELECT COUNT(*), COALESCE(SUM(ton_spent_nano), 0) FROM trades WHERE account_id=?",
        (str(account_id),),
    ).fetchone()
    return int(row[0]), int(row[1])


def platform_totals(con: sqlite3.Connection) -> Tuple[int, int, int]:
    """Return (trade_count, nmx_sold_nano, ton_collected_nano) across all accounts."""
    row = con.execute(
        "SELECT COUNT(*), COALESCE(SUM(nmx_received_nano), 0), COALESCE(SUM(ton_spent_nano), 0) FROM trades"
    ).fetchone()
    return int(row[0]), int(row[1]), int(row[2])
