# trade_limiter.py
"""
Admission control for TON -> NMX trades.

A trade is checked against three independent bounds before anything is
written:

  - per transaction: MIN_TRADE <= ton_amount <= MAX_TRADE
  - per UTC day:     today_total + tokens <= DAILY_LIMIT
  - per lifetime:    locked + tokens <= WALLET_MAX

Bounds are inclusive. Format and range are checked first without touching
the database; funds, lifetime and daily checks run inside the same
BEGIN IMMEDIATE transaction that applies the debit, the two credits and the
trade row, so either all four land or none do.
"""
import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .accounts import get_account
from .config import TradePolicy
from .db import run_with_retry, transaction
from .errors import (
    DailyLimitExceeded,
    InsufficientFunds,
    OutOfRange,
    StorageConflict,
    UnknownAccount,
    WalletLimitExceeded,
)
from .helpers import day_key, from_nano, now_unix, parse_ton_decimal, to_nano, ton_to_nano
from .trade_store import (
    fetch_trades_for_account,
    get_daily_total,
    platform_totals,
    trade_totals_for_account,
)
from .wallets import get_wallet

log = logging.getLogger(__name__)

TRADE_STATUS_COMPLETED = "completed"


@dataclass
class TradeResult:
    ton_spent: float
    tokens_received: float
    rate: int
    new_ton_balance: float
    new_locked_balance: float
    trade_id: int
    timestamp: int


@dataclass
class TradeStats:
    locked_balance: float
    today_purchased: float
    today_remaining: float
    wallet_remaining: float
    total_trades: int
    total_ton_spent: float
    can_trade: bool


class TradeLimiter:
    def __init__(
        self,
        db_func: Callable[[], sqlite3.Connection],
        now_func: Callable[[], int] = now_unix,
        policy: Optional[TradePolicy] = None,
        retries: Optional[int] = None,
    ):
        self.db_func = db_func
        self.now_func = now_func
        self.policy = policy or TradePolicy()
        self.retries = retries

    # ---------------------------
    # Read path
    # ---------------------------
    def trade_config(self) -> Dict[str, Any]:
        p = self.policy
        return {
            "rate": p.rate,
            "min_amount": p.min_trade,
            "max_amount": p.max_trade,
            "daily_limit": p.daily_limit,
            "wallet_max": p.wallet_max,
            "project_wallet": p.project_wallet,
        }

    def trade_stats(self, account_id: str) -> TradeStats:
        now = int(self.now_func())
        con = self.db_func()
        try:
            acct = get_account(con, account_id)
            if acct is None:
                raise UnknownAccount(account_id)
            today = get_daily_total(con, account_id, day_key(now)) or 0
            count, ton_spent = trade_totals_for_account(con, account_id)
        finally:
            con.close()

        wallet_max = to_nano(self.policy.wallet_max)
        daily_limit = to_nano(self.policy.daily_limit)
        return TradeStats(
            locked_balance=from_nano(acct.locked_nano),
            today_purchased=from_nano(today),
            today_remaining=from_nano(max(0, daily_limit - today)),
            wallet_remaining=from_nano(max(0, wallet_max - acct.locked_nano)),
            total_trades=count,
            total_ton_spent=from_nano(ton_spent),
            can_trade=acct.locked_nano < wallet_max and today < daily_limit,
        )

    def trade_history(self, account_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        con = self.db_func()
        try:
            return fetch_trades_for_account(con, account_id, limit=limit)
        finally:
            con.close()

    def platform_stats(self) -> Dict[str, Any]:
        con = self.db_func()
        try:
            count, nmx_sold, ton_collected = platform_totals(con)
        finally:
            con.close()
        supply = to_nano(self.policy.total_supply)
        return {
            "total_nmx_sold": from_nano(nmx_sold),
            "total_nmx_remaining": from_nano(max(0, supply - nmx_sold)),
            "total_ton_collected": from_nano(ton_collected),
            "total_trades": count,
            "percentage_sold": round(nmx_sold * 100.0 / supply, 2) if supply else 0.0,
        }

    # ---------------------------
    # Write path
    # ---------------------------
    def admit_amount(self, ton_amount: Any) -> int:
        """Format and per-transaction range checks. Returns the amount in nanotons.

        Bounds are compared against the exact submitted value; truncation to
        nanotons only happens once the amount is known to be in range.
        """
        d = parse_ton_decimal(ton_amount)
        p = self.policy
        if d < p.min_trade or d > p.max_trade:
            raise OutOfRange(p.min_trade, p.max_trade)
        return ton_to_nano(d)

    def evaluate_and_execute(self, account_id: str, ton_amount: Any) -> TradeResult:
        ton_nano = self.admit_amount(ton_amount)
        nmx_nano = ton_nano * int(self.policy.rate)
        now = int(self.now_func())
        return run_with_retry(
            lambda: self._execute_once(account_id, ton_nano, nmx_nano, now),
            self.retries,
            label="trade",
        )

    def _execute_once(self, account_id: str, ton_nano: int, nmx_nano: int, now: int) -> TradeResult:
        p = self.policy
        wallet_max = to_nano(p.wallet_max)
        daily_limit = to_nano(p.daily_limit)
        trade_date = day_key(now)

        con = self.db_func()
        try:
            with transaction(con):
                acct = get_account(con, account_id)
                if acct is None:
                    raise UnknownAccount(account_id)

                wallet = get_wallet(con, account_id)
                ton_balance = wallet.ton_balance_nano if wallet else 0
                if ton_balance < ton_nano:
                    log.info("[trade] account=%s insufficient funds", account_id)
                    raise InsufficientFunds(from_nano(ton_balance))

                if acct.locked_nano + nmx_nano > wallet_max:
                    log.info("[trade] account=%s wallet limit", account_id)
                    raise WalletLimitExceeded(from_nano(max(0, wallet_max - acct.locked_nano)))

                today = get_daily_total(con, account_id, trade_date)
                today_total = today or 0
                if today_total + nmx_nano > daily_limit:
                    log.info("[trade] account=%s daily limit", account_id)
                    raise DailyLimitExceeded(from_nano(max(0, daily_limit - today_total)))

                # Every write is guarded on the value read above.
                cur = con.execute(
                    """
                    UPDATE wallets
                    SET ton_balance_nano = ton_balance_nano - ?, updated_at = ?
                    WHERE account_id=? AND ton_balance_nano=?
                    """,
                    (ton_nano, now, account_id, ton_balance),
                )
                if cur.rowcount != 1:
                    raise StorageConflict("wallet balance changed concurrently")

                cur = con.execute(
                    "UPDATE accounts SET locked_nano = locked_nano + ? WHERE account_id=? AND locked_nano=?",
                    (nmx_nano, account_id, acct.locked_nano),
                )
                if cur.rowcount != 1:
                    raise StorageConflict("locked balance changed concurrently")

                if today is None:
                    try:
                        con.execute(
                            "INSERT INTO daily_trade_limits(account_id, trade_date, total_nano) VALUES(?,?,?)",
                            (account_id, trade_date, nmx_nano),
                        )
                    except sqlite3.IntegrityError:
                        raise StorageConflict("daily record created concurrently")
                else:
                    cur = con.execute(
                        """
                        UPDATE daily_trade_limits
                        SET total_nano = total_nano + ?
                        WHERE account_id=? AND trade_date=? AND total_nano=?
                        """,
                        (nmx_nano, account_id, trade_date, today),
                    )
                    if cur.rowcount != 1:
                        raise StorageConflict("daily record changed concurrently")

                cur = con.execute(
                    """
                    INSERT INTO trades(created_at, account_id, ton_spent_nano, nmx_received_nano, rate, status)
                    VALUES(?,?,?,?,?,?)
                    """,
                    (now, account_id, ton_nano, nmx_nano, int(p.rate), TRADE_STATUS_COMPLETED),
                )
                trade_id = int(cur.lastrowid)
        finally:
            con.close()

        log.info(
            "[trade] account=%s id=%d ton=%s nmx=%s",
            account_id, trade_id, from_nano(ton_nano), from_nano(nmx_nano),
        )
        return TradeResult(
            ton_spent=from_nano(ton_nano),
            tokens_received=from_nano(nmx_nano),
            rate=int(p.rate),
            new_ton_balance=from_nano(ton_balance - ton_nano),
            new_locked_balance=from_nano(acct.locked_nano + nmx_nano),
            trade_id=trade_id,
            timestamp=now,
        )
