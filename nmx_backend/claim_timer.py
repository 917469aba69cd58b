# claim_timer.py
"""
24-hour reward cooldown per account.

An account is Locked while ``now < countdown_end`` and Ready once
``now >= countdown_end``. A successful claim credits the reward and moves the
account back to Locked for another cooldown, in a single guarded UPDATE
inside a BEGIN IMMEDIATE transaction.
"""
import logging
import sqlite3
from dataclasses import dataclass
from typing import Callable, Optional

from .accounts import get_account
from .config import ClaimPolicy
from .db import run_with_retry, transaction
from .errors import NotReady, StorageConflict, UnknownAccount
from .helpers import now_unix

log = logging.getLogger(__name__)


@dataclass
class ClaimStatus:
    balance: int
    total_earned: int
    remaining_seconds: int
    can_claim: bool
    countdown_end: int
    server_time: int


@dataclass
class ClaimResult:
    balance: int
    total_earned: int
    last_claim: int
    countdown_end: int


class ClaimTimer:
    def __init__(
        self,
        db_func: Callable[[], sqlite3.Connection],
        now_func: Callable[[], int] = now_unix,
        policy: Optional[ClaimPolicy] = None,
        retries: Optional[int] = None,
    ):
        self.db_func = db_func
        self.now_func = now_func
        self.policy = policy or ClaimPolicy()
        self.retries = retries

    def get_status(self, account_id: str) -> ClaimStatus:
        now = int(self.now_func())
        con = self.db_func()
        try:
            acct = get_account(con, account_id)
        finally:
            con.close()
        if acct is None:
            raise UnknownAccount(account_id)

        remaining = max(0, acct.countdown_end - now)
        return ClaimStatus(
            balance=acct.balance,
            total_earned=acct.total_earned,
            remaining_seconds=remaining,
            can_claim=remaining == 0,
            countdown_end=acct.countdown_end,
            server_time=now,
        )

    def claim(self, account_id: str) -> ClaimResult:
        # One canonical "now" for the whole request, including retries.
        now = int(self.now_func())
        return run_with_retry(lambda: self._claim_once(account_id, now), self.retries, label="claim")

    def _claim_once(self, account_id: str, now: int) -> ClaimResult:
        reward = int(self.policy.reward_amount)
        new_end = now + int(self.policy.cooldown_sec)

        con = self.db_func()
        try:
            with transaction(con):
                acct = get_account(con, account_id)
                if acct is None:
                    raise UnknownAccount(account_id)

                if now < acct.countdown_end:
                    remaining = acct.countdown_end - now
                    log.info("[claim] account=%s not ready, %ds remaining", account_id, remaining)
                    raise NotReady(remaining)

                # countdown_end and last_claim move together; the countdown_end
                # guard turns a lost race into a conflict instead of a double claim.
                cur = con.execute(
                    """
                    UPDATE accounts
                    SET balance = balance + ?,
                        total_earned = total_earned + ?,
                        last_claim = ?,
                        countdown_end = ?
                    WHERE account_id=? AND countdown_end=?
                    """,
                    (reward, reward, now, new_end, account_id, acct.countdown_end),
                )
                if cur.rowcount != 1:
                    raise StorageConflict("claim raced with another update")
        finally:
            con.close()

        log.info("[claim] account=%s +%d balance=%d", account_id, reward, acct.balance + reward)
        return ClaimResult(
            balance=acct.balance + reward,
            total_earned=acct.total_earned + reward,
            last_claim=now,
            countdown_end=new_end,
        )
