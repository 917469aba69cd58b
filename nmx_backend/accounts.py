# accounts.py
import logging
import secrets
import sqlite3
from dataclasses import dataclass
from typing import Optional, Tuple

from .helpers import address_from_secret

log = logging.getLogger(__name__)

ACCOUNT_COLUMNS = "account_id, created_at, balance, total_earned, countdown_end, last_claim, locked_nano"


@dataclass
class Account:
    account_id: str
    created_at: int
    balance: int
    total_earned: int
    countdown_end: int
    last_claim: Optional[int]
    locked_nano: int


def _row_to_account(row) -> Account:
    return Account(
        account_id=str(row[0]),
        created_at=int(row[1]),
        balance=int(row[2]),
        total_earned=int(row[3]),
        countdown_end=int(row[4]),
        last_claim=int(row[5]) if row[5] is not None else None,
        locked_nano=int(row[6]),
    )


def get_account(con: sqlite3.Connection, account_id: str) -> Optional[Account]:
    row = con.execute(
        f"SELECT {ACCOUNT_COLUMNS} FROM accounts WHERE account_id=?",
        (account_id,),
    ).fetchone()
    return _row_to_account(row) if row else None


def account_exists(con: sqlite3.Connection, account_id: str) -> bool:
    row = con.execute("SELECT 1 FROM accounts WHERE account_id=?", (account_id,)).fetchone()
    return row is not None


def create_account(con: sqlite3.Connection, now: int, cooldown_sec: int) -> Tuple[str, Account]:
    """
    Create a new account using a freshly generated secret.
    Only the derived id is stored in the DB; the secret is returned to the caller.

    New accounts start Locked: the first claim opens one cooldown after signup.
    """
    while True:
        secret = secrets.token_hex(24)  # 24 bytes -> 48 hex characters
        account_id = address_from_secret(secret)
        try:
            con.execute(
                """
                INSERT INTO accounts(account_id, created_at, balance, total_earned, countdown_end, last_claim, locked_nano)
                VALUES(?,?,?,?,?,?,?)
                """,
                (account_id, now, 0, 0, now + cooldown_sec, None, 0),
            )
        except sqlite3.IntegrityError:
            # Extremely unlikely id collision; try again with a new secret.
            continue
        log.info("[register] account=%s countdown_end=%d", account_id, now + cooldown_sec)
        return secret, Account(
            account_id=account_id,
            created_at=now,
            balance=0,
            total_earned=0,
            countdown_end=now + cooldown_sec,
            last_claim=None,
            locked_nano=0,
        )
