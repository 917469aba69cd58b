# wallets.py
"""
Linked TON wallet and internal TON funds per account.

``ton_balance_nano`` is what a trade spends. It only grows through
``credit_deposit`` (an operator-confirmed deposit); the on-chain balance of the
linked address is advisory and never written here.
"""
import base64
import binascii
import logging
import re
import sqlite3
from dataclasses import dataclass
from typing import Optional

from .accounts import account_exists
from .db import transaction
from .errors import UnknownAccount

log = logging.getLogger(__name__)

RAW_ADDRESS_RE = re.compile(r"^-?\d+:[0-9a-fA-F]{64}$")

# bounceable / non-bounceable, each optionally test-only
FRIENDLY_FLAGS = {0x11, 0x51, 0x91, 0xD1}


@dataclass
class Wallet:
    account_id: str
    address: Optional[str]
    ton_balance_nano: int


def is_valid_ton_address(addr: str) -> bool:
    """Structural check of a TON address (raw ``wc:hex`` or 48-char user-friendly form)."""
    addr = (addr or "").strip()
    if not addr:
        return False
    if RAW_ADDRESS_RE.match(addr):
        return True
    if len(addr) != 48:
        return False
    try:
        raw = base64.urlsafe_b64decode(addr.replace("+", "-").replace("/", "_"))
    except (binascii.Error, ValueError):
        return False
    if len(raw) != 36:
        return False
    return raw[0] in FRIENDLY_FLAGS and raw[1] in (0x00, 0xFF)


def get_wallet(con: sqlite3.Connection, account_id: str) -> Optional[Wallet]:
    row = con.execute(
        "SELECT account_id, address, ton_balance_nano FROM wallets WHERE account_id=?",
        (account_id,),
    ).fetchone()
    if not row:
        return None
    return Wallet(account_id=str(row[0]), address=row[1], ton_balance_nano=int(row[2]))


def link_wallet(con: sqlite3.Connection, account_id: str, address: str, now: int) -> Wallet:
    with transaction(con):
        if not account_exists(con, account_id):
            raise UnknownAccount(account_id)
        con.execute(
            """
            INSERT INTO wallets(account_id, address, ton_balance_nano, updated_at)
            VALUES(?,?,0,?)
            ON CONFLICT(account_id) DO UPDATE SET address=excluded.address, updated_at=excluded.updated_at
            """,
            (account_id, address, now),
        )
        wallet = get_wallet(con, account_id)
    log.info("[wallet] account=%s linked %s", account_id, address)
    return wallet


def credit_deposit(con: sqlite3.Connection, account_id: str, ton_nano: int, now: int) -> Wallet:
    with transaction(con):
        if not account_exists(con, account_id):
            raise UnknownAccount(account_id)
        con.execute(
            """
            INSERT INTO wallets(account_id, address, ton_balance_nano, updated_at)
            VALUES(?,NULL,?,?)
            ON CONFLICT(account_id) DO UPDATE SET
              ton_balance_nano = ton_balance_nano + excluded.ton_balance_nano,
              updated_at = excluded.updated_at
            """,
            (account_id, ton_nano, now),
        )
        wallet = get_wallet(con, account_id)
    log.info("[deposit] account=%s +%d nanoton balance=%d", account_id, ton_nano, wallet.ton_balance_nano)
    return wallet
