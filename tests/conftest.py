"""
Pytest fixtures for the NMX backend. Every test gets its own temporary SQLite DB.
"""

from __future__ import annotations

import pytest

# 2023-11-14 22:13:20 UTC
T0 = 1_700_000_000


class FakeClock:
    def __init__(self, t: int = T0):
        self.t = int(t)

    def __call__(self) -> int:
        return self.t

    def advance(self, seconds: int) -> None:
        self.t += int(seconds)


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Point the app at a temporary SQLite DB and create the schema."""
    from nmx_backend import config
    from nmx_backend.db import init_db

    path = str(tmp_path / "nmx.db")
    monkeypatch.setattr(config, "DB_PATH", path)
    init_db(path)
    return path


@pytest.fixture
def db_func(db_path):
    from nmx_backend.db import db

    return lambda: db(db_path)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_account(db_func, clock):
    """Create an account and optionally seed its ledger state directly."""
    from nmx_backend.accounts import create_account
    from nmx_backend.config import COOLDOWN_SEC
    from nmx_backend.helpers import to_nano

    def _make(countdown_end=None, locked=0, ton_nano=0, balance=0):
        con = db_func()
        try:
            _, acct = create_account(con, clock(), COOLDOWN_SEC)
            if countdown_end is not None:
                con.execute(
                    "UPDATE accounts SET countdown_end=? WHERE account_id=?",
                    (countdown_end, acct.account_id),
                )
            con.execute(
                "UPDATE accounts SET locked_nano=?, balance=? WHERE account_id=?",
                (to_nano(locked), balance, acct.account_id),
            )
            if ton_nano:
                con.execute(
                    "INSERT INTO wallets(account_id, address, ton_balance_nano, updated_at) VALUES(?,?,?,?)",
                    (acct.account_id, None, ton_nano, clock()),
                )
        finally:
            con.close()
        return acct.account_id

    return _make


@pytest.fixture
def client(db_path):
    """FastAPI TestClient. Depends on db_path so the temp DB is set before the app starts."""
    from fastapi.testclient import TestClient

    from nmx_backend.app import app

    with TestClient(app) as c:
        yield c
