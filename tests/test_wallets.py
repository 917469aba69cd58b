from __future__ import annotations

import pytest

from nmx_backend.errors import UnknownAccount
from nmx_backend.helpers import NANO
from nmx_backend.wallets import credit_deposit, get_wallet, is_valid_ton_address, link_wallet

PROJECT_WALLET = "UQBc7zwA9otknd4KC4zQUx6oxSWdqPtOjUNKZ-zO3vNJxV7s"
RAW_WALLET = "0:" + "ab" * 32


@pytest.mark.parametrize("addr", [PROJECT_WALLET, RAW_WALLET, "-1:" + "0F" * 32])
def test_valid_addresses(addr):
    assert is_valid_ton_address(addr) is True


@pytest.mark.parametrize("addr", ["", "   ", "not-an-address", PROJECT_WALLET[:-1], "0:abc", "A" * 48])
def test_invalid_addresses(addr):
    assert is_valid_ton_address(addr) is False


def test_link_then_deposit(db_func, make_account, clock):
    account_id = make_account()
    con = db_func()
    try:
        w = link_wallet(con, account_id, PROJECT_WALLET, clock())
        assert w.address == PROJECT_WALLET
        assert w.ton_balance_nano == 0

        w = credit_deposit(con, account_id, 3 * NANO, clock())
        w = credit_deposit(con, account_id, NANO, clock())
        assert w.ton_balance_nano == 4 * NANO
        # deposit keeps the linked address
        assert get_wallet(con, account_id).address == PROJECT_WALLET

        # relinking keeps funds
        w = link_wallet(con, account_id, RAW_WALLET, clock())
        assert w.address == RAW_WALLET
        assert w.ton_balance_nano == 4 * NANO
    finally:
        con.close()


def test_deposit_without_link_creates_wallet(db_func, make_account, clock):
    account_id = make_account()
    con = db_func()
    try:
        w = credit_deposit(con, account_id, NANO, clock())
        assert w.address is None
        assert w.ton_balance_nano == NANO
    finally:
        con.close()


def test_unknown_account(db_func, clock):
    con = db_func()
    try:
        with pytest.raises(UnknownAccount):
            link_wallet(con, "missing", PROJECT_WALLET, clock())
        with pytest.raises(UnknownAccount):
            credit_deposit(con, "missing", NANO, clock())
    finally:
        con.close()
