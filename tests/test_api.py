"""
HTTP surface: registration, claim cycle, trade endpoints, wallet and admin routes.
"""

from __future__ import annotations

import pytest
import requests

from nmx_backend import config
from nmx_backend import ton_client

PROJECT_WALLET = "UQBc7zwA9otknd4KC4zQUx6oxSWdqPtOjUNKZ-zO3vNJxV7s"


@pytest.fixture
def api_clock(monkeypatch, clock):
    from nmx_backend import app as app_module

    monkeypatch.setattr(app_module.CLAIM_TIMER, "now_func", clock)
    monkeypatch.setattr(app_module.TRADE_LIMITER, "now_func", clock)
    return clock


@pytest.fixture
def admin(monkeypatch):
    monkeypatch.setattr(config, "ADMIN_TOKEN", "admin-secret")
    return {"X-Admin-Token": "admin-secret"}


def _register(client):
    r = client.post("/register")
    assert r.status_code == 200
    data = r.json()
    return data, {"Authorization": f"Bearer {data['secret']}"}


def test_register_starts_locked(client, api_clock):
    data, headers = _register(client)
    assert len(data["account_id"]) == 40
    assert data["countdown_end"] == api_clock() + config.COOLDOWN_SEC

    s = client.get("/status", headers=headers).json()
    assert s["balance"] == 0
    assert s["remaining_seconds"] == config.COOLDOWN_SEC
    assert s["can_claim"] is False


def test_claim_cycle(client, api_clock):
    _, headers = _register(client)

    r = client.post("/claim", headers=headers)
    assert r.status_code == 429
    assert r.json()["error"] == "not_ready"
    assert r.json()["remaining_seconds"] == config.COOLDOWN_SEC

    api_clock.advance(config.COOLDOWN_SEC)
    r = client.post("/claim", headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["balance"] == config.REWARD_AMOUNT
    assert body["total_earned"] == config.REWARD_AMOUNT
    assert body["countdown_end"] == api_clock() + config.COOLDOWN_SEC

    s = client.get("/status", headers=headers).json()
    assert s["can_claim"] is False
    assert s["balance"] == config.REWARD_AMOUNT


def test_auth_required(client):
    assert client.get("/status").status_code == 401
    assert client.post("/claim", headers={"Authorization": "Bearer "}).status_code == 401

    r = client.get("/status", headers={"Authorization": "Bearer never-registered"})
    assert r.status_code == 401
    assert r.json()["error"] == "unknown_account"


def test_trade_config_is_public(client):
    r = client.get("/trade/config")
    assert r.status_code == 200
    assert r.json() == {
        "rate": 2000,
        "min_amount": 1,
        "max_amount": 10,
        "daily_limit": 5000,
        "wallet_max": 100000,
        "project_wallet": config.PROJECT_WALLET,
    }


def test_admin_deposit_requires_token(client, admin):
    data, _ = _register(client)
    payload = {"account_id": data["account_id"], "ton_amount": 5}

    assert client.post("/admin/deposit", json=payload).status_code == 403
    assert client.post("/admin/deposit", json=payload, headers={"X-Admin-Token": "wrong"}).status_code == 403

    r = client.post("/admin/deposit", json=payload, headers=admin)
    assert r.status_code == 200
    assert r.json() == {"account_id": data["account_id"], "ton_balance": 5}


def test_admin_deposit_rejects_bad_input(client, admin):
    data, _ = _register(client)
    r = client.post("/admin/deposit", json={"account_id": data["account_id"], "ton_amount": "-3"}, headers=admin)
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_amount"

    r = client.post("/admin/deposit", json={"account_id": "missing", "ton_amount": 1}, headers=admin)
    assert r.status_code == 401


@pytest.mark.parametrize("amount", ["1e999999999", "1e30", "0.0000000001"])
def test_admin_deposit_rejects_unrepresentable_amounts(client, admin, amount):
    data, _ = _register(client)
    r = client.post("/admin/deposit", json={"account_id": data["account_id"], "ton_amount": amount}, headers=admin)
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_amount"


def test_trade_flow(client, admin, api_clock):
    data, headers = _register(client)
    client.post("/admin/deposit", json={"account_id": data["account_id"], "ton_amount": 10}, headers=admin)

    r = client.post("/trade/buy", json={"ton_amount": 1}, headers=headers)
    assert r.status_code == 200
    t = r.json()
    assert t["tokens_received"] == 2000
    assert t["new_ton_balance"] == 9
    assert t["new_locked_balance"] == 2000
    assert t["timestamp"] == api_clock()

    stats = client.get("/trade/stats", headers=headers).json()
    assert stats["locked_balance"] == 2000
    assert stats["today_purchased"] == 2000
    assert stats["today_remaining"] == 3000
    assert stats["wallet_remaining"] == 98000
    assert stats["total_trades"] == 1
    assert stats["can_trade"] is True

    history = client.get("/trade/history", headers=headers).json()
    assert len(history) == 1
    assert history[0]["trade_id"] == t["trade_id"]

    r = client.post("/trade/buy", json={"ton_amount": 2}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"] == "daily_limit_exceeded"
    assert r.json()["remaining"] == 3000

    platform = client.get("/trade/platform-stats").json()
    assert platform["total_trades"] == 1
    assert platform["total_nmx_sold"] == 2000
    assert platform["total_ton_collected"] == 1


@pytest.mark.parametrize(
    "payload, error",
    [
        ({"ton_amount": "abc"}, "invalid_amount"),
        ({}, "invalid_amount"),
        ({"ton_amount": -1}, "invalid_amount"),
        ({"ton_amount": 0.5}, "out_of_range"),
        ({"ton_amount": 20}, "out_of_range"),
        ({"ton_amount": "10.0000000001"}, "out_of_range"),
        ({"ton_amount": "0.0000000001"}, "out_of_range"),
        ({"ton_amount": "1e999999999"}, "out_of_range"),
        ({"ton_amount": 1}, "insufficient_funds"),
    ],
)
def test_trade_rejections(client, payload, error):
    _, headers = _register(client)
    r = client.post("/trade/buy", json=payload, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"] == error


def test_trade_out_of_range_reports_bounds(client):
    _, headers = _register(client)
    body = client.post("/trade/buy", json={"ton_amount": 11}, headers=headers).json()
    assert body["min"] == 1
    assert body["max"] == 10


def test_trade_nan_is_invalid(client):
    _, headers = _register(client)
    r = client.post(
        "/trade/buy",
        content='{"ton_amount": NaN}',
        headers={**headers, "Content-Type": "application/json"},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_amount"


def test_wallet_link_and_info(client, monkeypatch):
    from nmx_backend import app as app_module

    _, headers = _register(client)

    info = client.get("/wallet", headers=headers).json()
    assert info == {"address": None, "ton_balance": 0, "onchain_balance": 0, "onchain_ok": False}

    r = client.post("/wallet/link", json={"address": "nope"}, headers=headers)
    assert r.status_code == 400

    r = client.post("/wallet/link", json={"address": PROJECT_WALLET}, headers=headers)
    assert r.status_code == 200
    assert r.json()["address"] == PROJECT_WALLET

    monkeypatch.setattr(app_module, "get_onchain_balance", lambda addr: (12.5, True))
    info = client.get("/wallet", headers=headers).json()
    assert info["address"] == PROJECT_WALLET
    assert info["onchain_balance"] == 12.5
    assert info["onchain_ok"] is True


def test_wallet_onchain_failure_keeps_ledger(client, admin, monkeypatch):
    data, headers = _register(client)
    client.post("/wallet/link", json={"address": PROJECT_WALLET}, headers=headers)
    client.post("/admin/deposit", json={"account_id": data["account_id"], "ton_amount": 3}, headers=admin)

    def down(*args, **kwargs):
        raise requests.ConnectionError("node down")

    monkeypatch.setattr(ton_client.requests, "get", down)
    info = client.get("/wallet", headers=headers).json()
    assert info["onchain_ok"] is False
    assert info["onchain_balance"] == 0
    assert info["ton_balance"] == 3


def test_token_prices_fallback(client, monkeypatch):
    from nmx_backend import app as app_module

    def down(*args, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(ton_client.requests, "get", down)
    monkeypatch.setattr(app_module, "PRICE_FEED", ton_client.PriceFeed(ttl_sec=60))
    body = client.get("/wallet/token-prices").json()
    assert body["source"] == "fallback"
    assert body["NMX"]["price"] == config.NMX_PRICE_USD


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["database"] == "connected"
