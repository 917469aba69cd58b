# app.py
import logging
import sqlite3

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import config
from .accounts import account_exists, create_account
from .claim_timer import ClaimTimer
from .db import db, init_db, transaction
from .errors import LedgerError, StorageUnavailable, UnknownAccount
from .helpers import address_from_secret, consteq, from_nano, now_unix, parse_ton_amount
from .models import (
    ClaimOut,
    DepositIn,
    DepositOut,
    HealthOut,
    RegisterOut,
    StatusOut,
    WalletLinkIn,
    WalletOut,
)
from .ton_client import PriceFeed, get_onchain_balance
from .trade_limiter import TradeLimiter
from .trade_routes import create_trade_router
from .wallets import credit_deposit, get_wallet, is_valid_ton_address, link_wallet

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
log = logging.getLogger(__name__)


def _db() -> sqlite3.Connection:
    return db()


CLAIM_TIMER = ClaimTimer(_db, now_unix, config.ClaimPolicy())
TRADE_LIMITER = TradeLimiter(_db, now_unix, config.TradePolicy())
PRICE_FEED = PriceFeed()


# ---------------------------
# App
# ---------------------------
app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup():
    init_db()


@app.exception_handler(LedgerError)
async def _ledger_error(req: Request, exc: LedgerError):
    if isinstance(exc, StorageUnavailable):
        log.error("[ledger] %s %s: %s", req.method, req.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def auth_account(req: Request) -> str:
    # Header: Authorization: Bearer <secret>
    auth = req.headers.get("authorization", "")
    if not auth.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="missing bearer token")
    secret = auth.split(" ", 1)[1].strip()
    if not secret:
        raise HTTPException(status_code=401, detail="empty bearer token")
    return address_from_secret(secret)


def require_admin(req: Request) -> None:
    token = (req.headers.get("x-admin-token", "") or "").strip()
    if not config.ADMIN_TOKEN:
        raise HTTPException(status_code=403, detail="admin disabled")
    if not token or not consteq(token, config.ADMIN_TOKEN):
        raise HTTPException(status_code=403, detail="admin access required")


# ---------------------------
# Account / claim
# ---------------------------
@app.post("/register", response_model=RegisterOut)
def register():
    now = int(CLAIM_TIMER.now_func())
    con = db()
    try:
        with transaction(con):
            secret, acct = create_account(con, now, CLAIM_TIMER.policy.cooldown_sec)
    finally:
        con.close()
    return RegisterOut(secret=secret, account_id=acct.account_id, countdown_end=acct.countdown_end)


@app.get("/status", response_model=StatusOut)
def status(req: Request):
    """
    Authoritative claim state. Browser countdowns should re-sync from here
    instead of trusting their own timers.
    """
    account_id = auth_account(req)
    s = CLAIM_TIMER.get_status(account_id)
    return StatusOut(
        balance=s.balance,
        total_earned=s.total_earned,
        remaining_seconds=s.remaining_seconds,
        can_claim=s.can_claim,
        countdown_end=s.countdown_end,
        server_time=s.server_time,
    )


@app.post("/claim", response_model=ClaimOut)
def claim(req: Request):
    account_id = auth_account(req)
    r = CLAIM_TIMER.claim(account_id)
    return ClaimOut(
        balance=r.balance,
        total_earned=r.total_earned,
        last_claim=r.last_claim,
        countdown_end=r.countdown_end,
    )


# ---------------------------
# Trade
# ---------------------------
app.include_router(create_trade_router(TRADE_LIMITER, auth_account), prefix="/trade")


# ---------------------------
# Wallet
# ---------------------------
@app.get("/wallet", response_model=WalletOut)
def wallet_info(req: Request):
    account_id = auth_account(req)
    con = db()
    try:
        if not account_exists(con, account_id):
            raise UnknownAccount(account_id)
        wallet = get_wallet(con, account_id)
    finally:
        con.close()

    address = wallet.address if wallet else None
    ton_balance = from_nano(wallet.ton_balance_nano) if wallet else 0.0

    # Advisory lookup, outside any ledger transaction.
    onchain_balance, onchain_ok = 0.0, False
    if address:
        onchain_balance, onchain_ok = get_onchain_balance(address)

    return WalletOut(
        address=address,
        ton_balance=ton_balance,
        onchain_balance=onchain_balance,
        onchain_ok=onchain_ok,
    )


@app.post("/wallet/link", response_model=WalletOut)
def wallet_link(data: WalletLinkIn, req: Request):
    account_id = auth_account(req)
    address = (data.address or "").strip()
    if not is_valid_ton_address(address):
        raise HTTPException(status_code=400, detail="invalid TON address")

    con = db()
    try:
        wallet = link_wallet(con, account_id, address, now_unix())
    finally:
        con.close()
    return WalletOut(
        address=wallet.address,
        ton_balance=from_nano(wallet.ton_balance_nano),
        onchain_balance=0.0,
        onchain_ok=False,
    )


@app.get("/wallet/token-prices")
def token_prices():
    return PRICE_FEED.get_prices()


# ---------------------------
# Admin
# ---------------------------
@app.post("/admin/deposit", response_model=DepositOut)
def admin_deposit(data: DepositIn, req: Request):
    """Credit confirmed TON deposits to an account's internal funds."""
    require_admin(req)
    account_id = (data.account_id or "").strip()
    ton_nano = parse_ton_amount(data.ton_amount)

    con = db()
    try:
        wallet = credit_deposit(con, account_id, ton_nano, now_unix())
    finally:
        con.close()
    return DepositOut(account_id=account_id, ton_balance=from_nano(wallet.ton_balance_nano))


@app.get("/health", response_model=HealthOut)
def health():
    database = "connected"
    try:
        con = db()
        try:
            con.execute("SELECT 1 FROM accounts LIMIT 1").fetchall()
        finally:
            con.close()
    except (LedgerError, sqlite3.Error) as e:
        log.warning("[health] database check failed: %s", e)
        database = "disconnected"
    return HealthOut(status="healthy", database=database, server_time=now_unix())
