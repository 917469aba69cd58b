# models.py
from typing import Any, Optional

from pydantic import BaseModel


# Account / claim
class RegisterOut(BaseModel):
    secret: str               # bearer secret; only shown once
    account_id: str
    countdown_end: int


class StatusOut(BaseModel):
    balance: int
    total_earned: int
    remaining_seconds: int
    can_claim: bool
    countdown_end: int
    server_time: int


class ClaimOut(BaseModel):
    balance: int
    total_earned: int
    last_claim: int
    countdown_end: int


# Trade
class TradeConfigOut(BaseModel):
    rate: int
    min_amount: float
    max_amount: float
    daily_limit: float
    wallet_max: float
    project_wallet: str


class TradeStatsOut(BaseModel):
    locked_balance: float
    today_purchased: float
    today_remaining: float
    wallet_remaining: float
    total_trades: int
    total_ton_spent: float
    can_trade: bool


class TradeBuyIn(BaseModel):
    # Left untyped so malformed values reach the limiter and fail as invalid_amount.
    ton_amount: Any = None


class TradeOut(BaseModel):
    ton_spent: float
    tokens_received: float
    rate: int
    new_ton_balance: float
    new_locked_balance: float
    trade_id: int
    timestamp: int


class TradeHistoryEntryOut(BaseModel):
    trade_id: int
    created_at: int
    ton_spent: float
    nmx_received: float
    rate: int
    status: str


class PlatformStatsOut(BaseModel):
    total_nmx_sold: float
    total_nmx_remaining: float
    total_ton_collected: float
    total_trades: int
    percentage_sold: float


# Wallet
class WalletLinkIn(BaseModel):
    address: str


class WalletOut(BaseModel):
    address: Optional[str] = None
    ton_balance: float
    onchain_balance: float
    onchain_ok: bool


class DepositIn(BaseModel):
    account_id: str
    ton_amount: Any = None


class DepositOut(BaseModel):
    account_id: str
    ton_balance: float


class HealthOut(BaseModel):
    status: str
    database: str
    server_time: int
