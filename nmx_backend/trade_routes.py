# trade_routes.py
from typing import Callable, List

from fastapi import APIRouter, Request

from .models import (
    PlatformStatsOut,
    TradeBuyIn,
    TradeConfigOut,
    TradeHistoryEntryOut,
    TradeOut,
    TradeStatsOut,
)
from .trade_limiter import TradeLimiter


def create_trade_router(
    limiter: TradeLimiter,
    auth_func: Callable[[Request], str],
) -> APIRouter:
    """Trade endpoints. Mount with prefix `/trade`.

    Ledger errors raised by the limiter propagate to the app-level
    LedgerError handler.
    """
    router = APIRouter()

    @router.get("/config", response_model=TradeConfigOut)
    def trade_config():
        return TradeConfigOut(**limiter.trade_config())

    @router.get("/stats", response_model=TradeStatsOut)
    def trade_stats(req: Request):
        me = auth_func(req)
        s = limiter.trade_stats(me)
        return TradeStatsOut(
            locked_balance=s.locked_balance,
            today_purchased=s.today_purchased,
            today_remaining=s.today_remaining,
            wallet_remaining=s.wallet_remaining,
            total_trades=s.total_trades,
            total_ton_spent=s.total_ton_spent,
            can_trade=s.can_trade,
        )

    @router.get("/history", response_model=List[TradeHistoryEntryOut])
    def trade_history(req: Request, limit: int = 50):
        me = auth_func(req)
        return [TradeHistoryEntryOut(**t) for t in limiter.trade_history(me, limit=limit)]

    @router.post("/buy", response_model=TradeOut)
    def trade_buy(data: TradeBuyIn, req: Request):
        me = auth_func(req)
        r = limiter.evaluate_and_execute(me, data.ton_amount)
        return TradeOut(
            ton_spent=r.ton_spent,
            tokens_received=r.tokens_received,
            rate=r.rate,
            new_ton_balance=r.new_ton_balance,
            new_locked_balance=r.new_locked_balance,
            trade_id=r.trade_id,
            timestamp=r.timestamp,
        )

    @router.get("/platform-stats", response_model=PlatformStatsOut)
    def trade_platform_stats():
        return PlatformStatsOut(**limiter.platform_stats())

    return router
