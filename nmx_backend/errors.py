# errors.py
"""
Ledger errors.

Every rejection raised by ClaimTimer / TradeLimiter is a LedgerError. The
FastAPI app turns them into JSON responses of the form
``{"error": <code>, "detail": <text>, **payload}`` with ``status_code``.
"""
from typing import Any, Dict


class LedgerError(Exception):
    status_code = 400
    code = "ledger_error"

    def __init__(self, detail: str, **payload: Any):
        super().__init__(detail)
        self.detail = detail
        self.payload: Dict[str, Any] = payload

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"error": self.code, "detail": self.detail}
        out.update(self.payload)
        return out


class UnknownAccount(LedgerError):
    status_code = 401
    code = "unknown_account"

    def __init__(self, account_id: str):
        super().__init__("unknown account")
        self.account_id = account_id


class NotReady(LedgerError):
    status_code = 429
    code = "not_ready"

    def __init__(self, remaining_seconds: int):
        super().__init__(
            f"claim not ready, {remaining_seconds}s remaining",
            remaining_seconds=remaining_seconds,
        )
        self.remaining_seconds = remaining_seconds


class InvalidAmount(LedgerError):
    code = "invalid_amount"

    def __init__(self, detail: str = "Invalid TON amount"):
        super().__init__(detail)


class OutOfRange(LedgerError):
    code = "out_of_range"

    def __init__(self, min_amount: int, max_amount: int):
        super().__init__(
            f"Trade must be between {min_amount} and {max_amount} TON",
            min=min_amount,
            max=max_amount,
        )
        self.min_amount = min_amount
        self.max_amount = max_amount


class InsufficientFunds(LedgerError):
    code = "insufficient_funds"

    def __init__(self, balance: float):
        super().__init__(f"Insufficient TON balance. You have {balance:.4f} TON", balance=balance)
        self.balance = balance


class WalletLimitExceeded(LedgerError):
    code = "wallet_limit_exceeded"

    def __init__(self, remaining: float):
        super().__init__(f"Wallet limit reached. You can only buy {remaining:.0f} more NMX", remaining=remaining)
        self.remaining = remaining


class DailyLimitExceeded(LedgerError):
    code = "daily_limit_exceeded"

    def __init__(self, remaining: float):
        super().__init__(
            f"Daily limit reached. You can only buy {remaining:.0f} more NMX today",
            remaining=remaining,
        )
        self.remaining = remaining


class StorageConflict(LedgerError):
    """Concurrent modification detected; the whole operation should be re-run."""
    status_code = 409
    code = "storage_conflict"

    def __init__(self, detail: str = "concurrent modification, please retry"):
        super().__init__(detail)


class StorageUnavailable(LedgerError):
    status_code = 503
    code = "storage_unavailable"

    def __init__(self, detail: str = "storage unavailable"):
        super().__init__(detail)
