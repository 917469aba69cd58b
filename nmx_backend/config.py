# config.py
import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# ---------------------------
# Environment
# ---------------------------
DB_PATH = os.getenv("NMX_DB", "nmx.db")

ADMIN_TOKEN = (os.getenv("ADMIN_TOKEN", "") or "").strip()

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://127.0.0.1:8080,http://localhost:8080").split(",")
    if o.strip()
]

# toncenter v2 JSON API, used for advisory on-chain balance lookups only
TONCENTER_URL = os.getenv("TONCENTER_URL", "https://toncenter.com/api/v2").rstrip("/")
TONCENTER_API_KEY = (os.getenv("TONCENTER_API_KEY", "") or "").strip()

PRICE_API_URL = os.getenv("PRICE_API_URL", "https://api.coingecko.com/api/v3/simple/price")
PRICE_CACHE_SEC = int(os.getenv("PRICE_CACHE_SEC", "60"))

# Where users send TON for deposits; exposed via /trade/config
PROJECT_WALLET = os.getenv("PROJECT_WALLET", "UQBc7zwA9otknd4KC4zQUx6oxSWdqPtOjUNKZ-zO3vNJxV7s")

# How often a claim/trade is re-run after a concurrent-modification conflict
LEDGER_RETRIES = int(os.getenv("LEDGER_RETRIES", "5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))

# ---------------------------
# Ledger constants (fixed)
# ---------------------------
REWARD_AMOUNT = 30                 # NMXp per claim
COOLDOWN_SEC = 24 * 60 * 60        # 24h between claims

RATE = 2000                        # NMX per 1 TON
MIN_TRADE = 1                      # TON per trade
MAX_TRADE = 10                     # TON per trade
DAILY_LIMIT = 5000                 # NMX per account per UTC day
WALLET_MAX = 100000                # NMX lifetime per account
TOTAL_NMX_SUPPLY = 10_000_000_000

NMX_PRICE_USD = 0.10
NMX_CHANGE_24H = 5.2


@dataclass(frozen=True)
class ClaimPolicy:
    reward_amount: int = REWARD_AMOUNT
    cooldown_sec: int = COOLDOWN_SEC


@dataclass(frozen=True)
class TradePolicy:
    rate: int = RATE
    min_trade: int = MIN_TRADE
    max_trade: int = MAX_TRADE
    daily_limit: int = DAILY_LIMIT
    wallet_max: int = WALLET_MAX
    total_supply: int = TOTAL_NMX_SUPPLY
    project_wallet: str = PROJECT_WALLET
