"""
config.py - Runtime configuration.

Values come from environment variables (optionally loaded from a .env file)
and can be overridden by the CLI flags in server.py.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from dotenv import load_dotenv

DEFAULT_HIVE_NODES = [
    "https://api.hive.blog",
    "https://api.deathwing.me",
    "https://rpc.ausbit.dev",
    "https://hive-api.3speak.tv",
]

DEFAULT_PRICE_FEED_URL = (
    "https://api.coingecko.com/api/v3/simple/price?ids=hive&vs_currencies=usd"
)


@dataclass
class SignupConfig:
    paid_account_price_usd: Decimal = Decimal("3.00")
    price_update_interval_sec: float = 300.0
    min_hive_amount: Decimal = Decimal("1.000")
    max_hive_amount: Decimal = Decimal("10.000")

    hive_receiving_account: str = ""
    account_creator_url: str = ""
    base_url: str = "http://localhost:3000"
    transak_api_key: str = ""
    app_env: str = "development"

    hive_nodes: List[str] = field(default_factory=lambda: list(DEFAULT_HIVE_NODES))
    price_feed_url: str = DEFAULT_PRICE_FEED_URL

    db_path: str = "data/accounts.db"
    api_port: int = 3000
    http_timeout_sec: float = 10.0
    account_creation_timeout_sec: float = 30.0

    def __post_init__(self):
        if self.min_hive_amount < 0:
            raise ValueError("min_hive_amount must be non-negative")
        if self.max_hive_amount < self.min_hive_amount:
            raise ValueError("max_hive_amount must be >= min_hive_amount")
        if self.price_update_interval_sec <= 0:
            raise ValueError("price_update_interval_sec must be positive")

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "SignupConfig":
        """Build a config from the process environment.

        Unset or empty variables keep the dataclass default. A malformed
        number raises ValueError naming the variable.
        """
        load_dotenv(dotenv_path=env_file or ".env")
        kwargs = {}

        for env, name, conv in [
            ("PAID_ACCOUNT_PRICE_USD", "paid_account_price_usd", _decimal),
            ("PRICE_UPDATE_INTERVAL_SEC", "price_update_interval_sec", float),
            ("MIN_HIVE_AMOUNT", "min_hive_amount", _decimal),
            ("MAX_HIVE_AMOUNT", "max_hive_amount", _decimal),
            ("HIVE_RECEIVING_ACCOUNT", "hive_receiving_account", str.strip),
            ("ACCOUNT_CREATOR_URL", "account_creator_url", str.strip),
            ("BASE_URL", "base_url", _strip_slash),
            ("TRANSAK_API_KEY", "transak_api_key", str.strip),
            ("APP_ENV", "app_env", str.strip),
            ("HIVE_NODES", "hive_nodes", _csv),
            ("PRICE_FEED_URL", "price_feed_url", str.strip),
            ("DB_PATH", "db_path", str.strip),
            ("PORT", "api_port", int),
            ("HTTP_TIMEOUT_SEC", "http_timeout_sec", float),
            ("ACCOUNT_CREATION_TIMEOUT_SEC", "account_creation_timeout_sec", float),
        ]:
            raw = os.environ.get(env, "")
            if not raw.strip():
                continue
            try:
                kwargs[name] = conv(raw)
            except (ValueError, InvalidOperation):
                raise ValueError(f"Invalid value for {env}: {raw!r}")

        return cls(**kwargs)


def _decimal(raw: str) -> Decimal:
    value = Decimal(raw.strip())
    if not value.is_finite():
        raise ValueError(raw)
    return value


def _csv(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _strip_slash(raw: str) -> str:
    return raw.strip().rstrip("/")
