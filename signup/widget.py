"""
widget.py - Payment widget parameters.

Builds the Transak on-ramp configuration handed to the browser for paid
signups. Pure data shaping: nothing here performs I/O.
"""

from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from signup.config import SignupConfig

CRYPTO_CURRENCY = "HIVE"
NETWORK = "mainnet"
FIAT_CURRENCY = "USD"


def complete_signup_url(base_url: str, reference_id: str) -> str:
    return f"{base_url.rstrip('/')}/complete-signup/{reference_id}"


def build_transak_params(config: "SignupConfig", reference_id: str, fiat_amount: Decimal) -> dict:
    """Widget config that pays the receiving account with the reference as memo."""
    return {
        "apiKey": config.transak_api_key,
        "environment": "PRODUCTION" if config.is_production else "STAGING",
        "cryptoCurrencyCode": CRYPTO_CURRENCY,
        "network": NETWORK,
        "walletAddress": config.hive_receiving_account,
        "memo": reference_id,
        "defaultCryptoCurrency": CRYPTO_CURRENCY,
        "fiatAmount": fiat_amount,
        "fiatCurrency": FIAT_CURRENCY,
        "redirectURL": complete_signup_url(config.base_url, reference_id),
    }
