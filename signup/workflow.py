"""
workflow.py - Account provisioning workflow.

Validates the username, issues a reference id, prices paid signups, and
writes the ledger row. The price snapshot and HIVE amount are frozen into the
row here and never recomputed.
"""

import logging
import secrets
from typing import TYPE_CHECKING, Optional

from signup.errors import InvalidAccountType, InvalidUsername
from signup.widget import build_transak_params

if TYPE_CHECKING:
    from signup.config import SignupConfig
    from signup.hive import UsernameValidator
    from signup.pricing import PricingService
    from signup.storage import PendingAccountRepo

logger = logging.getLogger("workflow")

ACCOUNT_TYPE_FREE = "free"
ACCOUNT_TYPE_PAID = "paid"
ACCOUNT_TYPES = (ACCOUNT_TYPE_FREE, ACCOUNT_TYPE_PAID)

VERIFICATION_CODE_MIN = 100000
VERIFICATION_CODE_MAX = 999999


def generate_reference_id() -> str:
    """128 random bits, hex encoded."""
    return secrets.token_hex(16)


def generate_verification_code() -> str:
    """Uniform 6-digit code in [100000, 999999]."""
    span = VERIFICATION_CODE_MAX - VERIFICATION_CODE_MIN + 1
    return str(VERIFICATION_CODE_MIN + secrets.randbelow(span))


class ProvisioningWorkflow:
    """Creates pending account requests."""

    def __init__(
        self,
        repo: "PendingAccountRepo",
        pricing: "PricingService",
        validator: "UsernameValidator",
        config: "SignupConfig",
    ):
        self._repo = repo
        self._pricing = pricing
        self._validator = validator
        self._config = config

    async def init_account(self, username: str, account_type: str) -> dict:
        username = (username or "").strip()
        if not username:
            raise InvalidUsername("Username is required")
        if account_type not in ACCOUNT_TYPES:
            raise InvalidAccountType(
                f"accountType must be one of {', '.join(ACCOUNT_TYPES)}, got {account_type!r}"
            )

        await self._validator.validate(username)

        reference_id = generate_reference_id()
        fields = {}
        clamped = False
        if account_type == ACCOUNT_TYPE_FREE:
            fields["verification_code"] = generate_verification_code()
        else:
            quote, snapshot = await self._pricing.quote()
            clamped = quote.clamped
            fields["payment_amount_usd"] = self._pricing.usd_price
            fields["payment_amount_hive"] = quote.amount
            fields["hive_price_snapshot"] = snapshot.value

        record = await self._repo.create(
            reference_id=reference_id,
            username=username,
            account_type=account_type,
            **fields,
        )
        logger.info(
            "Init %s account %s ref=%s%s",
            account_type, username, reference_id,
            f" amount={record['payment_amount_hive']} HIVE" if account_type == ACCOUNT_TYPE_PAID else "",
        )
        return self._response(record, clamped)

    def _response(self, record: dict, clamped: bool) -> dict:
        paid = record["account_type"] == ACCOUNT_TYPE_PAID
        payment_instructions: Optional[dict] = None
        pricing: Optional[dict] = None
        if paid:
            payment_instructions = build_transak_params(
                self._config, record["reference_id"], record["payment_amount_usd"],
            )
            pricing = {
                "usd": record["payment_amount_usd"],
                "hive": record["payment_amount_hive"],
                "hivePrice": record["hive_price_snapshot"],
                "clamped": clamped,
            }

        result = {
            "referenceId": record["reference_id"],
            "paymentInstructions": payment_instructions,
            "pricing": pricing,
            "username": record["username"],
            "account_type": record["account_type"],
            "status": record["status"],
            "created_at": record["created_at"],
        }
        if paid:
            result["payment_amount_usd"] = record["payment_amount_usd"]
            result["payment_amount_hive"] = record["payment_amount_hive"]
            result["hive_price_snapshot"] = record["hive_price_snapshot"]
        else:
            result["verification_code"] = record["verification_code"]
        return result
