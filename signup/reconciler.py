"""
reconciler.py - Payment reconciliation.

Matches an inbound HIVE transfer to a pending ledger row by memo, checks the
amount against the frozen price, flips the row to paid, and then hands the
signup to the account creator.

Once the row is paid, a creator failure cannot be undone by the webhook
caller: it is logged at ERROR, stored on the row, and left for an operator to
retry via ``retry_creation``.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from signup.amounts import parse_amount
from signup.errors import AlreadyCreated, CreationInProgress, NotFound, UpstreamUnavailable
from signup.storage import CREATION_CREATED, STATUS_PAID

if TYPE_CHECKING:
    from signup.storage import PendingAccountRepo

logger = logging.getLogger("reconciler")

PAYMENT_ASSET = "HIVE"

ACCEPTED = "accepted"
IGNORED = "ignored"

REASON_PAID = "paid"
REASON_UNKNOWN_REFERENCE = "unknown_reference"
REASON_ALREADY_PAID = "already_paid"
REASON_NOT_PAID_TYPE = "not_paid_account"
REASON_WRONG_ASSET = "wrong_asset"
REASON_UNDERPAID = "underpaid"


@dataclass
class ReconcileResult:
    status: str
    reason: str
    reference_id: str
    account_created: Optional[bool] = None
    error: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.status == ACCEPTED


class PaymentReconciler:
    """Turns payment webhooks into ledger transitions and account creations."""

    def __init__(self, repo: "PendingAccountRepo", creator):
        self._repo = repo
        self._creator = creator

    async def reconcile(self, from_address: str, amount_text: Optional[str], memo: str) -> ReconcileResult:
        """Process one transfer. Raises MalformedAmount on a bad amount string."""
        amount = parse_amount(amount_text)
        memo = (memo or "").strip()

        record = await self._repo.get(memo) if memo else None
        if record is None:
            logger.info("Ignoring transfer from %s: no request for memo %r", from_address, memo)
            return ReconcileResult(IGNORED, REASON_UNKNOWN_REFERENCE, memo)
        if record["status"] == STATUS_PAID:
            logger.info("Ignoring replayed transfer for %s: already paid", memo)
            return ReconcileResult(IGNORED, REASON_ALREADY_PAID, memo)
        if record["payment_amount_hive"] is None:
            logger.warning("Ignoring transfer from %s for free request %s", from_address, memo)
            return ReconcileResult(IGNORED, REASON_NOT_PAID_TYPE, memo)
        if amount.unit != PAYMENT_ASSET:
            logger.warning(
                "Ignoring %s %s transfer from %s for %s: expected %s",
                amount.magnitude, amount.unit, from_address, memo, PAYMENT_ASSET,
            )
            return ReconcileResult(IGNORED, REASON_WRONG_ASSET, memo)
        if amount.magnitude < record["payment_amount_hive"]:
            logger.warning(
                "Underpayment for %s from %s: got %s, owed %s",
                memo, from_address, amount.magnitude, record["payment_amount_hive"],
            )
            return ReconcileResult(IGNORED, REASON_UNDERPAID, memo)

        try:
            record = await self._repo.mark_paid(memo, paid_from=from_address, paid_amount=amount.magnitude)
        except NotFound:
            # a concurrent delivery won the transition
            logger.info("Transfer for %s lost the race to a concurrent delivery", memo)
            return ReconcileResult(IGNORED, REASON_ALREADY_PAID, memo)

        created, error = await self._create_account(record)
        return ReconcileResult(ACCEPTED, REASON_PAID, memo, account_created=created, error=error)

    async def retry_creation(self, reference_id: str) -> ReconcileResult:
        """Re-run account creation for a paid row whose creation did not succeed."""
        record = await self._repo.find_by_reference_id(reference_id)
        if record["status"] != STATUS_PAID:
            raise NotFound(f"Account request {reference_id} has not been paid")
        if not await self._repo.claim_creation(reference_id):
            record = await self._repo.find_by_reference_id(reference_id)
            if record["creation_status"] == CREATION_CREATED:
                raise AlreadyCreated(f"Account {record['username']} was already created")
            raise CreationInProgress(f"Account {record['username']} is already being created")
        created, error = await self._create_claimed(record)
        return ReconcileResult(ACCEPTED, REASON_PAID, reference_id, account_created=created, error=error)

    async def _create_account(self, record: dict):
        if not await self._repo.claim_creation(record["reference_id"]):
            logger.warning("Account creation for %s is already in progress", record["reference_id"])
            return False, "account creation already in progress"
        return await self._create_claimed(record)

    async def _create_claimed(self, record: dict):
        reference_id = record["reference_id"]
        try:
            await self._creator.create(reference_id, record["username"])
        except UpstreamUnavailable as e:
            logger.error(
                "Payment accepted but account creation failed for %s (ref=%s): %s",
                record["username"], reference_id, e,
            )
            await self._repo.set_creation_result(reference_id, ok=False, error=str(e))
            return False, str(e)
        except Exception as e:
            await self._repo.set_creation_result(reference_id, ok=False, error=repr(e))
            raise
        await self._repo.set_creation_result(reference_id, ok=True)
        logger.info("Account %s created (ref=%s)", record["username"], reference_id)
        return True, None
