import logging
import time
from decimal import Decimal
from typing import Callable, Dict, List, Optional

import aiosqlite

from signup.errors import DuplicateUsername, NotFound

logger = logging.getLogger("ledger")

STATUS_PENDING = "pending"
STATUS_PAID = "paid"

CREATION_NOT_STARTED = "not_started"
CREATION_CREATING = "creating"
CREATION_CREATED = "created"
CREATION_FAILED = "failed"

_COLUMNS = (
    "reference_id, username, account_type, status, verification_code, "
    "payment_amount_usd, payment_amount_hive, hive_price_snapshot, created_at, "
    "paid_at, paid_from, paid_amount, creation_status, creation_error"
)


def _dec(value) -> Optional[Decimal]:
    # rows from the v1 layout hold REAL amounts
    return None if value is None else Decimal(str(value))


def _str(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


def _row_to_dict(row) -> dict:
    return {
        "reference_id": row[0],
        "username": row[1],
        "account_type": row[2],
        "status": row[3],
        "verification_code": row[4],
        "payment_amount_usd": _dec(row[5]),
        "payment_amount_hive": _dec(row[6]),
        "hive_price_snapshot": _dec(row[7]),
        "created_at": row[8],
        "paid_at": row[9],
        "paid_from": row[10],
        "paid_amount": _dec(row[11]),
        "creation_status": row[12],
        "creation_error": row[13],
    }


class PendingAccountRepo:
    """The provisioning ledger: CRUD for the pending_accounts table.

    Rows are never deleted. ``status`` only moves pending -> paid, through
    ``mark_paid``, whose conditional UPDATE lets exactly one caller win.
    """

    def __init__(self, db: aiosqlite.Connection, clock: Callable[[], float] = time.time):
        self._db = db
        self._clock = clock

    async def create(
        self,
        reference_id: str,
        username: str,
        account_type: str,
        verification_code: Optional[str] = None,
        payment_amount_usd: Optional[Decimal] = None,
        payment_amount_hive: Optional[Decimal] = None,
        hive_price_snapshot: Optional[Decimal] = None,
        created_at: Optional[float] = None,
    ) -> dict:
        now = self._clock() if created_at is None else created_at
        try:
            await self._db.execute(
                "INSERT INTO pending_accounts (reference_id, username, account_type, status, "
                "verification_code, payment_amount_usd, payment_amount_hive, hive_price_snapshot, "
                "created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    reference_id, username, account_type, STATUS_PENDING,
                    verification_code, _str(payment_amount_usd), _str(payment_amount_hive),
                    _str(hive_price_snapshot), now,
                ),
            )
            await self._db.commit()
        except aiosqlite.IntegrityError as e:
            if "username" in str(e):
                raise DuplicateUsername(f"Username {username} is already registered") from e
            raise
        logger.info("Ledger row created: ref=%s user=%s type=%s", reference_id, username, account_type)
        return await self.get(reference_id)

    async def get(self, reference_id: str) -> Optional[dict]:
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM pending_accounts WHERE reference_id = ?",
            (reference_id,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return _row_to_dict(row)

    async def get_by_username(self, username: str) -> Optional[dict]:
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM pending_accounts WHERE username = ?",
            (username,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return _row_to_dict(row)

    async def find_by_reference_id(self, reference_id: str) -> dict:
        record = await self.get(reference_id)
        if record is None:
            raise NotFound(f"No account request with reference {reference_id}")
        return record

    async def find_pending_by_reference_id(self, reference_id: str) -> dict:
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM pending_accounts WHERE reference_id = ? AND status = ?",
            (reference_id, STATUS_PENDING),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            raise NotFound(f"No pending account request with reference {reference_id}")
        return _row_to_dict(row)

    async def mark_paid(
        self,
        reference_id: str,
        paid_from: str = "",
        paid_amount: Optional[Decimal] = None,
    ) -> dict:
        """Flip a pending row to paid. Raises NotFound if it is not pending."""
        now = self._clock()
        cursor = await self._db.execute(
            "UPDATE pending_accounts SET status = ?, paid_at = ?, paid_from = ?, paid_amount = ? "
            "WHERE reference_id = ? AND status = ?",
            (STATUS_PAID, now, paid_from, _str(paid_amount), reference_id, STATUS_PENDING),
        )
        updated = cursor.rowcount
        await self._db.commit()
        if updated == 0:
            raise NotFound(f"No pending account request with reference {reference_id}")
        logger.info("Ledger row %s marked paid (from=%s amount=%s)", reference_id, paid_from, paid_amount)
        return await self.get(reference_id)

    async def claim_creation(self, reference_id: str) -> bool:
        """Move a paid row to ``creating``. Only one caller gets True."""
        cursor = await self._db.execute(
            "UPDATE pending_accounts SET creation_status = ?, creation_error = NULL "
            "WHERE reference_id = ? AND status = ? AND creation_status IN (?, ?)",
            (CREATION_CREATING, reference_id, STATUS_PAID, CREATION_NOT_STARTED, CREATION_FAILED),
        )
        claimed = cursor.rowcount
        await self._db.commit()
        return claimed == 1

    async def reset_interrupted_creations(self) -> int:
        """Mark rows left in ``creating`` by a previous process as failed."""
        cursor = await self._db.execute(
            "UPDATE pending_accounts SET creation_status = ?, creation_error = ? "
            "WHERE creation_status = ?",
            (CREATION_FAILED, "interrupted by restart", CREATION_CREATING),
        )
        reset = cursor.rowcount
        await self._db.commit()
        if reset:
            logger.warning("Reset %d interrupted account creations to failed", reset)
        return reset

    async def set_creation_result(self, reference_id: str, ok: bool, error: Optional[str] = None):
        await self._db.execute(
            "UPDATE pending_accounts SET creation_status = ?, creation_error = ? "
            "WHERE reference_id = ? AND status = ?",
            (
                CREATION_CREATED if ok else CREATION_FAILED,
                None if ok else (error or "unknown error"),
                reference_id, STATUS_PAID,
            ),
        )
        await self._db.commit()

    async def list_by_status(self, status: str, limit: Optional[int] = None, offset: int = 0) -> List[dict]:
        query = f"SELECT {_COLUMNS} FROM pending_accounts WHERE status = ? ORDER BY created_at DESC"
        params: tuple = (status,)
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params = (status, limit, offset)
        results = []
        async with self._db.execute(query, params) as cursor:
            async for row in cursor:
                results.append(_row_to_dict(row))
        return results

    async def list_pending_older_than(self, cutoff: float) -> List[dict]:
        """Pending rows created before ``cutoff`` (unix seconds), oldest first."""
        results = []
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM pending_accounts WHERE status = ? AND created_at < ? "
            "ORDER BY created_at ASC",
            (STATUS_PENDING, cutoff),
        ) as cursor:
            async for row in cursor:
                results.append(_row_to_dict(row))
        return results

    async def list_creation_failures(self) -> List[dict]:
        """Paid rows whose Hive account has not been created and is not in flight."""
        results = []
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM pending_accounts "
            "WHERE status = ? AND creation_status IN (?, ?) ORDER BY paid_at ASC",
            (STATUS_PAID, CREATION_NOT_STARTED, CREATION_FAILED),
        ) as cursor:
            async for row in cursor:
                results.append(_row_to_dict(row))
        return results

    async def count_creation_failures(self) -> int:
        async with self._db.execute(
            "SELECT COUNT(*) FROM pending_accounts WHERE status = ? AND creation_status IN (?, ?)",
            (STATUS_PAID, CREATION_NOT_STARTED, CREATION_FAILED),
        ) as cursor:
            row = await cursor.fetchone()
        return row[0]

    async def count_by_status(self) -> Dict[str, int]:
        counts = {STATUS_PENDING: 0, STATUS_PAID: 0}
        async with self._db.execute(
            "SELECT status, COUNT(*) FROM pending_accounts GROUP BY status"
        ) as cursor:
            async for row in cursor:
                counts[row[0]] = row[1]
        return counts
