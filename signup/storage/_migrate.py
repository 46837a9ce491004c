import logging
import time

from ._schema import SCHEMA_SQL, SCHEMA_VERSION

logger = logging.getLogger("ledger")

# Columns added on top of the v1 layout: the pending_accounts table written by
# the earlier Node service, which has no schema_version table.
_V2_COLUMNS = [
    ("paid_at", "REAL"),
    ("paid_from", "TEXT"),
    ("paid_amount", "TEXT"),
    ("creation_status", "TEXT NOT NULL DEFAULT 'not_started'"),
    ("creation_error", "TEXT"),
]


async def _table_exists(db, name: str) -> bool:
    async with db.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
    ) as cursor:
        return await cursor.fetchone() is not None


async def _detect_version(db) -> int:
    if await _table_exists(db, "schema_version"):
        async with db.execute("SELECT MAX(version) FROM schema_version") as cursor:
            row = await cursor.fetchone()
        if row and row[0] is not None:
            return row[0]
    if await _table_exists(db, "pending_accounts"):
        return 1
    return 0


async def _upgrade_v1(db, log):
    async with db.execute("PRAGMA table_info(pending_accounts)") as cursor:
        existing = {row[1] async for row in cursor}
    for col, typedef in _V2_COLUMNS:
        if col not in existing:
            await db.execute(f"ALTER TABLE pending_accounts ADD COLUMN {col} {typedef}")
    # v1 stored created_at in epoch milliseconds
    cursor = await db.execute(
        "UPDATE pending_accounts SET created_at = created_at / 1000.0 WHERE created_at > 100000000000"
    )
    if cursor.rowcount:
        log.info("V2 migration: converted %d created_at values to seconds", cursor.rowcount)


async def run_migrations(db, logger_override=None):
    log = logger_override or logger
    current_version = await _detect_version(db)

    if current_version < SCHEMA_VERSION:
        log.info("Migrating database from v%d to v%d", current_version, SCHEMA_VERSION)

        # the new columns must exist before SCHEMA_SQL indexes them
        if current_version == 1:
            await _upgrade_v1(db, log)

        await db.executescript(SCHEMA_SQL)
        await db.execute(
            "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
            (SCHEMA_VERSION, time.time()),
        )
        await db.commit()
        log.info("Migration complete (v%d)", SCHEMA_VERSION)
    else:
        log.debug("Database schema up to date (v%d)", current_version)
