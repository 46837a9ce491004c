import logging
import time
from typing import Callable, Optional

import aiosqlite

from ._migrate import run_migrations
from .pending_accounts import PendingAccountRepo

logger = logging.getLogger("ledger")


class StorageManager:
    """Top-level manager: opens the database, runs migrations, exposes repos."""

    def __init__(self, db_path: str = "data/accounts.db", clock: Callable[[], float] = time.time):
        self.db_path = db_path
        self._clock = clock
        self._db: Optional[aiosqlite.Connection] = None
        self.accounts: Optional[PendingAccountRepo] = None

    async def initialize(self):
        self._db = await aiosqlite.connect(self.db_path)
        await self._db.execute("PRAGMA journal_mode=WAL")
        await self._db.execute("PRAGMA foreign_keys=ON")
        await run_migrations(self._db, logger)

        self.accounts = PendingAccountRepo(self._db, clock=self._clock)
        await self.accounts.reset_interrupted_creations()

        logger.info("Storage initialized: %s", self.db_path)

    async def close(self):
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Storage closed")
