"""
server.py - Signup server entry point.

Single-process server combining:
 - SQLite ledger via StorageManager
 - HIVE price cache with a background refresh task
 - Provisioning workflow and payment reconciler
 - REST API (FastAPI on uvicorn)

Usage:
    python -m signup.server [--api-port 3000] [--db-path data/accounts.db] [--env-file .env]
"""

import argparse
import asyncio
import logging
import os
import time
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request
import uvicorn

from signup import __version__
from signup.config import SignupConfig
from signup.errors import SignupError, status_for
from signup.hive import HiveRpcClient, HttpAccountCreator, UsernameValidator
from signup.pricing import CoinGeckoPriceFeed, PriceCache, PricingService
from signup.reconciler import PaymentReconciler
from signup.routers import register_all_routers
from signup.storage import StorageManager
from signup.workflow import ProvisioningWorkflow

logger = logging.getLogger("server")


def configure_logging(level: int = logging.INFO):
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)-10s] %(levelname)-5s %(message)s",
        datefmt="%H:%M:%S",
    )


async def _signup_error_handler(request: Request, exc: SignupError):
    status = status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content={"error": str(exc)})


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.warning("%s %s rejected: %s", request.method, request.url.path, errors)
    parts = []
    for err in errors:
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"error": "; ".join(parts) or "Invalid request"})


class SignupServer:
    """Owns the app, the storage, the price cache and its refresh task.

    Collaborators that talk to the outside world (price feed, username
    validator, account creator) can be injected; otherwise they are built
    from the config.
    """

    def __init__(
        self,
        config: Optional[SignupConfig] = None,
        price_feed=None,
        username_validator=None,
        account_creator=None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or SignupConfig()
        self.clock = clock

        self.price_cache = PriceCache(
            price_feed or CoinGeckoPriceFeed(
                self.config.price_feed_url, timeout=self.config.http_timeout_sec,
            ),
            interval_sec=self.config.price_update_interval_sec,
            clock=clock,
        )
        self.pricing = PricingService.from_config(self.price_cache, self.config)
        self._username_validator = username_validator or UsernameValidator(
            HiveRpcClient(self.config.hive_nodes, timeout=self.config.http_timeout_sec)
        )
        self._account_creator = account_creator or HttpAccountCreator(
            self.config.account_creator_url,
            timeout=self.config.account_creation_timeout_sec,
        )

        # Storage-backed services are initialized async in init_services()
        self.storage: Optional[StorageManager] = None
        self.workflow: Optional[ProvisioningWorkflow] = None
        self.reconciler: Optional[PaymentReconciler] = None

        self._price_task: Optional[asyncio.Task] = None
        self._uvicorn_server: Optional[uvicorn.Server] = None

        self.app = FastAPI(title="Hive Signup", version=__version__)
        self.app.state.server = self
        self.app.add_exception_handler(SignupError, _signup_error_handler)
        self.app.add_exception_handler(RequestValidationError, _validation_error_handler)
        register_all_routers(self.app)

    async def init_services(self):
        """Open storage and wire up services (must be called in async context)."""
        db_dir = os.path.dirname(self.config.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self.storage = StorageManager(self.config.db_path, clock=self.clock)
        await self.storage.initialize()

        self.workflow = ProvisioningWorkflow(
            self.storage.accounts, self.pricing, self._username_validator, self.config,
        )
        self.reconciler = PaymentReconciler(self.storage.accounts, self._account_creator)

        logger.info("Services initialized (db=%s)", self.config.db_path)

    async def start(self):
        """Start storage, the price refresh task, and the API server."""
        await self.init_services()

        # The first loop iteration fetches the initial price.
        self._price_task = asyncio.create_task(self.price_cache.run())

        if not self.config.hive_receiving_account:
            logger.warning("HIVE_RECEIVING_ACCOUNT is not set; paid signups cannot be funded")
        if not self.config.account_creator_url:
            logger.warning("ACCOUNT_CREATOR_URL is not set; paid accounts will fail creation")

        config = uvicorn.Config(
            self.app,
            host="0.0.0.0",
            port=self.config.api_port,
            log_level="info",
        )
        self._uvicorn_server = uvicorn.Server(config)
        logger.info("REST API starting on port %d", self.config.api_port)
        await self._uvicorn_server.serve()

    async def stop(self):
        """Stop the refresh task, close storage, and stop the API server."""
        if self._price_task:
            self._price_task.cancel()
            self._price_task = None
        if self.storage:
            await self.storage.close()
        if self._uvicorn_server:
            self._uvicorn_server.should_exit = True


def main():
    """CLI entry point for the signup server."""
    parser = argparse.ArgumentParser(description="Hive Signup Server")
    parser.add_argument("--api-port", type=int, default=None, help="REST API port (default: $PORT or 3000)")
    parser.add_argument("--db-path", default=None, help="SQLite database path (default: $DB_PATH or data/accounts.db)")
    parser.add_argument("--env-file", default=None, help="Path to a .env file (default: ./.env)")
    args = parser.parse_args()

    configure_logging()
    config = SignupConfig.from_env(args.env_file)
    if args.api_port is not None:
        config.api_port = args.api_port
    if args.db_path is not None:
        config.db_path = args.db_path

    server = SignupServer(config)

    logger.info("=" * 60)
    logger.info("  Hive Signup Server")
    logger.info("  REST API:      http://localhost:%d", config.api_port)
    logger.info("  Database:      %s", config.db_path)
    logger.info("  Paid price:    $%s USD", config.paid_account_price_usd)
    logger.info("  HIVE bounds:   %s - %s", config.min_hive_amount, config.max_hive_amount)
    logger.info("  Price refresh: every %ds", config.price_update_interval_sec)
    logger.info("=" * 60)

    try:
        asyncio.run(server.start())
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    main()
