"""Shared fixtures for the signup test suite."""

import asyncio
from decimal import Decimal
from typing import List, Optional, Set, Tuple

import httpx
import pytest
import pytest_asyncio

from signup.config import SignupConfig
from signup.errors import InvalidUsername, UpstreamUnavailable
from signup.hive import account_name_error
from signup.server import SignupServer
from signup.storage import StorageManager


# ── Fakes for outside collaborators ─────────────────────────────────────────

class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakePriceFeed:
    """Returns a fixed price; ``fail`` makes every fetch raise UpstreamUnavailable."""

    def __init__(self, price: str = "4.00"):
        self.price = Decimal(price)
        self.fail = False
        self.calls = 0
        self.gate: Optional[asyncio.Event] = None

    async def fetch_usd_price(self) -> Decimal:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise UpstreamUnavailable("price feed down")
        return self.price


class FakeUsernameValidator:
    """Real name rules, with an in-memory set standing in for the chain."""

    def __init__(self, taken: Optional[Set[str]] = None):
        self.taken = set(taken or ())
        self.down = False

    async def validate(self, username: str):
        if self.down:
            raise UpstreamUnavailable("All Hive nodes failed for condenser_api.get_accounts")
        error = account_name_error(username)
        if error:
            raise InvalidUsername(f"Username is invalid: {error}")
        if username in self.taken:
            raise InvalidUsername(f"Username {username} is already taken")


class FakeAccountCreator:
    def __init__(self):
        self.calls: List[Tuple[str, str]] = []
        self.fail = False
        self.gate: Optional[asyncio.Event] = None

    async def create(self, reference_id: str, username: str):
        self.calls.append((reference_id, username))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise UpstreamUnavailable("account creator returned 502")


# ── Fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def price_feed():
    return FakePriceFeed("4.00")


@pytest.fixture
def username_validator():
    return FakeUsernameValidator(taken={"taken"})


@pytest.fixture
def account_creator():
    return FakeAccountCreator()


@pytest.fixture
def config():
    """$3.00 signups, HIVE bounds [0.500, 10.000]: at $4.00/HIVE the price is 0.750 HIVE."""
    return SignupConfig(
        paid_account_price_usd=Decimal("3.00"),
        price_update_interval_sec=300,
        min_hive_amount=Decimal("0.500"),
        max_hive_amount=Decimal("10.000"),
        hive_receiving_account="signup.pay",
        account_creator_url="https://creator.invalid/create",
        base_url="https://signup.example",
        transak_api_key="test-key",
        app_env="development",
        db_path=":memory:",
    )


@pytest_asyncio.fixture
async def storage():
    sm = StorageManager(":memory:")
    await sm.initialize()
    yield sm
    await sm.close()


@pytest_asyncio.fixture
async def server(config, price_feed, username_validator, account_creator, clock):
    srv = SignupServer(
        config,
        price_feed=price_feed,
        username_validator=username_validator,
        account_creator=account_creator,
        clock=clock,
    )
    await srv.init_services()
    yield srv
    await srv.stop()


@pytest_asyncio.fixture
async def client(server):
    transport = httpx.ASGITransport(app=server.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
