"""
pricing.py - HIVE/USD price feed and cache.

The cache keeps the last good price forever: a failed refresh leaves the
previous value and timestamp in place. A value of 0 means no price has been
fetched yet, and callers fall back to the minimum HIVE amount.

Refreshes are single-flight. The background loop and read-path callers share
one lock. A caller that waited on the lock re-checks staleness before
hitting the feed again, and after a failed attempt the read path stops
calling the feed for a short backoff window.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Callable, Optional, Tuple

import httpx

from signup.amounts import AmountBounds, AmountQuote, calculate_hive_amount, to_decimal
from signup.errors import UpstreamUnavailable

if TYPE_CHECKING:
    from signup.config import SignupConfig

logger = logging.getLogger("pricing")

FAILED_REFRESH_BACKOFF_SEC = 30.0


class CoinGeckoPriceFeed:
    """Fetches the HIVE price in USD from the CoinGecko simple-price API."""

    def __init__(self, url: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self._url = url
        self._client = client
        self._timeout = timeout

    async def fetch_usd_price(self) -> Decimal:
        try:
            if self._client is not None:
                response = await self._client.get(self._url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(self._url)
            response.raise_for_status()
            data = response.json()
            price = to_decimal(str(data["hive"]["usd"]))
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Price feed request failed: {e}") from e
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise UpstreamUnavailable(f"Unexpected price feed payload: {e!r}") from e

        if not price.is_finite() or price <= 0:
            raise UpstreamUnavailable(f"Price feed returned non-positive price {price}")
        return price


@dataclass(frozen=True)
class PriceSnapshot:
    value: Decimal
    last_updated: float

    @property
    def known(self) -> bool:
        return self.value > 0


class PriceCache:
    """Process-wide holder of the last fetched HIVE price."""

    def __init__(self, feed, interval_sec: float = 300.0, clock: Callable[[], float] = time.time):
        self._feed = feed
        self.interval_sec = interval_sec
        self._clock = clock
        self._snapshot = PriceSnapshot(Decimal(0), 0.0)
        self._failed_at: Optional[float] = None
        self._lock = asyncio.Lock()

    def get(self) -> PriceSnapshot:
        return self._snapshot

    def is_stale(self, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        return now - self._snapshot.last_updated > self.interval_sec

    async def refresh(self) -> PriceSnapshot:
        """Fetch a new price. Raises UpstreamUnavailable, keeping the old one."""
        async with self._lock:
            return await self._refresh_locked()

    def _needs_fetch(self) -> bool:
        now = self._clock()
        if not self.is_stale(now):
            return False
        if self._failed_at is None:
            return True
        backoff = min(FAILED_REFRESH_BACKOFF_SEC, self.interval_sec)
        return now - self._failed_at >= backoff

    async def refresh_if_stale(self) -> PriceSnapshot:
        """Refresh when stale; on feed failure return the last known price.

        Callers queued behind a failed attempt do not retry the feed until
        the backoff window has passed.
        """
        if not self._needs_fetch():
            return self._snapshot
        async with self._lock:
            if not self._needs_fetch():
                return self._snapshot
            try:
                return await self._refresh_locked()
            except UpstreamUnavailable as e:
                logger.warning("Using last known HIVE price $%s: %s", self._snapshot.value, e)
                return self._snapshot

    async def _refresh_locked(self) -> PriceSnapshot:
        try:
            price = await self._feed.fetch_usd_price()
        except UpstreamUnavailable:
            self._failed_at = self._clock()
            raise
        self._failed_at = None
        now = self._clock()
        # an overlapping writer may have stored a newer reading
        if now >= self._snapshot.last_updated:
            self._snapshot = PriceSnapshot(price, now)
            logger.info("Updated HIVE price: $%s", price)
        return self._snapshot

    async def run(self):
        """Refresh forever on the configured interval. Run as a task."""
        while True:
            try:
                await self.refresh()
            except UpstreamUnavailable as e:
                logger.error("Error updating HIVE price: %s", e)
            except Exception:
                logger.exception("Unexpected error in price refresh loop")
            await asyncio.sleep(self.interval_sec)


class PricingService:
    """Prices paid accounts from the configured USD price and the cache."""

    def __init__(self, cache: PriceCache, usd_price: Decimal, bounds: AmountBounds):
        self.cache = cache
        self.usd_price = to_decimal(usd_price)
        self.bounds = bounds

    @classmethod
    def from_config(cls, cache: PriceCache, config: "SignupConfig") -> "PricingService":
        return cls(
            cache,
            config.paid_account_price_usd,
            AmountBounds(config.min_hive_amount, config.max_hive_amount),
        )

    async def quote(self) -> Tuple[AmountQuote, PriceSnapshot]:
        """Quote the paid-account price against a fresh-enough snapshot."""
        snapshot = await self.cache.refresh_if_stale()
        return calculate_hive_amount(self.usd_price, snapshot.value, self.bounds), snapshot

    async def current_pricing(self) -> dict:
        quote, snapshot = await self.quote()
        return {
            "usdPrice": self.usd_price,
            "tokenPrice": snapshot.value,
            "tokenAmount": quote.amount,
            "clamped": quote.clamped,
            "minTokenAmount": self.bounds.min,
            "maxTokenAmount": self.bounds.max,
            "lastUpdated": snapshot.last_updated,
        }
