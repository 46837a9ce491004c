"""
amounts.py - HIVE amount calculation and transfer amount parsing.

Amounts are Decimals quoted to milli-HIVE (3 decimal places), which is the
precision Hive itself uses for the HIVE asset.
"""

import logging
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

from signup.errors import MalformedAmount

logger = logging.getLogger("pricing")

HIVE_PRECISION = Decimal("0.001")

_AMOUNT_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s+([A-Za-z]+)\s*$")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Convert to Decimal without going through binary float repr."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def quantize_hive(value: Decimal) -> Decimal:
    return value.quantize(HIVE_PRECISION, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class AmountBounds:
    """Inclusive safety bounds for a computed HIVE amount."""

    min: Decimal
    max: Decimal

    def __post_init__(self):
        lo = quantize_hive(to_decimal(self.min))
        hi = quantize_hive(to_decimal(self.max))
        if lo < 0:
            raise ValueError("minimum HIVE amount must be non-negative")
        if hi < lo:
            raise ValueError("maximum HIVE amount must be >= minimum")
        object.__setattr__(self, "min", lo)
        object.__setattr__(self, "max", hi)


@dataclass(frozen=True)
class AmountQuote:
    amount: Decimal
    clamped: bool = False
    fallback: bool = False


def calculate_hive_amount(usd_amount: Number, price: Number, bounds: AmountBounds) -> AmountQuote:
    """Turn a USD price into a HIVE amount at ``price`` USD per HIVE.

    A price of zero means no price was ever fetched; the minimum bound is
    returned so signups keep working through a price-feed outage. Results
    outside the bounds are clamped, never rejected.
    """
    usd = to_decimal(usd_amount)
    rate = to_decimal(price)

    if rate <= 0:
        logger.warning("No HIVE price available; using minimum amount %s", bounds.min)
        return AmountQuote(amount=bounds.min, fallback=True)

    raw = usd / rate
    if raw < bounds.min:
        logger.info(
            "HIVE amount %s below minimum %s (usd=%s price=%s); clamped",
            raw, bounds.min, usd, rate,
        )
        return AmountQuote(amount=bounds.min, clamped=True)
    if raw > bounds.max:
        logger.info(
            "HIVE amount %s above maximum %s (usd=%s price=%s); clamped",
            raw, bounds.max, usd, rate,
        )
        return AmountQuote(amount=bounds.max, clamped=True)

    return AmountQuote(amount=quantize_hive(raw))


@dataclass(frozen=True)
class ParsedAmount:
    magnitude: Decimal
    unit: str


def parse_amount(text: Optional[str]) -> ParsedAmount:
    """Parse a transfer amount such as ``"3.000 HIVE"``."""
    if text is None:
        raise MalformedAmount("Amount is required")
    if not isinstance(text, str):
        raise MalformedAmount(f"Amount must be a string, got {type(text).__name__}")
    m = _AMOUNT_RE.match(text)
    if not m:
        raise MalformedAmount(f"Malformed amount: {text!r}")
    try:
        magnitude = Decimal(m.group(1))
    except InvalidOperation:
        raise MalformedAmount(f"Malformed amount: {text!r}")
    return ParsedAmount(magnitude=magnitude, unit=m.group(2).upper())
