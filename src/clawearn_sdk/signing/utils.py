"""Utility functions and constants for Hyperliquid L1 signing."""

import threading
import time
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

# Chain ID used for L1 action signatures (not Arbitrum's 42161)
HYPERLIQUID_L1_CHAIN_ID = 1337

# EIP-712 domain name/version for L1 actions
HYPERLIQUID_DOMAIN_NAME = "Exchange"
HYPERLIQUID_DOMAIN_VERSION = "1"

# Mainnet REST endpoint
HYPERLIQUID_API_MAINNET = "https://api.hyperliquid.xyz"

# Zero address (L1 verifying contract)
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Spot assets are indexed from 10000
SPOT_ASSET_OFFSET = 10000

DecimalLike = Union[Decimal, int, str]


def decimal_to_wire(value: DecimalLike) -> str:
    """Format a decimal amount as the string that gets signed.

    Args:
        value: Amount as Decimal, int or numeric string. Floats are refused
            since their repr is not a reliable decimal.

    Returns:
        Normalized plain-notation string (e.g. "0.10" -> "0.1", "3E+3" -> "3000")

    Raises:
        ValueError: If the value is a float, bool or not a finite number
    """
    if isinstance(value, (bool, float)):
        raise ValueError(f"Amounts must be Decimal, int or str, got {type(value).__name__}")

    try:
        number = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Invalid decimal amount: {value!r}") from None

    if not number.is_finite():
        raise ValueError(f"Invalid decimal amount: {value!r}")

    text = format(number.normalize(), "f")
    return "0" if text in ("-0", "0") else text


def format_price(price: DecimalLike, decimals: int = 2) -> str:
    """Format a price for display.

    Args:
        price: Price as Decimal, int or numeric string
        decimals: Digits after the decimal point

    Returns:
        Price string rounded to ``decimals`` places
    """
    return f"{Decimal(decimal_to_wire(price)):.{decimals}f}"


def calculate_notional(size: DecimalLike, price: DecimalLike) -> Decimal:
    """Calculate the notional value of an order (size * price)."""
    return Decimal(decimal_to_wire(size)) * Decimal(decimal_to_wire(price))


class NonceGenerator:
    """Strictly increasing millisecond nonces.

    Seeded from the wall clock; when two nonces are drawn within the same
    millisecond the second one is bumped past the first.
    """

    def __init__(self, clock=None):
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._last: Optional[int] = None
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            now = int(self._clock())
            if self._last is not None and now <= self._last:
                now = self._last + 1
            self._last = now
            return now
