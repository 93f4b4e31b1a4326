"""
Fixed-point token amounts.

Every amount the engine touches is an integer count of the token's smallest
unit plus the decimal count that gives it meaning. Floats never enter: text
is parsed digit by digit and every division floors, matching what the
contracts themselves compute.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Union

from .errors import InvalidAmount, ParseError

BPS_DENOMINATOR = 10_000

_DECIMAL_RE = re.compile(r"^(?P<whole>[0-9]*)(?:\.(?P<frac>[0-9]*))?$")


@total_ordering
@dataclass(frozen=True, eq=False)
class Amount:
    """Non-negative integer value scaled by ``10 ** decimals``."""

    value: int
    decimals: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise InvalidAmount(f"Amount value must be an integer, got {type(self.value).__name__}")
        if isinstance(self.decimals, bool) or not isinstance(self.decimals, int):
            raise InvalidAmount(f"Amount decimals must be an integer, got {type(self.decimals).__name__}")
        if self.value < 0:
            raise InvalidAmount(f"Amount value must be non-negative, got {self.value}")
        if self.decimals < 0:
            raise InvalidAmount(f"Amount decimals must be non-negative, got {self.decimals}")

    def _aligned(self, other: "Amount") -> tuple[int, int]:
        scale = max(self.decimals, other.decimals)
        return (
            self.value * 10 ** (scale - self.decimals),
            other.value * 10 ** (scale - other.decimals),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Amount):
            return NotImplemented
        left, right = self._aligned(other)
        return left == right

    def __lt__(self, other: "Amount") -> bool:
        if not isinstance(other, Amount):
            return NotImplemented
        left, right = self._aligned(other)
        return left < right

    def __hash__(self) -> int:
        # Equal amounts at different scales must hash alike
        value, decimals = self.value, self.decimals
        while decimals and value % 10 == 0:
            value //= 10
            decimals -= 1
        if value == 0:
            decimals = 0
        return hash((value, decimals))

    def is_zero(self) -> bool:
        return self.value == 0

    def __str__(self) -> str:
        return to_display_string(self, self.decimals)


def to_base_units(text: Union[str, int], decimals: int) -> Amount:
    """Parse a human decimal string (``"1.5"``) into base units.

    Integers are accepted as whole-token counts. Anything else, including
    floats, signs, exponents and more fractional digits than the token
    supports, raises ``ParseError``.
    """
    if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
        raise InvalidAmount(f"Invalid decimals: {decimals!r}")

    if isinstance(text, bool):
        raise ParseError(str(text), "booleans are not amounts")
    if isinstance(text, int):
        if text < 0:
            raise ParseError(str(text), "amount must be non-negative")
        return Amount(text * 10 ** decimals, decimals)
    if not isinstance(text, str):
        raise ParseError(repr(text), f"expected a decimal string, got {type(text).__name__}")

    stripped = text.strip()
    match = _DECIMAL_RE.match(stripped)
    if not stripped or match is None:
        raise ParseError(text, "not a plain decimal number")

    whole = match.group("whole") or ""
    frac = match.group("frac") or ""
    if not whole and not frac:
        raise ParseError(text, "no digits")
    if len(frac) > decimals:
        raise ParseError(text, f"more than {decimals} fractional digits")

    value = int(whole or "0") * 10 ** decimals + int(frac.ljust(decimals, "0") or "0")
    return Amount(value, decimals)


def to_display_string(amount: Amount, display_decimals: int = 4) -> str:
    """Render ``amount`` with exactly ``display_decimals`` fractional digits.

    Extra precision is truncated, never rounded.
    """
    if display_decimals < 0:
        raise InvalidAmount(f"display_decimals must be non-negative, got {display_decimals}")

    whole, frac = divmod(amount.value, 10 ** amount.decimals)
    if display_decimals == 0:
        return str(whole)

    frac_digits = str(frac).rjust(amount.decimals, "0") if amount.decimals else ""
    frac_digits = frac_digits[:display_decimals].ljust(display_decimals, "0")
    return f"{whole}.{frac_digits}"


def rescale(amount: Amount, new_decimals: int) -> Amount:
    """Convert to another decimal count; scaling down floors."""
    if isinstance(new_decimals, bool) or not isinstance(new_decimals, int) or new_decimals < 0:
        raise InvalidAmount(f"Invalid decimals: {new_decimals!r}")

    delta = new_decimals - amount.decimals
    if delta >= 0:
        return Amount(amount.value * 10 ** delta, new_decimals)
    return Amount(amount.value // 10 ** (-delta), new_decimals)


def apply_bps(value: int, bps: int) -> int:
    """Reduce ``value`` by ``bps`` basis points, flooring."""
    if bps < 0 or bps > BPS_DENOMINATOR:
        raise InvalidAmount(f"Basis points must be within 0..{BPS_DENOMINATOR}, got {bps}")
    return value * (BPS_DENOMINATOR - bps) // BPS_DENOMINATOR


def bps_difference(a: int, b: int) -> int:
    """Relative difference of two outputs in basis points of the larger one."""
    larger = max(a, b)
    if larger == 0:
        return 0
    return abs(a - b) * BPS_DENOMINATOR // larger


__all__ = [
    "Amount",
    "BPS_DENOMINATOR",
    "apply_bps",
    "bps_difference",
    "rescale",
    "to_base_units",
    "to_display_string",
]
