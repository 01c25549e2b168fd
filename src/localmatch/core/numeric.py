"""
Numeric helpers shared by geo math and scoring.

Scores and distances are rounded half-up (2.345 -> 2.35, 0.5 -> 1), not with
Python's default banker's rounding, so reported values match what a human
expects when reading them.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round `value` to `ndigits` decimals, ties away from zero."""
    quantum = Decimal(1).scaleb(-int(ndigits))
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def clamp(value: float, low: float, high: float) -> float:
    """Clamp a number into the [low, high] range."""
    return max(float(low), min(float(high), float(value)))
