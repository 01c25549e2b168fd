"""
Free-text response-time descriptors.

Providers describe how quickly they respond with loose text ("instant",
"within 15 min", "1 hour"). Several signals read these descriptors, each with
its own table. Minute/hour amounts are matched on whole numbers, so "15 min"
never counts as "5 min".
"""

from __future__ import annotations

import re

_INSTANT_WORDS = ("instant", "immediate")


def _has_amount(text: str, amount: int, unit: str) -> bool:
    return re.search(rf"(?<!\d){amount}\s*{unit}", text) is not None


def is_instant(descriptor: str) -> bool:
    text = (descriptor or "").lower()
    return any(w in text for w in _INSTANT_WORDS)


def response_minutes(descriptor: str, *, default: int = 30) -> int:
    """Expected minutes before the provider responds."""
    text = (descriptor or "").lower()
    if is_instant(text):
        return 0
    for amount, minutes in ((5, 5), (15, 15), (30, 30)):
        if _has_amount(text, amount, "min"):
            return minutes
    for amount, minutes in ((1, 60), (2, 120)):
        if _has_amount(text, amount, "hour"):
            return minutes
    return int(default)


def availability_bonus(descriptor: str) -> float:
    """Points added to the availability subscore for responsiveness."""
    text = (descriptor or "").lower()
    if is_instant(text):
        return 20.0
    if "minute" in text:
        return 15.0
    if "hour" in text:
        return 10.0
    return 0.0


def responsiveness_band(descriptor: str) -> float:
    """0..100 responsiveness factor reported alongside locality."""
    text = (descriptor or "").lower()
    if "instant" in text:
        return 100.0
    if _has_amount(text, 5, "min"):
        return 90.0
    if _has_amount(text, 15, "min"):
        return 80.0
    if _has_amount(text, 30, "min"):
        return 70.0
    if _has_amount(text, 1, "hour"):
        return 60.0
    return 50.0
