"""
Time-of-day and traffic adjustments.

Both multipliers take the local datetime from a `ClockContext`. When the clock
has no reliable local time (`None`), they return exactly 1.0.
Hour windows are inclusive on whole hours: "9-11" covers 09:00 through 11:59.
"""

from __future__ import annotations

from datetime import datetime

PEAK_BOOST = 1.1
MODERATE_BOOST = 1.05
OFF_HOURS_DAMPING = 0.95

WEEKEND_TRAFFIC = 0.9
RUSH_HOUR_TRAFFIC = 1.5
MODERATE_TRAFFIC = 1.2


def _in_windows(hour: int, windows: tuple[tuple[int, int], ...]) -> bool:
    return any(start <= hour <= end for start, end in windows)


def time_of_day_multiplier(local: datetime | None) -> float:
    """Demand weighting applied to the final composite relevance score."""
    if local is None:
        return 1.0
    hour = local.hour
    if _in_windows(hour, ((9, 11), (14, 17))):
        return PEAK_BOOST
    if _in_windows(hour, ((6, 8), (12, 13), (18, 20))):
        return MODERATE_BOOST
    if hour < 6 or hour > 22:
        return OFF_HOURS_DAMPING
    return 1.0


def traffic_multiplier(local: datetime | None) -> float:
    """Travel-time factor for current road conditions."""
    if local is None:
        return 1.0
    if local.weekday() >= 5:
        return WEEKEND_TRAFFIC
    hour = local.hour
    if _in_windows(hour, ((7, 9), (17, 19))):
        return RUSH_HOUR_TRAFFIC
    if _in_windows(hour, ((10, 16), (20, 22))):
        return MODERATE_TRAFFIC
    return 1.0
