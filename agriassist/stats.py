# agriassist/stats.py
from __future__ import annotations

from fractions import Fraction
from typing import Iterable, Optional

HECTARE_TO_ACRE = 2.47105

TREND_UP_FACTOR = Fraction(115, 100)
TREND_DOWN_FACTOR = Fraction(85, 100)


def average(values: Iterable[Optional[float]]) -> Optional[float]:
    """Mean of the positive numbers in `values`; None when there are none."""
    nums = [float(v) for v in values if isinstance(v, (int, float)) and v > 0]
    if not nums:
        return None
    return sum(nums) / len(nums)


def detect_trend(values: list[float]) -> Optional[str]:
    """
    Label a chronologically ordered series by comparing its latest value to its first.

    "increasing" above +15%, "decreasing" below -15%, otherwise "stable".
    Returns None for fewer than two points.
    """
    if len(values) < 2:
        return None
    # decimal strings keep 115 vs 100 * 1.15 exact
    first, latest = Fraction(str(values[0])), Fraction(str(values[-1]))
    if latest > first * TREND_UP_FACTOR:
        return "increasing"
    if latest < first * TREND_DOWN_FACTOR:
        return "decreasing"
    return "stable"


def to_acres(size: Optional[float], unit: Optional[str]) -> Optional[float]:
    """Field size in acres; None for missing sizes or units we can't convert."""
    if not isinstance(size, (int, float)) or size <= 0:
        return None
    u = (unit or "").lower()
    if not u or "acre" in u:
        return float(size)
    if "hectare" in u or u == "ha":
        return float(size) * HECTARE_TO_ACRE
    return None


def total_acres(fields) -> float:
    total = 0.0
    for f in fields:
        acres = to_acres(f.field_size, f.field_size_unit)
        if acres:
            total += acres
    return total
