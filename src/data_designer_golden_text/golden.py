"""Shared golden-ratio constants and numeric helpers.

Every analyzer rounds its public numbers through :func:`round_half_up` so that
results are reproducible to the last printed digit, independent of platform.
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

PHI = 1.618033988749895
INV_PHI = 1 / PHI

FIB_SEQUENCE: tuple[int, ...] = (1, 1, 2, 3, 5, 8, 13, 21, 34, 55, 89, 144, 233, 377, 610, 987)


def round_half_up(value: float, places: int = 4) -> float:
    """Round ``value`` to ``places`` decimals, ties going towards +infinity."""
    factor = 10**places
    return math.floor(value * factor + 0.5) / factor


def fibonacci(index: int) -> int:
    """Fibonacci number for a 1-based ``index``, clamped to the table bounds."""
    position = min(max(index, 1), len(FIB_SEQUENCE)) - 1
    return FIB_SEQUENCE[position]


def ratio_alignment(values: Sequence[float]) -> float:
    """Mean closeness of consecutive ratios to PHI over descending ``values``.

    Each pair contributes ``max(0, 1 - |a/b - PHI|)``; pairs whose divisor is not
    positive contribute nothing but still count towards the mean.
    """
    if len(values) < 2:
        return 0.0
    ordered = sorted(values, reverse=True)
    total = 0.0
    for prev, cur in zip(ordered, ordered[1:]):
        if cur > 0:
            total += max(0.0, 1 - abs(prev / cur - PHI))
    return total / (len(ordered) - 1)


def mean(values: Iterable[float], default: float = 0.0) -> float:
    items = list(values)
    if not items:
        return default
    return sum(items) / len(items)
