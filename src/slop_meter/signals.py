"""
Numeric primitives shared by every detector.

A signal is a bare number in [0, 1]. Detector thresholds live in the
arguments passed to ``bounded_scale`` at each call site.
"""

import math
from typing import Iterable, Sequence

import numpy as np


def clamp(value: float, low: float, high: float) -> float:
    if value < low:
        return low
    if value > high:
        return high
    return value


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from the floor, matching the published JSON values."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def round2(value: float) -> float:
    return round_half_up(value, 2)


def ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0 when the denominator is not positive."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator


def bounded_scale(value: float, min_value: float, max_value: float) -> float:
    """Linearly rescale ``value`` from [min_value, max_value] to [0, 1], clamped."""
    if max_value <= min_value or math.isnan(value):
        return 0.0
    return clamp((value - min_value) / (max_value - min_value), 0.0, 1.0)


def average(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))


def stddev(values: Sequence[float]) -> float:
    """Population standard deviation; fewer than two samples gives 0."""
    if len(values) < 2:
        return 0.0
    return float(np.std(values))


def similarity_coefficient(a: set[str], b: set[str]) -> float:
    """Jaccard index of two token sets. An empty union gives 0."""
    union = len(a | b)
    if union == 0:
        return 0.0
    return len(a & b) / union


def count_strong_signals(values: Iterable[float], threshold: float = 0.2) -> int:
    return sum(1 for value in values if value >= threshold)
