"""Jenks natural breaks classification.

Values are split into classes that minimise the sum of squared deviations
from each class mean. The optimisation is the classic dynamic programme
over sorted distinct values, with prefix sums so that the cost of any
candidate class is computed in constant time and each step is vectorised
with numpy.

Breaks are reported as class lower bounds, so the first break is always
the minimum value.
"""

from __future__ import annotations

import bisect
import math
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from collections.abc import Sequence

MAX_ROUNDING_DIGITS = 15
CLASS_COUNT_WEIGHT = 0.2


def natural_breaks(values: Sequence[float], classes: int) -> list[float]:
    """Lower bounds of the optimal ``classes`` classes.

    The number of classes is limited to the number of distinct values.

    Args:
        values: Data values, in any order.
        classes: Requested number of classes.

    Returns:
        Ascending class lower bounds (empty for no values).
    """
    unique, counts = np.unique(np.asarray(values, dtype=float), return_counts=True)
    size = unique.size
    classes = min(classes, size)
    if classes < 1:
        return []

    weights = np.concatenate(([0.0], np.cumsum(counts)))
    sums = np.concatenate(([0.0], np.cumsum(unique * counts)))
    squares = np.concatenate(([0.0], np.cumsum(unique * unique * counts)))

    cost = np.full((classes + 1, size + 1), np.inf)
    cost[0, 0] = 0.0
    start = np.zeros((classes + 1, size + 1), dtype=int)
    for k in range(1, classes + 1):
        for end in range(k, size + 1):
            first = np.arange(k - 1, end)
            total = sums[end] - sums[first]
            deviation = (
                squares[end] - squares[first]
                - total * total / (weights[end] - weights[first])
            )
            candidates = cost[k - 1, first] + deviation
            best = int(np.argmin(candidates))
            cost[k, end] = candidates[best]
            start[k, end] = first[best]

    lower: list[float] = []
    end = size
    for k in range(classes, 0, -1):
        first_index = int(start[k, end])
        lower.append(float(unique[first_index]))
        end = first_index
    lower.reverse()
    return lower


def all_natural_breaks(values: Sequence[float], max_classes: int) -> list[list[float]]:
    """Natural breaks for every class count from 2 up to ``max_classes``.

    Class counts above the number of distinct values are skipped.
    """
    distinct = len(set(values))
    return [natural_breaks(values, k) for k in range(2, min(max_classes, distinct) + 1)]


def _floor_to(value: float, digits: int) -> float:
    scale = 10**digits
    # tolerate representation error such as 0.29 * 100 == 28.999999999999996
    return round(math.floor(value * scale + 1e-9) / scale, digits)


def round_breaks(breaks: Sequence[float], values: Sequence[float]) -> list[float]:
    """Round breaks to the least precision that keeps each class intact.

    A break is rounded down to the fewest decimal places that still place
    it above the largest value of the class below, so every value keeps its
    class. The first break is rounded down to a whole number.

    Example:
        >>> round_breaks([1.25, 7.354], [1.25, 3.1, 7.354, 9.0])
        [1.0, 7.0]
    """
    data = sorted(values)
    rounded = []
    for value in breaks:
        index = bisect.bisect_left(data, value)
        previous = data[index - 1] if index > 0 else None
        result = value
        for digits in range(MAX_ROUNDING_DIGITS + 1):
            candidate = _floor_to(value, digits)
            if candidate <= value and (previous is None or candidate > previous):
                result = candidate
                break
        rounded.append(result)
    return rounded


def _squared_deviations(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    array = np.asarray(values, dtype=float)
    return float(np.sum((array - array.mean()) ** 2))


def goodness_of_variance_fit(values: Sequence[float], breaks: Sequence[float]) -> float:
    """How well breaks fit the data, from 0 (no fit) to 1 (perfect fit).

    Args:
        values: Data values sorted ascending.
        breaks: Class lower bounds.

    Returns:
        ``(SDAM - SDCM) / SDAM``; 1.0 when the data has no variance.
    """
    total = _squared_deviations(values)
    if total == 0:
        return 1.0
    upper_bounds = [*breaks[1:], values[-1] + 1.0]
    within = 0.0
    remaining = list(values)
    for upper in upper_bounds:
        index = bisect.bisect_left(remaining, upper)
        within += _squared_deviations(remaining[:index])
        remaining = remaining[index:]
    return (total - within) / total


def best_fit_class_count(values: Sequence[float], all_breaks: Sequence[Sequence[float]]) -> int:
    """Suggest the class count that best balances fit against simplicity.

    Each candidate scores ``(0.8 * gvf + 0.2 * (1 - classes / max)) / 2``;
    the first highest score wins.

    Args:
        values: Data values sorted ascending.
        all_breaks: Breaks per class count, as from all_natural_breaks.

    Returns:
        The suggested number of classes, or 0 without candidates.
    """
    if not all_breaks:
        return 0
    max_classes = len(all_breaks[-1])
    best_count = 0
    best_fitness = 0.0
    for breaks in all_breaks:
        goodness = goodness_of_variance_fit(values, breaks)
        simplicity = 1.0 - len(breaks) / max_classes
        fitness = (
            goodness * (1.0 - CLASS_COUNT_WEIGHT) + simplicity * CLASS_COUNT_WEIGHT
        ) / 2.0
        if fitness > best_fitness:
            best_count = len(breaks)
            best_fitness = fitness
    return best_count
