"""Per-city metrics computed from a daily observation series."""

from __future__ import annotations

from typing import Iterable


def mean_temperature(values: Iterable[float | None]) -> float:
    """Arithmetic mean of the daily values, ignoring missing days.

    Returns 0.0 when there is nothing to average.
    """

    total = 0.0
    count = 0
    for value in values:
        if value is None:
            continue
        total += value
        count += 1
    if count == 0:
        return 0.0
    return total / count


def count_weather_code(codes: Iterable[int | None], code: int) -> int:
    return sum(1 for candidate in codes if candidate == code)


__all__ = ["mean_temperature", "count_weather_code"]
