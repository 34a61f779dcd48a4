"""Reduce per-city results into the three weather extrema."""

from __future__ import annotations

import logging
from typing import Iterable

from pipelines.errors import EmptyInputError
from pipelines.model import (
    NO_CLEAR_SKY_CITY,
    NO_MIST_CITY,
    NO_TEMPERATURE_CITY,
    CityResult,
    WeatherSummary,
)

logger = logging.getLogger(__name__)


def _larger_count(
    current: tuple[int, str] | None, count: int | None, city: str
) -> tuple[int, str] | None:
    # a zero count never becomes the maximum
    if count and count > (current[0] if current else 0):
        return count, city
    return current


class ResultAggregator:
    """Single-pass running maxima over ``CityResult`` values.

    Comparisons are strictly greater-than, so the first city seen with the
    maximum value keeps it. Results arrive in worker completion order, which
    means ties between cities resolve arbitrarily from run to run.
    """

    def __init__(self, *, log: logging.Logger | None = None) -> None:
        self._log = log or logger
        self.succeeded = 0
        self.failed = 0
        self._best_mean: tuple[float, str] | None = None
        self._most_mist: tuple[int, str] | None = None
        self._most_clear_sky: tuple[int, str] | None = None

    @property
    def seen(self) -> int:
        return self.succeeded + self.failed

    def add(self, result: CityResult) -> None:
        if not result.ok:
            self.failed += 1
            self._log.warning("Error processing city %s: %s", result.city, result.error)
            return

        self.succeeded += 1
        if result.mean_temperature is not None and (
            self._best_mean is None or result.mean_temperature > self._best_mean[0]
        ):
            self._best_mean = (result.mean_temperature, result.city)
        self._most_mist = _larger_count(self._most_mist, result.days_with_mist, result.city)
        self._most_clear_sky = _larger_count(
            self._most_clear_sky, result.days_with_clear_sky, result.city
        )

    def finalize(self) -> WeatherSummary:
        if self.seen == 0:
            raise EmptyInputError("no results to analyse, run the collection step first")

        return WeatherSummary(
            highest_mean_temperature_city=(
                self._best_mean[1] if self._best_mean is not None else NO_TEMPERATURE_CITY
            ),
            most_mist_city=self._most_mist[1] if self._most_mist else NO_MIST_CITY,
            most_clear_sky_city=(
                self._most_clear_sky[1] if self._most_clear_sky else NO_CLEAR_SKY_CITY
            ),
        )


def summarize_results(
    results: Iterable[CityResult], *, log: logging.Logger | None = None
) -> WeatherSummary:
    """Fold ``results`` into a ``WeatherSummary``.

    Raises ``EmptyInputError`` when ``results`` is empty. Failed results are
    logged and skipped; if every result failed the summary holds only the
    "no city" sentinels.
    """

    aggregator = ResultAggregator(log=log)
    for result in results:
        aggregator.add(result)
    return aggregator.finalize()


__all__ = ["ResultAggregator", "summarize_results"]
