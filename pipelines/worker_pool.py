"""Bounded fan-out / fan-in over the city list.

One feeder task streams cities into a bounded work queue, ``num_workers``
worker tasks turn each city into exactly one ``CityResult`` and push it into a
bounded results queue, and a watcher task closes the results queue once every
worker has returned. The caller drains the results queue until it is closed.

Results arrive in completion order, not input order. Anything reducing them
must not depend on order.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, ContextManager, Iterable, cast

from pipelines.errors import FetchError, SourceReadError
from pipelines.metrics import count_weather_code, mean_temperature
from pipelines.model import CityRecord, CityResult, CollectionRun
from pipelines.sources.open_meteo import OpenMeteoArchiveClient

RecordSource = ContextManager[Iterable[CityRecord]]
ProcessCity = Callable[[CityRecord], Awaitable[CityResult]]

# queue close marker; one per consumer on the work queue, one on the results queue
_CLOSED = object()

logger = logging.getLogger(__name__)


class CityWeatherProcessor:
    """Fetch one city's archive and reduce it to a ``CityResult``."""

    def __init__(
        self,
        client: OpenMeteoArchiveClient,
        *,
        mist_code: int,
        clear_sky_code: int,
    ) -> None:
        self.client = client
        self.mist_code = mist_code
        self.clear_sky_code = clear_sky_code

    async def __call__(self, record: CityRecord) -> CityResult:
        try:
            daily = await self.client.fetch_daily(record.lat, record.lng)
        except FetchError as exc:
            return CityResult.failed(record.city, exc)

        return CityResult(
            city=record.city,
            mean_temperature=mean_temperature(daily.temperature_2m_mean),
            days_with_mist=count_weather_code(daily.weather_code, self.mist_code),
            days_with_clear_sky=count_weather_code(daily.weather_code, self.clear_sky_code),
        )


async def collect_city_results(
    source: RecordSource,
    process: ProcessCity,
    *,
    num_workers: int,
    buffer_size: int,
    log: logging.Logger | None = None,
) -> CollectionRun:
    """Run every city from ``source`` through ``process`` and collect the results.

    Returns only after all workers finished and the results queue was drained.
    A ``SourceReadError`` stops feeding early: cities already queued are still
    processed and the error is reported on the returned run instead of raised.
    Any other exception cancels the remaining tasks and propagates.
    """

    if num_workers < 1:
        raise ValueError("num_workers must be >= 1")
    if buffer_size < 1:
        raise ValueError("buffer_size must be >= 1")

    log = log or logger
    work: asyncio.Queue[object] = asyncio.Queue(maxsize=buffer_size)
    results: asyncio.Queue[object] = asyncio.Queue(maxsize=buffer_size)
    records_read = 0
    source_error: SourceReadError | None = None

    async def feed() -> None:
        nonlocal records_read, source_error
        try:
            with source as records:
                for record in records:
                    await work.put(record)
                    records_read += 1
        except SourceReadError as exc:
            log.warning(
                "Error reading cities, stopping after %d record(s): %s", records_read, exc
            )
            source_error = exc
        for _ in range(num_workers):
            await work.put(_CLOSED)

    async def run_worker(worker_id: int) -> None:
        while True:
            record = await work.get()
            if record is _CLOSED:
                return
            city = cast(CityRecord, record)
            await results.put(await process(city))
            log.debug("Worker %d processed city: %s", worker_id, city.city)

    async def close_results(workers: list[asyncio.Task[None]]) -> None:
        await asyncio.wait(workers)
        await results.put(_CLOSED)

    collected: list[CityResult] = []
    async with asyncio.TaskGroup() as group:
        group.create_task(feed(), name="city-feeder")
        workers = [
            group.create_task(run_worker(worker_id), name=f"city-worker-{worker_id}")
            for worker_id in range(num_workers)
        ]
        group.create_task(close_results(workers), name="city-results-watcher")

        while True:
            item = await results.get()
            if item is _CLOSED:
                break
            collected.append(cast(CityResult, item))

    return CollectionRun(
        results=collected, records_read=records_read, source_error=source_error
    )


__all__ = ["CityWeatherProcessor", "collect_city_results", "RecordSource", "ProcessCity"]
