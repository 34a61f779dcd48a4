"""End-to-end job: fetch weather for every city, reduce to extrema, persist the summary."""

from __future__ import annotations

import asyncio
import logging
import os
import time
import uuid
from dataclasses import dataclass, replace
from typing import Iterable

import httpx
from dotenv import load_dotenv

from jobs.config import RunConfig, config_from_env
from pipelines.aggregate import summarize_results
from pipelines.errors import EmptyInputError, SinkWriteError
from pipelines.model import CollectionRun, WeatherSummary
from pipelines.sources.cities import CityRecordSource
from pipelines.sources.open_meteo import OpenMeteoArchiveClient
from pipelines.worker_pool import CityWeatherProcessor, collect_city_results
from storage.db import connect, insert_city_results
from storage.results import write_summary

load_dotenv()

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisOutcome:
    run_id: str
    run: CollectionRun
    summary: WeatherSummary


async def collect_async(
    config: RunConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> CollectionRun:
    """Stream the configured input through the worker pool.

    One ``httpx.AsyncClient`` is shared by all workers for the whole run.
    ``transport`` replaces the network layer, e.g. with ``httpx.MockTransport``.
    """

    async with httpx.AsyncClient(
        timeout=config.request_timeout, transport=transport
    ) as http_client:
        client = OpenMeteoArchiveClient(
            http_client,
            start_date=config.start_date,
            end_date=config.end_date,
            base_url=config.base_url,
            timezone=config.timezone,
            timeout=config.request_timeout,
        )
        processor = CityWeatherProcessor(
            client,
            mist_code=config.mist_code,
            clear_sky_code=config.clear_sky_code,
        )
        return await collect_city_results(
            CityRecordSource(config.input_path),
            processor,
            num_workers=config.num_workers,
            buffer_size=config.buffer_size,
        )


def _store_city_results(config: RunConfig, run_id: str, run: CollectionRun) -> None:
    conn = connect(config.results_db_path)
    try:
        written = insert_city_results(conn, run_id, run.results)
    finally:
        conn.close()
    logger.info("Stored %s city results for run %s in %s.", written, run_id, config.results_db_path)


async def analyse_cities_async(
    config: RunConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AnalysisOutcome:
    """Collect every city result and reduce them to a ``WeatherSummary``.

    Raises ``EmptyInputError`` when the input yielded no cities at all.
    """

    run_id = uuid.uuid4().hex
    run = await collect_async(config, transport=transport)
    if run.truncated:
        logger.warning(
            "Input %s was only partially read (%s cities); the summary covers those only.",
            config.input_path,
            run.records_read,
        )
    summary = summarize_results(run.results)
    if config.results_db_path is not None:
        _store_city_results(config, run_id, run)
    return AnalysisOutcome(run_id=run_id, run=run, summary=summary)


def configure_logging() -> str:
    """Configure root logging from ``LOG_LEVEL``; unknown levels fall back to INFO."""

    requested = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    level = requested if requested in logging.getLevelNamesMapping() else "INFO"
    logging.basicConfig(level=level)
    if level != requested:
        logger.warning("Unknown LOG_LEVEL %r, using INFO", requested)
    return level


def _log_config(config: RunConfig) -> None:
    logger.info("Input file: %s", config.input_path)
    logger.info("Output file: %s", config.output_path)
    logger.info("Number of workers: %d", config.num_workers)
    logger.info("Buffer size: %d", config.buffer_size)
    logger.info("Date range: %s to %s", config.start_date, config.end_date)


def _log_run_stats(run: CollectionRun, elapsed: float) -> None:
    logger.info("Processing completed")
    logger.info("Total cities processed: %d (failed: %d)", run.records_read, run.failures)
    logger.info("Total execution time: %.3fs", elapsed)
    if run.records_read:
        logger.info("Average time per city: %.4fs", elapsed / run.records_read)


def run_benchmark(
    config: RunConfig,
    worker_counts: Iterable[int],
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[tuple[int, float]]:
    """Time one full collection and aggregation per worker count."""

    timings: list[tuple[int, float]] = []
    for workers in worker_counts:
        candidate = replace(config, num_workers=workers).validate()
        started = time.perf_counter()
        run = asyncio.run(collect_async(candidate, transport=transport))
        summarize_results(run.results)
        elapsed = time.perf_counter() - started
        logger.info(
            "%d worker(s): %d cities in %.3fs", workers, run.records_read, elapsed
        )
        timings.append((workers, elapsed))
    return timings


def main(
    config: RunConfig | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    configure_logging()
    config = (config or config_from_env()).validate()
    _log_config(config)

    started = time.perf_counter()
    try:
        outcome = asyncio.run(analyse_cities_async(config, transport=transport))
    except EmptyInputError as exc:
        logger.error("Error analysing responses: %s", exc)
        return 1

    exit_code = 0
    try:
        write_summary(outcome.summary, config.output_path)
    except SinkWriteError as exc:
        logger.error("Error writing result: %s", exc)
        exit_code = 1
    else:
        logger.info("Summary written to %s.", config.output_path)

    _log_run_stats(outcome.run, time.perf_counter() - started)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
