"""Command-line entrypoint for batch jobs."""

from __future__ import annotations

import argparse
import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Any

from jobs.analyse_cities import configure_logging
from jobs.analyse_cities import main as run_analysis
from jobs.analyse_cities import run_benchmark
from jobs.config import RunConfig, config_from_env, describe
from pipelines.errors import EmptyInputError

DEFAULT_BENCHMARK_WORKERS = "1,2,3,4,6,8,10,12,14,16,20"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_worker_counts(raw: str) -> list[int]:
    try:
        counts = [int(item.strip()) for item in raw.split(",") if item.strip()]
    except ValueError as exc:
        raise SystemExit(f"Invalid worker counts '{raw}': {exc}") from exc
    if not counts or any(count < 1 for count in counts):
        raise SystemExit(f"Worker counts must be positive integers (got '{raw}').")
    return counts


def _add_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--input", type=Path, help="Input JSON file path")
    parser.add_argument("--buffer", type=int, help="Queue capacity for cities and results")
    parser.add_argument("--start-date", help="First archive day (YYYY-MM-DD)")
    parser.add_argument("--end-date", help="Last archive day (YYYY-MM-DD)")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Override LOG_LEVEL for this invocation",
    )


def _config_from_args(args: argparse.Namespace) -> RunConfig:
    overrides: dict[str, Any] = {
        "input_path": args.input,
        "buffer_size": args.buffer,
        "start_date": args.start_date,
        "end_date": args.end_date,
        "output_path": getattr(args, "output", None),
        "num_workers": getattr(args, "workers", None),
        "results_db_path": getattr(args, "db_path", None),
    }
    config = config_from_env()
    return replace(config, **{key: value for key, value in overrides.items() if value is not None})


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="City weather extremes job runner")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyse_parser = subparsers.add_parser(
        "analyse", help="Fetch weather for every city and write the extrema summary"
    )
    _add_run_arguments(analyse_parser)
    analyse_parser.add_argument("--output", type=Path, help="Output JSON file path")
    analyse_parser.add_argument("--workers", type=int, help="Number of concurrent workers")
    analyse_parser.add_argument(
        "--db-path", type=Path, help="Also store per-city results in this DuckDB file"
    )

    benchmark_parser = subparsers.add_parser(
        "benchmark", help="Time the collection step for several worker counts"
    )
    _add_run_arguments(benchmark_parser)
    benchmark_parser.add_argument(
        "--workers",
        default=DEFAULT_BENCHMARK_WORKERS,
        help="Comma-separated worker counts to compare",
    )

    subparsers.add_parser("show-config", help="Show the resolved run configuration")

    args = parser.parse_args(argv)

    if args.command == "show-config":
        try:
            config = config_from_env()
        except ValueError as exc:
            parser.error(str(exc))
        for line in describe(config):
            print(line)
        return 0

    if args.log_level:
        os.environ["LOG_LEVEL"] = args.log_level

    if args.command == "analyse":
        try:
            config = _config_from_args(args).validate()
        except ValueError as exc:
            parser.error(str(exc))
        return run_analysis(config)

    if args.command == "benchmark":
        worker_counts = _parse_worker_counts(args.workers)
        args.workers = None
        try:
            config = _config_from_args(args).validate()
        except ValueError as exc:
            parser.error(str(exc))
        configure_logging()
        try:
            run_benchmark(config, worker_counts)
        except EmptyInputError as exc:
            logging.getLogger(__name__).error("Benchmark aborted: %s", exc)
            return 1
        return 0

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
