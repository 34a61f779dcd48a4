"""DuckDB persistence for per-city results of each analysis run."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, UTC
from pathlib import Path
from typing import Iterable

import duckdb

from pipelines.model import CityResult

DB_ENV_VAR = "WEATHER_RESULTS_DB_PATH"
DEFAULT_DB_PATH = Path("data/city_results.duckdb")

CITY_RESULTS_TABLE = "city_results"


@dataclass(frozen=True)
class StoredCityResult:
    """A ``CityResult`` row read back from DuckDB."""

    run_id: str
    city: str
    mean_temperature: float | None
    days_with_mist: int | None
    days_with_clear_sky: int | None
    error: str | None
    recorded_at: datetime


def _ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def get_database_path(override: str | os.PathLike[str] | None = None) -> Path:
    """Resolve the DuckDB file path from an explicit override or environment variable."""

    if override is not None:
        return Path(override)
    env_value = os.getenv(DB_ENV_VAR)
    if env_value:
        return Path(env_value)
    return DEFAULT_DB_PATH


def connect(
    path: str | os.PathLike[str] | None = None,
    *,
    read_only: bool = False,
    ensure: bool = True,
) -> duckdb.DuckDBPyConnection:
    """Create a DuckDB connection, optionally ensuring schema availability."""

    db_path = get_database_path(path)
    if not read_only:
        _ensure_parent_dir(db_path)
    conn = duckdb.connect(str(db_path), read_only=read_only)
    if ensure and not read_only:
        ensure_city_results_table(conn)
    return conn


def ensure_city_results_table(conn: duckdb.DuckDBPyConnection) -> None:
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {CITY_RESULTS_TABLE} (
            run_id TEXT NOT NULL,
            city TEXT NOT NULL,
            mean_temperature DOUBLE,
            days_with_mist INTEGER,
            days_with_clear_sky INTEGER,
            error TEXT,
            recorded_at TIMESTAMP NOT NULL
        )
        """
    )
    conn.execute(
        f"""
        CREATE INDEX IF NOT EXISTS idx_{CITY_RESULTS_TABLE}_run
        ON {CITY_RESULTS_TABLE} (run_id)
        """
    )


def insert_city_results(
    conn: duckdb.DuckDBPyConnection,
    run_id: str,
    results: Iterable[CityResult],
    *,
    recorded_at: datetime | None = None,
) -> int:
    """Append one row per result for ``run_id``.

    Returns
    -------
    int
        Number of rows written.
    """

    timestamp = (recorded_at or datetime.now(UTC)).replace(tzinfo=None)
    rows = [
        (
            run_id,
            result.city,
            result.mean_temperature,
            result.days_with_mist,
            result.days_with_clear_sky,
            str(result.error) if result.error is not None else None,
            timestamp,
        )
        for result in results
    ]
    if not rows:
        return 0

    conn.executemany(
        f"""
        INSERT INTO {CITY_RESULTS_TABLE} (
            run_id,
            city,
            mean_temperature,
            days_with_mist,
            days_with_clear_sky,
            error,
            recorded_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        rows,
    )
    return len(rows)


def fetch_city_results(
    conn: duckdb.DuckDBPyConnection, *, run_id: str | None = None
) -> list[StoredCityResult]:
    sql = (
        f"SELECT run_id, city, mean_temperature, days_with_mist, days_with_clear_sky,"
        f" error, recorded_at FROM {CITY_RESULTS_TABLE}"
    )
    params: list[object] = []
    if run_id is not None:
        sql += " WHERE run_id = ?"
        params.append(run_id)
    sql += " ORDER BY city"
    return [StoredCityResult(*row) for row in conn.execute(sql, params).fetchall()]


__all__ = [
    "connect",
    "ensure_city_results_table",
    "insert_city_results",
    "fetch_city_results",
    "get_database_path",
    "StoredCityResult",
    "CITY_RESULTS_TABLE",
]
