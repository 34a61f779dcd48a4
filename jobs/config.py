"""Run configuration for the city weather analysis."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from datetime import date
from pathlib import Path
from typing import Any, Mapping

from pipelines.sources.open_meteo import DEFAULT_TIMEZONE, OPEN_METEO_ARCHIVE_URL

DEFAULT_INPUT_PATH = Path("data/pl2.json")
DEFAULT_OUTPUT_PATH = Path("data/results.json")

# WMO weather codes: 45 is fog ("mist"), 0 is a clear sky
DEFAULT_MIST_CODE = 45
DEFAULT_CLEAR_SKY_CODE = 0


@dataclass(frozen=True)
class RunConfig:
    """Everything a run needs, fixed at startup."""

    base_url: str = OPEN_METEO_ARCHIVE_URL
    start_date: str = "2024-04-01"
    end_date: str = "2024-09-30"
    timezone: str = DEFAULT_TIMEZONE
    mist_code: int = DEFAULT_MIST_CODE
    clear_sky_code: int = DEFAULT_CLEAR_SKY_CODE
    input_path: Path = DEFAULT_INPUT_PATH
    output_path: Path = DEFAULT_OUTPUT_PATH
    num_workers: int = 1
    buffer_size: int = 200
    request_timeout: float = 10.0
    results_db_path: Path | None = None

    def validate(self) -> "RunConfig":
        if self.num_workers < 1:
            raise ValueError(f"num_workers must be >= 1 (got {self.num_workers}).")
        if self.buffer_size < 1:
            raise ValueError(f"buffer_size must be >= 1 (got {self.buffer_size}).")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive.")
        try:
            start = date.fromisoformat(self.start_date)
            end = date.fromisoformat(self.end_date)
        except ValueError as exc:
            raise ValueError(f"Dates must use YYYY-MM-DD: {exc}") from exc
        if end < start:
            raise ValueError(
                f"end_date {self.end_date} is before start_date {self.start_date}."
            )
        return self


# field name -> environment variable
ENV_VARS: Mapping[str, str] = {
    "base_url": "WEATHER_BASE_URL",
    "start_date": "WEATHER_START_DATE",
    "end_date": "WEATHER_END_DATE",
    "timezone": "WEATHER_TIMEZONE",
    "mist_code": "WEATHER_MIST_CODE",
    "clear_sky_code": "WEATHER_CLEAR_SKY_CODE",
    "input_path": "WEATHER_INPUT_PATH",
    "output_path": "WEATHER_OUTPUT_PATH",
    "num_workers": "WEATHER_WORKERS",
    "buffer_size": "WEATHER_BUFFER_SIZE",
    "request_timeout": "WEATHER_REQUEST_TIMEOUT",
    "results_db_path": "WEATHER_RESULTS_DB_PATH",
}

_INT_FIELDS = {"mist_code", "clear_sky_code", "num_workers", "buffer_size"}
_PATH_FIELDS = {"input_path", "output_path", "results_db_path"}


def _coerce(name: str, raw: str) -> Any:
    if name in _INT_FIELDS:
        try:
            return int(raw)
        except ValueError as exc:
            raise ValueError(f"{ENV_VARS[name]} must be an integer (got {raw!r}).") from exc
    if name == "request_timeout":
        try:
            return float(raw)
        except ValueError as exc:
            raise ValueError(f"{ENV_VARS[name]} must be a number (got {raw!r}).") from exc
    if name in _PATH_FIELDS:
        return Path(raw)
    return raw


def config_from_env(environ: Mapping[str, str] | None = None) -> RunConfig:
    """Layer ``WEATHER_*`` environment variables over the defaults."""

    env = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    for item in fields(RunConfig):
        raw = env.get(ENV_VARS[item.name])
        if raw is None or not raw.strip():
            continue
        overrides[item.name] = _coerce(item.name, raw.strip())
    return RunConfig(**overrides)


def describe(config: RunConfig) -> list[str]:
    return [f"{item.name}={getattr(config, item.name)}" for item in fields(RunConfig)]


__all__ = [
    "RunConfig",
    "ENV_VARS",
    "config_from_env",
    "describe",
    "DEFAULT_INPUT_PATH",
    "DEFAULT_OUTPUT_PATH",
    "DEFAULT_MIST_CODE",
    "DEFAULT_CLEAR_SKY_CODE",
]
