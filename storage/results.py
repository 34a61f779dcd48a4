"""JSON sink for the final weather summary."""

from __future__ import annotations

import os
from pathlib import Path

from pipelines.errors import SinkWriteError
from pipelines.model import WeatherSummary

SUMMARY_INDENT = 4


def write_summary(summary: WeatherSummary, destination: str | os.PathLike[str]) -> Path:
    """Write ``summary`` as pretty-printed JSON, replacing any existing file."""

    dest_path = Path(destination)
    try:
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        dest_path.write_text(
            summary.model_dump_json(indent=SUMMARY_INDENT) + "\n", encoding="utf-8"
        )
    except OSError as exc:
        raise SinkWriteError(f"failed to write summary to {dest_path}: {exc}") from exc
    return dest_path


__all__ = ["write_summary", "SUMMARY_INDENT"]
