"""Error taxonomy shared by the city weather pipeline and its jobs."""

from __future__ import annotations


class WeatherPipelineError(Exception):
    """Base class for every error raised by the pipeline."""


class SourceReadError(WeatherPipelineError):
    """The city input file is missing, unreadable or malformed."""


class FetchError(WeatherPipelineError):
    """A single Open-Meteo request failed.

    ``status_code`` and ``body`` are set for non-2xx responses; transport
    failures chain the underlying ``httpx`` exception instead.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class EmptyInputError(WeatherPipelineError):
    """Aggregation was requested before any city result was collected."""


class SinkWriteError(WeatherPipelineError):
    """The summary could not be persisted."""


__all__ = [
    "WeatherPipelineError",
    "SourceReadError",
    "FetchError",
    "EmptyInputError",
    "SinkWriteError",
]
