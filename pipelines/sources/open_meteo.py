"""Open-Meteo historical archive client.

Turns archive API responses into ``DailyObservations`` for one coordinate pair.
Every failure surfaces as ``FetchError``; a failed request is never retried.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from pipelines.common import DEFAULT_TIMEOUT_SECONDS, fetch_json
from pipelines.errors import FetchError
from pipelines.model import DailyObservations, OpenMeteoArchiveResponse

OPEN_METEO_ARCHIVE_URL = "https://archive-api.open-meteo.com/v1/archive"
DAILY_VARIABLES = ("weather_code", "temperature_2m_mean")
DEFAULT_TIMEZONE = "Europe/Berlin"

_BODY_SNIPPET_CHARS = 200

logger = logging.getLogger(__name__)


def build_archive_params(
    latitude: str,
    longitude: str,
    *,
    start_date: str,
    end_date: str,
    timezone: str = DEFAULT_TIMEZONE,
) -> dict[str, Any]:
    return {
        "latitude": latitude,
        "longitude": longitude,
        "start_date": start_date,
        "end_date": end_date,
        "daily": ",".join(DAILY_VARIABLES),
        "timezone": timezone,
    }


class OpenMeteoArchiveClient:
    """Fetch daily weather codes and mean temperatures over a fixed date range.

    The wrapped ``httpx.AsyncClient`` is shared by every worker of a run, so
    this object holds no per-request state and is safe to call concurrently.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        start_date: str,
        end_date: str,
        base_url: str = OPEN_METEO_ARCHIVE_URL,
        timezone: str = DEFAULT_TIMEZONE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.http_client = http_client
        self.start_date = start_date
        self.end_date = end_date
        self.base_url = base_url
        self.timezone = timezone
        self.timeout = timeout

    async def fetch_daily(self, latitude: str, longitude: str) -> DailyObservations:
        params = build_archive_params(
            latitude,
            longitude,
            start_date=self.start_date,
            end_date=self.end_date,
            timezone=self.timezone,
        )
        try:
            payload = await fetch_json(
                self.base_url,
                client=self.http_client,
                params=params,
                timeout=self.timeout,
            )
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            body = exc.response.text[:_BODY_SNIPPET_CHARS].strip()
            raise FetchError(
                f"bad status: {status}, body: {body}", status_code=status, body=body
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"failed to make request: {exc!r}") from exc
        except ValueError as exc:
            raise FetchError(f"failed to decode response: {exc}") from exc

        try:
            response = OpenMeteoArchiveResponse.model_validate(payload)
        except ValidationError as exc:
            raise FetchError(
                f"unexpected archive payload for {latitude},{longitude}: "
                f"{exc.error_count()} validation error(s)"
            ) from exc

        logger.debug(
            "Fetched %s daily observations for %s,%s",
            len(response.daily.time) or len(response.daily.temperature_2m_mean),
            latitude,
            longitude,
        )
        return response.daily


__all__ = [
    "OpenMeteoArchiveClient",
    "build_archive_params",
    "OPEN_METEO_ARCHIVE_URL",
    "DAILY_VARIABLES",
    "DEFAULT_TIMEZONE",
]
