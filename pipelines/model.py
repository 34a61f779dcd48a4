"""Data model for cities, Open-Meteo archive payloads and run results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from pipelines.errors import FetchError, SourceReadError

NO_TEMPERATURE_CITY = "No city had temperature data"
NO_MIST_CITY = "No city had mist"
NO_CLEAR_SKY_CITY = "No city had clear sky"


class CityRecord(BaseModel):
    """One entry of the input city list."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    city: str = Field(..., description="City name used to label results.")
    lat: str = Field(..., description="Latitude, forwarded verbatim to the archive API.")
    lng: str = Field(..., description="Longitude, forwarded verbatim to the archive API.")
    country: str = ""
    iso2: str = ""
    admin_name: str = ""
    capital: str = ""
    population: str = ""
    population_proper: str = ""


class DailyObservations(BaseModel):
    """Parallel daily series returned by the archive API for one location."""

    time: list[str] = Field(default_factory=list)
    weather_code: list[Optional[int]] = Field(default_factory=list)
    temperature_2m_mean: list[Optional[float]] = Field(default_factory=list)


class OpenMeteoArchiveResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    generationtime_ms: Optional[float] = None
    utc_offset_seconds: Optional[int] = None
    timezone: Optional[str] = None
    timezone_abbreviation: Optional[str] = None
    elevation: Optional[float] = None
    daily_units: dict[str, str] = Field(default_factory=dict)
    daily: DailyObservations = Field(default_factory=DailyObservations)


@dataclass(frozen=True)
class CityResult:
    """Outcome of processing one city.

    A failed result carries ``error`` and leaves every metric as ``None``.
    """

    city: str
    mean_temperature: float | None = None
    days_with_mist: int | None = None
    days_with_clear_sky: int | None = None
    error: FetchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, city: str, error: FetchError) -> "CityResult":
        return cls(city=city, error=error)


@dataclass(frozen=True)
class CollectionRun:
    """Everything the worker pool collected during one pass over the source."""

    results: list[CityResult] = field(default_factory=list)
    records_read: int = 0
    source_error: SourceReadError | None = None

    @property
    def truncated(self) -> bool:
        return self.source_error is not None

    @property
    def failures(self) -> int:
        return sum(1 for result in self.results if not result.ok)


class WeatherSummary(BaseModel):
    """Final extrema report written to the output file."""

    model_config = ConfigDict(frozen=True)

    highest_mean_temperature_city: str = Field(
        NO_TEMPERATURE_CITY, description="City with the highest mean daily temperature."
    )
    most_mist_city: str = Field(
        NO_MIST_CITY, description="City with the most days reporting the mist code."
    )
    most_clear_sky_city: str = Field(
        NO_CLEAR_SKY_CITY, description="City with the most days reporting the clear sky code."
    )


__all__ = [
    "CityRecord",
    "CityResult",
    "CollectionRun",
    "DailyObservations",
    "OpenMeteoArchiveResponse",
    "WeatherSummary",
    "NO_TEMPERATURE_CITY",
    "NO_MIST_CITY",
    "NO_CLEAR_SKY_CITY",
]
