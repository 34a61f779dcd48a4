import json
from typing import Callable

import httpx
import pytest

from pipelines.model import CityRecord


def archive_body(temps, codes) -> dict:
    return {
        "latitude": 52.0,
        "longitude": 21.0,
        "timezone": "Europe/Berlin",
        "daily": {
            "time": [f"2024-04-{day:02d}" for day in range(1, len(temps) + 1)],
            "temperature_2m_mean": temps,
            "weather_code": codes,
        },
    }


@pytest.fixture()
def archive_payload() -> Callable[..., dict]:
    return archive_body


@pytest.fixture()
def write_cities(tmp_path) -> Callable[..., object]:
    def _write(cities, name: str = "cities.json"):
        path = tmp_path / name
        payload = [
            city.model_dump() if isinstance(city, CityRecord) else city for city in cities
        ]
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def make_cities() -> Callable[[int], list[CityRecord]]:
    def _make(count: int) -> list[CityRecord]:
        return [
            CityRecord(city=f"City{index:03d}", lat=f"{index}.0", lng=f"{index * 2}.5")
            for index in range(count)
        ]

    return _make


@pytest.fixture()
def latitude_transport() -> httpx.MockTransport:
    """Archive stub whose numbers depend on the requested latitude.

    For latitude ``n`` in ``0..49``: mean temperature ``n``, ``n`` mist days
    (code 45) and ``49 - n`` clear-sky days (code 0), so every maximum is unique.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        latitude = int(float(request.url.params["latitude"]))
        codes = [45] * latitude + [0] * (49 - latitude) + [3]
        return httpx.Response(200, json=archive_body([float(latitude)] * 3, codes))

    return httpx.MockTransport(handler)
