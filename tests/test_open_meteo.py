import asyncio

import httpx
import pytest

from pipelines.errors import FetchError
from pipelines.model import CityRecord
from pipelines.sources.open_meteo import OpenMeteoArchiveClient, build_archive_params
from pipelines.worker_pool import CityWeatherProcessor

BASE_URL = "http://archive.test/v1/archive"


def _fetch(handler, latitude="10.0", longitude="20.0"):
    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            client = OpenMeteoArchiveClient(
                http_client,
                start_date="2023-01-01",
                end_date="2023-01-07",
                base_url=BASE_URL,
            )
            return await client.fetch_daily(latitude, longitude)

    return asyncio.run(_run())


def test_build_archive_params():
    params = build_archive_params(
        "52.23", "21.01", start_date="2024-04-01", end_date="2024-09-30"
    )

    assert params == {
        "latitude": "52.23",
        "longitude": "21.01",
        "start_date": "2024-04-01",
        "end_date": "2024-09-30",
        "daily": "weather_code,temperature_2m_mean",
        "timezone": "Europe/Berlin",
    }


def test_fetch_daily_sends_query_and_parses_series(archive_payload):
    seen: list[httpx.Request] = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=archive_payload([20.0, 25.0, 30.0], [1, 2, 1]))

    daily = _fetch(handler)

    assert daily.temperature_2m_mean == [20.0, 25.0, 30.0]
    assert daily.weather_code == [1, 2, 1]
    assert daily.time == ["2024-04-01", "2024-04-02", "2024-04-03"]

    (request,) = seen
    assert request.method == "GET"
    assert str(request.url).startswith(BASE_URL)
    assert request.url.params["latitude"] == "10.0"
    assert request.url.params["longitude"] == "20.0"
    assert request.url.params["start_date"] == "2023-01-01"
    assert request.url.params["end_date"] == "2023-01-07"
    assert request.url.params["daily"] == "weather_code,temperature_2m_mean"
    assert request.url.params["timezone"] == "Europe/Berlin"


def test_fetch_daily_accepts_partial_payload():
    daily = _fetch(
        lambda request: httpx.Response(
            200, json={"daily": {"temperature_2m_mean": [20.0, None], "weather_code": [1, None]}}
        )
    )

    assert daily.time == []
    assert daily.temperature_2m_mean == [20.0, None]


def test_fetch_daily_non_2xx_is_a_fetch_error():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500, text="Internal Server Error")

    with pytest.raises(FetchError) as excinfo:
        _fetch(handler)

    assert excinfo.value.status_code == 500
    assert excinfo.value.body == "Internal Server Error"
    assert "bad status: 500" in str(excinfo.value)
    assert len(calls) == 1


def test_fetch_daily_truncates_long_error_body():
    with pytest.raises(FetchError) as excinfo:
        _fetch(lambda request: httpx.Response(400, text="x" * 5000))

    assert excinfo.value.status_code == 400
    assert len(excinfo.value.body) == 200


def test_fetch_daily_timeout_is_a_fetch_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(FetchError) as excinfo:
        _fetch(handler)

    assert excinfo.value.status_code is None
    assert isinstance(excinfo.value.__cause__, httpx.ReadTimeout)


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="not json"),
        httpx.Response(200, json=[1, 2, 3]),
        httpx.Response(200, json={"daily": {"weather_code": ["sunny"]}}),
    ],
)
def test_fetch_daily_rejects_undecodable_payloads(response):
    with pytest.raises(FetchError):
        _fetch(lambda request: response)


def _process(handler, city):
    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            client = OpenMeteoArchiveClient(
                http_client, start_date="2023-01-01", end_date="2023-01-07", base_url=BASE_URL
            )
            processor = CityWeatherProcessor(client, mist_code=1, clear_sky_code=2)
            return await processor(city)

    return asyncio.run(_run())


def test_processor_computes_city_metrics(archive_payload):
    result = _process(
        lambda request: httpx.Response(
            200, json=archive_payload([20.0, 25.0, 30.0], [1, 2, 1, 3, 1])
        ),
        CityRecord(city="CityA", lat="10.0", lng="20.0"),
    )

    assert result.ok
    assert result.city == "CityA"
    assert result.mean_temperature == pytest.approx(25.0)
    assert result.days_with_mist == 3
    assert result.days_with_clear_sky == 1


def test_processor_wraps_failures_into_the_result():
    result = _process(
        lambda request: httpx.Response(500, text="Internal Server Error"),
        CityRecord(city="CityB", lat="error", lng="20.0"),
    )

    assert not result.ok
    assert result.city == "CityB"
    assert isinstance(result.error, FetchError)
    assert result.mean_temperature is None
    assert result.days_with_mist is None
    assert result.days_with_clear_sky is None
