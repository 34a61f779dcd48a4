import json
from datetime import datetime

import pytest

from pipelines.errors import FetchError, SinkWriteError
from pipelines.model import CityResult, WeatherSummary
from storage.db import connect, fetch_city_results, get_database_path, insert_city_results
from storage.results import write_summary


def test_write_summary_pretty_prints_three_fields(tmp_path):
    summary = WeatherSummary(
        highest_mean_temperature_city="Wroclaw",
        most_mist_city="Zakopane",
        most_clear_sky_city="Rzeszow",
    )

    path = write_summary(summary, tmp_path / "nested" / "results.json")

    text = path.read_text(encoding="utf-8")
    assert json.loads(text) == {
        "highest_mean_temperature_city": "Wroclaw",
        "most_mist_city": "Zakopane",
        "most_clear_sky_city": "Rzeszow",
    }
    assert '\n    "most_mist_city": "Zakopane"' in text


def test_write_summary_failure_is_a_sink_error(tmp_path):
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(SinkWriteError):
        write_summary(WeatherSummary(), blocker / "results.json")


def test_database_path_resolution(monkeypatch, tmp_path):
    monkeypatch.delenv("WEATHER_RESULTS_DB_PATH", raising=False)
    assert get_database_path().name == "city_results.duckdb"

    monkeypatch.setenv("WEATHER_RESULTS_DB_PATH", str(tmp_path / "env.duckdb"))
    assert get_database_path() == tmp_path / "env.duckdb"
    assert get_database_path(tmp_path / "explicit.duckdb") == tmp_path / "explicit.duckdb"


def test_city_results_roundtrip_per_run(tmp_path):
    results = [
        CityResult("Warsaw", mean_temperature=17.5, days_with_mist=2, days_with_clear_sky=30),
        CityResult.failed("Broken", FetchError("bad status: 500", status_code=500)),
    ]
    recorded_at = datetime(2024, 10, 1, 12, 0)

    conn = connect(tmp_path / "db" / "results.duckdb")
    try:
        assert insert_city_results(conn, "run-1", results, recorded_at=recorded_at) == 2
        assert insert_city_results(conn, "run-2", results[:1], recorded_at=recorded_at) == 1
        assert insert_city_results(conn, "run-3", []) == 0

        first_run = fetch_city_results(conn, run_id="run-1")
        everything = fetch_city_results(conn)
    finally:
        conn.close()

    assert [row.city for row in first_run] == ["Broken", "Warsaw"]
    broken, warsaw = first_run
    assert broken.error == "bad status: 500"
    assert broken.mean_temperature is None
    assert warsaw.mean_temperature == pytest.approx(17.5)
    assert warsaw.days_with_clear_sky == 30
    assert warsaw.recorded_at == recorded_at
    assert len(everything) == 3
