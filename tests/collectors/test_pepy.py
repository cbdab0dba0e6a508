"""
Tests for the pepy.tech downloads collector.
"""

import asyncio
import json
from datetime import date

import httpx
import pytest

from scverse_stats.collectors.pepy import (
    collect_pepy,
    compute_window,
    downloads_in_window,
    normalize_name,
)
from scverse_stats.models import PepyPackage

TODAY = date(2024, 6, 15)


@pytest.fixture
def pepy_key(monkeypatch):
    monkeypatch.setenv("PEPY_API_KEY", "pepy-key")


def _project(name: str, total: int, downloads: dict) -> dict:
    return {
        "id": name,
        "total_downloads": total,
        "versions": ["1.0.0", "1.1.0"],
        "downloads": downloads,
    }


class TestDownloadWindow:
    """Test the 30-day download window."""

    def test_sums_versions_per_day(self):
        downloads = {
            "2024-06-14": {"1.0.0": 10, "1.1.0": 5},
            "2024-06-13": {"1.0.0": 20},
        }

        assert downloads_in_window(downloads, TODAY) == (35, 2)

    def test_excludes_old_and_future_dates(self):
        downloads = {
            "2024-06-16": {"1.0.0": 1000},  # future
            "2024-06-15": {"1.0.0": 1},  # today, age 0
            "2024-05-17": {"1.0.0": 2},  # age 29
            "2024-05-16": {"1.0.0": 4000},  # age 30, outside
            "not-a-date": {"1.0.0": 5000},
        }

        assert downloads_in_window(downloads, TODAY) == (3, 2)

    def test_caps_counted_days(self):
        downloads = {f"2024-06-{day:02d}": {"1.0.0": 1} for day in range(1, 16)}

        assert downloads_in_window(downloads, TODAY, window_days=5) == (5, 5)

    def test_empty(self):
        assert downloads_in_window({}, TODAY) == (0, 0)

    def test_compute_window_average(self):
        package = PepyPackage(
            id="scanpy",
            total_downloads=100,
            versions=[],
            downloads={"2024-06-14": {"1.0": 30}, "2024-06-10": {"1.0": 10}},
        )

        window = compute_window(package, TODAY)

        assert window.total_30_days == 40
        assert window.avg_per_day == 20.0

    def test_compute_window_without_data(self):
        package = PepyPackage(id="x", total_downloads=0, versions=[], downloads={})

        assert compute_window(package, TODAY).avg_per_day == 0.0


@pytest.mark.parametrize(
    "name, expected",
    [
        ("scanpy", "scanpy"),
        ("rapids_singlecell", "rapids-singlecell"),
        ("AnnData", "anndata"),
    ],
)
def test_normalize_name(name, expected):
    assert normalize_name(name) == expected


def test_skipped_without_api_key(monkeypatch, use_transport, output_dir):
    monkeypatch.delenv("PEPY_API_KEY", raising=False)
    requests = use_transport(lambda request: httpx.Response(500))

    assert asyncio.run(collect_pepy()) is None
    assert requests == []
    assert not (output_dir / "pepy.json").exists()


def test_collect_pepy(pepy_key, use_transport, write_config, output_dir):
    """Found, missing and failing packages all get a record."""
    write_config("core_packages: [scanpy, rapids_singlecell, anndata]\n")

    def handler(request):
        project = request.url.path.rsplit("/", 1)[-1]
        if project == "scanpy":
            return httpx.Response(
                200, json=_project("scanpy", 1000, {"2099-01-01": {"1.0.0": 5}})
            )
        if project == "rapids-singlecell":
            return httpx.Response(404, json={"message": "not found"})
        return httpx.Response(500)

    requests = use_transport(handler)

    data = asyncio.run(collect_pepy())

    assert requests[0].headers["X-API-Key"] == "pepy-key"
    assert [p.id for p in data.packages] == ["scanpy", "rapids-singlecell", "anndata"]
    assert data.total_downloads == 1000
    assert [w.id for w in data.computed.per_package_30_day] == ["scanpy"]
    assert data.computed.combined_total_30_days == 0

    written = json.loads((output_dir / "pepy.json").read_text())
    assert written["total_downloads"] == 1000
    assert written["packages"][1] == {
        "id": "rapids-singlecell",
        "total_downloads": 0,
        "versions": [],
        "downloads": {},
    }


def test_invalid_key_aborts_without_writing(
    pepy_key, use_transport, write_config, output_dir
):
    write_config("core_packages: [scanpy, anndata]\n")
    requests = use_transport(lambda request: httpx.Response(401))

    assert asyncio.run(collect_pepy()) is None
    assert len(requests) == 1
    assert not (output_dir / "pepy.json").exists()


def test_rate_limit_stops_and_writes_partial(
    pepy_key, use_transport, write_config, output_dir
):
    write_config("core_packages: [scanpy, anndata, squidpy]\n")

    def handler(request):
        if request.url.path.endswith("/scanpy"):
            return httpx.Response(200, json=_project("scanpy", 42, {}))
        return httpx.Response(429)

    requests = use_transport(handler)

    data = asyncio.run(collect_pepy())

    assert len(requests) == 2
    assert [p.id for p in data.packages] == ["scanpy"]
    assert (output_dir / "pepy.json").exists()


def test_validation_failure_keeps_best_effort_record(
    pepy_key, use_transport, write_config, output_dir
):
    write_config("core_packages: [scanpy]\n")
    use_transport(
        lambda request: httpx.Response(
            200,
            json={
                "id": "scanpy",
                "total_downloads": 77,
                "versions": ["1.9"],
                "downloads": {
                    "2024-06-01": {"1.9": "many", "1.8": 4},
                    "2024-06-02": {"1.9": 3},
                    "2024-06-03": "broken",
                },
            },
        )
    )

    data = asyncio.run(collect_pepy())

    assert data.packages[0].total_downloads == 77
    assert data.packages[0].versions == ["1.9"]
    assert data.packages[0].downloads == {
        "2024-06-01": {"1.8": 4},
        "2024-06-02": {"1.9": 3},
    }
    assert data.computed.per_package_30_day == []


def test_network_error_records_zero(pepy_key, use_transport, write_config, output_dir):
    write_config("core_packages: [scanpy]\n")

    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    use_transport(handler)

    data = asyncio.run(collect_pepy())

    assert data.packages[0].id == "scanpy"
    assert data.total_downloads == 0


def test_non_json_body_records_zero_and_continues(
    pepy_key, use_transport, write_config, output_dir
):
    """An HTML error page served with 200 does not stop the other packages."""
    write_config("core_packages: [scanpy, anndata]\n")

    def handler(request):
        if request.url.path.endswith("/scanpy"):
            return httpx.Response(200, text="<html>Bad gateway</html>")
        return httpx.Response(200, json=_project("anndata", 500, {}))

    use_transport(handler)

    data = asyncio.run(collect_pepy())

    assert [(p.id, p.total_downloads) for p in data.packages] == [
        ("scanpy", 0),
        ("anndata", 500),
    ]
    assert data.total_downloads == 500
    written = json.loads((output_dir / "pepy.json").read_text())
    assert written["packages"][0]["downloads"] == {}
