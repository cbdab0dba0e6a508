"""
Tests for star history series and charts.
"""

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from scverse_stats.github_client import GitHubClient
from scverse_stats.star_history import (
    StarHistoryPoint,
    approximate_star_history,
    build_star_history,
    fetch_star_history,
    generate_star_charts,
    history_dates,
    render_star_chart,
)

CREATED = datetime(2023, 1, 31, tzinfo=timezone.utc)
NOW = datetime(2023, 12, 1, tzinfo=timezone.utc)


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_history_dates_step_from_creation():
    dates = history_dates(CREATED, NOW)

    assert dates == [
        _utc(2023, 1, 31),
        _utc(2023, 4, 30),
        _utc(2023, 7, 31),
        _utc(2023, 10, 31),
        NOW,
    ]


def test_history_dates_end_exactly_on_interval():
    now = _utc(2023, 7, 31)

    assert history_dates(CREATED, now)[-1] == now
    assert len(history_dates(CREATED, now)) == 3


def test_build_star_history_is_cumulative():
    starred = [
        _utc(2023, 11, 1),
        _utc(2023, 2, 1),
        _utc(2023, 4, 30),
        _utc(2023, 5, 1),
    ]

    history = build_star_history(starred, CREATED, NOW)

    assert [point.stars for point in history] == [0, 2, 3, 3, 4]
    assert history[0] == StarHistoryPoint(CREATED, 0)


def test_approximate_star_history_is_linear():
    history = approximate_star_history(100, CREATED, NOW)

    assert history[0].stars == 0
    assert history[-1].stars == 100
    assert [p.stars for p in history] == sorted(p.stars for p in history)


def test_approximate_star_history_same_instant():
    assert approximate_star_history(5, NOW, NOW) == [StarHistoryPoint(NOW, 0)]


def _metadata(name: str = "scanpy") -> dict:
    return {
        "name": name,
        "stargazers_count": 3,
        "created_at": "2023-01-31T00:00:00Z",
    }


def test_fetch_star_history(use_transport):
    def handler(request):
        if request.url.path.endswith("/stargazers"):
            assert request.headers["Accept"] == "application/vnd.github.v3.star+json"
            return httpx.Response(
                200,
                json=[
                    {"starred_at": "2023-02-01T00:00:00Z"},
                    {"starred_at": "2023-08-01T00:00:00Z"},
                ],
            )
        return httpx.Response(200, json=_metadata())

    use_transport(handler)

    metadata, history = asyncio.run(
        fetch_star_history(GitHubClient(token="t"), "scverse", "scanpy", NOW)
    )

    assert metadata["name"] == "scanpy"
    assert [p.stars for p in history] == [0, 1, 1, 2, 2]


def test_fetch_star_history_falls_back_on_422(use_transport):
    """Repositories beyond GitHub's stargazer listing limit are approximated."""

    def handler(request):
        if request.url.path.endswith("/stargazers"):
            return httpx.Response(422, json={"message": "pagination limit"})
        return httpx.Response(200, json=_metadata())

    use_transport(handler)

    _, history = asyncio.run(
        fetch_star_history(GitHubClient(token="t"), "scverse", "scanpy", NOW)
    )

    assert history == approximate_star_history(3, CREATED, NOW)


def test_fetch_star_history_other_errors_propagate(use_transport):
    def handler(request):
        if request.url.path.endswith("/stargazers"):
            return httpx.Response(500)
        return httpx.Response(200, json=_metadata())

    use_transport(handler)

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(
            fetch_star_history(GitHubClient(token="t"), "scverse", "scanpy", NOW)
        )


def test_render_star_chart_writes_png(tmp_path):
    history = build_star_history([_utc(2023, 2, 1)], CREATED, NOW)

    path = render_star_chart("scanpy", 1, history, tmp_path / "stars")

    assert path == tmp_path / "stars" / "scanpy.png"
    assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


@pytest.mark.slow
def test_generate_star_charts_skips_failures(use_transport, write_config, output_dir):
    write_config("core_packages: [scanpy, gone]\n")

    def handler(request):
        if request.url.path == "/repos/scverse/gone":
            return httpx.Response(404)
        if request.url.path.endswith("/stargazers"):
            return httpx.Response(200, json=[])
        return httpx.Response(200, json=_metadata())

    use_transport(handler)

    paths = asyncio.run(generate_star_charts(GitHubClient(token="t")))

    assert paths == [output_dir / "stars" / "scanpy.png"]
    assert paths[0].exists()
