"""
Shared fixtures for the scverse-stats test suite.
"""

from collections.abc import Callable

import httpx
import pytest

import scverse_stats.config
from scverse_stats import github_client
from scverse_stats.collectors import (
    bluesky,
    citations,
    contributors,
    ecosystem,
    pepy,
    zulip,
)
from scverse_stats.collectors import github as github_collector

# Modules that import the shared async client by name
_CLIENT_MODULES = [github_client, bluesky, citations, ecosystem, pepy, zulip]


@pytest.fixture(autouse=True)
def no_delays(monkeypatch):
    """Remove politeness delays so tests run instantly."""
    monkeypatch.setattr(github_client, "PAGE_DELAY", 0)
    monkeypatch.setattr(github_collector, "REPO_DELAY", 0)
    monkeypatch.setattr(contributors, "PAGE_DELAY", 0)
    monkeypatch.setattr(contributors, "USER_DELAY", 0)
    monkeypatch.setattr(citations, "PAGE_DELAY", 0)
    monkeypatch.setattr(pepy, "PEPY_DELAY", 0)


@pytest.fixture
def output_dir(tmp_path, monkeypatch):
    """Point snapshot output at a temporary directory."""
    out = tmp_path / "output"
    monkeypatch.setattr(scverse_stats.config, "_OUTPUT_DIR", out)
    return out


@pytest.fixture
def write_config(tmp_path, monkeypatch) -> Callable[[str], None]:
    """Write a YAML config file and make it the active configuration."""
    config_path = tmp_path / "config.yaml"
    monkeypatch.setattr(scverse_stats.config, "_CONFIG_PATH", config_path)

    def _write(content: str) -> None:
        config_path.write_text(content, encoding="utf-8")

    _write("")
    return _write


@pytest.fixture
def use_transport(monkeypatch) -> Callable:
    """Route the shared async HTTP client through an httpx.MockTransport."""

    def _install(handler: Callable[[httpx.Request], httpx.Response]) -> list:
        requests: list[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))

        async def _get_client():
            return client

        for module in _CLIENT_MODULES:
            monkeypatch.setattr(module, "_get_async_http_client", _get_client)
        return requests

    return _install

