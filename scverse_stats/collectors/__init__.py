"""
Collectors for scverse-stats.

Each collector fetches one external source, validates the result and writes a
single JSON snapshot to the output directory.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from scverse_stats.collectors.bluesky import collect_bluesky
from scverse_stats.collectors.citations import collect_citations
from scverse_stats.collectors.contributors import collect_contributors_data
from scverse_stats.collectors.ecosystem import collect_ecosystem
from scverse_stats.collectors.github import collect_github
from scverse_stats.collectors.pepy import collect_pepy
from scverse_stats.collectors.zulip import collect_zulip

__all__ = [
    "COLLECTORS",
    "get_collector",
    "list_collectors",
]

CollectorFn = Callable[[], Awaitable[Any]]

# Registry of collectors, keyed by the name used on the command line
COLLECTORS: dict[str, tuple[str, CollectorFn]] = {
    "github": ("GitHub", collect_github),
    "zulip": ("Zulip", collect_zulip),
    "bluesky": ("Bluesky", collect_bluesky),
    "ecosystem": ("Ecosystem", collect_ecosystem),
    "citations": ("Citations", collect_citations),
    "contributors": ("Contributors", collect_contributors_data),
    "pepy": ("PEPY", collect_pepy),
}


def get_collector(name: str) -> tuple[str, CollectorFn]:
    """
    Look up a collector by name.

    Args:
        name: Collector name ('github', 'zulip', ...)

    Returns:
        Tuple of (display label, collector coroutine function)

    Raises:
        ValueError: If no collector has that name
    """
    key = name.lower()
    if key not in COLLECTORS:
        supported = ", ".join(list_collectors())
        raise ValueError(f"Unknown collector: {name}. Available collectors: {supported}")
    return COLLECTORS[key]


def list_collectors() -> list[str]:
    """List collector names in execution order."""
    return list(COLLECTORS.keys())
