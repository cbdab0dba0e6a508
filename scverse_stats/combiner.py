"""
Merges the per-source snapshots into one summary document (stats.json).

Missing snapshots are tolerated: the fields they would contribute are simply
left out of the summary.
"""

from typing import Any

from rich.console import Console

from scverse_stats.models import CombinedStats, GitHubSummary, utc_timestamp
from scverse_stats.storage import load_json, save_json

console = Console()

OUTPUT_FILE = "stats.json"


def combine(snapshots: dict[str, Any]) -> CombinedStats:
    """
    Build the combined summary from loaded snapshots.

    Args:
        snapshots: Mapping of source name ('github', 'zulip', 'bluesky',
            'ecosystem', 'citations', 'pepy') to the decoded snapshot, or None
            when the snapshot is absent.

    Returns:
        Validated CombinedStats.
    """
    combined: dict[str, Any] = {"timestamp": utc_timestamp()}

    bluesky = snapshots.get("bluesky")
    if bluesky:
        combined["bluesky_followers"] = bluesky.get("followers_count")

    zulip = snapshots.get("zulip")
    if zulip:
        combined["zulip_users"] = zulip.get("active_users")

    github = snapshots.get("github")
    if github:
        combined["github"] = {
            field: github.get(field) for field in GitHubSummary.model_fields
        }

    ecosystem = snapshots.get("ecosystem")
    if ecosystem:
        combined["ecosystem_packages"] = ecosystem.get("total_packages")

    citations = snapshots.get("citations")
    if citations:
        combined["citation_count"] = citations.get("total_citation_count")

    pepy = snapshots.get("pepy")
    if pepy:
        combined["pepy_downloads"] = pepy.get("total_downloads")
        computed = pepy.get("computed") or {}
        avg_daily = computed.get("combined_avg_daily")
        if isinstance(avg_daily, (int, float)) and not isinstance(avg_daily, bool):
            combined["pepy_avg_daily_30"] = round(avg_daily)

    return CombinedStats.model_validate(combined)


def load_snapshots() -> dict[str, Any]:
    """Load every per-source snapshot from the output directory."""
    return {
        name: load_json(f"{name}.json")
        for name in ("github", "zulip", "bluesky", "ecosystem", "citations", "pepy")
    }


def combine_stats() -> CombinedStats:
    """Merge all snapshots in the output directory and write stats.json."""
    stats = combine(load_snapshots())
    save_json(OUTPUT_FILE, stats, exclude_none=True)
    return stats
