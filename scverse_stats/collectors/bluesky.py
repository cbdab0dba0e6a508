"""Bluesky follower count."""

from rich.console import Console

from scverse_stats.config import get_setting
from scverse_stats.http_client import _get_async_http_client
from scverse_stats.models import BlueskyData, BlueskyProfile, utc_timestamp
from scverse_stats.storage import save_json

console = Console()

BLUESKY_PROFILE_API = "https://public.api.bsky.app/xrpc/app.bsky.actor.getProfile"
OUTPUT_FILE = "bluesky.json"


async def collect_bluesky() -> BlueskyData:
    """Fetch the organization's Bluesky profile and write bluesky.json."""
    console.print("[bold cyan]Collecting Bluesky stats...[/bold cyan]")
    client = await _get_async_http_client()
    response = await client.get(
        BLUESKY_PROFILE_API, params={"actor": get_setting("bluesky_actor")}
    )
    response.raise_for_status()
    profile = BlueskyProfile.model_validate(response.json())

    data = BlueskyData(
        followers_count=profile.followersCount,
        handle=profile.handle,
        timestamp=utc_timestamp(),
    )
    save_json(OUTPUT_FILE, data)
    console.print(f"[bold green]Followers: {data.followers_count}[/bold green]")
    return data
