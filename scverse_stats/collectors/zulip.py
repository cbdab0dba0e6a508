"""Zulip community size: active human users and core stream subscribers."""

from typing import Any

from rich.console import Console

from scverse_stats.config import get_setting, get_zulip_credentials
from scverse_stats.http_client import _get_async_http_client
from scverse_stats.models import ZulipData, ZulipUser, utc_timestamp
from scverse_stats.storage import save_json

console = Console()

OUTPUT_FILE = "zulip.json"


def _api_base(realm: str) -> str:
    realm = realm.rstrip("/")
    if not realm.startswith(("http://", "https://")):
        realm = f"https://{realm}"
    return f"{realm}/api/v1"


def count_active_users(members: list[dict[str, Any]]) -> int:
    """Count members that are active humans (validated as ZulipUser)."""
    users = [ZulipUser.model_validate(member) for member in members]
    return sum(1 for user in users if user.is_active and not user.is_bot)


def core_stream_subscribers(streams: list[dict[str, Any]], stream_name: str) -> int:
    """Subscriber count of the named stream, 0 if the stream is absent."""
    for stream in streams:
        if stream.get("name") == stream_name:
            return stream.get("subscriber_count") or 0
    return 0


async def collect_zulip() -> ZulipData | None:
    """Collect Zulip stats and write zulip.json (skipped without credentials)."""
    console.print("[bold cyan]Collecting Zulip stats...[/bold cyan]")
    credentials = get_zulip_credentials()
    if credentials is None:
        console.print(
            "[yellow]ZULIP_EMAIL, ZULIP_API_KEY or ZULIP_REALM not set "
            "- skipping Zulip collector[/yellow]"
        )
        return None

    base = _api_base(credentials["realm"])
    auth = (credentials["email"], credentials["api_key"])
    client = await _get_async_http_client()

    response = await client.get(f"{base}/users", auth=auth)
    response.raise_for_status()
    members = response.json().get("members", [])

    response = await client.get(f"{base}/streams", auth=auth)
    response.raise_for_status()
    streams = response.json().get("streams", [])

    data = ZulipData(
        active_users=count_active_users(members),
        core_team_size=core_stream_subscribers(
            streams, get_setting("zulip_core_stream")
        ),
        timestamp=utc_timestamp(),
    )
    save_json(OUTPUT_FILE, data)
    console.print(f"[bold green]Active users: {data.active_users}[/bold green]")
    console.print(f"[bold green]Core team size: {data.core_team_size}[/bold green]")
    return data
