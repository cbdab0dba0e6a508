"""Contributor directory across all core packages."""

import asyncio
from contextlib import aclosing

from rich.console import Console

from scverse_stats.collectors.github import is_bot_login
from scverse_stats.config import get_core_packages, get_organization
from scverse_stats.github_client import GitHubClient
from scverse_stats.models import Contributor, ContributorsData, utc_timestamp
from scverse_stats.storage import save_json

console = Console()

OUTPUT_FILE = "contributors.json"

# Upper bound on contributor pages per repository
MAX_PAGES = 49

# Delay between pages and between user lookups (seconds)
PAGE_DELAY = 0.2
USER_DELAY = 0.1


async def _lookup_name(client: GitHubClient, login: str) -> str:
    """Fetch the display name of a user, falling back to the login."""
    try:
        user = await client.get_json(f"/users/{login}")
    except Exception:
        return login
    await asyncio.sleep(USER_DELAY)
    return user.get("name") or login


async def collect_contributors_data(
    client: GitHubClient | None = None,
) -> ContributorsData:
    """
    Build the contributor directory and write contributors.json.

    Contributions of a login are summed over every core package. Bots are
    skipped. The display name is looked up once per login.
    """
    console.print("[bold cyan]Collecting contributors data...[/bold cyan]")
    client = client or GitHubClient()
    org = get_organization()

    contributors: dict[str, Contributor] = {}

    for package_name in get_core_packages():
        async with aclosing(
            client.iter_pages(
                f"/repos/{org}/{package_name}/contributors",
                max_pages=MAX_PAGES,
                delay=PAGE_DELAY,
            )
        ) as pages:
            async for page in pages:
                for entry in page:
                    login = entry.get("login")
                    if not login or is_bot_login(login):
                        continue

                    existing = contributors.get(login)
                    if existing:
                        existing.contributions += entry.get("contributions") or 0
                        continue

                    contributors[login] = Contributor(
                        login=login,
                        name=await _lookup_name(client, login),
                        avatar_url=entry.get("avatar_url") or "",
                        html_url=entry.get("html_url")
                        or f"https://github.com/{login}",
                        contributions=entry.get("contributions") or 0,
                    )

        console.print(
            f"  [dim]{package_name} ({len(contributors)} unique contributors so far)[/dim]"
        )

    ranked = sorted(contributors.values(), key=lambda c: c.contributions, reverse=True)
    data = ContributorsData(
        total_contributors=len(ranked),
        contributors=ranked,
        timestamp=utc_timestamp(),
    )
    save_json(OUTPUT_FILE, data)
    console.print(
        f"[bold green]Total unique contributors: {data.total_contributors}[/bold green]"
    )
    return data
