"""
Star history charts.

Builds a cumulative star-count series at three-month intervals since each
repository was created and renders it as a PNG under ``<output>/stars/``.
"""

from bisect import bisect_right
from contextlib import aclosing
from datetime import datetime, timezone
from pathlib import Path
from typing import NamedTuple

import httpx
import matplotlib
from rich.console import Console

from scverse_stats.config import get_core_packages, get_organization, get_output_dir
from scverse_stats.github_client import STAR_MEDIA_TYPE, GitHubClient, RateLimitError
from scverse_stats.windows import parse_github_datetime, shift_months

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

console = Console()

INTERVAL_MONTHS = 3
LINE_COLOR = "#4BC0C0"


class StarHistoryPoint(NamedTuple):
    """Cumulative star count at a point in time."""

    date: datetime
    stars: int


def history_dates(
    created_at: datetime, now: datetime, interval_months: int = INTERVAL_MONTHS
) -> list[datetime]:
    """Dates from creation to now in ``interval_months`` steps, ending at now."""
    dates = []
    step = 0
    current = created_at
    while current <= now:
        dates.append(current)
        step += interval_months
        current = shift_months(created_at, step)
    if not dates or dates[-1] != now:
        dates.append(now)
    return dates


def build_star_history(
    starred_at: list[datetime], created_at: datetime, now: datetime
) -> list[StarHistoryPoint]:
    """
    Cumulative stars at each history date.

    The first point (repository creation) is always zero.
    """
    ordered = sorted(starred_at)
    history = []
    for index, date in enumerate(history_dates(created_at, now)):
        stars = 0 if index == 0 else bisect_right(ordered, date)
        history.append(StarHistoryPoint(date, stars))
    return history


def approximate_star_history(
    current_stars: int, created_at: datetime, now: datetime
) -> list[StarHistoryPoint]:
    """Linear approximation used when GitHub withholds stargazer timestamps."""
    repo_age = (now - created_at).total_seconds()
    history = []
    for date in history_dates(created_at, now):
        point_age = (date - created_at).total_seconds()
        stars = int(current_stars * point_age // repo_age) if repo_age > 0 else 0
        history.append(StarHistoryPoint(date, stars))
    return history


async def fetch_star_history(
    client: GitHubClient, owner: str, repo: str, now: datetime | None = None
) -> tuple[dict, list[StarHistoryPoint]]:
    """
    Fetch repository metadata and its star history.

    Returns:
        Tuple of (repository metadata, history points).
    """
    now = now or datetime.now(timezone.utc)
    metadata = await client.get_json(f"/repos/{owner}/{repo}")
    created_at = parse_github_datetime(metadata["created_at"])

    starred_at: list[datetime] = []
    try:
        async with aclosing(
            client.iter_pages(
                f"/repos/{owner}/{repo}/stargazers", accept=STAR_MEDIA_TYPE
            )
        ) as pages:
            async for page in pages:
                starred_at.extend(
                    parse_github_datetime(star["starred_at"])
                    for star in page
                    if star.get("starred_at")
                )
    except RateLimitError:
        raise
    except httpx.HTTPStatusError as e:
        if e.response.status_code != 422:
            raise
        console.print(
            f"  [yellow]Cannot get star history for {repo}, using approximation[/yellow]"
        )
        return metadata, approximate_star_history(
            metadata.get("stargazers_count") or 0, created_at, now
        )

    return metadata, build_star_history(starred_at, created_at, now)


def render_star_chart(
    name: str, total_stars: int, history: list[StarHistoryPoint], out_dir: Path
) -> Path:
    """Render the star history as a line chart and save it as ``<name>.png``."""
    out_dir.mkdir(parents=True, exist_ok=True)
    labels = [point.date.strftime("%b %Y") for point in history]
    values = [point.stars for point in history]
    positions = list(range(len(values)))

    fig, ax = plt.subplots(figsize=(8, 4), facecolor="white")
    ax.plot(positions, values, color=LINE_COLOR, linewidth=2)
    ax.fill_between(positions, values, color=LINE_COLOR, alpha=0.1)
    ax.set_xticks(positions, labels)
    ax.set_title(f"{name} - Star History ({total_stars} total stars)", fontsize=16)
    ax.set_xlabel("Date")
    ax.set_ylabel("Stars")
    ax.set_ylim(bottom=0)
    ax.tick_params(axis="x", labelrotation=45)

    fig.tight_layout()
    path = out_dir / f"{name}.png"
    fig.savefig(path, dpi=100)
    plt.close(fig)
    return path


async def generate_star_charts(client: GitHubClient | None = None) -> list[Path]:
    """Render a star history chart for every core package."""
    console.print("[bold cyan]Generating star history charts...[/bold cyan]")
    client = client or GitHubClient()
    org = get_organization()
    out_dir = get_output_dir() / "stars"

    paths = []
    for name in get_core_packages():
        try:
            metadata, history = await fetch_star_history(client, org, name)
            path = render_star_chart(
                metadata.get("name", name),
                metadata.get("stargazers_count") or 0,
                history,
                out_dir,
            )
        except RateLimitError:
            raise
        except Exception as e:
            console.print(f"  [yellow]Could not generate chart for {name}: {e}[/yellow]")
            continue
        console.print(f"  [dim]Chart saved: {path}[/dim]")
        paths.append(path)
    return paths
