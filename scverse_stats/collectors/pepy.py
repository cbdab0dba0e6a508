"""
Download counts from pepy.tech.

Besides the all-time totals, computes each package's downloads over the last
30 days and the resulting average per day.
"""

import asyncio
from datetime import date, datetime, timezone
from typing import Any

import httpx
from pydantic import ValidationError
from rich.console import Console

from scverse_stats.config import get_core_packages, get_pepy_api_key
from scverse_stats.http_client import _get_async_http_client
from scverse_stats.models import (
    PepyComputed,
    PepyData,
    PepyPackage,
    PepyPackageWindow,
    utc_timestamp,
)
from scverse_stats.storage import save_json

console = Console()

PEPY_API = "https://api.pepy.tech/api/v2/projects"
OUTPUT_FILE = "pepy.json"

# pepy free tier allows 10 requests per minute
PEPY_DELAY = 6.0
WINDOW_DAYS = 30


def normalize_name(name: str) -> str:
    """Normalize a package name the way PyPI does for lookups."""
    return name.lower().replace("_", "-")


def _empty_package(project: str) -> PepyPackage:
    return PepyPackage(id=project, total_downloads=0, versions=[], downloads={})


def downloads_in_window(
    downloads: dict[str, dict[str, int]],
    today: date | None = None,
    window_days: int = WINDOW_DAYS,
) -> tuple[int, int]:
    """
    Sum downloads over the most recent days of the window.

    Dates are visited newest first. Future dates and dates ``window_days`` or
    more days old are skipped; at most ``window_days`` dates are counted.

    Args:
        downloads: Mapping of ISO date -> version -> download count.
        today: Reference date (default: today in UTC).
        window_days: Window length in days.

    Returns:
        Tuple of (total downloads, number of days counted).
    """
    today = today or datetime.now(timezone.utc).date()
    total = 0
    counted_days = 0
    for date_str in sorted(downloads, reverse=True):
        if counted_days >= window_days:
            break
        try:
            day = date.fromisoformat(date_str)
        except ValueError:
            continue
        age = (today - day).days
        if age < 0 or age >= window_days:
            continue
        total += sum(int(v or 0) for v in downloads[date_str].values())
        counted_days += 1
    return total, counted_days


def compute_window(
    package: PepyPackage, today: date | None = None
) -> PepyPackageWindow:
    """30-day total and average per day for one package."""
    total, days = downloads_in_window(package.downloads, today)
    return PepyPackageWindow(
        id=package.id,
        total_30_days=total,
        avg_per_day=total / days if days else 0.0,
    )


def _best_effort_package(project: str, body: dict[str, Any]) -> PepyPackage:
    """Keep what can be salvaged from a response that failed validation."""
    versions = body.get("versions")
    total = body.get("total_downloads")
    raw_downloads = body.get("downloads")
    downloads = {}
    if isinstance(raw_downloads, dict):
        # Keep the per-day counts that are usable, drop the rest
        for day, counts in raw_downloads.items():
            if isinstance(counts, dict):
                downloads[str(day)] = {
                    str(version): count
                    for version, count in counts.items()
                    if isinstance(count, int) and not isinstance(count, bool)
                }
    return PepyPackage(
        id=project,
        total_downloads=total if isinstance(total, int) else 0,
        versions=[str(v) for v in versions] if isinstance(versions, list) else [],
        downloads=downloads,
    )


async def collect_pepy() -> PepyData | None:
    """
    Collect pepy.tech download stats for all core packages and write pepy.json.

    Skipped when PEPY_API_KEY is not set. An invalid key (401) aborts the
    collector without writing; a rate-limit response (429) stops the loop and
    writes what was gathered so far.
    """
    console.print("[bold cyan]Collecting PEPY download stats...[/bold cyan]")
    api_key = get_pepy_api_key()
    if not api_key:
        console.print("[yellow]PEPY_API_KEY not set - skipping pepy collector[/yellow]")
        return None

    client = await _get_async_http_client()
    packages: list[PepyPackage] = []
    windows: list[PepyPackageWindow] = []

    for name in get_core_packages():
        project = normalize_name(name)
        try:
            response = await client.get(
                f"{PEPY_API}/{project}", headers={"X-API-Key": api_key}
            )
        except httpx.RequestError:
            console.print(f"  [yellow]{project}: fetch error[/yellow]")
            packages.append(_empty_package(project))
            await asyncio.sleep(PEPY_DELAY)
            continue

        if response.status_code == 404:
            console.print(f"  [yellow]{project}: not found[/yellow]")
            packages.append(_empty_package(project))
        elif response.status_code == 401:
            console.print("  [red]PEPY API key invalid (401)[/red]")
            return None
        elif response.status_code == 429:
            console.print("  [yellow]Rate limit exceeded (429) - stopping[/yellow]")
            break
        elif response.is_error:
            console.print(
                f"  [yellow]{project}: request failed ({response.status_code})[/yellow]"
            )
            packages.append(_empty_package(project))
        else:
            try:
                body = response.json()
            except ValueError:
                console.print(f"  [yellow]{project}: fetch error[/yellow]")
                packages.append(_empty_package(project))
                await asyncio.sleep(PEPY_DELAY)
                continue
            if not isinstance(body, dict):
                body = {}
            try:
                package = PepyPackage.model_validate(
                    {
                        "id": body.get("id") or project,
                        "total_downloads": body.get("total_downloads") or 0,
                        "versions": body.get("versions") or [],
                        "downloads": body.get("downloads") or {},
                    }
                )
            except ValidationError:
                console.print(f"  [yellow]{project}: validation failed[/yellow]")
                packages.append(_best_effort_package(project, body))
            else:
                window = compute_window(package)
                windows.append(window)
                packages.append(package)
                console.print(
                    f"  [dim]{project}: {package.total_downloads} downloads, "
                    f"30-day avg {window.avg_per_day:.1f}[/dim]"
                )

        await asyncio.sleep(PEPY_DELAY)

    data = PepyData(
        packages=packages,
        total_downloads=sum(p.total_downloads for p in packages),
        timestamp=utc_timestamp(),
        computed=PepyComputed(
            per_package_30_day=windows,
            combined_total_30_days=sum(w.total_30_days for w in windows),
            combined_avg_daily=sum(w.avg_per_day for w in windows),
        ),
    )
    save_json(OUTPUT_FILE, data)
    console.print(
        f"[bold green]Total pepy downloads: {data.total_downloads}, combined 30-day "
        f"avg daily: {data.computed.combined_avg_daily:.1f}[/bold green]"
    )
    return data
