"""Ecosystem package registry."""

from typing import Any

from pydantic import ValidationError
from rich.console import Console

from scverse_stats.config import get_setting
from scverse_stats.http_client import _get_async_http_client
from scverse_stats.models import EcosystemData, EcosystemPackage, utc_timestamp
from scverse_stats.storage import save_json

console = Console()

OUTPUT_FILE = "ecosystem.json"


def validate_packages(entries: list[dict[str, Any]]) -> list[EcosystemPackage]:
    """Validate registry entries, dropping any that do not match the schema."""
    packages = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        try:
            packages.append(
                EcosystemPackage.model_validate(
                    {
                        "name": entry.get("name"),
                        "description": entry.get("description") or None,
                        "project_home": entry.get("project_home"),
                        "documentation_home": entry.get("documentation_home") or None,
                    }
                )
            )
        except ValidationError:
            continue
    return packages


async def collect_ecosystem() -> EcosystemData:
    """Fetch the ecosystem package list and write ecosystem.json."""
    console.print("[bold cyan]Collecting ecosystem packages...[/bold cyan]")
    client = await _get_async_http_client()
    response = await client.get(get_setting("ecosystem_url"))
    response.raise_for_status()
    entries = response.json()
    if not isinstance(entries, list):
        raise ValueError("Ecosystem registry did not return a list of packages")

    packages = validate_packages(entries)
    data = EcosystemData(
        total_packages=len(packages),
        packages=packages,
        timestamp=utc_timestamp(),
    )
    save_json(OUTPUT_FILE, data)
    console.print(f"[bold green]Total packages: {data.total_packages}[/bold green]")
    return data
