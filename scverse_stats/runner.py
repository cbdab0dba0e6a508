"""
Runs the collectors concurrently, then merges their snapshots.
"""

import asyncio

from rich.console import Console

from scverse_stats.collectors import get_collector, list_collectors
from scverse_stats.combiner import combine_stats
from scverse_stats.http_client import close_async_http_client

console = Console()


async def _run_guarded(name: str) -> bool:
    """Run one collector; a failure is reported and never propagates."""
    label, collect = get_collector(name)
    try:
        await collect()
    except Exception as e:
        console.print(f"[red]{label} failed: {e}[/red]")
        return False
    return True


async def run_collectors(names: list[str] | None = None) -> dict[str, bool]:
    """
    Run the selected collectors concurrently.

    Args:
        names: Collector names to run (default: all collectors).

    Returns:
        Mapping of collector name to whether it completed without error.

    Raises:
        ValueError: If a name does not match any collector
    """
    selected = names or list_collectors()
    for name in selected:
        get_collector(name)

    results = await asyncio.gather(*[_run_guarded(name) for name in selected])
    return dict(zip(selected, results))


async def run_all(
    names: list[str] | None = None, combine: bool = True
) -> dict[str, bool]:
    """Collect every source, write stats.json and release the HTTP client."""
    console.print("[bold yellow]Collecting scverse statistics...[/bold yellow]\n")
    try:
        results = await run_collectors(names)
    finally:
        await close_async_http_client()

    if combine:
        console.print("\n[bold yellow]Combining statistics...[/bold yellow]")
        combine_stats()

    console.print("[bold green]Done![/bold green]")
    return results
