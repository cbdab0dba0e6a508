"""
Command-line interface for scverse-stats.
"""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from scverse_stats.collectors import get_collector, list_collectors
from scverse_stats.combiner import combine_stats
from scverse_stats.config import (
    get_output_dir,
    set_config_path,
    set_output_dir,
    set_verify_ssl,
)
from scverse_stats.http_client import close_async_http_client
from scverse_stats.runner import run_all

# --- Typer App ---
app = typer.Typer(help="Collect community-health statistics for the scverse organization.")
console = Console()

# --- Helper Functions ---


def apply_options(
    output_dir: Path | None = None,
    config: Path | None = None,
    insecure: bool = False,
) -> None:
    """Apply the options shared by every command to the global configuration."""
    if output_dir:
        set_output_dir(output_dir)
    if config:
        if not config.exists():
            console.print(f"[yellow]Config file not found: {config}[/yellow]")
            raise typer.Exit(code=1)
        set_config_path(config)
    set_verify_ssl(not insecure)


def display_results(results: dict[str, bool]) -> None:
    """Summarize which collectors succeeded."""
    table = Table(title="scverse-stats collectors")
    table.add_column("Collector", justify="left", style="cyan", no_wrap=True)
    table.add_column("Status", justify="left")

    for name, ok in results.items():
        status = "[green]OK[/green]" if ok else "[red]Failed[/red]"
        table.add_row(name, status)

    console.print(table)


async def _generate_star_charts() -> None:
    # Imported lazily so that matplotlib only loads when charts are requested
    from scverse_stats.star_history import generate_star_charts

    try:
        await generate_star_charts()
    finally:
        await close_async_http_client()


# --- Commands ---

OUTPUT_DIR_OPTION = typer.Option(
    None,
    "--output-dir",
    "-o",
    help="Directory for JSON snapshots (default: ./output or SCVERSE_STATS_OUTPUT_DIR).",
)
CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to a YAML config file (default: config/config.yaml or SCVERSE_STATS_CONFIG).",
)
INSECURE_OPTION = typer.Option(
    False,
    "--insecure",
    help="Disable SSL certificate verification.",
)


@app.command()
def collect(
    names: list[str] | None = typer.Argument(
        None,
        help=f"Collectors to run ({', '.join(list_collectors())}). Default: all.",
    ),
    output_dir: Path | None = OUTPUT_DIR_OPTION,
    config: Path | None = CONFIG_OPTION,
    insecure: bool = INSECURE_OPTION,
    no_combine: bool = typer.Option(
        False,
        "--no-combine",
        help="Skip writing the combined stats.json.",
    ),
):
    """Run collectors concurrently and merge their snapshots into stats.json."""
    apply_options(output_dir, config, insecure)

    for name in names or []:
        try:
            get_collector(name)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1) from None

    results = asyncio.run(run_all(names or None, combine=not no_combine))
    display_results(results)


@app.command()
def combine(
    output_dir: Path | None = OUTPUT_DIR_OPTION,
    config: Path | None = CONFIG_OPTION,
):
    """Merge the existing snapshots into stats.json without collecting."""
    apply_options(output_dir, config)
    stats = combine_stats()
    present = [
        field
        for field, value in stats.model_dump(exclude_none=True).items()
        if field != "timestamp"
    ]
    console.print(
        f"[bold green]Combined: {', '.join(present) or 'no sources found'}[/bold green]"
    )


@app.command()
def stars(
    output_dir: Path | None = OUTPUT_DIR_OPTION,
    config: Path | None = CONFIG_OPTION,
    insecure: bool = INSECURE_OPTION,
):
    """Render star history charts for the core packages."""
    apply_options(output_dir, config, insecure)
    try:
        asyncio.run(_generate_star_charts())
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from None


@app.command()
def serve(
    directory: Path | None = typer.Argument(
        None, help="Directory to serve (default: the output directory)."
    ),
    config: Path | None = CONFIG_OPTION,
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address."),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port."),
):
    """Serve the generated site with origin-gated CORS."""
    import uvicorn

    from scverse_stats.edge import create_app

    apply_options(config=config)
    directory = (directory or get_output_dir()).resolve()
    if not directory.is_dir():
        console.print(f"[yellow]Directory not found: {directory}[/yellow]")
        raise typer.Exit(code=1)

    console.print(f"Serving [bold]{directory}[/bold] on http://{host}:{port}")
    uvicorn.run(create_app(directory), host=host, port=port)


if __name__ == "__main__":
    app()
