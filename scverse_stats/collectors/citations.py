"""Citation counts from Europe PMC."""

import asyncio

from rich.console import Console

from scverse_stats.config import get_citation_ids
from scverse_stats.http_client import _get_async_http_client
from scverse_stats.models import CitationPaper, CitationsData, utc_timestamp
from scverse_stats.storage import save_json

console = Console()

EUROPE_PMC_API = "https://www.ebi.ac.uk/europepmc/webservices/rest/MED"
OUTPUT_FILE = "citations.json"

# Delay between papers (seconds)
PAGE_DELAY = 0.1


async def get_citation_count(pmid: str) -> int:
    """Number of articles citing the given PubMed id."""
    client = await _get_async_http_client()
    response = await client.get(
        f"{EUROPE_PMC_API}/{pmid}/citations",
        params={"page": 1, "pageSize": 1, "format": "json"},
    )
    response.raise_for_status()
    return response.json().get("hitCount") or 0


async def collect_citations() -> CitationsData:
    """Collect citation counts for the configured papers and write citations.json."""
    console.print("[bold cyan]Collecting citations...[/bold cyan]")
    papers = []
    for pmid in get_citation_ids():
        count = await get_citation_count(pmid)
        papers.append(CitationPaper(pmid=pmid, citation_count=count))
        console.print(f"  [dim]PMID {pmid}: {count} citations[/dim]")
        await asyncio.sleep(PAGE_DELAY)

    data = CitationsData(
        papers=papers,
        total_citation_count=sum(p.citation_count for p in papers),
        timestamp=utc_timestamp(),
    )
    save_json(OUTPUT_FILE, data)
    console.print(
        f"[bold green]Total citations: {data.total_citation_count}[/bold green]"
    )
    return data
