"""
GitHub aggregator.

Collects per-repository statistics for every core package of the organization
(stars gained recently, pull requests, issues, contributors) and rolls them up
into organization-wide totals written to github.json.
"""

import asyncio
from collections.abc import Awaitable, Iterable
from contextlib import aclosing
from datetime import datetime, timezone
from typing import Any, NamedTuple, TypeVar

from rich.console import Console

from scverse_stats.config import get_core_packages, get_organization
from scverse_stats.github_client import STAR_MEDIA_TYPE, GitHubClient
from scverse_stats.models import GitHubData, GitHubRepository, utc_timestamp
from scverse_stats.storage import save_json
from scverse_stats.windows import one_month_ago, one_year_ago, parse_github_datetime

console = Console()

OUTPUT_FILE = "github.json"

# Logins ending with these suffixes are automation accounts
BOT_SUFFIXES = ("[bot]", "-bot")

# Page cap when scanning newest-first listings for last-month activity
RECENT_MAX_PAGES = 9

# Delay between repositories (seconds)
REPO_DELAY = 0.2

T = TypeVar("T")


class StarStats(NamedTuple):
    """Stars gained within the date windows."""

    last_month: int = 0
    last_year: int = 0


class ActivityStats(NamedTuple):
    """Open/closed totals plus items created in the last month."""

    open: int = 0
    closed: int = 0
    last_month: int = 0


def is_bot_login(login: str) -> bool:
    """Check whether a GitHub login belongs to a bot account."""
    return login.endswith(BOT_SUFFIXES)


def count_stars_in_windows(
    stargazers: Iterable[dict[str, Any]],
    month_threshold: datetime,
    year_threshold: datetime,
) -> StarStats:
    """
    Count stargazers whose ``starred_at`` falls within each window.

    Args:
        stargazers: Stargazer entries as returned with the star media type.
        month_threshold: Start of the one-month window (inclusive).
        year_threshold: Start of the one-year window (inclusive).

    Returns:
        StarStats with the per-window counts.
    """
    last_month = 0
    last_year = 0
    for star in stargazers:
        starred_at = star.get("starred_at")
        if not starred_at:
            continue
        starred = parse_github_datetime(starred_at)
        if starred >= month_threshold:
            last_month += 1
        if starred >= year_threshold:
            last_year += 1
    return StarStats(last_month, last_year)


def count_recent_items(
    items: Iterable[dict[str, Any]],
    threshold: datetime,
    skip_pull_requests: bool = False,
) -> tuple[int, bool]:
    """
    Count items created at or after ``threshold`` in a newest-first listing.

    Counting stops at the first item older than the threshold. When
    ``skip_pull_requests`` is set, entries carrying a ``pull_request`` key are
    ignored entirely (the issues endpoint also lists pull requests).

    Returns:
        Tuple of (count, reached_older_item).
    """
    count = 0
    for item in items:
        if skip_pull_requests and "pull_request" in item:
            continue
        created_at = item.get("created_at")
        if created_at and parse_github_datetime(created_at) >= threshold:
            count += 1
        else:
            return count, True
    return count, False


async def _with_default(awaitable: Awaitable[T], default: T, label: str) -> T:
    """Await a sub-statistic, falling back to a zero-valued default on error."""
    try:
        return await awaitable
    except Exception as e:
        # Includes RateLimitError, whose message names the reset time
        console.print(f"  [yellow]Could not fetch {label}: {e}[/yellow]")
        return default


async def get_star_stats(
    client: GitHubClient, owner: str, repo: str, now: datetime | None = None
) -> StarStats:
    """Paginate all stargazers of a repository and bucket them by date."""
    now = now or datetime.now(timezone.utc)
    month_threshold = one_month_ago(now)
    year_threshold = one_year_ago(now)

    last_month = 0
    last_year = 0
    async with aclosing(
        client.iter_pages(f"/repos/{owner}/{repo}/stargazers", accept=STAR_MEDIA_TYPE)
    ) as pages:
        async for page in pages:
            stats = count_stars_in_windows(page, month_threshold, year_threshold)
            last_month += stats.last_month
            last_year += stats.last_year

    return StarStats(last_month, last_year)


async def _count_recent(
    client: GitHubClient,
    path: str,
    threshold: datetime,
    skip_pull_requests: bool = False,
) -> int:
    total = 0
    params = {"state": "all", "sort": "created", "direction": "desc"}
    async with aclosing(
        client.iter_pages(path, params=params, max_pages=RECENT_MAX_PAGES)
    ) as pages:
        async for page in pages:
            count, reached_older = count_recent_items(
                page, threshold, skip_pull_requests=skip_pull_requests
            )
            total += count
            if reached_older:
                break
    return total


async def get_pr_stats(
    client: GitHubClient, owner: str, repo: str, now: datetime | None = None
) -> ActivityStats:
    """Count open and closed pull requests plus those opened in the last month."""
    path = f"/repos/{owner}/{repo}/pulls"
    open_count = await client.count_items(path, {"state": "open"})
    closed_count = await client.count_items(path, {"state": "closed"})
    last_month = await _count_recent(client, path, one_month_ago(now))
    return ActivityStats(open_count, closed_count, last_month)


async def _count_issues(client: GitHubClient, path: str, state: str) -> int:
    count = 0
    async with aclosing(client.iter_pages(path, params={"state": state})) as pages:
        async for page in pages:
            count += sum(1 for issue in page if "pull_request" not in issue)
    return count


async def get_issue_stats(
    client: GitHubClient, owner: str, repo: str, now: datetime | None = None
) -> ActivityStats:
    """
    Count open and closed issues plus those opened in the last month.

    The issues endpoint also returns pull requests; those are filtered out,
    which requires walking every page for exact open/closed counts.
    """
    path = f"/repos/{owner}/{repo}/issues"
    open_count = await _count_issues(client, path, "open")
    closed_count = await _count_issues(client, path, "closed")
    last_month = await _count_recent(
        client, path, one_month_ago(now), skip_pull_requests=True
    )
    return ActivityStats(open_count, closed_count, last_month)


async def collect_contributors(
    client: GitHubClient, owner: str, repo_names: Iterable[str]
) -> tuple[set[str], dict[str, int]]:
    """
    Gather human contributors per repository and across the organization.

    Args:
        client: GitHub client
        owner: Organization login
        repo_names: Repositories to scan

    Returns:
        Tuple of (all unique logins, per-repository unique login count).
    """
    all_contributors: set[str] = set()
    repo_counts: dict[str, int] = {}

    for repo in repo_names:
        repo_contributors: set[str] = set()
        try:
            async with aclosing(
                client.iter_pages(f"/repos/{owner}/{repo}/contributors")
            ) as pages:
                async for page in pages:
                    for contributor in page:
                        login = contributor.get("login")
                        if login and not is_bot_login(login):
                            repo_contributors.add(login)
        except Exception as e:
            console.print(
                f"  [yellow]Could not fetch contributors for {repo}: {e}[/yellow]"
            )
            repo_contributors = set()

        all_contributors.update(repo_contributors)
        repo_counts[repo] = len(repo_contributors)

    return all_contributors, repo_counts


async def get_org_member_count(client: GitHubClient, org: str) -> int:
    """Count public members of the organization."""
    return await client.count_items(f"/orgs/{org}/members")


def build_repository_record(
    repo: dict[str, Any],
    stars: StarStats,
    prs: ActivityStats,
    issues: ActivityStats,
    contributors_count: int = 0,
) -> dict[str, Any]:
    """Shape the repository metadata and sub-statistics into one record."""
    return {
        "name": repo["name"],
        "full_name": repo["full_name"],
        "stargazers_count": repo.get("stargazers_count") or 0,
        "stars_last_month": stars.last_month,
        "stars_last_year": stars.last_year,
        "forks_count": repo.get("forks_count") or 0,
        "open_issues_count": repo.get("open_issues_count") or 0,
        "description": repo.get("description"),
        "html_url": repo["html_url"],
        "language": repo.get("language") or None,
        "updated_at": repo.get("updated_at") or "",
        "contributors_count": contributors_count,
        "pull_requests_open": prs.open,
        "pull_requests_closed": prs.closed,
        "pull_requests_last_month": prs.last_month,
        "issues_open": issues.open,
        "issues_closed": issues.closed,
        "issues_last_month": issues.last_month,
    }


def aggregate_github_data(
    organization: str,
    repositories: list[dict[str, Any]],
    unique_contributors: int,
    organization_members: int,
) -> GitHubData:
    """
    Roll per-repository records up into organization totals.

    Repositories are sorted by star count, highest first.

    Raises:
        pydantic.ValidationError: If any record does not match the schema.
    """
    repos = sorted(
        (GitHubRepository.model_validate(r) for r in repositories),
        key=lambda r: r.stargazers_count,
        reverse=True,
    )
    return GitHubData(
        organization=organization,
        total_repositories=len(repos),
        total_stars=sum(r.stargazers_count for r in repos),
        total_stars_last_month=sum(r.stars_last_month for r in repos),
        total_stars_last_year=sum(r.stars_last_year for r in repos),
        unique_contributors=unique_contributors,
        organization_members=organization_members,
        total_pull_requests_open=sum(r.pull_requests_open for r in repos),
        total_pull_requests_closed=sum(r.pull_requests_closed for r in repos),
        total_issues_open=sum(r.issues_open for r in repos),
        total_issues_closed=sum(r.issues_closed for r in repos),
        timestamp=utc_timestamp(),
        repositories=repos,
    )


async def collect_repository(
    client: GitHubClient, owner: str, name: str, now: datetime | None = None
) -> dict[str, Any] | None:
    """
    Fetch metadata and sub-statistics for one repository.

    Returns:
        The repository record (contributors_count still 0), or None if the
        repository metadata could not be fetched.
    """
    try:
        repo = await client.get_json(f"/repos/{owner}/{name}")
    except Exception as e:
        console.print(f"  [yellow]Could not fetch repository {name}: {e}[/yellow]")
        return None

    stars, prs, issues = await asyncio.gather(
        _with_default(
            get_star_stats(client, owner, name, now),
            StarStats(),
            f"star history for {name}",
        ),
        _with_default(
            get_pr_stats(client, owner, name, now),
            ActivityStats(),
            f"pull requests for {name}",
        ),
        _with_default(
            get_issue_stats(client, owner, name, now),
            ActivityStats(),
            f"issues for {name}",
        ),
    )
    return build_repository_record(repo, stars, prs, issues)


async def collect_github(client: GitHubClient | None = None) -> GitHubData:
    """
    Collect GitHub statistics for all core packages and write github.json.

    Raises:
        ValueError: If no GitHub token is configured
    """
    console.print("[bold cyan]Collecting GitHub stats...[/bold cyan]")
    client = client or GitHubClient()
    org = get_organization()
    now = datetime.now(timezone.utc)

    repositories: list[dict[str, Any]] = []
    for name in get_core_packages():
        record = await collect_repository(client, org, name, now)
        if record is not None:
            repositories.append(record)
            console.print(f"  {name} ({record['stargazers_count']} stars)")
        await asyncio.sleep(REPO_DELAY)

    (all_contributors, repo_counts), org_members = await asyncio.gather(
        collect_contributors(client, org, [r["name"] for r in repositories]),
        _with_default(get_org_member_count(client, org), 0, "organization members"),
    )

    for record in repositories:
        record["contributors_count"] = repo_counts.get(record["name"], 0)

    data = aggregate_github_data(
        org, repositories, len(all_contributors), org_members
    )
    save_json(OUTPUT_FILE, data)
    console.print(
        f"[bold green]Total stars: {data.total_stars}, "
        f"Contributors: {data.unique_contributors}[/bold green]"
    )
    return data
