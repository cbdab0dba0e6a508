"""
Record schemas for every collector snapshot and the combined summary.

Unknown fields returned by the upstream APIs are dropped on validation.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, HttpUrl


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string, e.g. 2024-05-01T12:00:00.000Z."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Record(BaseModel):
    """Base class for validated snapshot records."""

    model_config = ConfigDict(extra="ignore")


# --- Zulip ---


class ZulipUser(Record):
    user_id: int
    is_bot: bool
    is_active: bool
    date_joined: str


class ZulipData(Record):
    active_users: int
    core_team_size: int = 0
    timestamp: str


# --- Bluesky ---


class BlueskyProfile(Record):
    did: str
    handle: str
    displayName: str | None = None
    followersCount: int
    followsCount: int
    postsCount: int


class BlueskyData(Record):
    followers_count: int
    handle: str
    timestamp: str


# --- Ecosystem packages ---


class EcosystemPackage(Record):
    name: str
    description: str | None = None
    project_home: HttpUrl
    documentation_home: HttpUrl | None = None


class EcosystemData(Record):
    total_packages: int
    packages: list[EcosystemPackage]
    timestamp: str


# --- GitHub ---


class GitHubRepository(Record):
    name: str
    full_name: str
    stargazers_count: int
    stars_last_month: int
    stars_last_year: int
    forks_count: int
    open_issues_count: int
    description: str | None = None
    html_url: HttpUrl
    language: str | None = None
    updated_at: str
    contributors_count: int
    pull_requests_open: int
    pull_requests_closed: int
    pull_requests_last_month: int
    issues_open: int
    issues_closed: int
    issues_last_month: int


class GitHubSummary(Record):
    """Organization-wide totals, shared by github.json and stats.json."""

    total_repositories: int
    total_stars: int
    total_stars_last_month: int
    total_stars_last_year: int
    unique_contributors: int
    organization_members: int
    total_pull_requests_open: int
    total_pull_requests_closed: int
    total_issues_open: int
    total_issues_closed: int


class GitHubData(GitHubSummary):
    organization: str
    timestamp: str
    repositories: list[GitHubRepository]


class Contributor(Record):
    login: str
    name: str | None = None
    avatar_url: str
    html_url: str
    contributions: int


class ContributorsData(Record):
    total_contributors: int
    contributors: list[Contributor]
    timestamp: str


# --- Citations ---


class CitationPaper(Record):
    pmid: str
    citation_count: int


class CitationsData(Record):
    papers: list[CitationPaper]
    total_citation_count: int
    timestamp: str


# --- pepy.tech downloads ---


class PepyPackage(Record):
    id: str
    total_downloads: int
    versions: list[str]
    # date -> version -> downloads
    downloads: dict[str, dict[str, int]]


class PepyPackageWindow(Record):
    id: str
    total_30_days: int
    avg_per_day: float


class PepyComputed(Record):
    per_package_30_day: list[PepyPackageWindow]
    combined_total_30_days: int
    combined_avg_daily: float


class PepyData(Record):
    packages: list[PepyPackage]
    total_downloads: int
    timestamp: str
    computed: PepyComputed | None = None


# --- Combined summary ---


class CombinedStats(Record):
    timestamp: str
    bluesky_followers: int | None = None
    zulip_users: int | None = None
    github: GitHubSummary | None = None
    ecosystem_packages: int | None = None
    citation_count: int | None = None
    pepy_downloads: int | None = None
    pepy_avg_daily_30: int | None = None
