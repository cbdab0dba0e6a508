"""
GitHub REST client for scverse-stats.

Wraps the shared async HTTP client with token authentication and the two
pagination patterns the collectors rely on: walking pages until a short page
comes back, and reading a total count from the ``rel="last"`` Link header.
"""

import asyncio
import os
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from typing import Any

import httpx

from scverse_stats.http_client import _get_async_http_client

# GitHub API endpoint
GITHUB_API = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"

# Includes starred_at timestamps in stargazer listings
STAR_MEDIA_TYPE = "application/vnd.github.v3.star+json"

# Politeness delay between paginated requests (seconds)
PAGE_DELAY = 0.1
DEFAULT_PER_PAGE = 100


class RateLimitError(httpx.HTTPStatusError):
    """Raised when GitHub reports an exhausted rate limit."""

    def __init__(
        self,
        message: str,
        *,
        request: httpx.Request,
        response: httpx.Response,
        reset_at: datetime | None = None,
    ):
        super().__init__(message, request=request, response=response)
        self.reset_at = reset_at


def _rate_limit_reset(response: httpx.Response) -> datetime | None:
    reset = response.headers.get("x-ratelimit-reset")
    if not reset:
        return None
    try:
        return datetime.fromtimestamp(int(reset), tz=timezone.utc)
    except ValueError:
        return None


class GitHubClient:
    """Authenticated GitHub REST API client."""

    def __init__(self, token: str | None = None):
        """
        Initialize the GitHub client.

        Args:
            token: GitHub Personal Access Token. If not provided, reads from
                   GITHUB_TOKEN environment variable.

        Raises:
            ValueError: If token is not provided and GITHUB_TOKEN env var is not set
        """
        self.token = token or os.getenv("GITHUB_TOKEN")
        if not self.token:
            raise ValueError(
                "GITHUB_TOKEN is required for GitHub collectors.\n"
                "\n"
                "To get started:\n"
                "1. Create a GitHub Personal Access Token:\n"
                "   -> https://github.com/settings/tokens/new\n"
                "2. Select scopes: 'public_repo' and 'read:org'\n"
                "3. Set the token:\n"
                "   export GITHUB_TOKEN='your_token_here'  # Linux/macOS\n"
                "   or add to your .env file: GITHUB_TOKEN=your_token_here\n"
            )

    def _headers(self, accept: str | None = None) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": accept or "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        accept: str | None = None,
    ) -> httpx.Response:
        """
        Issue a GET request against the GitHub REST API.

        Args:
            path: API path such as ``/repos/scverse/scanpy``
            params: Query parameters
            accept: Optional media type for the Accept header

        Returns:
            The successful response.

        Raises:
            RateLimitError: If the rate limit is exhausted
            httpx.HTTPStatusError: If GitHub returns any other error status
        """
        client = await _get_async_http_client()
        response = await client.get(
            f"{GITHUB_API}{path}", params=params, headers=self._headers(accept)
        )
        if (
            response.status_code in (403, 429)
            and response.headers.get("x-ratelimit-remaining") == "0"
        ):
            reset_at = _rate_limit_reset(response)
            message = "GitHub API rate limit exceeded."
            if reset_at:
                message += f" Resets at: {reset_at.isoformat()}"
            raise RateLimitError(
                message,
                request=response.request,
                response=response,
                reset_at=reset_at,
            )
        response.raise_for_status()
        return response

    async def get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        accept: str | None = None,
    ) -> Any:
        """Issue a GET request and decode the JSON body."""
        response = await self.get(path, params=params, accept=accept)
        return response.json()

    async def iter_pages(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        per_page: int = DEFAULT_PER_PAGE,
        max_pages: int | None = None,
        accept: str | None = None,
        delay: float | None = None,
    ) -> AsyncIterator[list[dict[str, Any]]]:
        """
        Walk a paginated listing page by page.

        Stops on an empty page, on a page shorter than ``per_page`` (after
        yielding it), or once ``max_pages`` pages have been fetched.

        Args:
            path: API path of the listing
            params: Extra query parameters
            per_page: Page size requested from GitHub
            max_pages: Optional page cap
            accept: Optional media type for the Accept header
            delay: Seconds to sleep between requests (default: PAGE_DELAY)

        Yields:
            Each non-empty page as a list of items.
        """
        page = 1
        while max_pages is None or page <= max_pages:
            query = dict(params or {})
            query.update({"per_page": per_page, "page": page})
            items = await self.get_json(path, params=query, accept=accept)

            if not items:
                break

            yield items

            if len(items) < per_page:
                break

            page += 1
            await asyncio.sleep(PAGE_DELAY if delay is None else delay)

    async def count_items(self, path: str, params: dict[str, Any] | None = None) -> int:
        """
        Count the items of a listing without fetching them all.

        Requests one item per page and reads the page number of the
        ``rel="last"`` Link header.

        Args:
            path: API path of the listing
            params: Extra query parameters

        Returns:
            Total item count.
        """
        query = dict(params or {})
        query.update({"per_page": 1, "page": 1})
        response = await self.get(path, params=query)

        last = response.links.get("last")
        if last and last.get("url"):
            page = httpx.URL(last["url"]).params.get("page")
            if page and page.isdigit():
                return int(page)

        return len(response.json())
