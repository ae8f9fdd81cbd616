"""
GitHub REST API client for myprs.

Finds the pull requests authored by a user through the issue search API
and fetches the reviews of each open one.

Supports:
- Search qualifiers (org, repo, state, updated window)
- A bounded-time search request (RequestTimeoutError)
- Rate limit handling
- Concurrent review fetching
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator
from urllib.parse import urlparse

import requests

from . import __version__
from .models import Label, PrInfoGroups, PullRequest, Review


logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"
DEFAULT_PER_PAGE = 100
DEFAULT_TIMEOUT = 5.0
MAX_RETRIES = 3
RETRY_DELAY = 1.0


class GitHubAPIError(Exception):
    """Error from GitHub API."""
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(GitHubAPIError):
    """Rate limit exceeded."""
    def __init__(self, reset_time: int | None = None):
        super().__init__("GitHub API rate limit exceeded", 403)
        self.reset_time = reset_time


class RequestTimeoutError(GitHubAPIError):
    """A request did not complete within its deadline."""


def parse_timestamp(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_distance(seconds: float) -> str:
    """
    Describe an age in words, e.g. "5 minutes ago" or "about 2 hours ago".

    Negative ages are in the future ("in 3 days").
    """
    minutes = round(abs(seconds) / 60)

    if minutes < 1:
        text = "less than a minute"
    elif minutes < 2:
        text = "1 minute"
    elif minutes < 45:
        text = f"{minutes} minutes"
    elif minutes < 90:
        text = "about 1 hour"
    elif minutes < 24 * 60:
        text = f"about {round(minutes / 60)} hours"
    elif minutes < 42 * 60:
        text = "1 day"
    elif minutes < 30 * 24 * 60:
        text = f"{round(minutes / (24 * 60))} days"
    elif minutes < 60 * 24 * 60:
        months = round(minutes / (30 * 24 * 60))
        text = "about 1 month" if months <= 1 else f"about {months} months"
    else:
        months = round(minutes / (30 * 24 * 60))
        years, remainder = divmod(months, 12)
        suffix = "s" if years > 1 else ""
        if years < 1:
            text = f"{months} months"
        elif remainder < 3:
            text = f"about {years} year{suffix}"
        elif remainder < 9:
            text = f"over {years} year{suffix}"
        else:
            text = f"almost {years + 1} years"

    if seconds < 0:
        return f"in {text}"
    return f"{text} ago"


def build_search_query(
    username: str,
    org: str | None = None,
    repo: str | None = None,
    max_seconds_ago: int | None = None,
    state: str | None = None,
    now: datetime | None = None,
) -> str:
    """
    Build the search query for PRs authored by `username`.

    Args:
        username: PR author (the PR creator, not the commit author)
        org: Limit to an organization
        repo: Limit to a repository ("owner/name")
        max_seconds_ago: Only PRs updated since then (day granularity)
        state: "open" or "closed"

    Returns:
        Space-separated qualifiers
    """
    qualifiers = ["is:pr"]
    if state:
        qualifiers.append(f"is:{state}")
    qualifiers.append(f"author:{username}")

    if org:
        qualifiers.append(f"org:{org}")
    if repo:
        qualifiers.append(f"repo:{repo}")
    if max_seconds_ago:
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(seconds=max_seconds_ago)
        qualifiers.append(f"updated:>={since.date().isoformat()}")

    return " ".join(qualifiers)


class GitHubClient:
    """GitHub REST API client with pagination and rate limit handling.

    Each thread gets its own requests.Session; `session` is the one of the
    thread that built the client.
    """

    def __init__(self, token: str):
        self.token = token
        self._local = threading.local()
        self.session = self._new_session()
        self._local.session = self.session

    def _new_session(self) -> requests.Session:
        session = requests.Session()

        if self.token:
            session.headers["Authorization"] = f"token {self.token}"

        session.headers["Accept"] = "application/vnd.github.v3+json"
        session.headers["User-Agent"] = f"myprs/{__version__}"
        return session

    def _thread_session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._new_session()
            self._local.session = session
        return session

    def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        """Make an API request with retry and rate limit handling.

        Timeouts are not retried: the caller's deadline already passed.
        """
        url = f"{GITHUB_API_BASE}{endpoint}"

        for attempt in range(MAX_RETRIES):
            try:
                response = self._thread_session().request(method, url, params=params, **kwargs)

                # Check rate limit
                if response.status_code == 403:
                    remaining = response.headers.get("X-RateLimit-Remaining")
                    if remaining == "0":
                        reset_time = int(response.headers.get("X-RateLimit-Reset", 0))
                        raise RateLimitError(reset_time)

                if response.status_code >= 400:
                    raise GitHubAPIError(
                        f"GitHub API error: {response.status_code} - {response.text}",
                        response.status_code
                    )

                return response

            except requests.Timeout:
                timeout = kwargs.get("timeout")
                if timeout is None:
                    raise RequestTimeoutError("Timed out")
                raise RequestTimeoutError(f"Timed out after {int(timeout * 1000)}ms")
            except requests.RequestException as e:
                if attempt < MAX_RETRIES - 1:
                    time.sleep(RETRY_DELAY * (attempt + 1))
                    continue
                raise GitHubAPIError(f"Request failed: {e}")

        raise GitHubAPIError("Max retries exceeded")

    def _get_json_within(
        self,
        endpoint: str,
        params: dict[str, Any],
        timeout: float,
    ) -> Any:
        """GET `endpoint` and decode it, all within `timeout` seconds.

        requests' timeout bounds only the connect and each socket read, so
        the request runs in a daemon thread joined with the deadline. An
        abandoned thread does not block interpreter exit.
        """
        outcome: dict[str, Any] = {}

        def target() -> None:
            try:
                outcome["data"] = self._request("GET", endpoint, params=params, timeout=timeout).json()
            except Exception as e:
                outcome["error"] = e

        worker = threading.Thread(target=target, daemon=True)
        worker.start()
        worker.join(timeout)

        if worker.is_alive():
            raise RequestTimeoutError(f"Timed out after {int(timeout * 1000)}ms")
        if "error" in outcome:
            raise outcome["error"]
        return outcome["data"]

    def _paginate(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> Iterator[dict[str, Any]]:
        """Iterate through paginated API results."""
        params = params or {}
        params.setdefault("per_page", DEFAULT_PER_PAGE)
        page = 1

        while True:
            params["page"] = page
            response = self._request("GET", endpoint, params=params)
            items = response.json()

            if not items:
                break

            for item in items:
                yield item

            if len(items) < params["per_page"]:
                break

            page += 1

    def search_pull_requests(
        self,
        username: str,
        org: str | None = None,
        repo: str | None = None,
        max_seconds_ago: int | None = None,
        state: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> list[PullRequest]:
        """
        Search PRs authored by `username`, most recently updated first.

        Only the first page of results is read.

        Raises:
            RequestTimeoutError: if the search takes longer than `timeout` seconds
        """
        q = build_search_query(username, org, repo, max_seconds_ago, state)
        logger.debug("Searching pull requests: %s", q)
        data = self._get_json_within(
            "/search/issues",
            params={"q": q, "per_page": DEFAULT_PER_PAGE},
            timeout=timeout,
        )

        if data.get("incomplete_results"):
            logger.warning("The search results may be incomplete.")

        now = datetime.now(timezone.utc)
        prs = [self._parse_search_item(item, now) for item in data.get("items", [])]
        if max_seconds_ago:
            prs = [pr for pr in prs if pr.updated_at_ago_seconds < max_seconds_ago]

        return sorted(prs, key=lambda pr: pr.updated_at_ago_seconds)

    def list_reviews(self, org: str, repo: str, pull_number: int) -> list[Review]:
        """Get the reviews of a pull request, in submission order."""
        endpoint = f"/repos/{org}/{repo}/pulls/{pull_number}/reviews"

        reviews = []
        for item in self._paginate(endpoint):
            user = item.get("user") or {}
            reviews.append(Review(
                reviewer=user.get("login") or "unknown",
                state=item.get("state", ""),
                submitted_at=item.get("submitted_at"),
            ))

        return reviews

    def _parse_search_item(self, data: dict[str, Any], now: datetime) -> PullRequest:
        """Parse a search result item into a PullRequest."""
        html_url = data.get("html_url", "")
        parts = urlparse(html_url).path.split("/")
        org = parts[1] if len(parts) > 1 else ""
        repo = parts[2] if len(parts) > 2 else ""
        if not org:
            raise GitHubAPIError(f"Could not parse org from PR URL: {html_url}")
        if not repo:
            raise GitHubAPIError(f"Could not parse repo from PR URL: {html_url}")

        updated_at = data.get("updated_at", "")
        ago_seconds = (now - parse_timestamp(updated_at)).total_seconds()

        return PullRequest(
            pull_number=data.get("number", 0),
            number_of_comments=data.get("comments", 0),
            title=data.get("title", ""),
            body=data.get("body") or "",
            url=html_url,
            state=data.get("state", ""),
            draft=bool(data.get("draft")),
            updated_at_ago_seconds=ago_seconds,
            updated_at=updated_at,
            updated_at_human=format_distance(ago_seconds),
            org=org,
            repo=repo,
            labels=tuple(
                Label(name=label["name"])
                for label in data.get("labels", [])
                if label.get("name")
            ),
        )


async def _gather_reviews(client: GitHubClient, prs: list[PullRequest]) -> list[list[Review]]:
    return await asyncio.gather(*(
        asyncio.to_thread(client.list_reviews, pr.org, pr.repo, pr.pull_number)
        for pr in prs
    ))


def fetch_snapshot(
    client: GitHubClient,
    username: str,
    org: str | None = None,
    repo: str | None = None,
    max_seconds_ago: int = 30 * 24 * 60 * 60,
    state: str | None = None,
    recently_closed_seconds: int = 5 * 60,
    timeout: float = DEFAULT_TIMEOUT,
) -> PrInfoGroups:
    """
    Fetch the current snapshot of the user's pull requests.

    Args:
        client: GitHub API client
        username: PR author
        org: Limit search to an org
        repo: Limit search to a repository ("owner/name")
        max_seconds_ago: Skip PRs not updated within this many seconds
        state: Optional search state qualifier ("open" or "closed")
        recently_closed_seconds: Closed PRs older than this are dropped
        timeout: Seconds allowed for the search request

    Returns:
        PrInfoGroups with open PRs (with reviews) and recently closed PRs
    """
    prs = client.search_pull_requests(
        username,
        org=org,
        repo=repo,
        max_seconds_ago=max_seconds_ago,
        state=state,
        timeout=timeout,
    )
    open_prs = [pr for pr in prs if pr.state == "open"]

    # One request per open PR; any failure fails the whole run.
    reviews = asyncio.run(_gather_reviews(client, open_prs)) if open_prs else []
    open_prs = [
        replace(pr, reviews=tuple(pr_reviews))
        for pr, pr_reviews in zip(open_prs, reviews)
    ]

    recently_closed = [
        pr for pr in prs
        if pr.state == "closed" and pr.updated_at_ago_seconds < recently_closed_seconds
    ]
    logger.debug("Fetched %d open and %d recently closed PRs", len(open_prs), len(recently_closed))

    return PrInfoGroups(open=tuple(open_prs), closed=tuple(recently_closed))
