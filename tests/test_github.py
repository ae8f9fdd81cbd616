from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

import pytest
import requests

from myprs.github import (
    GitHubAPIError,
    GitHubClient,
    RateLimitError,
    RequestTimeoutError,
    build_search_query,
    fetch_snapshot,
    format_distance,
)
from myprs.models import PullRequest, Review


def iso_ago(**delta) -> str:
    return (datetime.now(timezone.utc) - timedelta(**delta)).strftime("%Y-%m-%dT%H:%M:%SZ")


def search_item(number: int, state: str = "open", updated_at: str | None = None, **overrides) -> dict:
    item = {
        "number": number,
        "comments": 2,
        "title": f"PR {number}",
        "body": None,
        "html_url": f"https://github.com/acme/widgets/pull/{number}",
        "state": state,
        "draft": False,
        "updated_at": updated_at or iso_ago(hours=1),
        "labels": [{"name": "bug"}],
    }
    item.update(overrides)
    return item


def json_response(data) -> Mock:
    response = Mock()
    response.json.return_value = data
    return response


def test_format_distance():
    assert format_distance(10) == "less than a minute ago"
    assert format_distance(60) == "1 minute ago"
    assert format_distance(5 * 60) == "5 minutes ago"
    assert format_distance(60 * 60) == "about 1 hour ago"
    assert format_distance(3 * 60 * 60) == "about 3 hours ago"
    assert format_distance(26 * 60 * 60) == "1 day ago"
    assert format_distance(5 * 24 * 60 * 60) == "5 days ago"
    assert format_distance(35 * 24 * 60 * 60) == "about 1 month ago"
    assert format_distance(120 * 24 * 60 * 60) == "4 months ago"
    assert format_distance(370 * 24 * 60 * 60) == "about 1 year ago"
    assert format_distance(-5 * 60) == "in 5 minutes"


def test_build_search_query_minimal():
    assert build_search_query("octocat") == "is:pr author:octocat"


def test_build_search_query_all_qualifiers():
    now = datetime(2024, 2, 1, 12, 0, tzinfo=timezone.utc)
    q = build_search_query(
        "octocat",
        org="acme",
        repo="acme/widgets",
        max_seconds_ago=30 * 24 * 60 * 60,
        state="open",
        now=now,
    )
    assert q == "is:pr is:open author:octocat org:acme repo:acme/widgets updated:>=2024-01-02"


def test_search_pull_requests_parses_and_sorts():
    client = GitHubClient(token="test-token")
    data = {
        "incomplete_results": False,
        "items": [
            search_item(1, updated_at=iso_ago(days=3)),
            search_item(2, updated_at=iso_ago(minutes=10)),
        ],
    }

    with patch.object(client, "_request", return_value=json_response(data)) as request:
        prs = client.search_pull_requests("octocat", timeout=2.0)

    assert request.call_args.kwargs["timeout"] == 2.0
    assert request.call_args.kwargs["params"]["q"] == "is:pr author:octocat"
    assert [pr.pull_number for pr in prs] == [2, 1]

    pr = prs[0]
    assert pr.org == "acme"
    assert pr.repo == "widgets"
    assert pr.body == ""
    assert pr.number_of_comments == 2
    assert pr.labels[0].name == "bug"
    assert pr.updated_at_human == "10 minutes ago"
    assert pr.reviews == ()


def test_search_pull_requests_drops_old_items():
    client = GitHubClient(token="test-token")
    data = {
        "items": [
            search_item(1, updated_at=iso_ago(days=40)),
            search_item(2, updated_at=iso_ago(days=1)),
        ],
    }

    with patch.object(client, "_request", return_value=json_response(data)):
        prs = client.search_pull_requests("octocat", max_seconds_ago=30 * 24 * 60 * 60)

    assert [pr.pull_number for pr in prs] == [2]


def test_search_pull_requests_warns_on_incomplete_results(caplog):
    client = GitHubClient(token="test-token")
    data = {"incomplete_results": True, "items": []}

    with patch.object(client, "_request", return_value=json_response(data)):
        assert client.search_pull_requests("octocat") == []

    assert "incomplete" in caplog.text


def test_search_pull_requests_bad_url():
    client = GitHubClient(token="test-token")
    data = {"items": [search_item(1, html_url="https://github.com/")]}

    with patch.object(client, "_request", return_value=json_response(data)):
        with pytest.raises(GitHubAPIError, match="Could not parse org"):
            client.search_pull_requests("octocat")


def test_request_timeout_is_not_retried():
    client = GitHubClient(token="test-token")

    with patch.object(client.session, "request", side_effect=requests.Timeout()) as request:
        with pytest.raises(RequestTimeoutError, match="Timed out after 5000ms"):
            client._request("GET", "/search/issues", timeout=5.0)

    assert request.call_count == 1


def test_search_pull_requests_enforces_total_deadline():
    client = GitHubClient(token="test-token")
    release = threading.Event()

    def slow_request(*args, **kwargs):
        # Body keeps arriving, so no per-read timeout would ever fire
        release.wait(5)
        return json_response({"items": []})

    with patch.object(client, "_request", side_effect=slow_request):
        started = time.monotonic()
        with pytest.raises(RequestTimeoutError, match="Timed out after 200ms"):
            client.search_pull_requests("octocat", timeout=0.2)
        elapsed = time.monotonic() - started
    release.set()

    assert elapsed < 2


def test_search_pull_requests_errors_from_worker_propagate():
    client = GitHubClient(token="test-token")

    with patch.object(client, "_request", side_effect=GitHubAPIError("boom", 500)):
        with pytest.raises(GitHubAPIError, match="boom"):
            client.search_pull_requests("octocat", timeout=1.0)


def test_each_thread_gets_its_own_session():
    client = GitHubClient(token="test-token")
    sessions = []

    worker = threading.Thread(target=lambda: sessions.append(client._thread_session()))
    worker.start()
    worker.join()

    assert client._thread_session() is client.session
    assert sessions[0] is not client.session
    assert sessions[0].headers["Authorization"] == "token test-token"


def test_request_rate_limited():
    client = GitHubClient(token="test-token")
    response = Mock(status_code=403, headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "123"})

    with patch.object(client.session, "request", return_value=response):
        with pytest.raises(RateLimitError) as excinfo:
            client.list_reviews("acme", "widgets", 1)

    assert excinfo.value.reset_time == 123


def test_request_error_status():
    client = GitHubClient(token="test-token")
    response = Mock(status_code=404, headers={}, text="Not Found")

    with patch.object(client.session, "request", return_value=response):
        with pytest.raises(GitHubAPIError) as excinfo:
            client.list_reviews("acme", "widgets", 1)

    assert excinfo.value.status_code == 404


def test_list_reviews():
    client = GitHubClient(token="test-token")
    items = [
        {"user": {"login": "alice"}, "state": "APPROVED", "submitted_at": "2024-01-01T00:00:00Z"},
        {"user": None, "state": "COMMENTED", "submitted_at": "2024-01-02T00:00:00Z"},
    ]

    with patch.object(client, "_paginate", return_value=iter(items)) as paginate:
        reviews = client.list_reviews("acme", "widgets", 9)

    paginate.assert_called_once_with("/repos/acme/widgets/pulls/9/reviews")
    assert reviews == [
        Review("alice", "APPROVED", "2024-01-01T00:00:00Z"),
        Review("unknown", "COMMENTED", "2024-01-02T00:00:00Z"),
    ]


def make_pr(number: int, state: str, ago: float) -> PullRequest:
    return PullRequest(
        pull_number=number,
        title=f"PR {number}",
        body="",
        state=state,
        url=f"https://github.com/acme/widgets/pull/{number}",
        updated_at="2024-01-01T00:00:00Z",
        org="acme",
        repo="widgets",
        updated_at_ago_seconds=ago,
    )


def test_fetch_snapshot_groups_and_attaches_reviews():
    client = GitHubClient(token="test-token")
    prs = [
        make_pr(1, "closed", 60),
        make_pr(2, "open", 120),
        make_pr(3, "open", 600),
        make_pr(4, "closed", 3600),
    ]
    reviews = {
        2: [Review("alice", "APPROVED", "t1")],
        3: [],
    }

    with patch.object(client, "search_pull_requests", return_value=prs) as search, \
            patch.object(client, "list_reviews", side_effect=lambda org, repo, n: reviews[n]):
        groups = fetch_snapshot(client, "octocat", org="acme", timeout=3.0)

    assert search.call_args.kwargs["org"] == "acme"
    assert search.call_args.kwargs["timeout"] == 3.0
    assert [pr.pull_number for pr in groups.open] == [2, 3]
    assert groups.open[0].reviews == (Review("alice", "APPROVED", "t1"),)
    assert groups.open[1].reviews == ()
    assert [pr.pull_number for pr in groups.closed] == [1]


def test_fetch_snapshot_review_failure_fails_run():
    client = GitHubClient(token="test-token")

    with patch.object(client, "search_pull_requests", return_value=[make_pr(1, "open", 10)]), \
            patch.object(client, "list_reviews", side_effect=GitHubAPIError("boom", 500)):
        with pytest.raises(GitHubAPIError):
            fetch_snapshot(client, "octocat")


def test_fetch_snapshot_timeout_propagates():
    client = GitHubClient(token="test-token")

    with patch.object(client, "search_pull_requests", side_effect=RequestTimeoutError("Timed out")):
        with pytest.raises(RequestTimeoutError):
            fetch_snapshot(client, "octocat")
