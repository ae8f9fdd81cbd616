"""
Status-bar rendering for myprs.

Output follows the xbar plugin format: the first line is shown in the menu
bar, "---" separates menu sections and "| key=value" suffixes carry link
and color parameters.
"""

from __future__ import annotations

from urllib.parse import urlencode

import click

from .models import PrInfoGroups, PullRequest


MAX_TITLE_LENGTH = 80
ALERT_PREFIX = "🎵"
SEPARATOR = "---"
REVIEW_MARKERS = {"APPROVED": "✅", "CHANGES_REQUESTED": "❌"}


def status_title(groups: PrInfoGroups) -> str:
    """Menu-bar title, e.g. "3 Open PRs, 1 Recently Closed"."""
    count = len(groups.open)
    has_drafts = any(pr.draft for pr in groups.open)

    if count == 0:
        title = "No PRs"
    elif count == 1:
        title = "1 PR" if has_drafts else "1 Open PR"
    else:
        title = f"{count} PRs" if has_drafts else f"{count} Open PRs"

    if groups.closed:
        title += f", {len(groups.closed)} Recently Closed"
    return title


def all_search_url() -> str:
    params = urlencode({
        "q": "is:pr is:open author:@me sort:updated",
        "type": "pullrequests",
    })
    return f"https://github.com/search?{params}"


def review_markers(pr: PullRequest) -> str:
    # A reviewer may have left several reviews; only their latest
    # approval or change request counts.
    latest_by_reviewer: dict[str, str] = {}
    for review in pr.reviews:
        if review.state in REVIEW_MARKERS:
            latest_by_reviewer[review.reviewer] = review.state
    return "".join(REVIEW_MARKERS[state] for state in latest_by_reviewer.values())


def pr_line(pr: PullRequest) -> str:
    """One clickable menu line for a PR."""
    line = pr.updated_at_human.replace("about ", "") + " > "
    if pr.draft:
        line += "(Draft) "
    line += pr.title or ""
    if len(line) > MAX_TITLE_LENGTH:
        line = line[: MAX_TITLE_LENGTH - 1] + "…"

    markers = review_markers(pr)
    if markers:
        line += "  " + markers

    return f"{line} | href={pr.url}"


def render_report(groups: PrInfoGroups, alerts: list[str], title: str | None = None) -> list[str]:
    """
    Build the full plugin output.

    Args:
        groups: Current snapshot
        alerts: Changes since the previous run
        title: Menu-bar title (defaults to status_title(groups))

    Returns:
        Output lines, alerts first
    """
    lines = [f"{ALERT_PREFIX} {alert}" for alert in alerts]
    lines.append(title if title is not None else status_title(groups))

    if groups.open or groups.closed:
        lines.append(SEPARATOR)

    if groups.closed:
        lines.append(f"Recently Closed PRs ({len(groups.closed)})")
        lines.extend(pr_line(pr) for pr in groups.closed)
        lines.append(SEPARATOR)
        if groups.open:
            lines.append(f"Open PRs ({len(groups.open)})")
            lines.append(SEPARATOR)

    lines.extend(pr_line(pr) for pr in groups.open)

    lines.append(SEPARATOR)
    lines.append(f"All Your Pull Requests | href={all_search_url()}")
    return lines


def colorize(msg: str, color: str, is_tty: bool) -> str:
    if is_tty:
        # Terminals have no orange
        return click.style(msg, fg="yellow" if color == "orange" else color)
    return f"{msg} | color={color}"


def render_error(msg: str, is_tty: bool = False) -> str:
    return colorize(f"My PRs failed ({msg})", "orange", is_tty)
