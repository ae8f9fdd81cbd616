"""
Change detection between two PR snapshots.

Compares the snapshot fetched in this run with the one saved by the
previous run and turns the differences into short alert strings:

- "Opened: ..." / "Closed: ..." when a group grew
- review state changes
- label additions and removals
- updates to the PR's scalar fields (title, description, timestamps, ...)

PRs are paired by their position in each group, and reviews by their
position in each PR. Both lists come back sorted from the fetcher, so the
same PR normally keeps its index between runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .models import STATUSES, PrInfoGroups, PullRequest, Review


DEFAULT_SHORT_TITLE_LENGTH = 50
ELLIPSIS = "..."

# Compared string fields, in record order. updated_at_human is derived
# from the clock and always differs, so it is never listed here.
SCALAR_FIELDS = ("title", "body", "url", "state", "updated_at", "org", "repo")


def short_title(title: str | None, max_length: int = DEFAULT_SHORT_TITLE_LENGTH) -> str:
    """Truncate a title for display, ending in '...' when cut."""
    title = title or ""
    if len(title) > max_length:
        return title[: max_length - len(ELLIPSIS)] + ELLIPSIS
    return title


def compare_reviews(
    pr: PullRequest,
    reviews: tuple[Review, ...],
    reviews_before: tuple[Review, ...],
) -> list[str]:
    """Alert on every review that differs from the one at the same index.

    Reviews that disappeared from the end of the list are ignored.
    """
    alerts: list[str] = []
    for index, review in enumerate(reviews):
        before = reviews_before[index] if index < len(reviews_before) else None
        if review != before:
            alerts.append(f'{review.reviewer} {review.state} on "{short_title(pr.title)}"')
    return alerts


def _pluralize_label(names: list[str]) -> str:
    return "label" if len(names) == 1 else "labels"


def compare_labels(pr: PullRequest, pr_before: PullRequest) -> list[str]:
    names = pr.label_names
    names_before = pr_before.label_names
    if set(names) == set(names_before):
        return []

    new_labels = [name for name in names if name not in names_before]
    removed_labels = [name for name in names_before if name not in names]
    prefix = f'PR "{short_title(pr.title)}"'
    added = f"new {_pluralize_label(new_labels)}: {', '.join(new_labels)}"
    removed = f"removed {_pluralize_label(removed_labels)}: {', '.join(removed_labels)}"

    if new_labels and removed_labels:
        return [f"{prefix} {added} and {removed}"]
    if new_labels:
        return [f"{prefix} {added}"]
    return [f"{prefix} {removed}"]


def compare_scalar(pr: PullRequest, pr_before: PullRequest, field_name: str) -> list[str]:
    value = getattr(pr, field_name)
    before_value = getattr(pr_before, field_name)
    if value is None or before_value is None or value == before_value:
        return []

    title = short_title(pr.title)
    if field_name == "updated_at":
        return [f'PR "{title}" updated']
    if field_name == "body":
        return [f'PR "{title}" description changed']
    return [f'PR "{title}" changed {field_name} from "{before_value}" to "{value}"']


@dataclass(frozen=True)
class FieldRule:
    """One step of the per-PR comparison."""
    name: str
    compare: Callable[[PullRequest, PullRequest], list[str]]


def _scalar_rule(field_name: str) -> FieldRule:
    return FieldRule(
        name=field_name,
        compare=lambda pr, before: compare_scalar(pr, before, field_name),
    )


# Reviews first, then labels, then scalar fields.
FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule("reviews", lambda pr, before: compare_reviews(pr, pr.reviews, before.reviews)),
    FieldRule("labels", compare_labels),
    *(_scalar_rule(name) for name in SCALAR_FIELDS),
)


def compare_pull_request(pr: PullRequest, pr_before: PullRequest) -> list[str]:
    alerts: list[str] = []
    for rule in FIELD_RULES:
        alerts.extend(rule.compare(pr, pr_before))
    return alerts


def _group_added_alert(
    status: str,
    prs: tuple[PullRequest, ...],
    prs_before: tuple[PullRequest, ...],
) -> str:
    numbers_before = {pr.pull_number for pr in prs_before}
    added = [pr for pr in prs if pr.pull_number not in numbers_before]
    verb = "Opened" if status == "open" else "Closed"
    return f"{verb}: " + ", ".join(f'"{pr.title or ""}"' for pr in added)


def compare_group(
    status: str,
    prs: tuple[PullRequest, ...],
    prs_before: tuple[PullRequest, ...],
) -> list[str]:
    """Diff one status group.

    A group that grew yields a single Opened/Closed alert and nothing else;
    otherwise PRs are compared pairwise by index.
    """
    if len(prs) > len(prs_before):
        return [_group_added_alert(status, prs, prs_before)]

    alerts: list[str] = []
    for index, pr in enumerate(prs):
        if index >= len(prs_before):
            continue
        alerts.extend(compare_pull_request(pr, prs_before[index]))
    return alerts


def diff(current: PrInfoGroups, prior: PrInfoGroups | None) -> list[str]:
    """
    Compute the alerts between this run's snapshot and the previous one.

    Args:
        current: Snapshot fetched in this run
        prior: Snapshot saved by the previous run, or None on the first run

    Returns:
        Alert strings, "open" group first, then "closed"
    """
    if prior is None:
        return []

    alerts: list[str] = []
    for status in STATUSES:
        alerts.extend(compare_group(status, current.group(status), prior.group(status)))
    return alerts
