"""
Snapshot data model for myprs.

A snapshot is one run's view of the user's pull requests, split into
"open" and "closed" groups. Everything here is immutable once built;
`to_dict`/`from_dict` convert to and from the JSON stored between runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


STATUSES = ("open", "closed")


@dataclass(frozen=True)
class Review:
    """A single review left on a pull request."""
    reviewer: str
    state: str  # APPROVED, CHANGES_REQUESTED, COMMENTED, DISMISSED, ...
    submitted_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "reviewer": self.reviewer,
            "state": self.state,
            "submitted_at": self.submitted_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Review":
        return cls(
            reviewer=data.get("reviewer", "unknown"),
            state=data.get("state", ""),
            submitted_at=data.get("submitted_at"),
        )


@dataclass(frozen=True)
class Label:
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name}


@dataclass(frozen=True)
class PullRequest:
    """A pull request authored by the user, as seen in one run."""
    pull_number: int
    title: str | None
    body: str | None
    state: str | None
    url: str | None
    updated_at: str | None
    org: str | None
    repo: str | None
    draft: bool = False
    updated_at_human: str = ""
    updated_at_ago_seconds: float = 0.0
    number_of_comments: int = 0
    labels: tuple[Label, ...] = field(default_factory=tuple)
    reviews: tuple[Review, ...] = field(default_factory=tuple)

    @property
    def label_names(self) -> list[str]:
        """Label names in source order, without duplicates."""
        return list(dict.fromkeys(label.name for label in self.labels))

    def to_dict(self) -> dict[str, Any]:
        return {
            "pull_number": self.pull_number,
            "number_of_comments": self.number_of_comments,
            "title": self.title,
            "body": self.body,
            "url": self.url,
            "state": self.state,
            "draft": self.draft,
            "updated_at_ago_seconds": self.updated_at_ago_seconds,
            "updated_at": self.updated_at,
            "updated_at_human": self.updated_at_human,
            "org": self.org,
            "repo": self.repo,
            "labels": [label.to_dict() for label in self.labels],
            "reviews": [review.to_dict() for review in self.reviews],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PullRequest":
        """Build a PR from its stored form. Missing string fields stay None."""
        return cls(
            pull_number=int(data["pull_number"]),
            title=data.get("title"),
            body=data.get("body"),
            state=data.get("state"),
            url=data.get("url"),
            updated_at=data.get("updated_at"),
            org=data.get("org"),
            repo=data.get("repo"),
            draft=bool(data.get("draft") or False),
            updated_at_human=data.get("updated_at_human") or "",
            updated_at_ago_seconds=float(data.get("updated_at_ago_seconds") or 0.0),
            number_of_comments=int(data.get("number_of_comments") or 0),
            labels=tuple(
                Label(name=label["name"])
                for label in data.get("labels") or []
                if label.get("name") is not None
            ),
            reviews=tuple(Review.from_dict(review) for review in data.get("reviews") or []),
        )


@dataclass(frozen=True)
class PrInfoGroups:
    """A full snapshot: open PRs and recently closed PRs."""
    open: tuple[PullRequest, ...] = ()
    closed: tuple[PullRequest, ...] = ()

    def group(self, status: str) -> tuple[PullRequest, ...]:
        if status == "open":
            return self.open
        if status == "closed":
            return self.closed
        raise KeyError(status)

    def to_dict(self) -> dict[str, Any]:
        return {
            "open": [pr.to_dict() for pr in self.open],
            "closed": [pr.to_dict() for pr in self.closed],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PrInfoGroups":
        if not isinstance(data, dict):
            raise ValueError("Snapshot must be a JSON object")
        return cls(
            open=tuple(PullRequest.from_dict(pr) for pr in data.get("open") or []),
            closed=tuple(PullRequest.from_dict(pr) for pr in data.get("closed") or []),
        )
