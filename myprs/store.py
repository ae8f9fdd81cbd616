"""
Snapshot storage for myprs.

The previous run's snapshot lives in a single JSON file that is read once
at the start of a run and overwritten once at the end of a successful run.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .models import PrInfoGroups


logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_PATH = "/tmp/xbar-prs.json"


class SnapshotStore:
    """JSON file holding the last saved snapshot."""

    def __init__(self, path: str | Path = DEFAULT_SNAPSHOT_PATH):
        self.path = Path(path).expanduser()

    def load(self) -> PrInfoGroups | None:
        """Read the saved snapshot.

        Returns None when nothing was saved yet or the file is not a
        readable snapshot.
        """
        if not self.path.exists():
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return PrInfoGroups.from_dict(data)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Ignoring unreadable snapshot %s: %s", self.path, e)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Ignoring malformed snapshot %s: %s", self.path, e)
        return None

    def save(self, groups: PrInfoGroups) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(groups.to_dict(), indent=2), encoding="utf-8")
        logger.debug("Saved snapshot to %s", self.path)


class MemorySnapshotStore:
    """In-memory stand-in for SnapshotStore."""

    def __init__(self, groups: PrInfoGroups | None = None):
        self.groups = groups
        self.saves = 0

    def load(self) -> PrInfoGroups | None:
        return self.groups

    def save(self, groups: PrInfoGroups) -> None:
        self.groups = groups
        self.saves += 1
