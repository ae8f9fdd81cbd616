"""
One polling cycle: fetch, compare with the previous snapshot, save.
"""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from .differ import diff
from .models import PrInfoGroups


logger = logging.getLogger(__name__)


class SnapshotBackend(Protocol):
    def load(self) -> PrInfoGroups | None: ...

    def save(self, groups: PrInfoGroups) -> None: ...


def run_once(
    fetch: Callable[[], PrInfoGroups],
    store: SnapshotBackend,
) -> tuple[PrInfoGroups, list[str]]:
    """
    Run a single fetch/diff/save cycle.

    The snapshot is saved only after the fetch and the diff both succeed,
    so a failed run leaves the previous snapshot in place.

    Args:
        fetch: Produces the current snapshot
        store: Holds the previous run's snapshot

    Returns:
        Tuple of (current snapshot, alerts)
    """
    groups = fetch()
    groups_before = store.load()
    if groups_before is None:
        logger.debug("No previous snapshot; skipping comparison")

    alerts = diff(groups, groups_before)
    logger.debug("%d alert(s) since the previous run", len(alerts))

    store.save(groups)
    return groups, alerts
