from __future__ import annotations

import json

from myprs.models import Label, PrInfoGroups, PullRequest, Review
from myprs.store import MemorySnapshotStore, SnapshotStore


def make_groups() -> PrInfoGroups:
    pr = PullRequest(
        pull_number=7,
        title="Add caching",
        body="",
        state="open",
        url="https://github.com/acme/widgets/pull/7",
        updated_at="2024-03-01T12:00:00Z",
        updated_at_human="2 days ago",
        updated_at_ago_seconds=172800.0,
        org="acme",
        repo="widgets",
        draft=True,
        number_of_comments=3,
        labels=(Label("perf"),),
        reviews=(Review("alice", "APPROVED", "2024-03-01T13:00:00Z"),),
    )
    return PrInfoGroups(open=(pr,), closed=())


def test_load_missing_file_returns_none(tmp_path):
    store = SnapshotStore(tmp_path / "missing.json")
    assert store.load() is None


def test_save_then_load(tmp_path):
    store = SnapshotStore(tmp_path / "prs.json")
    groups = make_groups()

    store.save(groups)

    assert store.load() == groups


def test_save_writes_plain_json(tmp_path):
    path = tmp_path / "prs.json"
    SnapshotStore(path).save(make_groups())

    data = json.loads(path.read_text())
    assert set(data) == {"open", "closed"}
    assert data["open"][0]["pull_number"] == 7
    assert data["open"][0]["labels"] == [{"name": "perf"}]
    assert data["open"][0]["reviews"][0]["reviewer"] == "alice"


def test_save_overwrites_previous_snapshot(tmp_path):
    store = SnapshotStore(tmp_path / "prs.json")
    store.save(make_groups())
    store.save(PrInfoGroups())

    assert store.load() == PrInfoGroups()


def test_save_creates_parent_directories(tmp_path):
    store = SnapshotStore(tmp_path / "nested" / "dir" / "prs.json")
    store.save(PrInfoGroups())
    assert store.path.exists()


def test_load_invalid_json_returns_none(tmp_path):
    path = tmp_path / "prs.json"
    path.write_text("{not json")

    assert SnapshotStore(path).load() is None


def test_load_wrong_shape_returns_none(tmp_path):
    path = tmp_path / "prs.json"
    path.write_text(json.dumps(["not", "a", "snapshot"]))

    assert SnapshotStore(path).load() is None


def test_load_pr_without_number_returns_none(tmp_path):
    path = tmp_path / "prs.json"
    path.write_text(json.dumps({"open": [{"title": "no number"}], "closed": []}))

    assert SnapshotStore(path).load() is None


def test_memory_store():
    store = MemorySnapshotStore()
    assert store.load() is None

    groups = make_groups()
    store.save(groups)

    assert store.load() is groups
    assert store.saves == 1


def test_load_unreadable_path_returns_none(tmp_path, caplog):
    directory = tmp_path / "prs.json"
    directory.mkdir()

    assert SnapshotStore(directory).load() is None
    assert "Ignoring unreadable snapshot" in caplog.text
