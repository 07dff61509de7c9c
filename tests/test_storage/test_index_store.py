"""Tests for the JSON-lines issue index."""

from datetime import datetime, timedelta, timezone

import pytest

from github_issue_labeler.storage import IndexedIssueRecord, IssueIndexStore

T0 = datetime(2024, 3, 1, tzinfo=timezone.utc)


def _record(issue_id: int, inserted: int, **overrides) -> IndexedIssueRecord:
    fields = {
        "id": issue_id,
        "install_id": 7,
        "owner": "acme",
        "repo": "widgets",
        "number": issue_id,
        "title": f"Issue {issue_id}",
        "state": "open",
        "created_at": T0,
        "updated_at": T0 + timedelta(hours=inserted),
        "inserted_at": T0 + timedelta(hours=inserted),
        "embedding": [0.5, 0.5],
    }
    fields.update(overrides)
    return IndexedIssueRecord(**fields)


@pytest.fixture
def store(temp_data_dir) -> IssueIndexStore:
    return IssueIndexStore(temp_data_dir / "index")


class TestIssueIndexStore:
    """Test IssueIndexStore class."""

    def test_one_file_per_repository(self, store) -> None:
        written = store.append(
            [_record(1, 0), _record(2, 0, owner="other", repo="thing")]
        )

        assert written == 2
        assert (store.base_path / "acme_widgets.jsonl").exists()
        assert (store.base_path / "other_thing.jsonl").exists()

    def test_latest_snapshot_wins(self, store) -> None:
        store.append([_record(1, 0, title="old"), _record(2, 0)])
        store.append([_record(1, 5, title="new")])

        latest = {r.id: r for r in store.latest("acme", "widgets")}

        assert latest[1].title == "new"
        assert len(latest) == 2

    def test_later_line_wins_ties(self, store) -> None:
        store.append([_record(1, 3, title="first")])
        store.append([_record(1, 3, title="second")])

        assert store.latest("acme", "widgets")[0].title == "second"

    def test_open_issues_use_latest_state(self, store) -> None:
        store.append([_record(1, 0), _record(2, 0), _record(3, 0, is_pull_request=True)])
        store.append([_record(2, 1, state="closed")])

        open_ids = [r.id for r in store.open_issues("acme", "widgets")]

        assert open_ids == [1]

    def test_unknown_repository_is_empty(self, store) -> None:
        assert store.open_issues("nobody", "nothing") == []

    def test_updated_ats_per_installation(self, store) -> None:
        store.append([_record(1, 0), _record(2, 0, install_id=8, owner="b", repo="c")])
        store.append([_record(1, 2)])

        assert store.updated_ats(7) == {1: T0 + timedelta(hours=2)}
        assert store.updated_ats(8) == {2: T0}

    def test_corrupt_rows_skipped(self, store) -> None:
        store.append([_record(1, 0)])
        with open(store.base_path / "acme_widgets.jsonl", "a") as f:
            f.write("{not json\n")

        assert [r.id for r in store.latest("acme", "widgets")] == [1]
