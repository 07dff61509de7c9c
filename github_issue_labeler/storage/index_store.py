"""Append-only storage of embedded issues as JSON lines."""

import logging
import threading
from collections.abc import Iterable, Iterator
from datetime import datetime
from pathlib import Path
from typing import Protocol

from .models import IndexedIssueRecord

logger = logging.getLogger(__name__)


class IssueStore(Protocol):
    """Query/insert interface over indexed issues."""

    def append(self, records: Iterable[IndexedIssueRecord]) -> int: ...

    def open_issues(self, owner: str, repo: str) -> list[IndexedIssueRecord]: ...

    def updated_ats(self, install_id: int) -> dict[int, datetime]: ...


class IssueIndexStore:
    """Stores issue snapshots in one JSON-lines file per repository.

    Rows are never rewritten. Readers resolve the latest snapshot of each
    issue by inserted_at, later lines winning ties.
    """

    def __init__(self, base_path: str | Path = "data/index"):
        """Initialize index store.

        Args:
            base_path: Directory holding the index files
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _generate_filename(self, owner: str, repo: str) -> str:
        return f"{owner}_{repo}.jsonl"

    def _get_file_path(self, owner: str, repo: str) -> Path:
        return self.base_path / self._generate_filename(owner, repo)

    def _read(self, path: Path) -> Iterator[IndexedIssueRecord]:
        with open(path, encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    yield IndexedIssueRecord.model_validate_json(line)
                except ValueError as e:
                    logger.warning("Skipping corrupt row %s:%d: %s", path, line_number, e)

    def append(self, records: Iterable[IndexedIssueRecord]) -> int:
        """Append snapshots; returns how many were written."""
        by_file: dict[Path, list[str]] = {}
        for record in records:
            path = self._get_file_path(record.owner, record.repo)
            by_file.setdefault(path, []).append(record.model_dump_json())

        written = 0
        with self._lock:
            for path, lines in by_file.items():
                with open(path, "a", encoding="utf-8") as f:
                    f.write("\n".join(lines) + "\n")
                written += len(lines)
        return written

    def latest(self, owner: str, repo: str) -> list[IndexedIssueRecord]:
        """Latest snapshot of every indexed issue, in first-seen order."""
        path = self._get_file_path(owner, repo)
        if not path.exists():
            return []

        latest: dict[int, IndexedIssueRecord] = {}
        with self._lock:
            for record in self._read(path):
                if record.owner != owner or record.repo != repo:
                    continue
                current = latest.get(record.id)
                if current is None or record.inserted_at >= current.inserted_at:
                    latest[record.id] = record
        return list(latest.values())

    def open_issues(self, owner: str, repo: str) -> list[IndexedIssueRecord]:
        """Latest snapshots that are open issues, not pull requests."""
        return [
            record
            for record in self.latest(owner, repo)
            if record.state == "open" and not record.is_pull_request
        ]

    def updated_ats(self, install_id: int) -> dict[int, datetime]:
        """updated_at of the latest snapshot of each issue of an installation."""
        latest: dict[int, IndexedIssueRecord] = {}
        with self._lock:
            for path in sorted(self.base_path.glob("*.jsonl")):
                for record in self._read(path):
                    if record.install_id != install_id:
                        continue
                    current = latest.get(record.id)
                    if current is None or record.inserted_at >= current.inserted_at:
                        latest[record.id] = record
        return {issue_id: record.updated_at for issue_id, record in latest.items()}
