from __future__ import annotations

import threading
from collections.abc import Iterable

from .errors import DedupStoreUnavailable

SHARED_MEMORY_WORKERS = ("thread",)


class DedupStore:
    """Commit ids already counted during one run, shared by every worker thread."""

    def __init__(self) -> None:
        self._seen: set[str] = set()
        self._lock = threading.Lock()

    def check_and_insert(self, commit_id: str) -> bool:
        """Record `commit_id`; returns True when it had already been recorded."""
        with self._lock:
            if commit_id in self._seen:
                return True
            self._seen.add(commit_id)
            return False

    def release(self, commit_ids: Iterable[str]) -> None:
        """Forget ids recorded by a repository whose results were discarded."""
        with self._lock:
            self._seen.difference_update(commit_ids)

    def __contains__(self, commit_id: object) -> bool:
        with self._lock:
            return commit_id in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)


def open_dedup_store(*, unique: bool, workers: str) -> DedupStore | None:
    if not unique:
        return None
    if workers not in SHARED_MEMORY_WORKERS:
        raise DedupStoreUnavailable(
            f"--unique needs workers that share memory ({', '.join(SHARED_MEMORY_WORKERS)}), got {workers!r}"
        )
    return DedupStore()
