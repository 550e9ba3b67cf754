from __future__ import annotations

import dataclasses

from .dedup import DedupStore
from .models import UNLIMITED_COMMIT_LIMIT, CommitRecord, DiffStat


@dataclasses.dataclass(frozen=True)
class CommitFilter:
    commit_limit: int = UNLIMITED_COMMIT_LIMIT
    dedup: DedupStore | None = None

    def already_counted(self, commit: CommitRecord) -> bool:
        if self.dedup is None:
            return False
        return self.dedup.check_and_insert(commit.id)

    def release(self, commit_ids: list[str]) -> None:
        if self.dedup is not None and commit_ids:
            self.dedup.release(commit_ids)

    def counts(self, stat: DiffStat) -> bool:
        # Bulk imports/vendoring; deletions alone never exclude a commit.
        return stat.additions < self.commit_limit
