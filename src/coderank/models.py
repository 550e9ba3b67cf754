from __future__ import annotations

import dataclasses
from pathlib import Path

from .identity import normalize_email

UNLIMITED_COMMIT_LIMIT = 0x7FFFFFFF


@dataclasses.dataclass(frozen=True)
class RepositoryRef:
    url: str
    branch: str
    cache_path: Path


@dataclasses.dataclass(frozen=True)
class CommitRecord:
    id: str
    author_email: str
    author_name: str
    committed_at: int  # unix seconds
    diffs: tuple[str, ...] = ()  # one unified diff text per changed file

    @property
    def author_key(self) -> str:
        return normalize_email(self.author_email)


@dataclasses.dataclass(frozen=True)
class DiffStat:
    additions: int = 0
    deletions: int = 0


@dataclasses.dataclass(frozen=True)
class AuthorRank:
    key: str
    name: str
    plus: int
    minus: int


@dataclasses.dataclass(frozen=True)
class RunConfig:
    git: str = "git"
    cache_dir: Path = Path("/tmp/coderank")
    since: str = "1970-01-01"
    since_ts: int = 0
    parallel: int = 3
    commit_limit: int | None = None
    unique: bool = False
    workers: str = "thread"
    format: str = "ranking"
    output: Path | None = None
