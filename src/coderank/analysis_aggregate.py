from __future__ import annotations

from collections.abc import Iterable

from .analysis_diff import diff_stat
from .analysis_filter import CommitFilter
from .identity import prefer_display_name
from .models import AuthorRank, CommitRecord


class Aggregate:
    """
    Per-author line tallies keyed by normalized author email.

    `authors()` are the keys that had at least one counted commit. Display names
    are tracked for every observed commit, including ones excluded by the size
    filter. Absent keys read as 0 / "".
    """

    def __init__(self, commit_filter: CommitFilter | None = None) -> None:
        self._filter = commit_filter or CommitFilter()
        self._plus: dict[str, int] = {}
        self._minus: dict[str, int] = {}
        self._names: dict[str, str] = {}
        self._claimed: list[str] = []

    def authors(self) -> list[str]:
        return list(self._plus)

    def plus(self, author: str) -> int:
        return self._plus.get(author, 0)

    def minus(self, author: str) -> int:
        return self._minus.get(author, 0)

    def name(self, author: str) -> str:
        return self._names.get(author, "")

    def __len__(self) -> int:
        return len(self._plus)

    def add(self, commit: CommitRecord) -> None:
        if self._filter.already_counted(commit):
            return
        if self._filter.dedup is not None:
            self._claimed.append(commit.id)

        author = commit.author_key
        stat = diff_stat(commit.diffs)
        if self._filter.counts(stat):
            self._plus[author] = self.plus(author) + stat.additions
            self._minus[author] = self.minus(author) + stat.deletions

        self._names[author] = prefer_display_name(self.name(author), commit.author_name)

    def merge(self, other: Aggregate) -> Aggregate:
        """Fold `other` into self. Equal-length names keep the one already in self."""
        for author in other.authors():
            self._plus[author] = self.plus(author) + other.plus(author)
            self._minus[author] = self.minus(author) + other.minus(author)
            self._names[author] = prefer_display_name(self.name(author), other.name(author))
        return self

    def discard(self) -> None:
        """Give back the commit ids this aggregate recorded in the shared store."""
        self._filter.release(self._claimed)
        self._claimed = []

    def data(self) -> Aggregate:
        """Filter-free copy, safe to hand across threads or processes."""
        out = Aggregate()
        out._plus = dict(self._plus)
        out._minus = dict(self._minus)
        out._names = dict(self._names)
        return out

    def ranking(self) -> list[AuthorRank]:
        rows = [AuthorRank(key=a, name=self.name(a), plus=self.plus(a), minus=self.minus(a)) for a in self.authors()]
        return sorted(rows, key=lambda r: -r.plus)

    def to_dict(self) -> dict[str, dict[str, object]]:
        return {a: {"name": self.name(a), "plus": self.plus(a), "minus": self.minus(a)} for a in self.authors()}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Aggregate):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"Aggregate({self.to_dict()!r})"


def merge_aggregates(aggregates: Iterable[Aggregate]) -> Aggregate:
    """Left fold in the given order; name ties resolve toward earlier aggregates."""
    out = Aggregate()
    for aggr in aggregates:
        out.merge(aggr)
    return out
