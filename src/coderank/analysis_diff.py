from __future__ import annotations

from collections.abc import Iterable

from .models import DiffStat


def count_diff_lines(diff: str | None) -> tuple[int, int]:
    """
    Raw line-prefix count over a unified diff text.

    File headers are counted like content lines: `+++ b/path` adds one
    addition and `--- a/path` one deletion per file.
    """
    if not diff:
        return 0, 0
    additions = 0
    deletions = 0
    for line in diff.split("\n"):
        if line.startswith("+"):
            additions += 1
        elif line.startswith("-"):
            deletions += 1
    return additions, deletions


def diff_stat(diffs: Iterable[str | None]) -> DiffStat:
    additions = 0
    deletions = 0
    for diff in diffs:
        a, d = count_diff_lines(diff)
        additions += a
        deletions += d
    return DiffStat(additions=additions, deletions=deletions)
