from __future__ import annotations

from coderank.analysis_diff import count_diff_lines, diff_stat
from coderank.models import DiffStat


def test_file_headers_count_as_one_addition_and_one_deletion() -> None:
    diff = "+++ b/f\n+line1\n+line2\n--- a/f\n-old1\n"
    assert diff_stat([diff]) == DiffStat(additions=3, deletions=2)


def test_stats_sum_across_files() -> None:
    a = "diff --git a/a b/a\n--- a/a\n+++ b/a\n@@ -1 +1 @@\n-x\n+y\n"
    b = "diff --git a/b b/b\n--- /dev/null\n+++ b/b\n@@ -0,0 +1,2 @@\n+1\n+2\n"
    assert diff_stat([a, b]) == DiffStat(additions=2 + 3, deletions=2 + 1)


def test_context_and_hunk_lines_are_not_counted() -> None:
    diff = "@@ -1,3 +1,3 @@\n keep\n-gone\n+new\n keep -not counted\n\\ No newline at end of file\n"
    assert count_diff_lines(diff) == (1, 1)


def test_empty_absent_and_binary_diffs_contribute_nothing() -> None:
    binary = "diff --git a/img.png b/img.png\nindex 1..2 100644\nBinary files a/img.png and b/img.png differ\n"
    assert count_diff_lines("") == (0, 0)
    assert count_diff_lines(None) == (0, 0)
    assert count_diff_lines(binary) == (0, 0)
    assert diff_stat([]) == DiffStat(0, 0)
    assert diff_stat([None, "", binary]) == DiffStat(0, 0)


def test_only_newline_ends_a_line() -> None:
    # A carriage return inside a content line must not start a new counted line.
    assert count_diff_lines("+a\r-b\n") == (1, 0)
