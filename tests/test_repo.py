from __future__ import annotations

import datetime as dt
import os
import subprocess
from pathlib import Path

import pytest

from coderank.analysis_aggregate import Aggregate
from coderank.analysis_filter import CommitFilter
from coderank.analysis_repo import aggregate_repo
from coderank.errors import RepositoryUnavailable
from coderank.git import repository_ref


def _run(cmd: list[str], *, cwd: Path, env: dict[str, str] | None = None) -> str:
    proc = subprocess.run(cmd, cwd=str(cwd), env=env, check=True, capture_output=True, text=True)
    return proc.stdout.strip()


def _init_origin(repo: Path) -> None:
    repo.mkdir(parents=True, exist_ok=True)
    _run(["git", "init"], cwd=repo)
    _run(["git", "symbolic-ref", "HEAD", "refs/heads/trunk"], cwd=repo)


def _commit(repo: Path, *, files: dict[str, str], name: str, email: str, date_iso: str) -> str:
    for rel, content in files.items():
        (repo / rel).write_text(content, encoding="utf-8")
    env = os.environ.copy()
    env["GIT_AUTHOR_NAME"] = name
    env["GIT_AUTHOR_EMAIL"] = email
    env["GIT_COMMITTER_NAME"] = name
    env["GIT_COMMITTER_EMAIL"] = email
    env["GIT_AUTHOR_DATE"] = date_iso
    env["GIT_COMMITTER_DATE"] = date_iso
    _run(["git", "add", "."], cwd=repo)
    _run(["git", "-c", "commit.gpgsign=false", "commit", "-m", f"change by {name}"], cwd=repo, env=env)
    return _run(["git", "rev-parse", "HEAD"], cwd=repo)


def _ts(date_iso: str) -> int:
    return int(dt.datetime.fromisoformat(date_iso.replace("Z", "+00:00")).timestamp())


def _origin_with_history(root: Path) -> Path:
    origin = root / "origin"
    _init_origin(origin)
    # new file: +++ and --- /dev/null headers count, so +3 -1
    _commit(origin, files={"a.txt": "a\nb\n"}, name="Ann", email="Ann@X.com", date_iso="2020-01-01T00:00:00Z")
    # modification: +2 -2
    _commit(origin, files={"a.txt": "a\nc\n"}, name="Ann Smith", email="ann@x.com", date_iso="2024-01-01T00:00:00Z")
    # new file: +2 -1
    _commit(origin, files={"b.txt": "1\n"}, name="Bob", email="bob@x.com", date_iso="2024-02-01T00:00:00Z")
    return origin


def test_aggregate_repo_counts_whole_history(tmp_path: Path) -> None:
    origin = _origin_with_history(tmp_path)
    ref = repository_ref(tmp_path / "cache", str(origin), "trunk")

    aggr = aggregate_repo(ref, 0, Aggregate())

    assert ref.cache_path.is_dir()
    assert set(aggr.authors()) == {"ann@x.com", "bob@x.com"}
    assert aggr.plus("ann@x.com") == 5
    assert aggr.minus("ann@x.com") == 3
    assert aggr.name("ann@x.com") == "Ann Smith"
    assert aggr.plus("bob@x.com") == 2
    assert aggr.minus("bob@x.com") == 1


def test_aggregate_repo_applies_cutoff(tmp_path: Path) -> None:
    origin = _origin_with_history(tmp_path)
    ref = repository_ref(tmp_path / "cache", str(origin), "trunk")

    aggr = aggregate_repo(ref, _ts("2024-01-01T00:00:00Z"), Aggregate())

    assert aggr.plus("ann@x.com") == 2
    assert aggr.minus("ann@x.com") == 2
    assert aggr.plus("bob@x.com") == 2


def test_aggregate_repo_applies_commit_limit(tmp_path: Path) -> None:
    origin = _origin_with_history(tmp_path)
    _commit(origin, files={"vendor.txt": "x\n" * 50}, name="Bob Vendoring", email="bob@x.com", date_iso="2024-03-01T00:00:00Z")
    ref = repository_ref(tmp_path / "cache", str(origin), "trunk")

    aggr = aggregate_repo(ref, 0, Aggregate(CommitFilter(commit_limit=10)))

    assert aggr.plus("bob@x.com") == 2
    assert aggr.minus("bob@x.com") == 1
    assert aggr.name("bob@x.com") == "Bob Vendoring"


def test_aggregate_repo_pulls_new_commits(tmp_path: Path) -> None:
    origin = _origin_with_history(tmp_path)
    ref = repository_ref(tmp_path / "cache", str(origin), "trunk")
    first = aggregate_repo(ref, 0, Aggregate())

    _commit(origin, files={"b.txt": "1\n2\n"}, name="Bob", email="bob@x.com", date_iso="2024-04-01T00:00:00Z")
    second = aggregate_repo(ref, 0, Aggregate())

    assert first.plus("bob@x.com") == 2
    assert second.plus("bob@x.com") == 2 + 2


def test_aggregate_repo_unknown_branch_is_unavailable(tmp_path: Path) -> None:
    origin = _origin_with_history(tmp_path)
    ref = repository_ref(tmp_path / "cache", str(origin), "no-such-branch")
    with pytest.raises(RepositoryUnavailable) as excinfo:
        aggregate_repo(ref, 0, Aggregate())
    assert excinfo.value.ref == ref
    assert "clone" in excinfo.value.cause


def test_aggregate_repo_missing_remote_is_unavailable(tmp_path: Path) -> None:
    ref = repository_ref(tmp_path / "cache", str(tmp_path / "does-not-exist"), "trunk")
    with pytest.raises(RepositoryUnavailable):
        aggregate_repo(ref, 0, Aggregate())
