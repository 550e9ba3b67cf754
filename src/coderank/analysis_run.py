from __future__ import annotations

import contextlib
import sys
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from pathlib import Path

from .analysis_aggregate import Aggregate, merge_aggregates
from .analysis_filter import CommitFilter
from .analysis_render import render
from .analysis_repo import aggregate_repo
from .dedup import open_dedup_store
from .errors import ConfigurationError, RepositoryUnavailable
from .git import repository_ref
from .models import UNLIMITED_COMMIT_LIMIT, RepositoryRef, RunConfig

WORKER_MODELS = ("thread", "process")


def format_startup_header(*, config: RunConfig, refs: list[RepositoryRef]) -> str:
    limit = str(config.commit_limit) if config.commit_limit is not None else "none"
    lines = [
        "┌──────────────────────────────────────────────────────────────┐",
        "│                           coderank                            │",
        "└──────────────────────────────────────────────────────────────┘",
        "",
        "What to expect:",
        f"- Cache dir: {config.cache_dir}",
        f"- Since: {config.since}",
        f"- Parallel: {config.parallel} ({config.workers}s)  Unique: {'on' if config.unique else 'off'}  Commit limit: {limit}",
        f"- Output: {config.output if config.output else 'stdout'} ({config.format})",
        "",
        "> repositories:",
    ]
    lines.extend(f">  * {r.url} {r.branch}" for r in refs)
    lines.append("")
    return "\n".join(lines)


def analyze_repo(ref: RepositoryRef, since_ts: int, commit_filter: CommitFilter, git: str = "git") -> Aggregate:
    aggr = Aggregate(commit_filter)
    try:
        aggregate_repo(ref, since_ts, aggr, git=git)
    except RepositoryUnavailable as e:
        aggr.discard()
        print(f"  ignoring {ref.url} {ref.branch}: {e.cause}", file=sys.stderr)
        return Aggregate()
    return aggr.data()


def _progress_to_stderr() -> None:
    sys.stdout = sys.stderr


def _executor(workers: str, parallel: int) -> Executor:
    if workers == "process":
        # Child processes keep the parent's progress stream.
        if sys.stdout is sys.stderr:
            return ProcessPoolExecutor(max_workers=parallel, initializer=_progress_to_stderr)
        return ProcessPoolExecutor(max_workers=parallel)
    return ThreadPoolExecutor(max_workers=parallel)


def run_aggregation(
    refs: list[RepositoryRef],
    *,
    since_ts: int = 0,
    parallel: int = 3,
    commit_limit: int | None = None,
    unique: bool = False,
    workers: str = "thread",
    git: str = "git",
) -> Aggregate:
    """
    Aggregate every repository in `refs`, at most `parallel` at a time.

    A repository that cannot be synchronized or walked contributes an empty
    aggregate. Per-repository results are merged in `refs` order, whatever the
    completion order, so equal-length name ties resolve the same way every run.
    """
    if parallel < 1:
        raise ConfigurationError(f"parallel must be >= 1, got {parallel}")
    if commit_limit is not None and commit_limit < 1:
        raise ConfigurationError(f"commit limit must be >= 1, got {commit_limit}")
    if workers not in WORKER_MODELS:
        raise ConfigurationError(f"unknown worker model {workers!r} (expected one of: {', '.join(WORKER_MODELS)})")

    dedup = open_dedup_store(unique=unique, workers=workers)
    commit_filter = CommitFilter(
        commit_limit=commit_limit if commit_limit is not None else UNLIMITED_COMMIT_LIMIT,
        dedup=dedup,
    )

    results: list[Aggregate]
    if parallel == 1:
        results = []
        for i, ref in enumerate(refs, start=1):
            results.append(analyze_repo(ref, since_ts, commit_filter, git))
            if i % 10 == 0 or i == len(refs):
                print(f"Analyzed {i}/{len(refs)} repos...")
    else:
        with _executor(workers, parallel) as ex:
            futs = [ex.submit(analyze_repo, ref, since_ts, commit_filter, git) for ref in refs]
            for i, _fut in enumerate(as_completed(futs), start=1):
                if i % 10 == 0 or i == len(futs):
                    print(f"Analyzed {i}/{len(futs)} repos...")
            results = [fut.result() for fut in futs]

    return merge_aggregates(results)


def run(*, config: RunConfig, url_branches: list[tuple[str, str]]) -> int:
    refs = [repository_ref(config.cache_dir, url, branch) for url, branch in url_branches]

    # Without --output, stdout carries only the rendered result.
    progress = contextlib.redirect_stdout(sys.stderr) if config.output is None else contextlib.nullcontext()
    with progress:
        print(format_startup_header(config=config, refs=refs))
        aggr = run_aggregation(
            refs,
            since_ts=config.since_ts,
            parallel=config.parallel,
            commit_limit=config.commit_limit,
            unique=config.unique,
            workers=config.workers,
            git=config.git,
        )

    data = render(aggr, config.format)
    if config.output is None:
        sys.stdout.write(data)
        return 0

    output = Path(config.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(data, encoding="utf-8")
    print(f"Done. {len(aggr)} authors written to: {output}")
    return 0
