from __future__ import annotations

import subprocess
import threading
from collections.abc import Iterator
from pathlib import Path
from urllib.parse import quote_plus

from .errors import RepositoryUnavailable
from .models import CommitRecord, RepositoryRef

COMMIT_MARKER = "@@@"
FILE_MARKER = "diff --git "


def run_git(args: list[str], cwd: Path, git: str = "git") -> tuple[int, str, str]:
    proc = subprocess.run(
        [git, *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
    )
    return proc.returncode, proc.stdout, proc.stderr


def cache_dirname(url: str, branch: str) -> str:
    name = url.rstrip("/").rsplit("/", 1)[-1]
    if name.endswith(".git"):
        name = name[:-4]
    return ".".join(quote_plus(raw) for raw in (name, branch, url))


def repository_ref(cache_dir: Path, url: str, branch: str) -> RepositoryRef:
    return RepositoryRef(url=url, branch=branch, cache_path=Path(cache_dir) / cache_dirname(url, branch))


def _run_or_raise(ref: RepositoryRef, args: list[str], cwd: Path, git: str) -> None:
    try:
        code, _, err = run_git(args, cwd=cwd, git=git)
    except (OSError, subprocess.SubprocessError) as e:
        raise RepositoryUnavailable(ref, f"'{git} {args[0]}' failed: {e}") from e
    if code != 0:
        raise RepositoryUnavailable(ref, f"'{git} {args[0]}' exited {code}: {err.strip()[:500]}")


def clone_if_missing(ref: RepositoryRef, git: str = "git") -> None:
    if ref.cache_path.exists():
        return
    try:
        ref.cache_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise RepositoryUnavailable(ref, f"cannot create {ref.cache_path.parent}: {e}") from e
    print(f"> clone {ref.url} {ref.branch} at {ref.cache_path}")
    _run_or_raise(
        ref,
        ["clone", ref.url, "-b", ref.branch, "--single-branch", str(ref.cache_path)],
        cwd=ref.cache_path.parent,
        git=git,
    )


def synchronize(ref: RepositoryRef, git: str = "git") -> None:
    clone_if_missing(ref, git=git)
    print(f"> pull {ref.url} {ref.branch} at {ref.cache_path}")
    _run_or_raise(ref, ["pull", "--ff-only"], cwd=ref.cache_path, git=git)


def _parse_marker(line: str) -> tuple[str, int, str, str]:
    parts = line[len(COMMIT_MARKER) :].split("\t", 3)
    sha = parts[0] if len(parts) > 0 else ""
    try:
        ts = int(parts[1]) if len(parts) > 1 else 0
    except ValueError:
        ts = 0
    email = parts[2] if len(parts) > 2 else ""
    name = parts[3] if len(parts) > 3 else ""
    return sha, ts, email, name


def iter_history(ref: RepositoryRef, since_ts: int, git: str = "git") -> Iterator[CommitRecord]:
    """
    Stream the commits reachable from `ref.branch` whose commit time is >= `since_ts`.

    The whole branch is walked; commit dates are not monotonic along history so
    the walk is never cut off at the first old commit. Single pass: the
    generator drives one `git log` process.
    """
    pretty = f"{COMMIT_MARKER}%H\t%ct\t%ae\t%an"
    cmd = [git, "log", ref.branch, "-p", "--no-color", "--no-ext-diff", f"--pretty=format:{pretty}", "--"]
    try:
        proc = subprocess.Popen(
            cmd,
            cwd=str(ref.cache_path),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as e:
        raise RepositoryUnavailable(ref, f"failed to start git log: {e}") from e

    stderr_chunks: list[bytes] = []
    stderr_chars = 0
    max_stderr_chars = 50_000

    def drain_stderr() -> None:
        nonlocal stderr_chars
        if proc.stderr is None:
            return
        while True:
            chunk = proc.stderr.read(8192)
            if not chunk:
                return
            if stderr_chars >= max_stderr_chars:
                continue
            take = chunk[: max_stderr_chars - stderr_chars]
            stderr_chunks.append(take)
            stderr_chars += len(take)

    stderr_thread = threading.Thread(target=drain_stderr, daemon=True)
    stderr_thread.start()

    header: tuple[str, int, str, str] | None = None
    files: list[list[str]] = []

    def build() -> CommitRecord | None:
        if header is None:
            return None
        sha, ts, email, name = header
        if ts < since_ts:
            return None
        return CommitRecord(
            id=sha,
            author_email=email,
            author_name=name,
            committed_at=ts,
            diffs=tuple("\n".join(lines) for lines in files),
        )

    finished = False
    try:
        assert proc.stdout is not None
        # Binary read: only "\n" ends a line, as in the patch format.
        for raw_line in proc.stdout:
            line = raw_line.rstrip(b"\n").decode("utf-8", errors="replace")
            if line.startswith(COMMIT_MARKER):
                commit = build()
                if commit is not None:
                    yield commit
                header = _parse_marker(line)
                files = []
                continue
            if line.startswith(FILE_MARKER):
                files.append([line])
                continue
            if files:
                files[-1].append(line)

        code = proc.wait()
        stderr_thread.join()
        if code != 0:
            stderr = b"".join(stderr_chunks).decode("utf-8", errors="replace")
            raise RepositoryUnavailable(ref, f"git log exited {code}: {stderr.strip()[:500]}")

        commit = build()
        if commit is not None:
            yield commit
        finished = True
    finally:
        if not finished and proc.poll() is None:
            proc.kill()
            proc.wait()
        stderr_thread.join()
        for pipe in (proc.stdout, proc.stderr):
            if pipe is not None:
                pipe.close()
