from __future__ import annotations

import argparse
import datetime as dt
import json
from pathlib import Path

from .analysis_render import FORMATS
from .analysis_run import WORKER_MODELS
from .errors import ConfigurationError
from .models import RunConfig

DEFAULTS: dict[str, object] = {
    "git": "git",
    "cache_dir": "/tmp/coderank",
    "since": "1970-01-01",
    "parallel": 3,
    "commit_limit": None,
    "unique": False,
    "workers": "thread",
    "format": "ranking",
    "output": None,
}


def load_config(config_path: Path) -> dict:
    if not config_path.exists():
        return {}
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{config_path}: invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path}: expected a JSON object")
    unknown = sorted(set(data) - set(DEFAULTS))
    if unknown:
        raise ConfigurationError(f"{config_path}: unknown keys: {', '.join(unknown)}")
    return data


def parse_since(value: str) -> int:
    s = (value or "").strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        d = dt.datetime.fromisoformat(s)
    except ValueError as e:
        raise ConfigurationError(f"Invalid --since date: {value!r} (expected YYYY-MM-DD or an ISO timestamp)") from e
    if d.tzinfo is None:
        d = d.replace(tzinfo=dt.timezone.utc)
    return int(d.timestamp())


def _as_int(key: str, value: object) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from e


def build_run_config(args: argparse.Namespace, config: dict) -> RunConfig:
    """CLI values win over config.json values, which win over DEFAULTS."""
    merged = dict(DEFAULTS)
    merged.update(config)
    for key in DEFAULTS:
        value = getattr(args, key, None)
        if value is not None:
            merged[key] = value

    git = str(merged["git"] or "").strip()
    if not git:
        raise ConfigurationError("git command must not be empty")

    parallel = _as_int("parallel", merged["parallel"])
    if parallel < 1:
        raise ConfigurationError(f"parallel must be >= 1, got {parallel}")

    commit_limit: int | None = None
    if merged["commit_limit"] is not None:
        commit_limit = _as_int("commit_limit", merged["commit_limit"])
        if commit_limit < 1:
            raise ConfigurationError(f"commit limit must be >= 1, got {commit_limit}")

    workers = str(merged["workers"]).strip().lower()
    if workers not in WORKER_MODELS:
        raise ConfigurationError(f"unknown worker model {workers!r} (expected one of: {', '.join(WORKER_MODELS)})")

    unique = bool(merged["unique"])
    if unique and workers != "thread":
        raise ConfigurationError("--unique shares one commit-id store across workers; it requires --workers thread")

    fmt = str(merged["format"]).strip().lower()
    if fmt not in FORMATS:
        raise ConfigurationError(f"unknown format {fmt!r} (expected one of: {', '.join(FORMATS)})")

    since = str(merged["since"])
    output = merged["output"]

    return RunConfig(
        git=git,
        cache_dir=Path(str(merged["cache_dir"])),
        since=since,
        since_ts=parse_since(since),
        parallel=parallel,
        commit_limit=commit_limit,
        unique=unique,
        workers=workers,
        format=fmt,
        output=Path(str(output)) if output else None,
    )
