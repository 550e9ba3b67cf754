from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .analysis_render import FORMATS
from .analysis_run import WORKER_MODELS, run
from .config import build_run_config, load_config
from .errors import ConfigurationError, DedupStoreUnavailable


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coderank",
        description="Rank authors by lines added/removed across many git repositories.",
    )
    parser.add_argument("repos", nargs="+", metavar="URL[ BRANCH]", help="Repository URL, optionally followed by a space and a branch (default: master).")
    parser.add_argument("--config", type=Path, default=Path("config.json"), help="Path to config.json.")
    parser.add_argument("--git", type=str, default=None, metavar="BIN", help="git command.")
    parser.add_argument("-c", "--cache-dir", dest="cache_dir", type=str, default=None, metavar="DIR", help="Cache directory for clones.")
    parser.add_argument("-s", "--since", type=str, default=None, metavar="DATE", help="Only count commits committed at or after DATE.")
    parser.add_argument("-U", "--unique", action="store_true", default=None, help="Count each commit id once across all repositories.")
    parser.add_argument("-l", "--limit", dest="commit_limit", type=int, default=None, metavar="LIMIT", help="Ignore commits adding LIMIT lines or more.")
    parser.add_argument("-P", "--parallel", type=int, default=None, metavar="N", help="Repositories analyzed concurrently (default: 3).")
    parser.add_argument("--workers", choices=list(WORKER_MODELS), default=None, help="Worker model (default: thread).")
    parser.add_argument("--format", choices=list(FORMATS), default=None, help="Output format (default: ranking).")
    parser.add_argument("-o", "--output", type=str, default=None, metavar="PATH", help="Write the rendered output to PATH instead of stdout.")
    return parser


def parse_url_branches(values: list[str]) -> list[tuple[str, str]]:
    out: list[tuple[str, str]] = []
    for v in values:
        parts = str(v).strip().split(None, 1)
        if not parts:
            continue
        url = parts[0]
        branch = parts[1].strip() if len(parts) > 1 else "master"
        out.append((url, branch))
    return list(dict.fromkeys(out))


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        config = build_run_config(args, load_config(args.config))
        url_branches = parse_url_branches(args.repos)
        if not url_branches:
            raise ConfigurationError("no repositories given")
        return run(config=config, url_branches=url_branches)
    except (ConfigurationError, DedupStoreUnavailable) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
