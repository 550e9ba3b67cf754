from __future__ import annotations

import csv
import html
import io
import json

from .analysis_aggregate import Aggregate

FORMATS = ("ranking", "csv", "json")


def render_ranking(aggr: Aggregate) -> str:
    lines: list[str] = []
    for i, a in enumerate(aggr.ranking()):
        lines.append(f"  {i}. {html.escape(a.name)} +{a.plus} -{a.minus}")
        lines.append("")
    return "\n".join(lines) + ("\n" if lines else "")


def render_csv(aggr: Aggregate) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    for a in aggr.authors():
        writer.writerow([a, aggr.name(a), aggr.plus(a), aggr.minus(a)])
    return buf.getvalue()


def render_json(aggr: Aggregate) -> str:
    rows = [{"author": a.key, "name": a.name, "plus": a.plus, "minus": a.minus} for a in aggr.ranking()]
    return json.dumps(rows, indent=2, sort_keys=False) + "\n"


def render(aggr: Aggregate, fmt: str) -> str:
    if fmt == "csv":
        return render_csv(aggr)
    if fmt == "json":
        return render_json(aggr)
    if fmt == "ranking":
        return render_ranking(aggr)
    raise ValueError(f"Unknown format: {fmt!r} (expected one of: {', '.join(FORMATS)})")
