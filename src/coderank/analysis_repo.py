from __future__ import annotations

from .analysis_aggregate import Aggregate
from .git import iter_history, synchronize
from .models import RepositoryRef


def aggregate_repo(ref: RepositoryRef, since_ts: int, aggregate: Aggregate, *, git: str = "git") -> Aggregate:
    """
    Synchronize `ref` and fold every commit on its branch with commit time >= `since_ts`
    into `aggregate`. Raises RepositoryUnavailable when the clone/pull or the history
    walk fails; `aggregate` may then hold a partial result and should be discarded.
    """
    synchronize(ref, git=git)
    for commit in iter_history(ref, since_ts, git=git):
        aggregate.add(commit)
    return aggregate
