#!/usr/bin/env python3
"""
Classification of a fetched commit against the local branch.

Only three outcomes are handled: nothing to do, a fast-forward, or divergent
histories. Divergence is reported to the caller; it is never merged here.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from git import Commit, Repo

from .history import CommitRef


class MergeKind(Enum):
    """Relationship between local HEAD and a fetched commit."""
    UP_TO_DATE = "up_to_date"
    FAST_FORWARD = "fast_forward"
    DIVERGED = "diverged"


@dataclass(frozen=True)
class MergeAnalysis:
    """Outcome of :func:`analyze_merge`; ``target`` is set for fast-forwards."""

    kind: MergeKind
    target: Optional[CommitRef] = None

    @classmethod
    def up_to_date(cls) -> 'MergeAnalysis':
        return cls(MergeKind.UP_TO_DATE)

    @classmethod
    def fast_forward(cls, target: CommitRef) -> 'MergeAnalysis':
        return cls(MergeKind.FAST_FORWARD, target)

    @classmethod
    def diverged(cls) -> 'MergeAnalysis':
        return cls(MergeKind.DIVERGED)


def analyze_merge(repo: Repo, fetched: Commit) -> MergeAnalysis:
    """Classify ``fetched`` relative to the current HEAD of ``repo``.

    An unborn HEAD fast-forwards to anything. HEAD equal to, or descending
    from, the fetched commit is up to date.
    """
    if not repo.head.is_valid():
        return MergeAnalysis.fast_forward(CommitRef.from_commit(fetched))

    local = repo.head.commit
    if local.binsha == fetched.binsha or repo.is_ancestor(fetched, local):
        return MergeAnalysis.up_to_date()
    if repo.is_ancestor(local, fetched):
        return MergeAnalysis.fast_forward(CommitRef.from_commit(fetched))
    return MergeAnalysis.diverged()
