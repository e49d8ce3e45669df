"""
Turns change descriptions into the set of paths a sync attempt must touch.

Both functions are pure: they never look at the store or the network.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Mapping

from notesync.errors import ValidationError
from notesync.utils.markdown import is_tracked_path

ADDED = "added"
MODIFIED = "modified"
REMOVED = "removed"


@dataclass(frozen=True)
class CommitChange:
    """File-level deltas of one pushed commit."""

    added: tuple = ()
    modified: tuple = ()
    removed: tuple = ()

    @classmethod
    def from_payload(cls, data: Mapping) -> "CommitChange":
        if not isinstance(data, Mapping):
            raise ValidationError("commits: each commit must be an object")

        lists = {}
        for key in (ADDED, MODIFIED, REMOVED):
            value = data.get(key) or []
            if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
                raise ValidationError(f"commits.{key}: expected a list of paths")
            lists[key] = tuple(value)
        return cls(**lists)


@dataclass
class ReconcilePlan:
    """Disjoint path lists. Order is first appearance; each path occurs once."""

    to_upsert: List[str] = field(default_factory=list)
    to_delete: List[str] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)


def reconcile_commits(commits: Iterable[CommitChange]) -> ReconcilePlan:
    """Collapse an ordered commit list into the final action per path.

    Later commits overwrite earlier ones, so a path added then removed in the
    same push ends up deleted, and a path modified several times is fetched once.
    """
    final_action = {}
    ignored = []

    for commit in commits:
        for action, paths in ((ADDED, commit.added), (MODIFIED, commit.modified), (REMOVED, commit.removed)):
            for path in paths:
                if not is_tracked_path(path):
                    if path not in ignored:
                        ignored.append(path)
                    continue
                final_action[path] = action

    plan = ReconcilePlan(ignored=ignored)
    for path, action in final_action.items():
        if action == REMOVED:
            plan.to_delete.append(path)
        else:
            plan.to_upsert.append(path)
    return plan


def reconcile_listing(remote_paths: Iterable[str], stored_paths: Iterable[str]) -> ReconcilePlan:
    """Diff a full remote listing against the stored paths.

    Every remote path is re-fetched because there is no history to tell which
    ones changed; stored paths missing remotely are deleted.
    """
    remote, ignored = set(), set()
    for path in remote_paths:
        (remote if is_tracked_path(path) else ignored).add(path)
    stored = {path for path in stored_paths if is_tracked_path(path)}

    return ReconcilePlan(
        to_upsert=sorted(remote),
        to_delete=sorted(stored - remote),
        ignored=sorted(ignored),
    )
