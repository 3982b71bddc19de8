"""Reconciliation of rename detection passes.

Renames are detected twice: once between the previous and the current
snapshot (historical) and once between the current snapshot and the work
tree. The two passes can disagree when a file recorded as a rename is
renamed again before the next snapshot, and both can overlap with the raw
added/removed sets. reconcile() folds them into one view in which every
rename is shown once and no rename end is also counted as an addition or
a removal.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping

from vgl.core.vcs import ChangeEntry, ChangeType

# source path -> target path, sources unique within one detection pass
RenameSet = Dict[str, str]


@dataclass(frozen=True)
class ReconcileResult:
    """Merged rename view and adjusted counts."""

    rename_targets: List[str] = field(default_factory=list)
    rename_sources: List[str] = field(default_factory=list)
    added: int = 0
    removed: int = 0

    @property
    def renamed(self) -> int:
        return len(self.rename_targets)


def renames_from_changes(changes: Iterable[ChangeEntry]) -> RenameSet:
    """Collect the rename edges of a diff."""
    renames: RenameSet = {}
    for change in changes:
        if change.change_type == ChangeType.RENAME and change.old_path and change.new_path:
            renames[change.old_path] = change.new_path
    return renames


def reconcile(
    historical: Mapping[str, str],
    working: Mapping[str, str],
    raw_added: Iterable[str],
    raw_removed: Iterable[str],
) -> ReconcileResult:
    """
    Merge historical and working-tree renames into one view.

    A historical target that is itself a working-tree source was renamed
    again after the snapshot; only the working-tree target is shown for
    it. Sources from both passes are always reported.

    The added count drops by one for each shown target found in
    raw_added, the removed count by one for each source found in
    raw_removed, neither below zero. A source that is removed for an
    unrelated reason is still subtracted.

    Args:
        historical: Renames between the previous and current snapshot
        working: Renames between the current snapshot and the work tree
        raw_added: Paths reported as added
        raw_removed: Paths reported as removed or missing

    Returns:
        ReconcileResult with targets and sources in detection order
    """
    added_paths = set(raw_added)
    removed_paths = set(raw_removed)

    targets: Dict[str, None] = {}
    for source, target in historical.items():
        if target not in working:
            targets.setdefault(target, None)
    for target in working.values():
        targets.setdefault(target, None)

    sources: Dict[str, None] = {}
    for source in list(historical) + list(working):
        sources.setdefault(source, None)

    added = len(added_paths)
    for target in targets:
        if target in added_paths:
            added = max(0, added - 1)

    removed = len(removed_paths)
    for source in sources:
        if source in removed_paths:
            removed = max(0, removed - 1)

    return ReconcileResult(
        rename_targets=list(targets),
        rename_sources=list(sources),
        added=added,
        removed=removed,
    )
