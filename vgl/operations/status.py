"""Status classification for a VGL work tree."""

import logging
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Pattern, Sequence, Set, Union

from vgl.core.config import UndecidedFileList
from vgl.core.repository import SIDECAR_NAME, UNDECIDED_NAME
from vgl.core.vcs import RawStatus
from vgl.operations.renames import RenameSet, reconcile, renames_from_changes
from vgl.utils.nested import is_inside_nested_repo

logger = logging.getLogger(__name__)

SIDECAR_FILES = (SIDECAR_NAME, UNDECIDED_NAME)


@dataclass
class StatusModel:
    """
    Classification of every path in a work tree.

    Built once per query by StatusClassifier and treated as read-only by
    consumers. Path lists hold repo-relative, '/' separated paths without
    duplicates, in a stable display order.
    """

    modified_count: int = 0
    added_count: int = 0
    removed_count: int = 0
    renamed_count: int = 0

    tracked_paths: List[str] = field(default_factory=list)
    untracked_paths: List[str] = field(default_factory=list)
    ignored_paths: List[str] = field(default_factory=list)
    undecided_paths: List[str] = field(default_factory=list)

    rename_targets: List[str] = field(default_factory=list)
    rename_sources: List[str] = field(default_factory=list)

    # raw modified/added/removed/missing/untracked sets were not all empty
    dirty: bool = False

    verbose: bool = False
    very_verbose: bool = False

    def has_changes(self) -> bool:
        """
        True if the work tree differs from the latest snapshot.

        Renames recorded by the latest snapshot itself are history, so a
        clean tree right after committing a rename has no changes.
        """
        return self.dirty

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _filter_regex(pattern: str) -> Pattern:
    parts = []
    for c in pattern:
        if c == '*':
            parts.append('.*')
        else:
            parts.append(re.escape(c))
    return re.compile(''.join(parts))


class PathFilter:
    """
    Status filters compiled once for repeated matching.

    An empty filter list passes everything. A filter without '*' must
    equal the path; with '*' it matches the whole path with '*' standing
    for any run of characters and every other character literal.
    """

    def __init__(self, filters: Optional[Sequence[str]] = None):
        self.literals: Set[str] = set()
        self.patterns: List[Pattern] = []
        for pattern in filters or []:
            if '*' in pattern:
                self.patterns.append(_filter_regex(pattern))
            else:
                self.literals.add(pattern)

    def is_empty(self) -> bool:
        return not self.literals and not self.patterns

    def matches(self, path: str) -> bool:
        if self.is_empty():
            return True
        if path in self.literals:
            return True
        return any(regex.fullmatch(path) for regex in self.patterns)

    def renames(self, renames: RenameSet) -> RenameSet:
        """Keep the rename pairs with at least one end passing the filter."""
        if self.is_empty():
            return dict(renames)
        return {source: target for source, target in renames.items()
                if self.matches(source) or self.matches(target)}


def matches_filter(path: str, filters: Optional[Sequence[str]]) -> bool:
    """Check if a path passes the status filters (see PathFilter)."""
    return PathFilter(filters).matches(path)


def _ordered(paths: Iterable[str], path_filter: PathFilter, sort: bool = True) -> List[str]:
    seen = {}
    for path in (sorted(paths) if sort else paths):
        path = path.replace('\\', '/')
        if path_filter.matches(path):
            seen.setdefault(path, None)
    return list(seen)


class StatusClassifier:
    """
    Builds a StatusModel from the version control system's raw status.

    Raw status is required; without it the result is an empty model.
    Rename detection is best effort: each pass that cannot run (no
    snapshot yet, no parent snapshot, collaborator failure) counts as
    detecting no renames.
    """

    def classify(
        self,
        vcs,
        filters: Optional[Sequence[str]] = None,
        verbose: bool = False,
        very_verbose: bool = False,
    ) -> StatusModel:
        """
        Classify the work tree.

        Args:
            vcs: VersionControl implementation for the work tree
            filters: Literal paths or '*' patterns restricting every set
            verbose: Passed through for presentation
            very_verbose: Passed through for presentation

        Returns:
            StatusModel (empty if raw status could not be read)
        """
        model = StatusModel(verbose=verbose, very_verbose=very_verbose)
        path_filter = PathFilter(filters)

        try:
            status = vcs.raw_status()
        except Exception as e:
            logger.debug("Raw status unavailable, returning empty status: %s", e)
            return model

        modified = _ordered(status.modified | status.changed, path_filter)
        added = _ordered(status.added, path_filter)
        removed = _ordered(status.removed | status.missing, path_filter)
        untracked = _ordered(status.untracked, path_filter)

        head = self.resolve_head(vcs)
        historical = path_filter.renames(self.historical_renames(vcs, head))
        working = path_filter.renames(self.working_tree_renames(vcs, head))

        result = reconcile(historical, working, added, removed)

        model.modified_count = len(modified)
        model.added_count = result.added
        model.removed_count = result.removed
        model.rename_targets = result.rename_targets
        model.rename_sources = result.rename_sources
        model.renamed_count = result.renamed

        model.tracked_paths = modified
        model.untracked_paths = untracked
        model.ignored_paths = _ordered(status.ignored_not_in_index, path_filter)
        model.dirty = bool(modified or added or removed or untracked)

        return model

    @staticmethod
    def resolve_head(vcs) -> Optional[str]:
        try:
            return vcs.resolve_reference('HEAD')
        except Exception as e:
            logger.debug("Could not resolve HEAD: %s", e)
            return None

    def historical_renames(self, vcs, head: Optional[str]) -> RenameSet:
        """Renames recorded by the latest snapshot; empty without a parent."""
        if head is None:
            return {}
        try:
            parent = vcs.parent_of(head)
            if parent is None:
                return {}
            return renames_from_changes(vcs.diff_snapshots(parent, head, True))
        except Exception as e:
            logger.debug("Historical rename detection skipped: %s", e)
            return {}

    def working_tree_renames(self, vcs, head: Optional[str]) -> RenameSet:
        """Renames in the work tree since the latest snapshot."""
        if head is None:
            return {}
        try:
            return renames_from_changes(vcs.diff_snapshot_to_working_tree(head, True))
        except Exception as e:
            logger.debug("Working tree rename detection skipped: %s", e)
            return {}


def compute_undecided_files(vcs, root: Union[str, Path], status: Optional[RawStatus] = None) -> List[str]:
    """
    Compute the files the user has not yet tracked or ignored.

    These are the untracked, non-ignored files minus VGL's sidecar files,
    minus files that are the target of a detected rename (they continue a
    tracked file), minus anything inside a nested repository. When raw
    status cannot be read, every non-ignored file counts.

    Nothing is persisted; see UndecidedFileList.save.

    Args:
        vcs: VersionControl implementation for the work tree
        root: Repository root
        status: Raw status to reuse, fetched from vcs if omitted

    Returns:
        Sorted repo-relative paths
    """
    base = Path(root).resolve()

    if status is None:
        try:
            status = vcs.raw_status()
        except Exception as e:
            logger.debug("Raw status unavailable, using non-ignored files: %s", e)

    if status is None:
        candidates = vcs.list_non_ignored_files(base)
        excluded = set()
    else:
        candidates = status.untracked - status.ignored_not_in_index
        classifier = StatusClassifier()
        head = classifier.resolve_head(vcs)
        excluded = set(classifier.working_tree_renames(vcs, head).values())
        excluded.update(classifier.historical_renames(vcs, head).values())

    undecided = []
    for path in sorted(candidates):
        path = path.replace('\\', '/')
        if path in SIDECAR_FILES or path in excluded:
            continue
        if is_inside_nested_repo(base, path):
            continue
        undecided.append(path)
    return undecided


def load_undecided_into(model: StatusModel, root: Union[str, Path],
                        filters: Optional[Sequence[str]] = None) -> StatusModel:
    """Fill model.undecided_paths from the persisted undecided list."""
    model.undecided_paths = _ordered(UndecidedFileList.load(root), PathFilter(filters), sort=False)
    return model


def status_for(repo, filters: Optional[Sequence[str]] = None, verbose: bool = False,
               very_verbose: bool = False, include_undecided: bool = True) -> StatusModel:
    """
    Classify a Repository and optionally attach its undecided files.

    Args:
        repo: vgl.core.repository.Repository
        filters: Literal paths or '*' patterns
        verbose: Passed through for presentation
        very_verbose: Passed through for presentation
        include_undecided: Read the persisted undecided list into the model

    Returns:
        StatusModel
    """
    model = StatusClassifier().classify(repo.vcs, filters, verbose, very_verbose)
    if include_undecided:
        load_undecided_into(model, repo.work_tree, filters)
    return model
