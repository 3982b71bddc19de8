"""Read-only access to the version control system backing a work tree.

VGL never writes snapshots or the index itself. Everything it needs from
the version control system goes through the VersionControl protocol:
reference resolution, snapshot diffs with rename detection, raw status
sets and the list of non-ignored files. GitTree implements the protocol
on top of GitPython.
"""

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Protocol, Set, Union, runtime_checkable

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from vgl.core.errors import RepositoryNotFoundError
from vgl.utils.nested import list_nested_repos

logger = logging.getLogger(__name__)


class ChangeType(Enum):
    """Kind of change between two snapshots."""

    ADD = 'A'
    MODIFY = 'M'
    DELETE = 'D'
    RENAME = 'R'
    COPY = 'C'
    TYPE = 'T'

    @classmethod
    def from_letter(cls, letter: str) -> 'ChangeType':
        """Map a --name-status letter (R100, C075, M, ...) to a ChangeType."""
        try:
            return cls(letter[:1])
        except ValueError:
            return cls.MODIFY


@dataclass(frozen=True)
class ChangeEntry:
    """One path-level change between two snapshots."""

    old_path: Optional[str]
    new_path: Optional[str]
    change_type: ChangeType

    @property
    def path(self) -> Optional[str]:
        """The path a reader would name the change by."""
        if self.change_type == ChangeType.DELETE:
            return self.old_path
        return self.new_path


@dataclass
class RawStatus:
    """
    Raw status sets of a work tree against its current snapshot.

    modified: differs between index and work tree
    changed: differs between snapshot and index
    added: in index, not in snapshot
    removed: in snapshot, not in index
    missing: in index, not in work tree
    untracked: in work tree only, not ignored
    ignored_not_in_index: ignored and not in index
    """

    modified: Set[str] = field(default_factory=set)
    changed: Set[str] = field(default_factory=set)
    added: Set[str] = field(default_factory=set)
    removed: Set[str] = field(default_factory=set)
    missing: Set[str] = field(default_factory=set)
    untracked: Set[str] = field(default_factory=set)
    ignored_not_in_index: Set[str] = field(default_factory=set)
    conflicting: Set[str] = field(default_factory=set)

    def has_changes(self) -> bool:
        """True if anything would show up as a change or an untracked file."""
        return bool(
            self.modified or self.changed or self.added or self.removed
            or self.untracked or self.missing
        )


@runtime_checkable
class VersionControl(Protocol):
    """Capabilities VGL needs from the version control system."""

    def resolve_reference(self, name: str) -> Optional[str]:
        """Resolve a reference to a snapshot id, or None if it doesn't exist."""
        ...

    def parent_of(self, snapshot_id: str) -> Optional[str]:
        """First parent of a snapshot, or None for a root snapshot."""
        ...

    def diff_snapshots(self, old_id: str, new_id: str, detect_renames: bool = True) -> List[ChangeEntry]:
        """Changes between two snapshots."""
        ...

    def diff_snapshot_to_working_tree(self, snapshot_id: str, detect_renames: bool = True) -> List[ChangeEntry]:
        """Changes between a snapshot and the live work tree."""
        ...

    def raw_status(self) -> RawStatus:
        """Status sets of the work tree against the current snapshot."""
        ...

    def list_non_ignored_files(self, root: Union[str, Path]) -> Set[str]:
        """Tracked and untracked files under root that are not ignored."""
        ...


def parse_name_status(output: str) -> List[ChangeEntry]:
    """
    Parse 'git diff --name-status -z' output.

    Records are NUL separated: a status letter followed by one path, or
    by two paths for renames and copies.
    """
    tokens = [token for token in output.split('\0') if token]
    entries: List[ChangeEntry] = []

    i = 0
    while i < len(tokens):
        change_type = ChangeType.from_letter(tokens[i])
        if change_type in (ChangeType.RENAME, ChangeType.COPY):
            if i + 2 >= len(tokens):
                break
            entries.append(ChangeEntry(tokens[i + 1], tokens[i + 2], change_type))
            i += 3
            continue

        if i + 1 >= len(tokens):
            break
        path = tokens[i + 1]
        if change_type == ChangeType.ADD:
            entries.append(ChangeEntry(None, path, change_type))
        elif change_type == ChangeType.DELETE:
            entries.append(ChangeEntry(path, None, change_type))
        else:
            entries.append(ChangeEntry(path, path, change_type))
        i += 2

    return entries


def parse_porcelain_status(output: str) -> RawStatus:
    """
    Parse 'git status --porcelain=v1 -z --no-renames' output into raw sets.

    The first status column compares snapshot and index, the second
    compares index and work tree.
    """
    status = RawStatus()

    for record in output.split('\0'):
        if len(record) < 4:
            continue
        code, path = record[:2], record[3:]
        x, y = code[0], code[1]

        if code == '??':
            status.untracked.add(path.rstrip('/'))
            continue
        if code == '!!':
            status.ignored_not_in_index.add(path.rstrip('/'))
            continue
        if 'U' in code or code in ('AA', 'DD'):
            status.conflicting.add(path)
            continue

        if x == 'A':
            status.added.add(path)
        elif x == 'D':
            status.removed.add(path)
        elif x in 'MT':
            status.changed.add(path)

        if y in 'MT':
            status.modified.add(path)
        elif y == 'D':
            status.missing.add(path)

    return status


class GitTree:
    """
    VersionControl implementation backed by a GitPython repository.

    All operations are read-only with respect to the repository's
    snapshots, refs and index.
    """

    def __init__(self, repo: Repo):
        """
        Initialize from an open repository.

        Args:
            repo: GitPython Repo with a work tree
        """
        self.repo = repo
        self.work_tree = Path(repo.working_tree_dir).resolve()

    @classmethod
    def open(cls, path: Union[str, Path]) -> 'GitTree':
        """
        Open the repository rooted at path.

        Raises:
            RepositoryNotFoundError: If path is not a git work tree
        """
        try:
            repo = Repo(str(path))
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise RepositoryNotFoundError(path) from e
        if repo.bare:
            raise RepositoryNotFoundError(path)
        return cls(repo)

    def resolve_reference(self, name: str) -> Optional[str]:
        try:
            return self.repo.git.rev_parse('--verify', '--quiet', f'{name}^{{commit}}')
        except GitCommandError:
            logger.debug("Reference %s does not resolve to a commit", name)
            return None

    def parent_of(self, snapshot_id: str) -> Optional[str]:
        parents = self.repo.commit(snapshot_id).parents
        return parents[0].hexsha if parents else None

    def diff_snapshots(self, old_id: str, new_id: str, detect_renames: bool = True) -> List[ChangeEntry]:
        output = self.repo.git.diff(*self._diff_args(detect_renames), old_id, new_id)
        return parse_name_status(output)

    def diff_snapshot_to_working_tree(self, snapshot_id: str, detect_renames: bool = True) -> List[ChangeEntry]:
        """
        Compare a snapshot with the work tree, untracked files included.

        A throwaway copy of the index is brought up to date with the work
        tree and compared against the snapshot, so new files can pair up
        with deleted ones as renames. Nested repositories are left out and
        the real index is left untouched.
        """
        tmp_dir = tempfile.mkdtemp(prefix='vgl-index-')
        try:
            tmp_index = os.path.join(tmp_dir, 'index')
            real_index = Path(self.repo.git_dir) / 'index'
            if real_index.exists():
                shutil.copyfile(real_index, tmp_index)

            env = {'GIT_INDEX_FILE': tmp_index}
            excludes = [f':(exclude){path}' for path in sorted(list_nested_repos(self.work_tree))]
            self.repo.git.add('--all', '--', '.', *excludes, env=env)
            output = self.repo.git.diff(
                '--cached', *self._diff_args(detect_renames), snapshot_id, env=env
            )
        finally:
            shutil.rmtree(tmp_dir, ignore_errors=True)

        return parse_name_status(output)

    def raw_status(self) -> RawStatus:
        output = self.repo.git.status(
            '--porcelain=v1', '-z', '--untracked-files=all',
            '--ignored=matching', '--no-renames',
        )
        return parse_porcelain_status(output)

    def list_non_ignored_files(self, root: Union[str, Path]) -> Set[str]:
        """
        List non-ignored files under root.

        Paths are relative to root, '/' separated. Tracked files deleted
        from disk are left out.
        """
        base = Path(root).resolve()
        try:
            pathspec = base.relative_to(self.work_tree).as_posix()
        except ValueError:
            return set()
        output = self.repo.git.ls_files(
            '--cached', '--others', '--exclude-standard', '-z', '--', pathspec
        )

        files: Set[str] = set()
        for entry in output.split('\0'):
            if not entry:
                continue
            absolute = self.work_tree / entry
            if not absolute.is_file():
                continue
            try:
                files.add(absolute.relative_to(base).as_posix())
            except ValueError:
                continue
        return files

    @staticmethod
    def _diff_args(detect_renames: bool) -> List[str]:
        args = ['--name-status', '-z', '--no-color', '--no-ext-diff']
        args.append('-M' if detect_renames else '--no-renames')
        return args

    def __repr__(self) -> str:
        return f"GitTree(path={self.work_tree})"
