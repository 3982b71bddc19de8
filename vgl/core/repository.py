"""Repository handle for VGL."""

from pathlib import Path
from typing import Optional

from vgl.core.errors import RepositoryNotFoundError
from vgl.utils.nested import METADATA_DIR, is_repository_root

SIDECAR_NAME = '.vgl'
UNDECIDED_NAME = '.vgl-undecided'
IGNORE_NAME = '.gitignore'


class Repository:
    """
    Represents a VGL working tree.

    A repository is a directory tracked by git plus the VGL sidecar
    files stored at its root:
    <root>/
    ├── .git/             # Version control metadata (read-only to VGL)
    ├── .vgl              # Sidecar key/value configuration
    └── .vgl-undecided    # Paths not yet classified as tracked or ignored
    """

    def __init__(self, path: str = '.'):
        """
        Initialize repository.

        Args:
            path: Path to repository root (defaults to current directory)
        """
        self.work_tree = Path(path).resolve()
        self.git_dir = self.work_tree / METADATA_DIR
        self.sidecar_file = self.work_tree / SIDECAR_NAME
        self.undecided_file = self.work_tree / UNDECIDED_NAME
        self.ignore_file = self.work_tree / IGNORE_NAME

        self._vcs = None

    @property
    def vcs(self):
        """Get the version control collaborator for this work tree."""
        if self._vcs is None:
            from vgl.core.vcs import GitTree
            self._vcs = GitTree.open(self.work_tree)
        return self._vcs

    @property
    def config(self):
        """Load the sidecar configuration (re-read on every access)."""
        from vgl.core.config import SidecarConfigStore
        return SidecarConfigStore.load(self.work_tree)

    def save_config(self, config) -> None:
        """Replace the sidecar configuration on disk."""
        from vgl.core.config import SidecarConfigStore
        SidecarConfigStore.save(self.work_tree, config)

    def exists(self) -> bool:
        """Check if the work tree is a repository root."""
        return is_repository_root(self.work_tree)

    def has_commits(self) -> bool:
        """Check if HEAD resolves to a commit (False for an unborn branch)."""
        return self.vcs.resolve_reference('HEAD') is not None

    def is_nested(self, ceiling: Optional[str] = None) -> bool:
        """
        Check if this repository sits inside another repository's work tree.

        Args:
            ceiling: Directory at which the upward search stops (exclusive)

        Returns:
            True if an enclosing repository root was found
        """
        stop = Path(ceiling).resolve() if ceiling else None
        current = self.work_tree.parent

        while True:
            if stop is not None and current == stop:
                return False
            if is_repository_root(current):
                return True
            if current == current.parent:
                return False
            current = current.parent

    @classmethod
    def find_repository(cls, path: str = '.', ceiling: Optional[str] = None) -> Optional['Repository']:
        """
        Find repository by searching up the directory tree.

        Searches from the given path upwards until it finds a metadata
        directory, reaches the ceiling directory, or reaches the
        filesystem root.

        Args:
            path: Starting path for search
            ceiling: Directory at which the search stops (not searched)

        Returns:
            Repository if found, None otherwise
        """
        current = Path(path).resolve()
        stop = Path(ceiling).resolve() if ceiling else None

        while True:
            if stop is not None and current == stop:
                return None

            if is_repository_root(current):
                return cls(str(current))

            # Reached filesystem root
            if current == current.parent:
                return None

            current = current.parent

    @classmethod
    def open(cls, path: str = '.') -> 'Repository':
        """
        Open the repository containing path.

        Raises:
            RepositoryNotFoundError: If no repository encloses path
        """
        repo = cls.find_repository(path)
        if repo is None:
            raise RepositoryNotFoundError(path)
        return repo

    def __repr__(self) -> str:
        """String representation of repository."""
        return f"Repository(path={self.work_tree})"
