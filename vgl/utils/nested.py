"""Detection of repositories nested inside another repository's work tree."""

import logging
import os
from pathlib import Path
from typing import Set, Union

logger = logging.getLogger(__name__)

METADATA_DIR = '.git'


def is_repository_root(path: Union[str, Path]) -> bool:
    """
    Check if a directory is a repository root.

    A directory is a repository root when it holds its own metadata
    entry. The entry may be a directory or a file (worktrees and
    submodules use a file pointing at the real metadata directory).
    """
    return (Path(path) / METADATA_DIR).exists()


def list_nested_repos(root: Union[str, Path]) -> Set[str]:
    """
    Find directories under root that are themselves repository roots.

    The root itself is never reported and the walk does not descend into
    metadata directories. Unreadable directories are skipped.

    Args:
        root: Path to the enclosing repository root

    Returns:
        Set of root-relative directory paths using '/' separators
    """
    base = Path(root).resolve()
    nested: Set[str] = set()

    def on_error(exc: OSError) -> None:
        logger.debug("Skipping unreadable directory %s: %s", exc.filename, exc)

    for dirpath, dirnames, _ in os.walk(base, onerror=on_error):
        if METADATA_DIR in dirnames:
            dirnames.remove(METADATA_DIR)

        current = Path(dirpath)
        if current != base and is_repository_root(current):
            nested.add(current.relative_to(base).as_posix())

    return nested


def is_inside_nested_repo(root: Union[str, Path], path: Union[str, Path]) -> bool:
    """
    Check if a path lies inside a repository nested under root.

    Walks upward from path toward root; root itself does not count.
    Relative paths are taken relative to root.

    Args:
        root: Path to the enclosing repository root
        path: File path to check

    Returns:
        True if some directory between path and root is a repository root
    """
    base = Path(root).resolve()
    current = Path(path)
    if not current.is_absolute():
        current = base / current
    current = current.resolve()

    try:
        current.relative_to(base)
    except ValueError:
        return False

    while current != base:
        if is_repository_root(current):
            return True
        current = current.parent

    return False


def under_any(path: str, prefixes: Set[str]) -> bool:
    """Check if a '/'-separated path equals or lies under any prefix."""
    return any(path == prefix or path.startswith(prefix + '/') for prefix in prefixes)
