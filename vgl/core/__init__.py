"""Core functionality for VGL.

This module contains:
- Repository discovery and sidecar paths
- Sidecar configuration persistence
- The version control collaborator (GitPython backed)
- Error types

For status classification and rename reconciliation, see vgl.operations
For glob expansion and nested repository detection, see vgl.utils
"""

from vgl.core.errors import VglError, RepositoryNotFoundError, SidecarWriteError
from vgl.core.repository import Repository
from vgl.core.config import (SidecarConfig, SidecarConfigStore, UndecidedFileList,
                             normalize_repo_relative_path, ensure_ignore_has_sidecar,
                             load_state, save_state)
from vgl.core.vcs import ChangeType, ChangeEntry, RawStatus, VersionControl, GitTree

__all__ = [
    'VglError',
    'RepositoryNotFoundError',
    'SidecarWriteError',
    'Repository',
    'SidecarConfig',
    'SidecarConfigStore',
    'UndecidedFileList',
    'normalize_repo_relative_path',
    'ensure_ignore_has_sidecar',
    'load_state',
    'save_state',
    'ChangeType',
    'ChangeEntry',
    'RawStatus',
    'VersionControl',
    'GitTree',
]
