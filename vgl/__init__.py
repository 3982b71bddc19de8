"""VGL - rename-aware working tree status on top of git."""

__version__ = '0.1.0'

from vgl.core.repository import Repository
from vgl.core.config import SidecarConfig, SidecarConfigStore, UndecidedFileList
from vgl.operations.status import StatusClassifier, StatusModel, status_for
from vgl.utils.glob import GlobExpander

__all__ = [
    'Repository',
    'SidecarConfig',
    'SidecarConfigStore',
    'UndecidedFileList',
    'StatusClassifier',
    'StatusModel',
    'status_for',
    'GlobExpander',
]
