"""Utilities module for common helper functions.

This module contains:
- Atomic file writes
- Nested repository detection
- Glob expansion
"""

from vgl.utils.fs import atomic_write_text
from vgl.utils.nested import list_nested_repos, is_inside_nested_repo, is_repository_root
from vgl.utils.glob import GlobError, GlobExpander, expand_globs, resolve_globs, matches_any

__all__ = [
    'atomic_write_text',
    'list_nested_repos', 'is_inside_nested_repo', 'is_repository_root',
    'GlobError', 'GlobExpander', 'expand_globs', 'resolve_globs', 'matches_any',
]
