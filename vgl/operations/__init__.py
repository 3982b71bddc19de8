"""Operations module for status computation.

This module contains:
- Rename reconciliation across detection passes
- Status classification
"""

from vgl.operations.renames import RenameSet, ReconcileResult, reconcile, renames_from_changes
from vgl.operations.status import (StatusModel, StatusClassifier, PathFilter, matches_filter,
                                   compute_undecided_files, load_undecided_into, status_for)

__all__ = [
    'RenameSet', 'ReconcileResult', 'reconcile', 'renames_from_changes',
    'StatusModel', 'StatusClassifier', 'PathFilter', 'matches_filter',
    'compute_undecided_files', 'load_undecided_into', 'status_for',
]
