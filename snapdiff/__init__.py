"""
SnapDiff - key-based comparison of snapshot record sets

This library matches two record sets ("old" and "new") by key fields, classifies
each record as unmatched or field-discrepant, and reports the result either as
a list of discrepancies or as a dense comparison table.

Basic Usage:
    >>> from snapdiff import compute_diff_list, compute_diff_table
    >>>
    >>> # List of discrepancies
    >>> result = compute_diff_list(old_rows, new_rows, key_fields=['id'])
    >>> print(result.message)
    >>>
    >>> # Table with every row and every comparison field
    >>> table = compute_diff_table(old_rows, new_rows, ['id'], exclude_fields=['snapshot_id'])
    >>> table.to_dataframe()
    >>>
    >>> # Old/new vocabulary for callers
    >>> renamed = apply_generic_rename_table(table)
    >>>
    >>> # Running a registered snapshot handler
    >>> with SnapshotStore(tables, snapshots) as store:
    ...     outcome = execute_run(default_registry(), 'diff-ss/table', params, store)
"""

from .values import (
    ValueKind,
    MISSING,
    Record,
    values_equal,
    values_differ,
    to_recordset,
    key_id,
)
from .recdiff import (
    # Result types
    DiscrepancyType,
    CellDiff,
    Discrepancy,
    TableRow,
    DiffStats,
    DiffFields,
    DiffResult,
    ListDiffResult,
    TableDiffResult,

    # Engine
    RecordSetDiff,
    compute_diff_list,
    compute_diff_table,

    # Version
    __version__,
)
from .rename import apply_generic_rename_list, apply_generic_rename_table
from .fields import MissingParameterError, check_get_field_list, split_field_list
from .store import SnapshotStore
from .registry import (
    HandlerRegistry,
    UnknownHandlerError,
    RunStatus,
    RunOutcome,
    default_registry,
    execute_run,
)

__all__ = [
    # Values
    "ValueKind",
    "MISSING",
    "Record",
    "values_equal",
    "values_differ",
    "to_recordset",
    "key_id",

    # Result types
    "DiscrepancyType",
    "CellDiff",
    "Discrepancy",
    "TableRow",
    "DiffStats",
    "DiffFields",
    "DiffResult",
    "ListDiffResult",
    "TableDiffResult",

    # Engine
    "RecordSetDiff",
    "compute_diff_list",
    "compute_diff_table",
    "apply_generic_rename_list",
    "apply_generic_rename_table",

    # Parameters
    "MissingParameterError",
    "check_get_field_list",
    "split_field_list",

    # Snapshots and handlers
    "SnapshotStore",
    "HandlerRegistry",
    "UnknownHandlerError",
    "RunStatus",
    "RunOutcome",
    "default_registry",
    "execute_run",

    # Version
    "__version__",
]
