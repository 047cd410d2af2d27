"""
Rule-set handlers comparing two snapshots

Every handler takes the run parameters and the snapshot store, and returns a
renamed (old/new vocabulary) result in dict form, ready to be stored with the
run and rendered.
"""

from typing import Any, Dict, List, Mapping, Optional

from .fields import check_get_field_list, check_required_param
from .recdiff import RecordSetDiff
from .rename import apply_generic_rename_list, apply_generic_rename_table
from .store import SNAPSHOT_ID_FIELD, SnapshotStore
from .values import Record


__all__ = [
    "SNAPSHOT_EXCLUDE_FIELDS",
    "AGGREGATE_KEY_FIELD",
    "AGGREGATE_DATE_FIELDS",
    "check_get_snapshot_recset",
    "diff_snapshots_as_list",
    "diff_snapshots_as_table",
    "diff_aggregated",
]


SNAPSHOT_EXCLUDE_FIELDS = [SNAPSHOT_ID_FIELD]

AGGREGATE_KEY_FIELD = "Retailer"
AGGREGATE_DATE_FIELDS = ["DateStarted", "DateFinished", "DateRefinished"]


def check_get_snapshot_recset(
    params: Mapping[str, Any],
    param_name: str,
    store: SnapshotStore,
    is_required: bool = True
) -> Optional[List[Record]]:
    """
    Check for a snapshot ID parameter and load that snapshot's record set

    Returns:
        The record set, or None if optional and not given
    """
    if is_required:
        check_required_param(params, param_name)

    snapshot_id = params.get(param_name)
    if snapshot_id is None:
        return None

    return store.get_snapshot(snapshot_id)


def diff_snapshots_as_list(
    params: Mapping[str, Any],
    store: SnapshotStore,
    differ: Optional[RecordSetDiff] = None
) -> Dict[str, Any]:
    """
    Compare two snapshots by key fields, reporting discrepancies as a list

    Rows of the new snapshot are matched to rows of the old one. Unmatched rows
    are reported as new_key_no_match / old_key_no_match, matched rows with
    differing values as field_discrepancy with the differing fields only.

    Args:
        params: ssIdOld, ssIdNew and keyFieldList (comma or space separated)
        store: Snapshot store to read from
        differ: RecordSetDiff to use instead of a default one
    """
    key_fields = check_get_field_list(params, "keyFieldList")
    snapshot_old = check_get_snapshot_recset(params, "ssIdOld", store)
    snapshot_new = check_get_snapshot_recset(params, "ssIdNew", store)

    differ = differ or RecordSetDiff()
    result = differ.compare_list(snapshot_old, snapshot_new, key_fields, SNAPSHOT_EXCLUDE_FIELDS)
    return apply_generic_rename_list(result)


def diff_snapshots_as_table(
    params: Mapping[str, Any],
    store: SnapshotStore,
    differ: Optional[RecordSetDiff] = None
) -> Dict[str, Any]:
    """
    Compare two snapshots by key fields, reporting every row in table form

    Cells with discrepancies hold {old, new}; identical cells hold None.
    Unmatched rows carry their values on their own side and None on the other.
    """
    key_fields = check_get_field_list(params, "keyFieldList")
    snapshot_old = check_get_snapshot_recset(params, "ssIdOld", store)
    snapshot_new = check_get_snapshot_recset(params, "ssIdNew", store)

    differ = differ or RecordSetDiff()
    result = differ.compare_table(snapshot_old, snapshot_new, key_fields, SNAPSHOT_EXCLUDE_FIELDS)
    return apply_generic_rename_table(result)


def diff_aggregated(
    params: Mapping[str, Any],
    store: SnapshotStore,
    differ: Optional[RecordSetDiff] = None
) -> Dict[str, Any]:
    """
    Compare two snapshots aggregated per retailer, in table form

    Each snapshot is reduced to one row per Retailer with a row Count and the
    latest DateStarted, DateFinished and DateRefinished; the aggregates are
    then compared keyed on Retailer.

    Args:
        params: ssIdOld and ssIdNew
        store: Snapshot store to read from
        differ: RecordSetDiff to use instead of a default one
    """
    check_required_param(params, "ssIdOld")
    check_required_param(params, "ssIdNew")
    recset_old = store.get_aggregated(params["ssIdOld"], AGGREGATE_KEY_FIELD, AGGREGATE_DATE_FIELDS)
    recset_new = store.get_aggregated(params["ssIdNew"], AGGREGATE_KEY_FIELD, AGGREGATE_DATE_FIELDS)

    differ = differ or RecordSetDiff()
    result = differ.compare_table(recset_old, recset_new, [AGGREGATE_KEY_FIELD])
    return apply_generic_rename_table(result)
