"""
Generic A/B to old/new renames for diff results

The diff engine speaks of record sets "A" and "B". Snapshot handlers compare an
old snapshot (A) with a new one (B), so before a result is handed to callers its
discrepancy types, stats and table cells are renamed to that vocabulary.
"""

import copy
from typing import Any, Dict, Mapping, Union

from .recdiff import DiffResult, DiscrepancyType


__all__ = ["GENERIC_TO_DOMAIN_TYPES", "apply_generic_rename_list", "apply_generic_rename_table"]


GENERIC_TO_DOMAIN_TYPES = {
    DiscrepancyType.KEY_B_NO_MATCH.value: DiscrepancyType.NEW_KEY_NO_MATCH.value,
    DiscrepancyType.KEY_A_NO_MATCH.value: DiscrepancyType.OLD_KEY_NO_MATCH.value,
    DiscrepancyType.FIELD_DISCREPANCY.value: DiscrepancyType.FIELD_DISCREPANCY.value,
    DiscrepancyType.FULL_MATCH.value: DiscrepancyType.FULL_MATCH.value,
}

ResultLike = Union[DiffResult, Mapping[str, Any]]


def _as_dict(result: ResultLike) -> Dict[str, Any]:
    if isinstance(result, DiffResult):
        return result.to_dict()
    if not isinstance(result, Mapping):
        raise TypeError(f"Expected a diff result, got {type(result).__name__}")
    return copy.deepcopy(dict(result))


def _rename_stats(stats: Mapping[str, Any]) -> Dict[str, Any]:
    if 'keyBNoMatch' not in stats or 'keyANoMatch' not in stats:
        raise ValueError("Result has already been renamed")

    return {
        'total': stats['total'],
        'newKeyNoMatch': stats['keyBNoMatch'],
        'oldKeyNoMatch': stats['keyANoMatch'],
        'fieldsDiscrepancies': stats['fieldsDiscrepancies'],
    }


def _rename_type(tag: str) -> str:
    try:
        return GENERIC_TO_DOMAIN_TYPES[tag]
    except KeyError:
        raise ValueError(f"Unknown discrepancy type: {tag!r}") from None


def apply_generic_rename_list(result: ResultLike) -> Dict[str, Any]:
    """
    Rename a list-form result to the old/new vocabulary.

    Args:
        result: ListDiffResult or its dict form

    Returns:
        A renamed copy in dict form; the argument is left untouched

    Raises:
        ValueError: If the result has already been renamed
    """
    renamed = _as_dict(result)
    renamed['stats'] = _rename_stats(renamed['stats'])
    for discrepancy in renamed['compare']:
        discrepancy['type'] = _rename_type(discrepancy['type'])
    return renamed


def apply_generic_rename_table(result: ResultLike) -> Dict[str, Any]:
    """
    Rename a table-form result to the old/new vocabulary.

    Besides types and stats, every non-null cell {a, b} becomes {old, new}.

    Raises:
        ValueError: If the result has already been renamed
    """
    renamed = _as_dict(result)
    renamed['stats'] = _rename_stats(renamed['stats'])
    for row in renamed['table']:
        row['type'] = _rename_type(row['type'])
        for name, cell in row['fields'].items():
            if not cell:
                continue
            row['fields'][name] = {'old': cell['a'], 'new': cell['b']}
    return renamed
