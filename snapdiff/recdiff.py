"""
Record Set Diff - key-based comparison of two snapshot record sets

Features:
- Key-based matching of "A" (old) records against "B" (new) records
- First-match semantics when a key occurs more than once
- Field-level discrepancy detection with millisecond timestamp equality
- List form (discrepancies only) and table form (every row, every field)
- Stats and a one-line summary message
- JSON and pandas DataFrame views of the results
"""

import json
import warnings
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, Dict, Iterable, List, Optional, Sequence, Set, Tuple

import pandas as pd

from .values import (
    MISSING,
    Record,
    RecordSetLike,
    json_default,
    key_id,
    match_token,
    to_recordset,
    values_differ,
)


__version__ = "0.1.0"
__all__ = [
    "DiscrepancyType",
    "CellDiff",
    "Discrepancy",
    "TableRow",
    "DiffStats",
    "DiffFields",
    "DiffResult",
    "ListDiffResult",
    "TableDiffResult",
    "RecordSetDiff",
    "compute_diff_list",
    "compute_diff_table",
]


class DiscrepancyType(Enum):
    """Classification of a compared record"""
    KEY_B_NO_MATCH = "key_b_no_match"
    KEY_A_NO_MATCH = "key_a_no_match"
    FIELD_DISCREPANCY = "field_discrepancy"
    FULL_MATCH = "full_match"
    # old/new vocabulary used once a result has been renamed
    NEW_KEY_NO_MATCH = "new_key_no_match"
    OLD_KEY_NO_MATCH = "old_key_no_match"


@dataclass
class CellDiff:
    """A pair of differing (or one-sided) values for a single field"""
    value_a: Any
    value_b: Any

    def __str__(self) -> str:
        return f"CellDiff({self.value_a!r} -> {self.value_b!r})"

    def to_list_dict(self) -> Dict[str, Any]:
        return {'valueA': self.value_a, 'valueB': self.value_b}

    def to_table_dict(self) -> Dict[str, Any]:
        return {'a': self.value_a, 'b': self.value_b}


@dataclass
class Discrepancy:
    """One entry of a list-form result"""
    type: DiscrepancyType
    key: Dict[str, Any]
    fields: Dict[str, CellDiff] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"Discrepancy({self.type.value}, key={self.key}, fields={sorted(self.fields)})"

    @property
    def row_id(self) -> str:
        return key_id(self.key)

    def to_dict(self) -> Dict[str, Any]:
        result = {'type': self.type.value, 'key': dict(self.key)}
        if self.type is DiscrepancyType.FIELD_DISCREPANCY:
            result['fields'] = {name: cell.to_list_dict() for name, cell in self.fields.items()}
        return result


@dataclass
class TableRow:
    """
    One row of a table-form result.

    fields covers every comparison field of the row; None marks a field whose
    values are equal.
    """
    type: DiscrepancyType
    key: Dict[str, Any]
    fields: Dict[str, Optional[CellDiff]] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"TableRow({self.type.value}, key={self.key}, differing={self.differing_fields()})"

    @property
    def row_id(self) -> str:
        return key_id(self.key)

    def differing_fields(self) -> List[str]:
        return [name for name, cell in self.fields.items() if cell is not None]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type.value,
            'key': dict(self.key),
            'fields': {
                name: None if cell is None else cell.to_table_dict()
                for name, cell in self.fields.items()
            },
        }


@dataclass
class DiffStats:
    """Discrepancy counts. total is always the sum of the three counts."""
    key_b_no_match: int = 0
    key_a_no_match: int = 0
    fields_discrepancies: int = 0

    @property
    def total(self) -> int:
        return self.key_b_no_match + self.key_a_no_match + self.fields_discrepancies

    def message(self) -> str:
        """Build the one-line summary of the counts"""
        if self.total == 0:
            return "No discrepancies found."

        messages = []
        if self.key_b_no_match > 0 or self.key_a_no_match > 0:
            messages.append("Unmatched keys found")
        if self.fields_discrepancies > 0:
            messages.append("Field discrepancies found")
        return ". ".join(messages) + "."

    def to_dict(self) -> Dict[str, int]:
        return {
            'total': self.total,
            'keyBNoMatch': self.key_b_no_match,
            'keyANoMatch': self.key_a_no_match,
            'fieldsDiscrepancies': self.fields_discrepancies,
        }


@dataclass
class DiffFields:
    """Column layout of a result: key fields as given, sorted comparison fields"""
    key: List[str]
    comp: List[str]

    def to_dict(self) -> Dict[str, List[str]]:
        return {'key': list(self.key), 'comp': list(self.comp)}


@dataclass
class DiffResult(ABC):
    """Parts shared by list-form and table-form results"""
    stats: DiffStats
    message: str
    fields: DiffFields

    def has_discrepancies(self) -> bool:
        return self.stats.total > 0

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to its dict form"""

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Convert the entire result to a JSON string"""
        return json.dumps(self.to_dict(), default=json_default, indent=indent)


@dataclass
class ListDiffResult(DiffResult):
    """
    List-form result: one entry per discrepancy, full matches omitted.

    to_dict() gives {stats, compare, message, fields}.
    """
    compare: List[Discrepancy] = field(default_factory=list)

    def __str__(self) -> str:
        return (f"ListDiffResult(new unmatched: {self.stats.key_b_no_match}, "
                f"old unmatched: {self.stats.key_a_no_match}, "
                f"field discrepancies: {self.stats.fields_discrepancies})")

    def get_by_type(self, discrepancy_type: DiscrepancyType) -> List[Discrepancy]:
        return [item for item in self.compare if item.type is discrepancy_type]

    def get_key_b_no_match(self) -> List[Discrepancy]:
        return self.get_by_type(DiscrepancyType.KEY_B_NO_MATCH)

    def get_key_a_no_match(self) -> List[Discrepancy]:
        return self.get_by_type(DiscrepancyType.KEY_A_NO_MATCH)

    def get_field_discrepancies(self) -> List[Discrepancy]:
        return self.get_by_type(DiscrepancyType.FIELD_DISCREPANCY)

    def row_ids(self) -> List[str]:
        return [item.row_id for item in self.compare]

    def get_discrepancies_df(self) -> pd.DataFrame:
        """
        Get discrepancies as a DataFrame.

        Returns one row per differing field of each field discrepancy, and one
        row per unmatched key (with empty field/value columns). Columns:
        type, key fields, field, value_a, value_b
        """
        columns = ['type'] + list(self.fields.key) + ['field', 'value_a', 'value_b']
        rows = []
        for item in self.compare:
            if not item.fields:
                rows.append({'type': item.type.value, **item.key,
                             'field': None, 'value_a': None, 'value_b': None})
                continue
            for name, cell in item.fields.items():
                rows.append({'type': item.type.value, **item.key,
                             'field': name, 'value_a': cell.value_a, 'value_b': cell.value_b})
        if not rows:
            return pd.DataFrame(columns=columns)
        return pd.DataFrame(rows, columns=columns)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'stats': self.stats.to_dict(),
            'compare': [item.to_dict() for item in self.compare],
            'message': self.message,
            'fields': self.fields.to_dict(),
        }


@dataclass
class TableDiffResult(DiffResult):
    """
    Table-form result: one row per matched or unmatched record.

    to_dict() gives {stats, table, message, fields}.
    """
    table: List[TableRow] = field(default_factory=list)

    def __str__(self) -> str:
        return (f"TableDiffResult(rows: {len(self.table)}, "
                f"new unmatched: {self.stats.key_b_no_match}, "
                f"old unmatched: {self.stats.key_a_no_match}, "
                f"field discrepancies: {self.stats.fields_discrepancies})")

    def get_by_type(self, row_type: DiscrepancyType) -> List[TableRow]:
        return [row for row in self.table if row.type is row_type]

    def get_full_matches(self) -> List[TableRow]:
        return self.get_by_type(DiscrepancyType.FULL_MATCH)

    def get_discrepant_rows(self) -> List[TableRow]:
        return [row for row in self.table if row.type is not DiscrepancyType.FULL_MATCH]

    def row_ids(self) -> List[str]:
        return [row.row_id for row in self.table]

    def to_dataframe(self) -> pd.DataFrame:
        """
        Get the table as a DataFrame.

        Columns are type, the key fields, then <field>_a and <field>_b for each
        comparison field. Equal cells are left empty in both columns.
        """
        columns = ['type'] + list(self.fields.key)
        for name in self.fields.comp:
            columns.extend([f"{name}_a", f"{name}_b"])

        rows = []
        for row in self.table:
            flat = {'type': row.type.value, **row.key}
            for name, cell in row.fields.items():
                flat[f"{name}_a"] = None if cell is None else cell.value_a
                flat[f"{name}_b"] = None if cell is None else cell.value_b
            rows.append(flat)
        if not rows:
            return pd.DataFrame(columns=columns)
        return pd.DataFrame(rows, columns=columns)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'stats': self.stats.to_dict(),
            'table': [row.to_dict() for row in self.table],
            'message': self.message,
            'fields': self.fields.to_dict(),
        }


def _output_value(value: Any) -> Any:
    return None if value is MISSING else value


class _ScratchSet:
    """
    Working copy of record set A that hands out each record at most once.

    take() returns the first not-yet-taken record whose key fields equal those
    of the given record, in original order.
    """

    def __init__(self, records: Sequence[Record], key_fields: Sequence[str]):
        self._records = list(records)
        self._key_fields = list(key_fields)
        self._taken = [False] * len(self._records)
        self._index: Dict[Tuple[Any, ...], Deque[int]] = {}
        for position, record in enumerate(self._records):
            self._index.setdefault(self.key_token(record), deque()).append(position)

    def key_token(self, record: Record) -> Tuple[Any, ...]:
        return tuple(match_token(record.value(name)) for name in self._key_fields)

    def take(self, record: Record) -> Optional[Record]:
        positions = self._index.get(self.key_token(record))
        if not positions:
            return None
        position = positions.popleft()
        self._taken[position] = True
        return self._records[position]

    def remaining(self) -> List[Record]:
        return [record for record, taken in zip(self._records, self._taken) if not taken]


class RecordSetDiff:
    """
    Main class for comparing record sets.

    Records of set B ("new") drive the comparison: each one is matched to the
    first unconsumed record of set A ("old") with equal key fields. Matched
    pairs are compared field by field, skipping key and excluded fields. A
    records left over after the pass are reported as unmatched.

    Example:
        >>> differ = RecordSetDiff(exclude_fields=['snapshot_id'])
        >>> result = differ.compare_list(old_rows, new_rows, key_fields=['id'])
        >>> print(result.message)
    """

    def __init__(
        self,
        exclude_fields: Optional[Sequence[str]] = None,
        warn_on_duplicate_keys: bool = True,
        warn_on_unknown_fields: bool = True
    ):
        """
        Initialize RecordSetDiff

        Args:
            exclude_fields: Fields ignored by every comparison made with this
                            instance, on top of the key fields
            warn_on_duplicate_keys: If True, warn when a record set repeats a key
            warn_on_unknown_fields: If True, warn when key or excluded fields
                                    are not present in the records
        """
        self.exclude_fields = list(exclude_fields or [])
        self.warn_on_duplicate_keys = warn_on_duplicate_keys
        self.warn_on_unknown_fields = warn_on_unknown_fields

    def compare_list(
        self,
        recset_a: RecordSetLike,
        recset_b: RecordSetLike,
        key_fields: Sequence[str],
        exclude_fields: Optional[Sequence[str]] = None
    ) -> ListDiffResult:
        """
        Compare two record sets and return the discrepancies as a list

        Args:
            recset_a: Old record set (sequence of mappings or DataFrame)
            recset_b: New record set (sequence of mappings or DataFrame)
            key_fields: Fields identifying the same entity in both sets
            exclude_fields: Extra fields to ignore for this comparison

        Returns:
            ListDiffResult with one entry per unmatched record or per matched
            pair with at least one differing field

        Raises:
            TypeError: If inputs are not record sets or key_fields is not a list
        """
        records_a, records_b, key_fields, excluded = self._prepare(
            recset_a, recset_b, key_fields, exclude_fields
        )
        scratch = _ScratchSet(records_a, key_fields)
        compare: List[Discrepancy] = []
        stats = DiffStats()

        for row_b in records_b:
            key = self._key_object(row_b, key_fields)
            row_a = scratch.take(row_b)

            if row_a is None:
                compare.append(Discrepancy(DiscrepancyType.KEY_B_NO_MATCH, key))
                stats.key_b_no_match += 1
                continue

            cells = {
                name: CellDiff(_output_value(value_a), _output_value(value_b))
                for name, value_a, value_b in self._field_pairs(row_a, row_b, key_fields, excluded)
                if values_differ(value_a, value_b)
            }
            if cells:
                compare.append(Discrepancy(DiscrepancyType.FIELD_DISCREPANCY, key, cells))
                stats.fields_discrepancies += 1

        for row_a in scratch.remaining():
            compare.append(Discrepancy(DiscrepancyType.KEY_A_NO_MATCH, self._key_object(row_a, key_fields)))
            stats.key_a_no_match += 1

        return ListDiffResult(
            stats=stats,
            message=stats.message(),
            fields=self._result_fields(records_a, records_b, key_fields, excluded),
            compare=compare,
        )

    def compare_table(
        self,
        recset_a: RecordSetLike,
        recset_b: RecordSetLike,
        key_fields: Sequence[str],
        exclude_fields: Optional[Sequence[str]] = None
    ) -> TableDiffResult:
        """
        Compare two record sets and return a row for every record

        Matched pairs give full_match or field_discrepancy rows whose cells are
        None for equal fields and CellDiff(a, b) otherwise. Unmatched B records
        give key_b_no_match rows with every cell CellDiff(None, b); unmatched A
        records give key_a_no_match rows with every cell CellDiff(a, None).

        Args:
            recset_a: Old record set (sequence of mappings or DataFrame)
            recset_b: New record set (sequence of mappings or DataFrame)
            key_fields: Fields identifying the same entity in both sets
            exclude_fields: Extra fields to ignore for this comparison

        Returns:
            TableDiffResult, B-driven rows first, then unmatched A rows
        """
        records_a, records_b, key_fields, excluded = self._prepare(
            recset_a, recset_b, key_fields, exclude_fields
        )
        scratch = _ScratchSet(records_a, key_fields)
        table: List[TableRow] = []
        stats = DiffStats()

        for row_b in records_b:
            key = self._key_object(row_b, key_fields)
            row_a = scratch.take(row_b)

            if row_a is None:
                cells = {
                    name: CellDiff(None, row_b[name])
                    for name in self._comparison_fields(row_b, key_fields, excluded)
                }
                table.append(TableRow(DiscrepancyType.KEY_B_NO_MATCH, key, cells))
                stats.key_b_no_match += 1
                continue

            cells = {}
            has_discrepancy = False
            for name, value_a, value_b in self._field_pairs(row_a, row_b, key_fields, excluded):
                if values_differ(value_a, value_b):
                    cells[name] = CellDiff(_output_value(value_a), _output_value(value_b))
                    has_discrepancy = True
                else:
                    cells[name] = None

            if has_discrepancy:
                table.append(TableRow(DiscrepancyType.FIELD_DISCREPANCY, key, cells))
                stats.fields_discrepancies += 1
            else:
                table.append(TableRow(DiscrepancyType.FULL_MATCH, key, cells))

        for row_a in scratch.remaining():
            cells = {
                name: CellDiff(row_a[name], None)
                for name in self._comparison_fields(row_a, key_fields, excluded)
            }
            table.append(TableRow(DiscrepancyType.KEY_A_NO_MATCH, self._key_object(row_a, key_fields), cells))
            stats.key_a_no_match += 1

        return TableDiffResult(
            stats=stats,
            message=stats.message(),
            fields=self._result_fields(records_a, records_b, key_fields, excluded),
            table=table,
        )

    def _prepare(
        self,
        recset_a: RecordSetLike,
        recset_b: RecordSetLike,
        key_fields: Sequence[str],
        exclude_fields: Optional[Sequence[str]]
    ) -> Tuple[List[Record], List[Record], List[str], Set[str]]:
        """Validate inputs and build working copies of both record sets"""
        if not isinstance(key_fields, (list, tuple)):
            raise TypeError("key_fields must be a list or tuple of field names")
        if exclude_fields is not None and not isinstance(exclude_fields, (list, tuple, set, frozenset)):
            raise TypeError("exclude_fields must be a list, tuple or set of field names")

        records_a = to_recordset(recset_a)
        records_b = to_recordset(recset_b)
        key_fields = list(key_fields)
        excluded = set(self.exclude_fields) | set(exclude_fields or ())

        if self.warn_on_unknown_fields:
            self._check_known_fields(records_a, records_b, key_fields, excluded)
        if self.warn_on_duplicate_keys:
            for label, records in (("A", records_a), ("B", records_b)):
                duplicates = self._count_duplicate_keys(records, key_fields)
                if duplicates > 0:
                    warnings.warn(f"Record set {label} has {duplicates} duplicate key(s). "
                                  "Only the first unmatched occurrence will be matched.")

        return records_a, records_b, key_fields, excluded

    @staticmethod
    def _check_known_fields(
        records_a: List[Record],
        records_b: List[Record],
        key_fields: List[str],
        excluded: Set[str]
    ) -> None:
        samples = [records[0] for records in (records_a, records_b) if records]
        if not samples:
            return

        for label, records in (("A", records_a), ("B", records_b)):
            if not records:
                continue
            missing_keys = [name for name in key_fields if name not in records[0]]
            if missing_keys:
                warnings.warn(f"Key fields {missing_keys} not found in record set {label}. "
                              f"Available fields: {records[0].fields}")

        unknown_excluded = sorted(
            name for name in excluded if not any(name in sample for sample in samples)
        )
        if unknown_excluded:
            warnings.warn(f"Excluded fields {unknown_excluded} not found in either record set")

    @staticmethod
    def _count_duplicate_keys(records: List[Record], key_fields: List[str]) -> int:
        seen = set()
        duplicates = 0
        for record in records:
            token = tuple(match_token(record.value(name)) for name in key_fields)
            if token in seen:
                duplicates += 1
            else:
                seen.add(token)
        return duplicates

    @staticmethod
    def _key_object(record: Record, key_fields: List[str]) -> Dict[str, Any]:
        return {name: _output_value(record.value(name)) for name in key_fields}

    @staticmethod
    def _comparison_fields(record: Record, key_fields: Iterable[str], excluded: Set[str]) -> List[str]:
        return [name for name in record if name not in key_fields and name not in excluded]

    def _field_pairs(
        self,
        row_a: Record,
        row_b: Record,
        key_fields: List[str],
        excluded: Set[str]
    ) -> Iterable[Tuple[str, Any, Any]]:
        """Yield (field, value in A, value in B) for B's comparison fields"""
        for name in self._comparison_fields(row_b, key_fields, excluded):
            yield name, row_a.value(name), row_b.value(name)

    def _result_fields(
        self,
        records_a: List[Record],
        records_b: List[Record],
        key_fields: List[str],
        excluded: Set[str]
    ) -> DiffFields:
        if records_a:
            sample = records_a[0]
        elif records_b:
            sample = records_b[0]
        else:
            sample = Record()
        return DiffFields(
            key=key_fields,
            comp=sorted(self._comparison_fields(sample, key_fields, excluded)),
        )


# Convenience functions for one-off comparisons
def compute_diff_list(
    recset_a: RecordSetLike,
    recset_b: RecordSetLike,
    key_fields: Sequence[str],
    exclude_fields: Optional[Sequence[str]] = None,
    **kwargs
) -> ListDiffResult:
    """
    Convenience function to compare two record sets in list form.

    Args:
        recset_a: Old record set
        recset_b: New record set
        key_fields: Fields used to match records
        exclude_fields: Fields ignored when looking for field discrepancies
        **kwargs: Additional arguments passed to RecordSetDiff

    Example:
        >>> result = compute_diff_list(old_rows, new_rows, ['id'])
        >>> result.to_dict()['stats']
    """
    differ = RecordSetDiff(**kwargs)
    return differ.compare_list(recset_a, recset_b, key_fields, exclude_fields)


def compute_diff_table(
    recset_a: RecordSetLike,
    recset_b: RecordSetLike,
    key_fields: Sequence[str],
    exclude_fields: Optional[Sequence[str]] = None,
    **kwargs
) -> TableDiffResult:
    """Convenience function to compare two record sets in table form."""
    differ = RecordSetDiff(**kwargs)
    return differ.compare_table(recset_a, recset_b, key_fields, exclude_fields)
