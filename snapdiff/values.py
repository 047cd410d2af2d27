"""
Record values - typed scalars, records and the equality rule used for matching

A record is an ordered mapping from field name to a scalar value of one of the
kinds in ValueKind. Values coming from pandas/numpy are normalized to plain
Python objects so that field presence, absence and equality are explicit.
"""

import json
import math
from collections.abc import Mapping
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from pandas.api.types import is_scalar


__all__ = [
    "ValueKind",
    "MISSING",
    "Record",
    "classify",
    "normalize_value",
    "values_equal",
    "values_differ",
    "match_token",
    "to_record",
    "to_recordset",
    "key_id",
    "json_default",
]


class ValueKind(Enum):
    """Kinds of scalar values a record field can hold"""
    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    TIMESTAMP = "timestamp"


class _Missing:
    """Marker for a field that is absent from a record"""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MILLISECOND = timedelta(milliseconds=1)


def _is_nan(value: Any) -> bool:
    if isinstance(value, Decimal):
        return value.is_nan()
    if isinstance(value, (float, np.floating)):
        return math.isnan(value)
    return False


def classify(value: Any) -> ValueKind:
    """
    Return the kind of a scalar value.

    None and every scalar pandas treats as missing (NaN, NaT, pd.NA) are
    NULL. Booleans are never numbers.

    Raises:
        TypeError: If the value is not a supported scalar
    """
    if value is None or (is_scalar(value) and pd.isna(value)):
        return ValueKind.NULL
    if isinstance(value, (bool, np.bool_)):
        return ValueKind.BOOLEAN
    if isinstance(value, (datetime, date, np.datetime64)):
        return ValueKind.NULL if pd.isna(value) else ValueKind.TIMESTAMP
    if isinstance(value, (int, float, Decimal, np.integer, np.floating)):
        return ValueKind.NULL if _is_nan(value) else ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    raise TypeError(f"Unsupported record value type: {type(value).__name__}")


def normalize_value(value: Any) -> Any:
    """Convert numpy/pandas scalars to plain values and nulls to None"""
    kind = classify(value)
    if kind is ValueKind.NULL:
        return None
    if isinstance(value, np.datetime64):
        return pd.Timestamp(value)
    if isinstance(value, np.generic):
        return value.item()
    return value


def _epoch_millis(value: Union[datetime, date]) -> int:
    if isinstance(value, pd.Timestamp):
        if value.tzinfo is None:
            value = value.tz_localize("UTC")
        return value.value // 1_000_000
    if not isinstance(value, datetime):
        value = datetime.combine(value, time())
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // _MILLISECOND


def values_equal(value_a: Any, value_b: Any) -> bool:
    """
    Check if two field values are equal.

    Timestamps compare by instant at millisecond resolution, naive timestamps
    being taken as UTC. Values of different kinds are never equal, so "1" and 1
    differ, and so do True and 1. A missing field equals only another missing
    field.
    """
    if value_a is MISSING or value_b is MISSING:
        return value_a is value_b

    value_a = normalize_value(value_a)
    value_b = normalize_value(value_b)
    kind_a = classify(value_a)
    if kind_a is not classify(value_b):
        return False
    if kind_a is ValueKind.TIMESTAMP:
        return _epoch_millis(value_a) == _epoch_millis(value_b)
    return value_a == value_b


def values_differ(value_a: Any, value_b: Any) -> bool:
    return not values_equal(value_a, value_b)


def match_token(value: Any) -> Tuple[Any, ...]:
    """
    Hashable token for a value.

    match_token(a) == match_token(b) exactly when values_equal(a, b).
    """
    if value is MISSING:
        return ("missing",)
    value = normalize_value(value)
    kind = classify(value)
    if kind is ValueKind.TIMESTAMP:
        return (kind.value, _epoch_millis(value))
    return (kind.value, value)


class Record(Mapping):
    """
    Read-only ordered mapping of field name to normalized scalar value.

    Indexing an absent field raises KeyError like a dict; use value() to get
    MISSING instead.

    Example:
        >>> rec = Record({'id': 1, 'name': 'x'})
        >>> rec.value('name')
        'x'
        >>> rec.value('other')
        MISSING
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping] = None, **fields: Any):
        data = dict(values or {}, **fields)
        normalized = {}
        for name, value in data.items():
            if not isinstance(name, str):
                raise TypeError(f"Field names must be strings, got {type(name).__name__}")
            normalized[name] = normalize_value(value)
        self._values: Dict[str, Any] = normalized

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Record({self._values!r})"

    def value(self, name: str) -> Any:
        """Get a field value, or MISSING if the field is absent"""
        return self._values.get(name, MISSING)

    def kind(self, name: str) -> Optional[ValueKind]:
        """Get the kind of a field value, or None if the field is absent"""
        if name not in self._values:
            return None
        return classify(self._values[name])

    @property
    def fields(self) -> List[str]:
        return list(self._values)


RecordSetLike = Union[pd.DataFrame, Sequence[Mapping], None]


def to_record(row: Mapping) -> Record:
    if isinstance(row, Record):
        return row
    if not isinstance(row, Mapping):
        raise TypeError(f"Records must be mappings, got {type(row).__name__}")
    return Record(row)


def to_recordset(rows: RecordSetLike) -> List[Record]:
    """
    Build a new list of Records from a DataFrame or a sequence of mappings.

    The returned list never aliases the input collection. None gives an empty
    record set.
    """
    if rows is None:
        return []
    if isinstance(rows, pd.DataFrame):
        return [Record(row) for row in rows.to_dict("records")]
    if isinstance(rows, (Mapping, str, bytes)):
        raise TypeError(f"A record set must be a sequence of records, got {type(rows).__name__}")
    return [to_record(row) for row in rows]


def json_default(obj: Any) -> Any:
    """JSON fallback for values the json module cannot encode"""
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, np.generic):
        return obj.item()
    if obj is MISSING:
        return None
    return str(obj)


def key_id(key: Mapping[str, Any]) -> str:
    """Stable row identity for a key object, in key-field order"""
    return json.dumps(dict(key), default=json_default, separators=(",", ":"))
