"""
Snapshot store - record-set providers for the snapshot handlers

Snapshot data lives in snapshot tables (pandas DataFrames), each holding the
rows of many snapshots tagged by a snapshot_id column. The store is constructed
explicitly, opened before use and closed at shutdown, and is passed to every
handler that needs it.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from .values import Record, to_recordset


__all__ = ["SNAPSHOT_ID_FIELD", "SnapshotStore", "normalize_snapshot_id"]

logger = logging.getLogger(__name__)

SNAPSHOT_ID_FIELD = "snapshot_id"


def normalize_snapshot_id(snapshot_id: Any) -> Any:
    """
    Bring a snapshot ID to a canonical form so 1, "1" and np.int64(1) name the
    same snapshot. Integer-like strings and numpy integers become int; other
    values are returned unchanged.
    """
    if isinstance(snapshot_id, (bool, np.bool_)):
        return snapshot_id
    if isinstance(snapshot_id, np.integer):
        return int(snapshot_id)
    if isinstance(snapshot_id, str):
        text = snapshot_id.strip()
        digits = text[1:] if text[:1] in ("+", "-") else text
        if digits.isdecimal():
            return int(text)
    return snapshot_id


class SnapshotStore:
    """
    In-memory store of snapshot tables.

    Example:
        >>> store = SnapshotStore()
        >>> store.add_table('orders_ss', frame)
        >>> store.register_snapshot(1, 'orders_ss')
        >>> with store:
        ...     rows = store.get_snapshot(1)
    """

    def __init__(
        self,
        tables: Optional[Mapping[str, pd.DataFrame]] = None,
        snapshots: Optional[Mapping[Any, str]] = None
    ):
        """
        Initialize SnapshotStore

        Args:
            tables: Snapshot tables by name
            snapshots: Table name by snapshot ID
        """
        self._tables: Dict[str, pd.DataFrame] = {}
        self._snapshots: Dict[Any, str] = {}
        self._is_open = False

        for name, frame in (tables or {}).items():
            self.add_table(name, frame)
        for snapshot_id, table in (snapshots or {}).items():
            self.register_snapshot(snapshot_id, table)

    def __enter__(self) -> "SnapshotStore":
        self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._is_open

    def open(self) -> None:
        if not self._is_open:
            logger.debug("Opening snapshot store with %d table(s)", len(self._tables))
        self._is_open = True

    def close(self) -> None:
        if self._is_open:
            logger.debug("Closing snapshot store")
        self._is_open = False

    def _check_open(self) -> None:
        if not self._is_open:
            raise RuntimeError("Snapshot store is closed")

    def add_table(self, name: str, frame: pd.DataFrame) -> None:
        """
        Add (or replace) a snapshot table

        Raises:
            TypeError: If frame is not a DataFrame
            ValueError: If frame has no snapshot_id column
        """
        if not isinstance(frame, pd.DataFrame):
            raise TypeError(f"Snapshot table must be a pandas DataFrame, got {type(frame).__name__}")
        if SNAPSHOT_ID_FIELD not in frame.columns:
            raise ValueError(f"Snapshot table {name!r} has no {SNAPSHOT_ID_FIELD!r} column")
        self._tables[name] = frame.copy()

    def register_snapshot(self, snapshot_id: Any, table: str) -> None:
        self._snapshots[normalize_snapshot_id(snapshot_id)] = table

    def get_snapshot_table(self, snapshot_id: Any) -> Optional[str]:
        """Get the name of the table holding a snapshot, or None if unknown"""
        self._check_open()
        table = self._snapshots.get(normalize_snapshot_id(snapshot_id))
        if table not in self._tables:
            return None
        return table

    def _snapshot_rows(self, snapshot_id: Any, caller: str) -> pd.DataFrame:
        table = self.get_snapshot_table(snapshot_id)
        if not table:
            message = f"[{caller}] Snapshot table not found for snapshot ID: {snapshot_id}"
            logger.error(message)
            raise LookupError(message)

        frame = self._tables[table]
        matches = frame[SNAPSHOT_ID_FIELD].map(normalize_snapshot_id) == normalize_snapshot_id(snapshot_id)
        return frame[matches]

    def get_snapshot(self, snapshot_id: Any) -> List[Record]:
        """
        Get the record set of a snapshot

        Raises:
            LookupError: If no table holds the snapshot
            RuntimeError: If the store is closed
        """
        rows = self._snapshot_rows(snapshot_id, "get_snapshot")
        logger.debug("Loaded %d record(s) for snapshot %s", len(rows), snapshot_id)
        return to_recordset(rows)

    def get_aggregated(
        self,
        snapshot_id: Any,
        key_field: str,
        date_fields: Sequence[str] = ()
    ) -> List[Record]:
        """
        Get a snapshot aggregated by a single key field

        Args:
            snapshot_id: ID of the snapshot
            key_field: Field to group by; one record per distinct value
            date_fields: Fields reduced to their latest (max) value per group

        Returns:
            Records with the key field, a Count column and the date fields

        Raises:
            LookupError: If the snapshot or one of the fields is not found
        """
        rows = self._snapshot_rows(snapshot_id, "get_aggregated")

        missing = [name for name in [key_field, *date_fields] if name not in rows.columns]
        if missing:
            message = f"[get_aggregated] Fields {missing} not found for snapshot ID: {snapshot_id}"
            logger.error(message)
            raise LookupError(message)

        aggregations = {"Count": (SNAPSHOT_ID_FIELD, "size")}
        for name in date_fields:
            aggregations[name] = (name, "max")

        grouped = (
            rows.groupby(key_field, sort=False, dropna=False)
            .agg(**aggregations)
            .reset_index()
        )
        grouped["Count"] = grouped["Count"].astype(int)
        logger.debug("Aggregated snapshot %s into %d record(s) by %s", snapshot_id, len(grouped), key_field)
        return to_recordset(grouped)
