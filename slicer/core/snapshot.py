"""Convert host data snapshots into ordered label sequences."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ColumnSource:
    """Describe where a snapshot column comes from.

    ``expr`` carries a structured column reference when the host provides one,
    ``query_name`` is the host's query identifier (usually ``Table.Column``).
    """

    display_name: str = ""
    query_name: str | None = None
    expr: Mapping[str, Any] | None = None

    @property
    def identity(self) -> str:
        """Return the identifier used to detect a swapped field binding."""
        return self.query_name or self.display_name


@dataclass(frozen=True)
class ColumnSnapshot:
    """Hold the raw values of one bound column in row order."""

    source: ColumnSource
    values: Sequence[Any] = ()


@dataclass(frozen=True)
class DataSnapshot:
    """Represent one host refresh: bound columns plus formatting objects."""

    columns: Sequence[ColumnSnapshot] = ()
    objects: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LevelValues:
    """Labels of one populated hierarchy level."""

    level: int
    column: ColumnSnapshot
    labels: list[str]

    @property
    def source(self) -> ColumnSource:
        """Return the column descriptor of this level."""
        return self.column.source


def to_label(value: Any) -> str:
    """Return the display label for a raw snapshot ``value``.

    ``None`` becomes an empty string, booleans render lowercase and integral
    floats drop their fractional part, matching how the host prints values.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if value.is_integer():
            return str(int(value))
    return str(value)


def extract_levels(snapshot: DataSnapshot | None) -> list[LevelValues]:
    """Return one label sequence per populated hierarchy level.

    Levels without values are skipped; the remaining levels keep their row
    alignment and are renumbered consecutively from zero.
    """
    if snapshot is None:
        return []
    levels: list[LevelValues] = []
    for column in snapshot.columns or ():
        values = list(column.values or ())
        if not values:
            continue
        levels.append(
            LevelValues(
                level=len(levels),
                column=column,
                labels=[to_label(value) for value in values],
            )
        )
    return levels


def field_identity(snapshot: DataSnapshot | None) -> tuple[str, ...] | None:
    """Return the identity of the bound field(s) or ``None`` when unbound."""
    if snapshot is None or not snapshot.columns:
        return None
    return tuple(column.source.identity for column in snapshot.columns)


def snapshot_from_dict(data: Mapping[str, Any]) -> DataSnapshot:
    """Create :class:`DataSnapshot` from a plain mapping.

    Expected shape::

        {"columns": [{"display_name": ..., "query_name": ..., "expr": ...,
                      "values": [...]}], "objects": {...}}
    """
    raw_columns = data.get("columns") or []
    if not isinstance(raw_columns, list):
        raise TypeError("columns must be a list")
    columns: list[ColumnSnapshot] = []
    for raw in raw_columns:
        if not isinstance(raw, Mapping):
            raise TypeError("column entries must be mappings")
        values = raw.get("values") or []
        if not isinstance(values, list):
            raise TypeError("column values must be a list")
        expr = raw.get("expr")
        columns.append(
            ColumnSnapshot(
                source=ColumnSource(
                    display_name=str(raw.get("display_name") or ""),
                    query_name=raw.get("query_name") or None,
                    expr=expr if isinstance(expr, Mapping) else None,
                ),
                values=tuple(values),
            )
        )
    objects = data.get("objects") or {}
    if not isinstance(objects, Mapping):
        raise TypeError("objects must be a mapping")
    return DataSnapshot(columns=tuple(columns), objects=dict(objects))


__all__ = [
    "ColumnSnapshot",
    "ColumnSource",
    "DataSnapshot",
    "LevelValues",
    "extract_levels",
    "field_identity",
    "snapshot_from_dict",
    "to_label",
]
