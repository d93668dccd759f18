"""Project the committed selection into declarative host filters."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ..telemetry import log_event
from .host import FilterAction
from .snapshot import ColumnSource

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .host import SlicerHost

BASIC_FILTER_SCHEMA = "http://powerbi.com/product/schema#basic"
BASIC_FILTER_TYPE = 1
FILTER_SCOPE = "general.filter"

_AGGREGATE_RE = re.compile(r"^\s*\w+\((?P<inner>.+)\)\s*$")


class FilterTarget(BaseModel):
    """Table and column a filter applies to."""

    model_config = ConfigDict(frozen=True)

    table: str = ""
    column: str


class BasicFilter(BaseModel):
    """Set-membership filter ``target.column IN values``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_uri: str = Field(BASIC_FILTER_SCHEMA, alias="$schema")
    target: FilterTarget
    filter_type: int = Field(BASIC_FILTER_TYPE, alias="filterType")
    operator: Literal["In"] = "In"
    values: list[str]
    require_single_selection: bool = Field(False, alias="requireSingleSelection")

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON payload handed to the host."""
        return self.model_dump(by_alias=True)


class EmitOutcome(str, Enum):
    """Enumerate results of :meth:`FilterEmitter.emit`."""

    APPLIED = "applied"
    UNCHANGED = "unchanged"
    WITHDRAWN = "withdrawn"
    NOOP = "noop"
    UNRESOLVED = "unresolved"


def _target_from_expr(expr: Mapping[str, Any] | None) -> FilterTarget | None:
    """Read a structured column reference.

    Accepts ``{"table": T, "column": C}`` and the host's
    ``{"source": {"entity": T}, "ref": C}`` shape.
    """
    if not isinstance(expr, Mapping):
        return None
    table = expr.get("table")
    column = expr.get("column")
    if isinstance(table, str) and isinstance(column, str) and column:
        return FilterTarget(table=table, column=column)
    source = expr.get("source")
    ref = expr.get("ref")
    if isinstance(source, Mapping) and isinstance(ref, str) and ref:
        entity = source.get("entity")
        if isinstance(entity, str) and entity:
            return FilterTarget(table=entity, column=ref)
    return None


def _target_from_query_name(query_name: str | None) -> FilterTarget | None:
    """Split a dotted ``Table.Column`` query name, unwrapping aggregates."""
    text = (query_name or "").strip()
    match = _AGGREGATE_RE.match(text)
    if match:
        text = match.group("inner").strip()
    if "." not in text:
        return None
    table, column = (part.strip() for part in text.split(".", 1))
    if not table or not column:
        return None
    return FilterTarget(table=table, column=column)


def resolve_target(source: ColumnSource | None) -> FilterTarget | None:
    """Return the filter target for ``source``.

    Preference order: structured reference, dotted query name, display name
    with an empty table. ``None`` when nothing usable is available.
    """
    if source is None:
        return None
    target = _target_from_expr(source.expr) or _target_from_query_name(source.query_name)
    if target is not None:
        return target
    name = (source.display_name or "").strip()
    if name:
        return FilterTarget(table="", column=name)
    return None


def build_filter(
    target: FilterTarget, labels: Iterable[str], *, single: bool = False
) -> BasicFilter:
    """Return a membership filter for distinct ``labels`` in order."""
    return BasicFilter(
        target=target,
        values=list(dict.fromkeys(labels)),
        require_single_selection=single,
    )


class FilterEmitter:
    """Issue and withdraw this slicer's own filter on the host."""

    def __init__(self, host: SlicerHost, scope: str = FILTER_SCOPE) -> None:
        """Bind the emitter to ``host`` using filter ``scope``."""
        self.host = host
        self.scope = scope
        self._live: dict[str, Any] | None = None

    @property
    def live_filter(self) -> dict[str, Any] | None:
        """Return the last filter this emitter applied, if still live."""
        return self._live

    def emit(
        self,
        source: ColumnSource | None,
        labels: Iterable[str],
        *,
        single: bool = False,
    ) -> EmitOutcome:
        """Apply a filter for ``labels`` or withdraw it when empty."""
        values = list(dict.fromkeys(labels))
        if not values:
            return self.withdraw()
        target = resolve_target(source)
        if target is None:
            log_event(
                "SLICER_FILTER_UNRESOLVED",
                {
                    "display_name": getattr(source, "display_name", None),
                    "query_name": getattr(source, "query_name", None),
                    "values": values,
                },
                level=logging.WARNING,
            )
            return EmitOutcome.UNRESOLVED
        descriptor = build_filter(target, values, single=single).to_payload()
        if descriptor == self._live:
            return EmitOutcome.UNCHANGED
        self.host.apply_filter(descriptor, self.scope, FilterAction.MERGE)
        self._live = descriptor
        log_event(
            "SLICER_FILTER_APPLIED",
            {"target": target.model_dump(), "values": values},
        )
        return EmitOutcome.APPLIED

    def withdraw(self) -> EmitOutcome:
        """Remove this emitter's live filter from the host."""
        if self._live is None:
            return EmitOutcome.NOOP
        self.host.apply_filter(None, self.scope, FilterAction.REMOVE)
        log_event("SLICER_FILTER_WITHDRAWN", {"scope": self.scope})
        self._live = None
        return EmitOutcome.WITHDRAWN

    def reset(self) -> None:
        """Forget the live filter without contacting the host."""
        self._live = None


__all__ = [
    "BASIC_FILTER_SCHEMA",
    "BasicFilter",
    "EmitOutcome",
    "FILTER_SCOPE",
    "FilterEmitter",
    "FilterTarget",
    "build_filter",
    "resolve_target",
]
