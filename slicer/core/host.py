"""Host capability interface and an in-process recording host."""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from .model import NodePath, SelectionHandle
from .snapshot import LevelValues

SelectionCallback = Callable[[Collection[str]], None]


class FilterAction(str, Enum):
    """Enumerate how a filter request combines with existing host filters."""

    MERGE = "merge"
    REMOVE = "remove"


class SlicerHost(Protocol):
    """Capabilities the slicer needs from its reporting host.

    Writes are fire-and-forget: the only feedback is a later call of the
    registered selection callback with the host's resulting selection keys.
    """

    def create_handle(self, level: LevelValues, row: int, path: NodePath) -> SelectionHandle:
        """Return the selection handle for ``row`` of ``level``."""

    def select(self, handles: Sequence[SelectionHandle], extend: bool) -> None:
        """Request selection of ``handles``."""

    def clear(self) -> None:
        """Request clearing of this slicer's selection."""

    def apply_filter(
        self,
        descriptor: Mapping[str, Any] | None,
        scope: str,
        action: FilterAction,
    ) -> None:
        """Merge ``descriptor`` into host filters or remove this slicer's filter."""

    def register_selection_callback(self, callback: SelectionCallback) -> None:
        """Register ``callback`` for host-reported selection changes."""


@dataclass(frozen=True)
class HostWrite:
    """One outbound request recorded by :class:`RecordingHost`."""

    kind: str
    keys: tuple[str, ...] = ()
    extend: bool = False
    descriptor: Mapping[str, Any] | None = None
    scope: str = ""
    action: FilterAction | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly representation."""
        data: dict[str, Any] = {"kind": self.kind}
        if self.kind == "select":
            data["keys"] = list(self.keys)
            data["extend"] = self.extend
        elif self.kind == "filter":
            data["descriptor"] = dict(self.descriptor) if self.descriptor else None
            data["scope"] = self.scope
            data["action"] = self.action.value if self.action else None
        return data


def handle_key(identity: str, path: Iterable[str]) -> str:
    """Return the key :class:`RecordingHost` assigns to a value path."""
    return f"{identity}:{'/'.join(path)}"


@dataclass
class RecordingHost:
    """Deterministic host that records writes and replays callbacks on demand.

    Handle keys combine the column identity with the full label path so equal
    labels under different parents get distinct keys. With ``auto_echo`` the
    host answers every selection write immediately with the resulting keys.
    """

    auto_echo: bool = False
    writes: list[HostWrite] = field(default_factory=list)
    selected_keys: set[str] = field(default_factory=set)
    filters: dict[str, Mapping[str, Any]] = field(default_factory=dict)
    _callbacks: list[SelectionCallback] = field(default_factory=list, repr=False)

    def create_handle(self, level: LevelValues, row: int, path: NodePath) -> SelectionHandle:
        """Return a handle keyed by column identity and label path."""
        return SelectionHandle(
            key=handle_key(level.source.identity, path),
            level=level.level,
            row=row,
        )

    def select(self, handles: Sequence[SelectionHandle], extend: bool) -> None:
        """Record a selection write and update the host-side selection."""
        keys = tuple(handle.key for handle in handles)
        self.writes.append(HostWrite(kind="select", keys=keys, extend=extend))
        if extend:
            self.selected_keys |= set(keys)
        else:
            self.selected_keys = set(keys)
        if self.auto_echo:
            self.echo()

    def clear(self) -> None:
        """Record a clear request."""
        self.writes.append(HostWrite(kind="clear"))
        self.selected_keys = set()
        if self.auto_echo:
            self.echo()

    def apply_filter(
        self,
        descriptor: Mapping[str, Any] | None,
        scope: str,
        action: FilterAction,
    ) -> None:
        """Record a filter request and track the live filter per scope."""
        self.writes.append(
            HostWrite(kind="filter", descriptor=descriptor, scope=scope, action=action)
        )
        if action is FilterAction.REMOVE or descriptor is None:
            self.filters.pop(scope, None)
        else:
            self.filters[scope] = descriptor

    def register_selection_callback(self, callback: SelectionCallback) -> None:
        """Register ``callback`` for :meth:`deliver` and :meth:`echo`."""
        self._callbacks.append(callback)

    def deliver(self, keys: Iterable[str]) -> None:
        """Report ``keys`` as the host selection, as another visual might cause."""
        self.selected_keys = set(keys)
        self.echo()

    def echo(self) -> None:
        """Invoke callbacks with the current host selection."""
        current = frozenset(self.selected_keys)
        for callback in list(self._callbacks):
            callback(current)

    # inspection helpers ----------------------------------------------
    def writes_of(self, kind: str) -> list[HostWrite]:
        """Return recorded writes of ``kind``."""
        return [write for write in self.writes if write.kind == kind]

    def reset_writes(self) -> None:
        """Forget recorded writes."""
        self.writes.clear()


__all__ = [
    "FilterAction",
    "HostWrite",
    "RecordingHost",
    "SelectionCallback",
    "SlicerHost",
    "handle_key",
]
