"""Domain models for slicer values and hierarchy nodes."""

from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from enum import Enum


class SelectionMode(str, Enum):
    """Enumerate how many values a user may select at once."""

    SINGLE = "single"
    MULTIPLE = "multiple"


class OutputChannel(str, Enum):
    """Enumerate outbound channels carrying the committed selection."""

    SELECTION = "selection"
    FILTER = "filter"
    BOTH = "both"

    @property
    def emits_selection(self) -> bool:
        """Return ``True`` when host-native selection writes are issued."""
        return self in (OutputChannel.SELECTION, OutputChannel.BOTH)

    @property
    def emits_filter(self) -> bool:
        """Return ``True`` when declarative filters are issued."""
        return self in (OutputChannel.FILTER, OutputChannel.BOTH)


@dataclass(frozen=True)
class SelectionHandle:
    """Opaque host identifier for one value of one column.

    The core only relies on :attr:`key`; ``level`` and ``row`` locate the value
    in the snapshot it was created for and are informational.
    """

    key: str
    level: int = 0
    row: int = 0


@dataclass
class ValueItem:
    """Represent one value of the flat list."""

    label: str
    handle: SelectionHandle | None = None
    selected: bool = False


ROOT_LEVEL = -1


@dataclass(eq=False)
class Node:
    """Represent one node of the value hierarchy.

    Children are owned by their parent. The parent link is a weak reference
    used for path reconstruction only.
    """

    key: str
    label: str
    level: int
    expanded: bool = False
    selected: bool = False
    is_leaf: bool = False
    children: list[Node] = field(default_factory=list)
    handle: SelectionHandle | None = None
    _parent_ref: weakref.ReferenceType[Node] | None = field(
        default=None, repr=False, compare=False
    )

    @classmethod
    def root(cls) -> Node:
        """Return a synthetic, never rendered root node."""
        return cls(key="", label="", level=ROOT_LEVEL, expanded=True)

    @property
    def parent(self) -> Node | None:
        """Return the parent node when it is still alive."""
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def is_root(self) -> bool:
        """Return ``True`` for the synthetic root."""
        return self.level == ROOT_LEVEL

    @property
    def path(self) -> tuple[str, ...]:
        """Return the key path from the first level down to this node."""
        keys: list[str] = []
        node: Node | None = self
        while node is not None and not node.is_root:
            keys.append(node.key)
            node = node.parent
        keys.reverse()
        return tuple(keys)

    def child(self, key: str) -> Node | None:
        """Return the direct child with ``key`` if present."""
        for candidate in self.children:
            if candidate.key == key:
                return candidate
        return None

    def add_child(self, node: Node) -> Node:
        """Attach ``node`` as the last child and return it."""
        node._parent_ref = weakref.ref(self)
        self.children.append(node)
        return node


NodePath = tuple[str, ...]


__all__ = [
    "Node",
    "OutputChannel",
    "NodePath",
    "ROOT_LEVEL",
    "SelectionHandle",
    "SelectionMode",
    "ValueItem",
]
