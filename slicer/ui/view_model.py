"""Flatten controller state into rows the slicer panel can render."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..core.model import Node, NodePath
from ..core.tree import walk

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .controllers.selection import SelectionController

EMPTY_STATE_TEXT = "No items"


@dataclass(frozen=True)
class SlicerRow:
    """One visible row of the slicer."""

    label: str
    level: int
    path: NodePath
    selected: bool = False
    expanded: bool = False
    is_leaf: bool = True
    has_children: bool = False
    index: int | None = None

    @property
    def key(self) -> int | NodePath:
        """Return the flat index, or the tree path when the row has none.

        Flat labels may repeat, so flat rows are told apart by position.
        """
        return self.index if self.index is not None else self.path


def _matches(label: str, needle: str) -> bool:
    return needle in label.casefold()


def _matching_paths(root: Node, needle: str) -> set[NodePath]:
    """Return paths that match ``needle`` together with all their ancestors."""
    keep: set[NodePath] = set()
    for node, path in walk(root):
        if _matches(node.label, needle):
            for depth in range(1, len(path) + 1):
                keep.add(path[:depth])
    return keep


def build_rows(controller: SelectionController) -> list[SlicerRow]:
    """Return visible rows for ``controller`` in display order.

    Without search text a tree row is visible when all its ancestors are
    expanded. With search text only matching rows and their ancestors are
    shown, and matches below collapsed parents are revealed.
    """
    needle = controller.search_text.strip().casefold()
    root = controller.root
    if root is None:
        return [
            SlicerRow(
                label=item.label,
                level=0,
                path=(item.label,),
                selected=item.selected,
                index=index,
            )
            for index, item in enumerate(controller.items)
            if not needle or _matches(item.label, needle)
        ]

    keep = _matching_paths(root, needle) if needle else None
    rows: list[SlicerRow] = []
    collapsed: NodePath | None = None
    for node, path in walk(root):
        if keep is not None:
            if path not in keep:
                continue
        elif collapsed is not None and path[: len(collapsed)] == collapsed:
            continue
        else:
            collapsed = None
        rows.append(
            SlicerRow(
                label=node.label,
                level=node.level,
                path=path,
                selected=node.selected,
                expanded=node.expanded,
                is_leaf=node.is_leaf,
                has_children=bool(node.children),
            )
        )
        if keep is None and node.children and not node.expanded:
            collapsed = path
    return rows


__all__ = ["EMPTY_STATE_TEXT", "SlicerRow", "build_rows"]
