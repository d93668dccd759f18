"""Build and query the value hierarchy used in tree mode."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
import json

from .model import Node, NodePath, SelectionHandle, ValueItem
from .snapshot import LevelValues

HandleFactory = Callable[[LevelValues, int, NodePath], SelectionHandle | None]


def build_tree(
    levels: Sequence[LevelValues],
    handle_factory: HandleFactory | None = None,
) -> Node:
    """Fold row-aligned ``levels`` into a rooted tree.

    Row ``i`` contributes the path ``levels[0].labels[i] / levels[1].labels[i]
    / ...``. Children of one parent are deduplicated by key and keep the order
    of first appearance; each node keeps the handle of the first row that
    produced it. A node is a leaf iff it sits on the last populated level.
    """
    root = Node.root()
    if not levels:
        return root
    last_level = levels[-1].level
    index: dict[int, dict[str, Node]] = {id(root): {}}
    row_count = max(len(level.labels) for level in levels)
    for row in range(row_count):
        parent = root
        path: list[str] = []
        for level in levels:
            if row >= len(level.labels):
                break
            label = level.labels[row]
            path.append(label)
            siblings = index[id(parent)]
            node = siblings.get(label)
            if node is None:
                handle = (
                    handle_factory(level, row, tuple(path)) if handle_factory else None
                )
                node = parent.add_child(
                    Node(
                        key=label,
                        label=label,
                        level=level.level,
                        is_leaf=level.level == last_level,
                        handle=handle,
                    )
                )
                siblings[label] = node
                index[id(node)] = {}
            parent = node
    return root


def walk(root: Node) -> Iterator[tuple[Node, NodePath]]:
    """Yield ``(node, path)`` pairs in document order.

    Uses an explicit stack; ``path`` grows and shrinks with the depth of the
    node being visited so no parent links are needed.
    """
    path: list[str] = []
    stack: list[tuple[Node, int]] = [(child, 0) for child in reversed(root.children)]
    while stack:
        node, depth = stack.pop()
        del path[depth:]
        path.append(node.key)
        yield node, tuple(path)
        stack.extend((child, depth + 1) for child in reversed(node.children))


def iter_nodes(root: Node) -> Iterator[Node]:
    """Yield every node below ``root`` in document order."""
    for node, _path in walk(root):
        yield node


def iter_leaves(root: Node) -> Iterator[Node]:
    """Yield leaf nodes in document order."""
    return (node for node in iter_nodes(root) if node.is_leaf)


def leaf_count(root: Node | None) -> int:
    """Return the number of leaves, the tree's cardinality."""
    if root is None:
        return 0
    return sum(1 for _leaf in iter_leaves(root))


def collect_paths(root: Node, predicate: Callable[[Node], bool]) -> list[NodePath]:
    """Return paths of nodes matching ``predicate`` in document order."""
    return [path for node, path in walk(root) if predicate(node)]


def collect_selected_paths(root: Node) -> list[NodePath]:
    """Return paths of all selected nodes."""
    return collect_paths(root, lambda node: node.selected)


def collect_expanded_paths(root: Node) -> list[NodePath]:
    """Return paths of all expanded nodes."""
    return collect_paths(root, lambda node: node.expanded)


def find_node(root: Node, path: Iterable[str]) -> Node | None:
    """Return the node at ``path`` or ``None`` when the path does not exist."""
    node: Node | None = root
    for key in path:
        node = node.child(key) if node is not None else None
        if node is None:
            return None
    return None if node is root else node


def first_leaf(root: Node) -> Node | None:
    """Return the first leaf in document order."""
    return next(iter_leaves(root), None)


def expand_ancestors(node: Node) -> None:
    """Expand every ancestor of ``node`` so it becomes visible."""
    parent = node.parent
    while parent is not None and not parent.is_root:
        parent.expanded = True
        parent = parent.parent


def restore_paths(
    root: Node,
    *,
    selected: Iterable[NodePath] = (),
    expanded: Iterable[NodePath] = (),
) -> list[NodePath]:
    """Copy selection and expand state forward onto a rebuilt tree.

    Paths that no longer exist are dropped. Returns the selected paths that
    were restored.
    """
    for path in expanded:
        node = find_node(root, path)
        if node is not None and not node.is_leaf:
            node.expanded = True
    restored: list[NodePath] = []
    for path in selected:
        node = find_node(root, path)
        if node is not None:
            node.selected = True
            restored.append(tuple(path))
    return restored


def selected_nodes(root: Node) -> list[Node]:
    """Return selected nodes in document order."""
    return [node for node in iter_nodes(root) if node.selected]


def selected_levels(root: Node) -> set[int]:
    """Return the levels that currently hold a selected node."""
    return {node.level for node in iter_nodes(root) if node.selected}


def clear_selection(root: Node, *, except_level: int | None = None) -> bool:
    """Deselect nodes, optionally keeping those on ``except_level``.

    Returns ``True`` when any node changed.
    """
    changed = False
    for node in iter_nodes(root):
        if node.selected and node.level != except_level:
            node.selected = False
            changed = True
    return changed


def tree_signature(root: Node | None) -> str:
    """Return a content fingerprint of the tree's ordered label paths."""
    if root is None:
        return ""
    return json.dumps([list(path) for _node, path in walk(root)], ensure_ascii=False)


def items_signature(items: Sequence[ValueItem]) -> str:
    """Return a content fingerprint of the ordered flat labels."""
    return json.dumps([item.label for item in items], ensure_ascii=False)


__all__ = [
    "HandleFactory",
    "build_tree",
    "clear_selection",
    "collect_expanded_paths",
    "collect_paths",
    "collect_selected_paths",
    "expand_ancestors",
    "find_node",
    "first_leaf",
    "items_signature",
    "iter_leaves",
    "iter_nodes",
    "leaf_count",
    "restore_paths",
    "selected_levels",
    "selected_nodes",
    "tree_signature",
    "walk",
]
