"""Controller reconciling slicer selection across host refreshes."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from ...core.filters import FilterEmitter
from ...core.host import SlicerHost
from ...core.model import Node, NodePath, SelectionHandle, ValueItem
from ...core.snapshot import ColumnSource, DataSnapshot, LevelValues, extract_levels, field_identity
from ...core.state import ReconciliationState
from ...core.tree import (
    build_tree,
    clear_selection,
    collect_expanded_paths,
    collect_selected_paths,
    expand_ancestors,
    find_node,
    first_leaf,
    items_signature,
    iter_nodes,
    leaf_count,
    restore_paths,
    selected_levels,
    selected_nodes,
    tree_signature,
)
from ...log import logger
from ...settings import SlicerSettings
from ...telemetry import log_debug_payload, log_event
from .events import ChangeKind, RefreshOutcome, RefreshResult, SyncOutcome
from .sync import ExternalSelectionSync

ChangeListener = Callable[[ChangeKind], None]


class SelectionController:
    """Own the committed items or tree and decide selection on every event.

    Three entry points mutate state: :meth:`update` for host refreshes,
    :meth:`click_item`/:meth:`click_node` for user clicks and
    :meth:`on_host_selection` for host selection callbacks. They are expected
    to run serialised on one event loop. The controller contains no UI
    toolkit code.

    Parameters
    ----------
    host:
        Host capability used for handles, selection writes and filters.
    settings:
        Initial settings; :meth:`update` may replace them.
    state:
        Reconciliation memory; a fresh one is created when omitted.
    on_change:
        Called with a :class:`ChangeKind` whenever the presentation needs to
        redraw.
    """

    def __init__(
        self,
        host: SlicerHost,
        *,
        settings: SlicerSettings | None = None,
        state: ReconciliationState | None = None,
        on_change: ChangeListener | None = None,
    ) -> None:
        self.host = host
        self.settings = settings if settings is not None else SlicerSettings()
        self.state = state if state is not None else ReconciliationState()
        self.emitter = FilterEmitter(host)
        self.sync = ExternalSelectionSync(self)
        self.search_text = ""
        self.on_change = on_change
        self._items: list[ValueItem] = []
        self._root: Node | None = None
        self._levels: list[LevelValues] = []
        host.register_selection_callback(self.on_host_selection)

    # read access -----------------------------------------------------
    @property
    def items(self) -> list[ValueItem]:
        """Return committed flat items (empty in tree mode)."""
        return self._items

    @property
    def root(self) -> Node | None:
        """Return the committed tree root (``None`` in flat mode)."""
        return self._root

    @property
    def levels(self) -> list[LevelValues]:
        """Return the populated levels of the last accepted snapshot."""
        return list(self._levels)

    @property
    def is_tree(self) -> bool:
        """Return ``True`` when the committed domain is a hierarchy."""
        return self._root is not None

    @property
    def item_count(self) -> int:
        """Return the cardinality of the committed domain."""
        if self._root is not None:
            return leaf_count(self._root)
        return len(self._items)

    def has_local_selection(self) -> bool:
        """Return ``True`` when any committed item or node is selected."""
        if self._root is not None:
            return any(node.selected for node in iter_nodes(self._root))
        return any(item.selected for item in self._items)

    def selected_labels(self) -> list[str]:
        """Return labels of selected items or nodes in display order."""
        if self._root is not None:
            return [node.label for node in selected_nodes(self._root)]
        return [item.label for item in self._items if item.selected]

    def selected_paths(self) -> list[NodePath]:
        """Return selected tree paths; flat items map to one-element paths."""
        if self._root is not None:
            return collect_selected_paths(self._root)
        return [(item.label,) for item in self._items if item.selected]

    def selected_handles(self) -> list[SelectionHandle]:
        """Return handles of the selected items or nodes."""
        if self._root is not None:
            candidates = [node.handle for node in selected_nodes(self._root)]
        else:
            candidates = [item.handle for item in self._items if item.selected]
        return [handle for handle in candidates if handle is not None]

    def set_search_text(self, text: str) -> None:
        """Remember the user's search text; it survives field swaps."""
        self.search_text = text or ""
        self.notify(ChangeKind.REBUILD)

    def notify(self, kind: ChangeKind) -> None:
        """Forward ``kind`` to the change listener."""
        if self.on_change is not None:
            self.on_change(kind)

    # refresh ---------------------------------------------------------
    def update(
        self,
        snapshot: DataSnapshot | None,
        settings: SlicerSettings | None = None,
    ) -> RefreshResult:
        """Reconcile state with a new host ``snapshot``."""
        if settings is not None:
            self.settings = settings
        state = self.state

        identity = field_identity(snapshot)
        if identity is None:
            return self._handle_field_removed()
        if state.bound_field is not None and identity != state.bound_field:
            self._handle_field_swapped(identity)
        state.bound_field = identity

        levels = extract_levels(snapshot)
        if not levels:
            logger.debug("Slicer refresh without values for %s", identity)
            return RefreshResult(RefreshOutcome.EMPTY)

        tree_mode = len(levels) > 1
        if tree_mode:
            candidate_root = build_tree(levels, self.host.create_handle)
            candidate_items: list[ValueItem] = []
            count = leaf_count(candidate_root)
        else:
            candidate_root = None
            candidate_items = self._build_items(levels[0])
            count = len(candidate_items)

        if state.filtered_lock and count > state.last_item_count:
            log_event(
                "SLICER_REFRESH_REJECTED",
                {
                    "count": count,
                    "last_item_count": state.last_item_count,
                    "max_item_count": state.max_item_count,
                },
            )
            return RefreshResult(RefreshOutcome.REJECTED, count=count)

        self._levels = levels
        if tree_mode:
            signature = tree_signature(candidate_root)
        else:
            signature = items_signature(candidate_items)
        changed = signature != state.items_signature or tree_mode != self.is_tree
        if changed:
            if candidate_root is not None:
                self._commit_tree(candidate_root)
            else:
                self._commit_items(candidate_items)
            if state.host_has_selection and not self.has_local_selection():
                self.sync.reflect(state.external_keys)
            state.items_signature = signature
            state.did_initial_force = False

        state.max_item_count = max(state.max_item_count, count)
        self._update_lock(count)
        state.last_item_count = count

        forced = self._maybe_force_default(count)
        log_debug_payload(
            "SLICER_REFRESH_ACCEPTED",
            {"count": count, "changed": changed, "forced": forced, "state": state.snapshot()},
        )
        if changed:
            self.notify(ChangeKind.REBUILD)
        elif forced:
            self.notify(ChangeKind.SELECTION)
        return RefreshResult(RefreshOutcome.ACCEPTED, count=count, changed=changed, forced=forced)

    def _build_items(self, level: LevelValues) -> list[ValueItem]:
        return [
            ValueItem(label=label, handle=self.host.create_handle(level, row, (label,)))
            for row, label in enumerate(level.labels)
        ]

    def _commit_items(self, items: list[ValueItem]) -> None:
        """Replace flat items, carrying selection forward by label."""
        previous = {item.label for item in self._items if item.selected}
        for item in items:
            item.selected = item.label in previous
        self._items = items
        self._root = None
        self.state.active_selection_level = 0 if previous & {i.label for i in items} else None

    def _commit_tree(self, root: Node) -> None:
        """Replace the tree, carrying selection and expand state by path."""
        selected: list[NodePath] = []
        expanded: list[NodePath] = []
        if self._root is not None:
            selected = collect_selected_paths(self._root)
            expanded = collect_expanded_paths(self._root)
        restored = restore_paths(root, selected=selected, expanded=expanded)
        dropped = len(selected) - len(restored)
        if dropped:
            logger.debug("Dropped %d selected paths missing after rebuild", dropped)
        self._root = root
        self._items = []
        levels = selected_levels(root)
        self.state.active_selection_level = min(levels) if levels else None

    def _update_lock(self, count: int) -> None:
        state = self.state
        previous = state.filtered_lock
        if count > 0:
            if count < state.max_item_count:
                state.filtered_lock = True
            elif (
                count == state.max_item_count
                and not state.host_has_selection
                and not self.has_local_selection()
            ):
                state.filtered_lock = False
        if state.filtered_lock != previous:
            log_event(
                "SLICER_LOCK_CHANGED",
                {
                    "locked": state.filtered_lock,
                    "count": count,
                    "max_item_count": state.max_item_count,
                },
            )

    def _maybe_force_default(self, count: int) -> bool:
        """Select the first value when single mode demands a selection."""
        behavior = self.settings.behavior
        state = self.state
        if not (behavior.is_single and behavior.force_selection):
            return False
        if count == 0 or state.host_has_selection or state.did_initial_force:
            return False
        if not (state.filtered_lock or count == state.max_item_count):
            return False

        wrote = False
        if self._root is not None:
            leaf = first_leaf(self._root)
            if leaf is not None and selected_nodes(self._root) != [leaf]:
                clear_selection(self._root)
                leaf.selected = True
                expand_ancestors(leaf)
                state.active_selection_level = leaf.level
                wrote = True
        elif self._items:
            first = self._items[0]
            if [item for item in self._items if item.selected] != [first]:
                for item in self._items:
                    item.selected = False
                first.selected = True
                state.active_selection_level = 0
                wrote = True
        if wrote:
            self._emit()
            log_event("SLICER_DEFAULT_FORCED", {"labels": self.selected_labels()})
        state.did_initial_force = True
        return wrote

    def _handle_field_removed(self) -> RefreshResult:
        state = self.state
        had_selection = self.has_local_selection() or state.host_has_selection
        was_bound = state.bound_field is not None or bool(self._items) or self._root is not None
        state.reset()
        self._items = []
        self._root = None
        self._levels = []
        # The emitted filter stays on the host; only local memory of it goes.
        self.emitter.reset()
        if had_selection and self.settings.behavior.output.emits_selection:
            self.host.clear()
        if was_bound:
            log_event("SLICER_FIELD_REMOVED", {"had_selection": had_selection})
            self.notify(ChangeKind.REBUILD)
        return RefreshResult(RefreshOutcome.UNBOUND)

    def _handle_field_swapped(self, identity: tuple[str, ...]) -> None:
        log_event(
            "SLICER_FIELD_SWAPPED",
            {"previous": self.state.bound_field, "current": identity},
        )
        self.state.reset_field_memory()
        self._items = []
        self._root = None
        self._levels = []

    # clicks ----------------------------------------------------------
    def click_item(self, index: int) -> bool:
        """Handle a user click on the flat item at ``index``.

        Returns ``True`` when the click changed the selection.
        """
        if self._root is not None or not 0 <= index < len(self._items):
            logger.debug("Ignoring click on unknown item %s", index)
            return False
        item = self._items[index]
        behavior = self.settings.behavior
        if behavior.is_single and behavior.force_selection and item.selected:
            return False
        if behavior.is_single:
            for other in self._items:
                other.selected = False
            item.selected = True
        else:
            item.selected = not item.selected
        self._commit_click(0)
        return True

    def click_node(self, path: Sequence[str]) -> bool:
        """Handle a user click on the tree node at ``path``.

        With ``leaf_only`` a click on an inner node toggles its expansion
        instead. Returns ``True`` when the click changed the selection.
        """
        root = self._root
        node = find_node(root, path) if root is not None else None
        if root is None or node is None:
            logger.debug("Ignoring click on unknown path %s", list(path))
            return False
        behavior = self.settings.behavior
        if behavior.leaf_only and not node.is_leaf:
            self.toggle_expanded(path)
            return False
        if behavior.is_single and behavior.force_selection and node.selected:
            return False
        if behavior.is_single:
            clear_selection(root)
            node.selected = True
        else:
            clear_selection(root, except_level=node.level)
            node.selected = not node.selected
        self._commit_click(node.level)
        return True

    def _commit_click(self, level: int) -> None:
        state = self.state
        state.active_selection_level = level
        if not state.filtered_lock:
            state.filtered_lock = True
            log_event("SLICER_LOCK_CHANGED", {"locked": True, "reason": "click"})
        state.did_initial_force = True
        self._emit()
        self.notify(ChangeKind.SELECTION)

    def toggle_expanded(self, path: Sequence[str]) -> bool:
        """Expand or collapse the inner node at ``path``."""
        node = find_node(self._root, path) if self._root is not None else None
        if node is None or node.is_leaf:
            return False
        node.expanded = not node.expanded
        self.notify(ChangeKind.EXPANSION)
        return True

    # emission --------------------------------------------------------
    def _active_source(self) -> ColumnSource | None:
        if not self._levels:
            return None
        level = self.state.active_selection_level or 0
        if level >= len(self._levels):
            return None
        return self._levels[level].source

    def _emit(self) -> None:
        """Send the committed selection through the configured channels."""
        behavior = self.settings.behavior
        if behavior.output.emits_selection:
            handles = self.selected_handles()
            # Raised before the write so its echo is recognised.
            self.state.suppress_next_select_callback = True
            if handles:
                self.host.select(handles, False)
            else:
                self.host.clear()
        if behavior.output.emits_filter:
            self.emitter.emit(
                self._active_source(),
                self.selected_labels(),
                single=behavior.is_single,
            )

    # host selection --------------------------------------------------
    def on_host_selection(self, keys: Iterable[SelectionHandle | str] | None) -> SyncOutcome:
        """Handle the host's selection callback."""
        return self.sync.apply(keys)

    def clear_local_selection(self) -> bool:
        """Deselect everything locally without contacting the host."""
        self.state.active_selection_level = None
        if self._root is not None:
            return clear_selection(self._root)
        changed = False
        for item in self._items:
            if item.selected:
                item.selected = False
                changed = True
        return changed

    def describe(self) -> dict[str, object]:
        """Return a JSON-friendly summary of committed state."""
        data: dict[str, object] = {
            "mode": "tree" if self.is_tree else "flat",
            "count": self.item_count,
            "selected": [list(path) for path in self.selected_paths()],
            "state": self.state.snapshot(),
            "search_text": self.search_text,
        }
        if self._root is not None:
            data["paths"] = [
                list(node.path) for node in iter_nodes(self._root) if node.is_leaf
            ]
        else:
            data["items"] = [item.label for item in self._items]
        return data


__all__ = ["ChangeListener", "SelectionController"]
