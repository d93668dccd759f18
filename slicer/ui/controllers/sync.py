"""Reflect host-reported selection onto the slicer's items and nodes."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from ...core.model import SelectionHandle
from ...core.tree import clear_selection, expand_ancestors, iter_nodes
from ...telemetry import log_event
from .events import ChangeKind, SyncOutcome

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .selection import SelectionController


def _normalise_key(value: SelectionHandle | str) -> str:
    if isinstance(value, SelectionHandle):
        return value.key
    return str(value)


class ExternalSelectionSync:
    """Apply selection keys reported by the host.

    The one-shot suppression flag raised by the controller's own writes is
    consumed here before anything else, so the echo of a write never feeds
    back into another write.
    """

    def __init__(self, controller: SelectionController) -> None:
        """Attach the sync to ``controller`` whose state it mutates."""
        self.controller = controller

    def apply(self, keys: Iterable[SelectionHandle | str] | None) -> SyncOutcome:
        """Handle one host selection callback carrying ``keys``."""
        state = self.controller.state
        if state.suppress_next_select_callback:
            state.suppress_next_select_callback = False
            log_event("SLICER_ECHO_SUPPRESSED", level=logging.DEBUG)
            return SyncOutcome.SUPPRESSED

        reported = {_normalise_key(key) for key in keys or ()}
        state.external_keys = reported
        if self.controller.item_count == 0:
            return SyncOutcome.NO_ITEMS

        if not reported:
            if self.controller.clear_local_selection():
                self.controller.notify(ChangeKind.SELECTION)
            return SyncOutcome.CLEARED

        changed = self.reflect(reported)
        if self.controller.item_count < state.max_item_count and not state.filtered_lock:
            state.filtered_lock = True
            log_event(
                "SLICER_LOCK_CHANGED",
                {"locked": True, "reason": "external_selection"},
            )
        if changed:
            self.controller.notify(ChangeKind.SELECTION)
        return SyncOutcome.APPLIED

    def reflect(self, reported: set[str]) -> bool:
        """Mark exactly the items or nodes whose keys are in ``reported``.

        Returns ``True`` when any selection flag changed.
        """
        if self.controller.is_tree:
            return self._apply_to_tree(reported)
        return self._apply_to_items(reported)

    def _apply_to_items(self, reported: set[str]) -> bool:
        changed = False
        for item in self.controller.items:
            selected = item.handle is not None and item.handle.key in reported
            if item.selected != selected:
                item.selected = selected
                changed = True
        state = self.controller.state
        state.active_selection_level = 0 if self.controller.has_local_selection() else None
        return changed

    def _apply_to_tree(self, reported: set[str]) -> bool:
        root = self.controller.root
        if root is None:
            return False
        state = self.controller.state
        matched = [
            node
            for node in iter_nodes(root)
            if node.handle is not None and node.handle.key in reported
        ]
        if not matched:
            state.active_selection_level = None
            return clear_selection(root)
        active_level = min(node.level for node in matched)
        keep = {id(node) for node in matched if node.level == active_level}
        changed = False
        for node in iter_nodes(root):
            selected = id(node) in keep
            if node.selected != selected:
                node.selected = selected
                changed = True
            if selected:
                expand_ancestors(node)
        state.active_selection_level = active_level
        return changed


__all__ = ["ExternalSelectionSync"]
