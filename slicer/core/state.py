"""Cross-refresh memory of the selection reconciliation engine."""

from __future__ import annotations

from dataclasses import dataclass, field, fields


@dataclass
class ReconciliationState:
    """Mutable state shared by the refresh, click and host-sync entry points.

    ``filtered_lock`` marks the visible domain as narrowed by an external
    filter; while set, growth of the domain is refused.
    ``suppress_next_select_callback`` is a one-shot flag raised in the same
    call as this slicer's own selection write and consumed by the next host
    selection callback.
    """

    max_item_count: int = 0
    last_item_count: int = 0
    filtered_lock: bool = False
    items_signature: str = ""
    did_initial_force: bool = False
    external_keys: set[str] = field(default_factory=set)
    suppress_next_select_callback: bool = False
    active_selection_level: int | None = None
    bound_field: tuple[str, ...] | None = None

    def reset(self) -> None:
        """Return every field to its initial value."""
        for entry in fields(self):
            if entry.name == "external_keys":
                self.external_keys = set()
            else:
                setattr(self, entry.name, entry.default)

    def reset_field_memory(self) -> None:
        """Forget what was learnt about the previous field binding."""
        self.max_item_count = 0
        self.last_item_count = 0
        self.filtered_lock = False
        self.items_signature = ""
        self.did_initial_force = False
        self.external_keys = set()
        self.active_selection_level = None

    @property
    def host_has_selection(self) -> bool:
        """Return ``True`` when the host reported a selection for this slicer."""
        return bool(self.external_keys)

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-friendly copy used for logging and reports."""
        return {
            "max_item_count": self.max_item_count,
            "last_item_count": self.last_item_count,
            "filtered_lock": self.filtered_lock,
            "items_signature": self.items_signature,
            "did_initial_force": self.did_initial_force,
            "external_keys": sorted(self.external_keys),
            "suppress_next_select_callback": self.suppress_next_select_callback,
            "active_selection_level": self.active_selection_level,
            "bound_field": list(self.bound_field) if self.bound_field else None,
        }


__all__ = ["ReconciliationState"]
