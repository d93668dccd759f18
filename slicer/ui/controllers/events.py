"""Result and notification types shared by the slicer controllers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ChangeKind(str, Enum):
    """Describe what the presentation has to redraw."""

    REBUILD = "rebuild"
    SELECTION = "selection"
    EXPANSION = "expansion"


class RefreshOutcome(str, Enum):
    """Enumerate how a host refresh was handled."""

    UNBOUND = "unbound"
    EMPTY = "empty"
    REJECTED = "rejected"
    ACCEPTED = "accepted"


class SyncOutcome(str, Enum):
    """Enumerate how a host selection callback was handled."""

    SUPPRESSED = "suppressed"
    NO_ITEMS = "no_items"
    CLEARED = "cleared"
    APPLIED = "applied"


@dataclass(frozen=True)
class RefreshResult:
    """Summary of one :meth:`SelectionController.update` call."""

    outcome: RefreshOutcome
    count: int = 0
    changed: bool = False
    forced: bool = False


__all__ = ["ChangeKind", "RefreshOutcome", "RefreshResult", "SyncOutcome"]
