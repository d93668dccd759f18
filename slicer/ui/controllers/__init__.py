"""Controller classes reconciling slicer selection with the host."""

from .events import ChangeKind, RefreshOutcome, RefreshResult, SyncOutcome
from .selection import SelectionController
from .sync import ExternalSelectionSync

__all__ = [
    "ChangeKind",
    "ExternalSelectionSync",
    "RefreshOutcome",
    "RefreshResult",
    "SelectionController",
    "SyncOutcome",
]
