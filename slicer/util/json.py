"""JSON serialisation helpers."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any


_TRUNCATION_SENTINEL_KEY = "__truncated__"


def make_json_safe(
    value: Any,
    *,
    sort_sets: bool = True,
    max_items: int | None = None,
    default: Callable[[Any], str] | None = None,
) -> Any:
    """Return a structure compatible with :func:`json.dumps`.

    Mappings keep their keys (non-string keys are stringified), tuples and
    sets become lists, dataclasses are expanded and enums collapse to their
    values. Anything else is rendered through ``default`` (``repr`` by
    default). When ``max_items`` is set, longer containers are cut and a
    truncation marker records how many entries were omitted.
    """

    if default is None:
        default = repr

    def _omitted_marker(omitted: int) -> dict[str, Any]:
        return {_TRUNCATION_SENTINEL_KEY: {"omitted": omitted}}

    def _convert_items(items: list[Any]) -> list[Any]:
        converted = [_convert(item) for item in items[:max_items]]
        if max_items is not None and len(items) > max_items:
            converted.append(_omitted_marker(len(items) - max_items))
        return converted

    def _convert(item: Any) -> Any:
        if isinstance(item, Enum):
            return _convert(item.value)
        if isinstance(item, (str, int, float, bool)) or item is None:
            return item
        if is_dataclass(item) and not isinstance(item, type):
            return _convert(asdict(item))
        if isinstance(item, Mapping):
            result: dict[str, Any] = {}
            entries = list(item.items())
            for key, val in entries[:max_items]:
                name = key if isinstance(key, str) else str(_convert(key))
                result[name] = _convert(val)
            if max_items is not None and len(entries) > max_items:
                result[_TRUNCATION_SENTINEL_KEY] = {
                    "omitted": len(entries) - max_items
                }
            return result
        if isinstance(item, (list, tuple)):
            return _convert_items(list(item))
        if isinstance(item, (set, frozenset)):
            converted = [_convert(entry) for entry in item]
            if sort_sets:
                converted.sort(key=str)
            return _convert_items(converted) if max_items is not None else converted
        try:
            return default(item)
        except Exception:  # pragma: no cover - defensive fallback
            return f"<unserialisable {type(item).__name__}>"

    return _convert(value)


__all__ = ["make_json_safe"]
