"""Typed slicer settings with Pydantic validation."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import tomllib
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .core.model import OutputChannel, SelectionMode


DEFAULT_FONT_SIZE = 12
DEFAULT_ITEM_PADDING = 4
DEFAULT_SEARCH_PLACEHOLDER = "Search..."


class BehaviorSettings(BaseModel):
    """Settings controlling how the slicer selects and propagates values."""

    model_config = ConfigDict(validate_assignment=True)

    selection_mode: SelectionMode = SelectionMode.SINGLE
    force_selection: bool = True
    leaf_only: bool = True
    output: OutputChannel = OutputChannel.SELECTION

    @field_validator("selection_mode", mode="before")
    @classmethod
    def _normalise_selection_mode(cls, value: Any) -> Any:
        """Accept the host's boolean encoding where ``True`` means single."""
        if isinstance(value, bool):
            return SelectionMode.SINGLE if value else SelectionMode.MULTIPLE
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("output", mode="before")
    @classmethod
    def _normalise_output(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def is_single(self) -> bool:
        """Return ``True`` when at most one value may be selected."""
        return self.selection_mode is SelectionMode.SINGLE


class FormattingSettings(BaseModel):
    """Settings for rendering list rows."""

    model_config = ConfigDict(validate_assignment=True)

    font_size: int = Field(DEFAULT_FONT_SIZE, ge=1)
    item_padding: int = Field(DEFAULT_ITEM_PADDING, ge=0)


class SearchSettings(BaseModel):
    """Settings for the optional search box."""

    model_config = ConfigDict(validate_assignment=True)

    enabled: bool = True
    placeholder: str = DEFAULT_SEARCH_PLACEHOLDER
    font_size: int = Field(DEFAULT_FONT_SIZE, ge=1)


class SlicerSettings(BaseModel):
    """Aggregate settings for one slicer instance."""

    model_config = ConfigDict(validate_assignment=True)

    behavior: BehaviorSettings = Field(default_factory=BehaviorSettings)
    formatting: FormattingSettings = Field(default_factory=FormattingSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)

    def to_dict(self) -> dict:
        """Return settings as a plain dictionary."""
        return self.model_dump(mode="json")

    @classmethod
    def from_host_objects(cls, objects: Mapping[str, Any] | None) -> "SlicerSettings":
        """Build settings from the host's formatting object mapping.

        The host delivers ``{"behavior": {"selectionMode": True, ...}, ...}``.
        A property whose value has an unexpected type keeps its default, so a
        partially populated mapping never fails validation.
        """
        behavior = BehaviorSettings()
        formatting = FormattingSettings()
        search = SearchSettings()
        return cls(
            behavior=BehaviorSettings(
                selection_mode=_get_bool(
                    objects, "behavior", "selectionMode", behavior.is_single
                ),
                force_selection=_get_bool(
                    objects, "behavior", "forceSelection", behavior.force_selection
                ),
                leaf_only=_get_bool(objects, "behavior", "leafOnly", behavior.leaf_only),
                output=_get_choice(
                    objects,
                    "behavior",
                    "output",
                    behavior.output,
                    [channel.value for channel in OutputChannel],
                ),
            ),
            formatting=FormattingSettings(
                font_size=_get_number(
                    objects, "formatting", "fontSize", formatting.font_size, minimum=1
                ),
                item_padding=_get_number(
                    objects, "formatting", "itemPadding", formatting.item_padding
                ),
            ),
            search=SearchSettings(
                enabled=_get_bool(objects, "search", "enabled", search.enabled),
                placeholder=_get_text(objects, "search", "placeholder", search.placeholder),
                font_size=_get_number(
                    objects, "search", "fontSize", search.font_size, minimum=1
                ),
            ),
        )


def _get_category(objects: Mapping[str, Any] | None, category: str) -> Mapping[str, Any]:
    if not isinstance(objects, Mapping):
        return {}
    value = objects.get(category)
    return value if isinstance(value, Mapping) else {}


def _get_bool(objects: Mapping[str, Any] | None, category: str, prop: str, default: bool) -> bool:
    value = _get_category(objects, category).get(prop)
    return value if isinstance(value, bool) else default


def _get_number(
    objects: Mapping[str, Any] | None,
    category: str,
    prop: str,
    default: int,
    *,
    minimum: int = 0,
) -> int:
    value = _get_category(objects, category).get(prop)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return max(minimum, int(value))


def _get_text(objects: Mapping[str, Any] | None, category: str, prop: str, default: str) -> str:
    value = _get_category(objects, category).get(prop)
    return value if isinstance(value, str) else default


def _get_choice(
    objects: Mapping[str, Any] | None,
    category: str,
    prop: str,
    default: Any,
    choices: list[str],
) -> Any:
    value = _get_text(objects, category, prop, "").strip().lower()
    return value if value in choices else default


def load_slicer_settings(path: str | Path) -> SlicerSettings:
    """Load :class:`SlicerSettings` from *path* with validation.

    Format is detected by file extension: ``.toml`` uses :mod:`tomllib`,
    everything else is treated as JSON.  Any validation errors are wrapped into
    :class:`ValueError` with a human-friendly message.
    """
    p = Path(path)
    with p.open("rb") as fh:
        data = tomllib.load(fh) if p.suffix.lower() == ".toml" else json.load(fh)
    try:
        return SlicerSettings.model_validate(data)
    except ValidationError as exc:
        raise ValueError(str(exc)) from exc


__all__ = [
    "BehaviorSettings",
    "FormattingSettings",
    "SearchSettings",
    "SlicerSettings",
    "load_slicer_settings",
]
