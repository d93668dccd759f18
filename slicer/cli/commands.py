"""Command implementations for the CLI interface."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from slicer.core.host import RecordingHost
from slicer.core.snapshot import snapshot_from_dict
from slicer.log import logger
from slicer.settings import SlicerSettings
from slicer.ui.controllers import SelectionController
from slicer.util.json import make_json_safe

EVENT_TYPES = ("update", "click", "host_selection", "echo", "toggle", "search")


class ScenarioError(ValueError):
    """Raised when a replay scenario is malformed."""


@dataclass
class Command:
    """Describe a CLI command and its argument handler."""

    func: Callable[[argparse.Namespace], None]
    help: str
    add_arguments: Callable[[argparse.ArgumentParser], None]


def load_scenario(path: str | Path) -> dict[str, Any]:
    """Read and shape-check the scenario file at ``path``."""
    try:
        with Path(path).open(encoding="utf-8") as fh:
            data = json.load(fh)
    except OSError as exc:
        raise ScenarioError(f"cannot read scenario {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ScenarioError(f"invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ScenarioError("scenario must be a JSON object")
    events = data.get("events")
    if not isinstance(events, list):
        raise ScenarioError("scenario.events must be a list")
    return dict(data)


def _settings_from(value: Any, *, where: str) -> SlicerSettings:
    if not isinstance(value, Mapping):
        raise ScenarioError(f"{where}: settings must be an object")
    try:
        return SlicerSettings.model_validate(value)
    except ValidationError as exc:
        raise ScenarioError(f"{where}: {exc}") from exc


def _path_from(event: Mapping[str, Any], *, where: str) -> list[str]:
    path = event.get("path")
    if not isinstance(path, list) or not all(isinstance(part, str) for part in path):
        raise ScenarioError(f"{where}: path must be a list of strings")
    return path


def _apply_event(
    controller: SelectionController,
    host: RecordingHost,
    event: Any,
    where: str,
) -> Any:
    """Feed one scenario ``event`` to ``controller`` and return its outcome."""
    if not isinstance(event, Mapping):
        raise ScenarioError(f"{where}: event must be an object")
    kind = event.get("type")
    if kind == "update":
        raw = event.get("snapshot")
        snapshot = None
        if raw is not None:
            if not isinstance(raw, Mapping):
                raise ScenarioError(f"{where}: snapshot must be an object")
            try:
                snapshot = snapshot_from_dict(raw)
            except TypeError as exc:
                raise ScenarioError(f"{where}: {exc}") from exc
        settings = None
        if "settings" in event:
            settings = _settings_from(event["settings"], where=where)
        elif snapshot is not None and snapshot.objects:
            settings = SlicerSettings.from_host_objects(snapshot.objects)
        return controller.update(snapshot, settings)
    if kind == "click":
        if "index" in event:
            index = event["index"]
            if isinstance(index, bool) or not isinstance(index, int):
                raise ScenarioError(f"{where}: index must be an integer")
            return controller.click_item(index)
        return controller.click_node(_path_from(event, where=where))
    if kind == "toggle":
        return controller.toggle_expanded(_path_from(event, where=where))
    if kind == "host_selection":
        keys = event.get("keys")
        if not isinstance(keys, list):
            raise ScenarioError(f"{where}: keys must be a list")
        host.selected_keys = {str(key) for key in keys}
        return controller.on_host_selection(keys)
    if kind == "echo":
        host.echo()
        return None
    if kind == "search":
        controller.set_search_text(str(event.get("text") or ""))
        return None
    raise ScenarioError(f"{where}: unknown event type {kind!r}; expected one of {EVENT_TYPES}")


def replay(scenario: Mapping[str, Any], settings: SlicerSettings | None = None) -> dict[str, Any]:
    """Run ``scenario`` against a recording host and return a report."""
    if "settings" in scenario:
        settings = _settings_from(scenario["settings"], where="scenario")
    host = RecordingHost(auto_echo=bool(scenario.get("auto_echo", False)))
    controller = SelectionController(host, settings=settings)
    outcomes: list[Any] = []
    for position, event in enumerate(scenario.get("events") or []):
        outcome = _apply_event(controller, host, event, f"events[{position}]")
        outcomes.append(make_json_safe(outcome))
    logger.info("Replayed %d scenario events", len(outcomes))
    report = controller.describe()
    report["outcomes"] = outcomes
    report["writes"] = [write.to_dict() for write in host.writes]
    report["host_selection"] = sorted(host.selected_keys)
    report["filters"] = make_json_safe(host.filters)
    return report


def cmd_replay(args: argparse.Namespace) -> None:
    """Replay a scenario file and print the JSON report."""
    scenario = load_scenario(args.scenario)
    report = replay(scenario, args.slicer_settings)
    sys.stdout.write(
        json.dumps(make_json_safe(report), ensure_ascii=False, indent=2, sort_keys=True) + "\n",
    )


def add_replay_arguments(p: argparse.ArgumentParser) -> None:
    """Configure parser for the ``replay`` command."""
    p.add_argument("scenario", help="path to scenario JSON")


COMMANDS: dict[str, Command] = {
    "replay": Command(cmd_replay, "replay a refresh/click scenario", add_replay_arguments),
}
