"""Structured events emitted by the reconciliation engine."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from .log import logger
from .util.json import make_json_safe

# Long label lists are cut in log payloads
MAX_PAYLOAD_ITEMS = 50


def _encoded_size(value: Any) -> int:
    return len(json.dumps(value, ensure_ascii=False).encode("utf-8"))


def log_event(
    event: str,
    payload: Mapping[str, Any] | None = None,
    *,
    level: int = logging.INFO,
) -> None:
    """Log ``event`` with a JSON-safe copy of ``payload``.

    The record carries ``{"event", "payload", "size_bytes"}`` under the
    ``json`` extra, which the JSONL handler writes verbatim and the console
    formatter appends to the message. Sequences longer than
    :data:`MAX_PAYLOAD_ITEMS` end with a truncation marker.
    """
    body = make_json_safe(dict(payload), max_items=MAX_PAYLOAD_ITEMS) if payload else {}
    data = {"event": event, "payload": body, "size_bytes": _encoded_size(body) if body else 0}
    logger.log(level, event, extra={"json": data})


def log_debug_payload(
    event: str,
    payload: Mapping[str, Any] | Sequence[Any] | str | None = None,
) -> None:
    """Log ``event`` at DEBUG with the untruncated payload in the message."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    data: dict[str, Any] = {"event": event, "level": "DEBUG"}
    message = event
    if payload is not None:
        body = make_json_safe(payload)
        data["payload"] = body
        message = f"{event} {json.dumps(body, ensure_ascii=False)}"
    logger.debug(message, extra={"json": data})


__all__ = ["MAX_PAYLOAD_ITEMS", "log_debug_payload", "log_event"]
