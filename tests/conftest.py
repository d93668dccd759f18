"""Pytest configuration for the slicer test suite."""

from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest

from slicer.core.host import RecordingHost
from slicer.log import logger
from slicer.ui.controllers import SelectionController
from tests.slicer_utils import make_settings


@pytest.fixture
def host() -> RecordingHost:
    """Provide a recording host without automatic echo."""
    return RecordingHost()


@pytest.fixture
def make_controller(host: RecordingHost) -> Callable[..., SelectionController]:
    """Return a factory creating controllers bound to ``host``."""

    def _make(**behavior: object) -> SelectionController:
        return SelectionController(host, settings=make_settings(**behavior))

    return _make


@pytest.fixture(autouse=True)
def _isolate_logger(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    """Keep log files out of the home directory and restore handlers."""
    monkeypatch.setenv("SLICER_LOG_DIR", str(tmp_path_factory.mktemp("logs")))
    handlers = list(logger.handlers)
    level = logger.level
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
