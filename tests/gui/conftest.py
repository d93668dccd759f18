"""Pytest configuration for GUI test suite."""

from __future__ import annotations

import contextlib
import os
import sys
from collections.abc import Iterator

import pytest

# Apply the ``gui`` marker to every test in this package so they can be selected
# with ``-m gui`` and handled separately from non-GUI checks.
pytestmark = pytest.mark.gui


@pytest.fixture(scope="session")
def _wx_session_app():
    """Create a shared ``wx.App`` when wxPython and a display are available."""
    wx = pytest.importorskip("wx")
    if sys.platform.startswith("linux") and not os.environ.get("DISPLAY"):
        pytest.skip("no display available")
    app = wx.App()
    yield wx, app
    for window in list(wx.GetTopLevelWindows()):
        with contextlib.suppress(Exception):
            window.Destroy()
    with contextlib.suppress(Exception):
        app.Destroy()


@pytest.fixture
def wx_app(_wx_session_app) -> Iterator[object]:
    """Return the shared ``wx.App`` and destroy frames created by the test."""
    wx, app = _wx_session_app
    yield app
    for window in list(wx.GetTopLevelWindows()):
        if window:
            window.Destroy()
