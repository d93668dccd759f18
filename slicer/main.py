"""Demo application hosting one slicer over an in-process host."""

import sys
from collections.abc import Sequence

import wx

from slicer.core.host import RecordingHost
from slicer.core.model import SelectionHandle
from slicer.core.snapshot import ColumnSnapshot, ColumnSource, DataSnapshot
from slicer.log import configure_logging, logger
from slicer.settings import SlicerSettings
from slicer.ui.controllers import SelectionController
from slicer.ui.slicer_panel import SlicerPanel

APP_NAME = "Slicer"

DEMO_ROWS = (
    ("Europe", "France"),
    ("Europe", "Germany"),
    ("Europe", "Spain"),
    ("Asia", "Japan"),
    ("Asia", "Korea"),
    ("Americas", "Canada"),
    ("Americas", "Mexico"),
)


class EchoingHost(RecordingHost):
    """Recording host that answers selection writes on the next event turn."""

    def select(self, handles: Sequence[SelectionHandle], extend: bool) -> None:
        super().select(handles, extend)
        wx.CallAfter(self.echo)

    def clear(self) -> None:
        super().clear()
        wx.CallAfter(self.echo)


def demo_snapshot(rows: Sequence[tuple[str, str]] = DEMO_ROWS) -> DataSnapshot:
    """Return a two-level snapshot of ``rows``."""
    return DataSnapshot(
        columns=(
            ColumnSnapshot(
                source=ColumnSource(display_name="Region", query_name="Geo.Region"),
                values=tuple(region for region, _country in rows),
            ),
            ColumnSnapshot(
                source=ColumnSource(display_name="Country", query_name="Geo.Country"),
                values=tuple(country for _region, country in rows),
            ),
        )
    )


class SlicerApp(wx.App):
    """Custom wx.App that logs unhandled GUI exceptions."""

    def OnExceptionInMainLoop(self) -> None:  # pragma: no cover - GUI path
        exc_info = sys.exc_info()
        try:
            logger.exception("Unhandled exception in GUI main loop", exc_info=exc_info)
        finally:
            super().OnExceptionInMainLoop()


def main() -> None:
    """Run wx application with a demo slicer frame."""
    configure_logging()
    app = SlicerApp()
    host = EchoingHost()
    controller = SelectionController(host, settings=SlicerSettings())
    frame = wx.Frame(None, title=APP_NAME, size=(320, 480))
    panel = SlicerPanel(frame, controller)
    controller.update(demo_snapshot())
    panel.render()
    frame.Show()
    app.MainLoop()


if __name__ == "__main__":  # pragma: no cover
    main()
