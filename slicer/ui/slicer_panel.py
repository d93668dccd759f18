"""Panel rendering a slicer as a searchable tree of values."""
from __future__ import annotations

import wx

from ..log import logger
from .controllers import ChangeKind, SelectionController
from .view_model import EMPTY_STATE_TEXT, SlicerRow, build_rows


class SlicerPanel(wx.Panel):
    """Tree view of slicer values driven by :class:`SelectionController`.

    The panel only reads controller state; clicks, expansion and search text
    are forwarded to the controller, which calls back through ``on_change``.
    """

    def __init__(self, parent: wx.Window, controller: SelectionController) -> None:
        """Create the search box and tree and subscribe to ``controller``."""
        super().__init__(parent)
        self.controller = controller
        self.search: wx.SearchCtrl | None = None
        style = (
            getattr(wx, "TR_DEFAULT_STYLE", 0)
            | getattr(wx, "TR_HIDE_ROOT", 0)
            | getattr(wx, "TR_SINGLE", 0)
        )
        self.tree = wx.TreeCtrl(self, style=style)
        self._sizer = wx.BoxSizer(wx.VERTICAL)
        self._sizer.Add(self.tree, 1, wx.EXPAND)
        self.SetSizer(self._sizer)
        self.root = self.tree.AddRoot("Values")
        self._row_for_item: dict[wx.TreeItemId, SlicerRow] = {}
        self._item_for_key: dict[int | tuple[str, ...], wx.TreeItemId] = {}
        self._rendering = False
        self.tree.Bind(wx.EVT_LEFT_DOWN, self._handle_left_down)
        self.tree.Bind(wx.EVT_TREE_ITEM_EXPANDING, self._handle_expand_toggle)
        self.tree.Bind(wx.EVT_TREE_ITEM_COLLAPSING, self._handle_expand_toggle)
        controller.on_change = self.handle_change
        self.apply_settings()
        self.render()

    # settings --------------------------------------------------------
    def apply_settings(self) -> None:
        """Apply formatting and search settings from the controller."""
        settings = self.controller.settings
        font = self.tree.GetFont()
        font.SetPointSize(settings.formatting.font_size)
        self.tree.SetFont(font)
        if hasattr(self.tree, "SetSpacing"):
            self.tree.SetSpacing(settings.formatting.item_padding * 4)
        if settings.search.enabled and self.search is None:
            self.search = wx.SearchCtrl(self)
            self.search.Bind(wx.EVT_TEXT, self._handle_search)
            self._sizer.Insert(0, self.search, 0, wx.EXPAND | wx.BOTTOM, 2)
        elif not settings.search.enabled and self.search is not None:
            self._sizer.Detach(self.search)
            self.search.Destroy()
            self.search = None
        if self.search is not None:
            self.search.SetDescriptiveText(settings.search.placeholder)
            search_font = self.search.GetFont()
            search_font.SetPointSize(settings.search.font_size)
            self.search.SetFont(search_font)
            if self.search.GetValue() != self.controller.search_text:
                self.search.ChangeValue(self.controller.search_text)
        self.Layout()

    # rendering -------------------------------------------------------
    def handle_change(self, kind: ChangeKind) -> None:
        """Schedule a redraw appropriate for ``kind``."""
        if kind is ChangeKind.SELECTION:
            wx.CallAfter(self.refresh_selection)
        else:
            wx.CallAfter(self.render)

    def render(self) -> None:
        """Rebuild tree items from the controller's visible rows."""
        if not self:
            return
        self._rendering = True
        try:
            self.tree.DeleteChildren(self.root)
            self._row_for_item.clear()
            self._item_for_key.clear()
            rows = build_rows(self.controller)
            if not rows:
                self.tree.AppendItem(self.root, EMPTY_STATE_TEXT)
                return
            for row in rows:
                parent = self._item_for_key.get(row.path[:-1], self.root)
                item = self.tree.AppendItem(parent, row.label)
                self._row_for_item[item] = row
                self._item_for_key[row.key] = item
                self.tree.SetItemBold(item, row.selected)
                if row.has_children:
                    self.tree.SetItemHasChildren(item, True)
            searching = bool(self.controller.search_text.strip())
            for row in rows:
                if row.has_children and (row.expanded or searching):
                    self.tree.Expand(self._item_for_key[row.key])
        finally:
            self._rendering = False

    def refresh_selection(self) -> None:
        """Update selection markers without rebuilding the tree."""
        if not self:
            return
        for row in build_rows(self.controller):
            item = self._item_for_key.get(row.key)
            if item is None:
                continue
            self._row_for_item[item] = row
            self.tree.SetItemBold(item, row.selected)

    def row_for_path(self, path: tuple[str, ...]) -> SlicerRow | None:
        """Return the rendered tree row at ``path`` if visible."""
        return self._row_at(path)

    def row_for_index(self, index: int) -> SlicerRow | None:
        """Return the rendered flat row at ``index`` if visible."""
        return self._row_at(index)

    def _row_at(self, key: int | tuple[str, ...]) -> SlicerRow | None:
        item = self._item_for_key.get(key)
        return self._row_for_item.get(item) if item is not None else None

    # events ----------------------------------------------------------
    def click_row(self, row: SlicerRow) -> bool:
        """Forward a click on ``row`` to the controller."""
        if row.index is not None:
            return self.controller.click_item(row.index)
        return self.controller.click_node(row.path)

    def _handle_left_down(self, event: wx.MouseEvent) -> None:
        item, flags = self.tree.HitTest(event.GetPosition())
        on_label = flags & (
            getattr(wx, "TREE_HITTEST_ONITEMLABEL", 0) | getattr(wx, "TREE_HITTEST_ONITEMICON", 0)
        )
        if not item or not item.IsOk() or not on_label:
            event.Skip()
            return
        row = self._row_for_item.get(item)
        if row is None:
            return
        logger.debug("Slicer row clicked: %s", list(row.path))
        self.click_row(row)

    def _handle_expand_toggle(self, event: wx.TreeEvent) -> None:
        if self._rendering:
            event.Skip()
            return
        row = self._row_for_item.get(event.GetItem())
        if row is None:
            event.Skip()
            return
        event.Veto()
        self.controller.toggle_expanded(row.path)

    def _handle_search(self, event: wx.CommandEvent) -> None:
        assert self.search is not None
        self.controller.set_search_text(self.search.GetValue())
        event.Skip()


__all__ = ["SlicerPanel"]
