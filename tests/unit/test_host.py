"""Tests for the recording host."""

import pytest

from slicer.core.host import FilterAction, RecordingHost, handle_key
from slicer.core.snapshot import extract_levels
from tests.slicer_utils import flat_snapshot

pytestmark = pytest.mark.unit


def _handles(host: RecordingHost, labels):
    level = extract_levels(flat_snapshot(labels))[0]
    return [host.create_handle(level, row, (label,)) for row, label in enumerate(labels)]


def test_create_handle_keys_by_identity_and_path():
    host = RecordingHost()
    handle = _handles(host, ["a", "b"])[1]
    assert handle.key == handle_key("Sales.Category", ["b"]) == "Sales.Category:b"
    assert handle.row == 1
    assert handle.level == 0


def test_select_replace_and_extend():
    host = RecordingHost()
    a, b = _handles(host, ["a", "b"])
    host.select([a], False)
    host.select([b], True)
    assert host.selected_keys == {a.key, b.key}
    host.select([b], False)
    assert host.selected_keys == {b.key}
    assert [write.extend for write in host.writes_of("select")] == [False, True, False]


def test_auto_echo_reports_resulting_selection():
    host = RecordingHost(auto_echo=True)
    received = []
    host.register_selection_callback(received.append)
    a, _b = _handles(host, ["a", "b"])
    host.select([a], False)
    host.clear()
    assert received == [frozenset({a.key}), frozenset()]


def test_deliver_sets_keys_and_notifies():
    host = RecordingHost()
    received = []
    host.register_selection_callback(received.append)
    host.deliver(["x", "y"])
    assert received == [frozenset({"x", "y"})]
    assert host.writes == []


def test_apply_filter_tracks_live_filter_per_scope():
    host = RecordingHost()
    host.apply_filter({"values": ["a"]}, "general.filter", FilterAction.MERGE)
    assert host.filters == {"general.filter": {"values": ["a"]}}
    host.apply_filter(None, "general.filter", FilterAction.REMOVE)
    assert host.filters == {}
    kinds = [write.to_dict()["action"] for write in host.writes_of("filter")]
    assert kinds == ["merge", "remove"]
    host.reset_writes()
    assert host.writes == []
