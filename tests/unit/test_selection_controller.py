"""Tests for the selection reconciliation controller in flat mode."""

import logging

import pytest

from slicer.core.filters import FILTER_SCOPE
from slicer.core.host import FilterAction, RecordingHost
from slicer.core.model import SelectionMode
from slicer.core.snapshot import DataSnapshot
from slicer.ui.controllers import (
    ChangeKind,
    RefreshOutcome,
    SelectionController,
    SyncOutcome,
)
from tests.slicer_utils import cat_key, flat_snapshot, make_settings

pytestmark = pytest.mark.unit


def test_first_refresh_forces_first_item(host, make_controller):
    controller = make_controller()
    result = controller.update(flat_snapshot(["A", "B", "C"]))
    assert result.outcome is RefreshOutcome.ACCEPTED
    assert result.count == 3
    assert result.changed and result.forced
    assert controller.selected_labels() == ["A"]
    writes = host.writes_of("select")
    assert len(writes) == 1
    assert writes[0].keys == (cat_key("A"),)
    assert writes[0].extend is False
    assert controller.state.did_initial_force
    assert controller.state.suppress_next_select_callback


def test_default_force_is_idempotent(host, make_controller):
    controller = make_controller()
    controller.update(flat_snapshot(["A", "B", "C"]))
    result = controller.update(flat_snapshot(["A", "B", "C"]))
    assert result.changed is False
    assert result.forced is False
    assert len(host.writes_of("select")) == 1
    assert controller.selected_labels() == ["A"]


def test_no_force_in_multiple_mode_or_when_disabled(host, make_controller):
    multiple = make_controller(mode=SelectionMode.MULTIPLE)
    multiple.update(flat_snapshot(["A", "B"]))
    assert multiple.selected_labels() == []

    other_host = RecordingHost()
    no_force = SelectionController(other_host, settings=make_settings(force=False))
    no_force.update(flat_snapshot(["A", "B"]))
    assert no_force.selected_labels() == []
    assert host.writes == [] and other_host.writes == []


def test_no_force_when_host_reports_selection(host, make_controller):
    controller = make_controller()
    assert controller.on_host_selection([cat_key("B")]) is SyncOutcome.NO_ITEMS
    result = controller.update(flat_snapshot(["A", "B", "C"]))
    assert result.forced is False
    assert controller.selected_labels() == ["B"]
    assert host.writes == []


def test_echo_of_own_write_is_suppressed():
    host = RecordingHost(auto_echo=True)
    controller = SelectionController(host, settings=make_settings())
    controller.update(flat_snapshot(["A", "B", "C"]))
    assert controller.state.suppress_next_select_callback is False
    assert controller.state.external_keys == set()
    assert len(host.writes_of("select")) == 1

    host.deliver([cat_key("C")])
    assert controller.selected_labels() == ["C"]
    assert controller.state.external_keys == {cat_key("C")}
    assert len(host.writes_of("select")) == 1


def test_echo_suppression_is_one_shot(host, make_controller):
    controller = make_controller()
    controller.update(flat_snapshot(["A", "B", "C"]))
    assert controller.on_host_selection([cat_key("A")]) is SyncOutcome.SUPPRESSED
    assert controller.on_host_selection([cat_key("B")]) is SyncOutcome.APPLIED
    assert controller.selected_labels() == ["B"]


def test_shrink_then_grow_while_locked_is_rejected(host, make_controller):
    controller = make_controller()
    controller.update(flat_snapshot(["A", "B", "C", "D"]))
    assert controller.state.max_item_count == 4

    narrowed = controller.update(flat_snapshot(["A", "B"]))
    assert narrowed.outcome is RefreshOutcome.ACCEPTED
    assert controller.state.filtered_lock is True

    rebound = controller.update(flat_snapshot(["A", "B", "C", "D"]))
    assert rebound.outcome is RefreshOutcome.REJECTED
    assert [item.label for item in controller.items] == ["A", "B"]
    assert controller.state.filtered_lock is True
    assert controller.state.last_item_count == 2
    assert controller.selected_labels() == ["A"]


def test_lock_monotonicity_over_refresh_sequence(host, make_controller):
    controller = make_controller(mode=SelectionMode.MULTIPLE)
    controller.update(flat_snapshot(["A", "B", "C", "D", "E"]))
    accepted = []
    for labels in (["A", "B", "C"], ["A", "B", "C", "D"], ["A", "B"], ["A", "B", "C"], ["B"]):
        result = controller.update(flat_snapshot(labels))
        if result.outcome is RefreshOutcome.ACCEPTED:
            accepted.append(result.count)
        assert controller.state.filtered_lock is True
    assert accepted == [3, 2, 1]
    assert accepted == sorted(accepted, reverse=True)


def test_equal_count_refresh_is_accepted_while_locked(host, make_controller):
    controller = make_controller(mode=SelectionMode.MULTIPLE)
    controller.update(flat_snapshot(["A", "B", "C"]))
    controller.update(flat_snapshot(["A", "B"]))
    result = controller.update(flat_snapshot(["X", "Y"]))
    assert result.outcome is RefreshOutcome.ACCEPTED
    assert result.changed
    assert [item.label for item in controller.items] == ["X", "Y"]


def test_unlock_when_full_domain_and_no_selection(host, make_controller):
    controller = make_controller(mode=SelectionMode.MULTIPLE)
    controller.update(flat_snapshot(["A", "B", "C"]))
    assert controller.click_item(1)
    assert controller.state.filtered_lock is True

    host.echo()
    controller.update(flat_snapshot(["A", "B", "C"]))
    assert controller.state.filtered_lock is True

    assert controller.on_host_selection([]) is SyncOutcome.CLEARED
    assert controller.selected_labels() == []
    controller.update(flat_snapshot(["A", "B", "C"]))
    assert controller.state.filtered_lock is False


def test_rebuild_preserves_selection_by_label(host, make_controller):
    controller = make_controller(mode=SelectionMode.MULTIPLE)
    controller.update(flat_snapshot(["A", "B", "C"]))
    controller.click_item(1)
    controller.click_item(2)
    result = controller.update(flat_snapshot(["C", "B"]))
    assert result.changed
    assert controller.selected_labels() == ["C", "B"]


def test_signature_change_reevaluates_default_force(host, make_controller):
    controller = make_controller()
    controller.update(flat_snapshot(["A", "B", "C"]))
    controller.update(flat_snapshot(["X", "Y"]))
    assert controller.selected_labels() == ["X"]
    assert [write.keys for write in host.writes_of("select")] == [
        (cat_key("A"),),
        (cat_key("X"),),
    ]


def test_forced_target_already_selected_issues_no_write(host, make_controller):
    controller = make_controller()
    controller.update(flat_snapshot(["A", "B", "C"]))
    result = controller.update(flat_snapshot(["A", "B"]))
    assert result.changed is True
    assert result.forced is False
    assert controller.state.did_initial_force is True
    assert len(host.writes_of("select")) == 1


def test_single_click_replaces_selection(host, make_controller):
    controller = make_controller()
    controller.update(flat_snapshot(["A", "B", "C"]))
    assert controller.click_item(2) is True
    assert controller.selected_labels() == ["C"]
    assert host.writes_of("select")[-1].keys == (cat_key("C"),)
    assert controller.state.filtered_lock is True
    assert controller.state.suppress_next_select_callback is True


def test_single_force_click_on_selected_item_is_noop(host, make_controller):
    controller = make_controller()
    controller.update(flat_snapshot(["A", "B"]))
    assert controller.click_item(0) is False
    assert controller.selected_labels() == ["A"]
    assert len(host.writes_of("select")) == 1


def test_single_without_force_can_keep_reselecting(host, make_controller):
    controller = make_controller(force=False)
    controller.update(flat_snapshot(["A", "B"]))
    assert controller.click_item(0) is True
    assert controller.click_item(0) is True
    assert controller.selected_labels() == ["A"]


def test_multiple_click_toggles_and_writes_full_set(host, make_controller):
    controller = make_controller(mode=SelectionMode.MULTIPLE)
    controller.update(flat_snapshot(["A", "B", "C"]))
    controller.click_item(0)
    controller.click_item(2)
    assert controller.selected_labels() == ["A", "C"]
    last = host.writes_of("select")[-1]
    assert last.keys == (cat_key("A"), cat_key("C"))
    assert last.extend is False

    controller.click_item(0)
    controller.click_item(2)
    assert controller.selected_labels() == []
    assert host.writes[-1].kind == "clear"


def test_click_out_of_range_is_ignored(host, make_controller):
    controller = make_controller()
    controller.update(flat_snapshot(["A"]))
    assert controller.click_item(5) is False
    assert controller.click_item(-1) is False
    assert controller.click_node(("A",)) is False


def test_empty_values_are_a_noop(host, make_controller):
    controller = make_controller()
    controller.update(flat_snapshot(["A", "B"]))
    result = controller.update(flat_snapshot([]))
    assert result.outcome is RefreshOutcome.EMPTY
    assert [item.label for item in controller.items] == ["A", "B"]
    assert controller.state.last_item_count == 2


def test_field_removal_resets_state_then_rebind_starts_fresh(host, make_controller):
    controller = make_controller()
    controller.update(flat_snapshot(["V0", "V1", "V2", "V3", "V4"]))
    host.echo()
    assert controller.click_item(2) is True
    assert controller.selected_labels() == ["V2"]
    assert controller.state.filtered_lock

    result = controller.update(DataSnapshot())
    assert result.outcome is RefreshOutcome.UNBOUND
    assert controller.items == []
    assert controller.item_count == 0
    assert controller.selected_labels() == []
    assert controller.state.max_item_count == 0
    assert controller.state.filtered_lock is False
    assert controller.state.bound_field is None
    assert host.writes[-1].kind == "clear"

    product = flat_snapshot(["P", "Q", "R"], display_name="Product", query_name="Sales.Product")
    result = controller.update(product)
    assert result.forced
    assert controller.state.bound_field == ("Sales.Product",)
    assert controller.state.max_item_count == 3
    assert controller.selected_labels() == ["P"]
    assert host.writes[-1].keys == ("Sales.Product:P",)
    assert not any(key.startswith("Sales.Category:") for key in host.selected_keys)


def test_separator_labels_commit_as_new_items(host, make_controller):
    controller = make_controller(mode=SelectionMode.MULTIPLE)
    controller.update(flat_snapshot(["A", "B"]))
    result = controller.update(flat_snapshot(["A|B"]))
    assert result.outcome is RefreshOutcome.ACCEPTED
    assert result.changed
    assert [item.label for item in controller.items] == ["A|B"]
    assert controller.item_count == 1
    assert controller.state.last_item_count == 1
    assert controller.state.filtered_lock


def test_field_removal_without_selection_issues_no_clear(host, make_controller):
    controller = make_controller(mode=SelectionMode.MULTIPLE)
    controller.update(flat_snapshot(["A", "B"]))
    controller.update(None)
    assert host.writes == []


def test_field_swap_resets_memory_and_keeps_search_text(host, make_controller, caplog):
    caplog.set_level(logging.INFO, logger="slicer")
    controller = make_controller()
    controller.update(flat_snapshot(["A", "B", "C", "D"]))
    controller.update(flat_snapshot(["A", "B"]))
    controller.set_search_text("b")

    controller.update(flat_snapshot(["N", "S", "E"], display_name="Region", query_name="Sales.Region"))
    assert controller.state.bound_field == ("Sales.Region",)
    assert controller.state.max_item_count == 3
    assert controller.state.filtered_lock is False
    assert controller.selected_labels() == ["N"]
    assert controller.search_text == "b"
    assert any(record.getMessage() == "SLICER_FIELD_SWAPPED" for record in caplog.records)


def test_rejected_refresh_logs_event(host, make_controller, caplog):
    caplog.set_level(logging.INFO, logger="slicer")
    controller = make_controller()
    controller.update(flat_snapshot(["A", "B", "C"]))
    controller.update(flat_snapshot(["A"]))
    controller.update(flat_snapshot(["A", "B", "C"]))
    record = next(r for r in caplog.records if r.getMessage() == "SLICER_REFRESH_REJECTED")
    assert record.json["payload"] == {"count": 3, "last_item_count": 1, "max_item_count": 3}


def test_filter_output_emits_and_withdraws(host, make_controller):
    controller = make_controller(mode=SelectionMode.MULTIPLE, output="filter")
    controller.update(flat_snapshot(["A", "B", "C"]))
    controller.click_item(0)
    controller.click_item(1)
    descriptor = host.filters[FILTER_SCOPE]
    assert descriptor["target"] == {"table": "Sales", "column": "Category"}
    assert descriptor["values"] == ["A", "B"]
    assert descriptor["requireSingleSelection"] is False
    assert host.writes_of("select") == []

    controller.click_item(0)
    controller.click_item(1)
    assert host.filters == {}
    assert host.writes_of("filter")[-1].action is FilterAction.REMOVE
    assert host.writes_of("clear") == []


def test_both_outputs_with_single_force(host, make_controller):
    controller = make_controller(output="both")
    controller.update(flat_snapshot(["A", "B"]))
    assert host.writes_of("select")[-1].keys == (cat_key("A"),)
    assert host.filters[FILTER_SCOPE]["values"] == ["A"]
    assert host.filters[FILTER_SCOPE]["requireSingleSelection"] is True


def test_field_removal_keeps_host_filter_but_forgets_it(host, make_controller):
    controller = make_controller(mode=SelectionMode.MULTIPLE, output="filter")
    controller.update(flat_snapshot(["A", "B"]))
    controller.click_item(0)
    controller.update(None)
    assert FILTER_SCOPE in host.filters
    assert controller.emitter.live_filter is None


def test_change_notifications(host):
    kinds = []
    controller = SelectionController(host, settings=make_settings(), on_change=kinds.append)
    controller.update(flat_snapshot(["A", "B"]))
    controller.update(flat_snapshot(["A", "B"]))
    controller.click_item(1)
    assert kinds == [ChangeKind.REBUILD, ChangeKind.SELECTION]


def test_settings_passed_with_update_replace_current(host, make_controller):
    controller = make_controller()
    controller.update(flat_snapshot(["A", "B"]), make_settings(mode=SelectionMode.MULTIPLE))
    assert not controller.settings.behavior.is_single
    assert controller.selected_labels() == []


def test_describe_reports_committed_state(host, make_controller):
    controller = make_controller()
    controller.update(flat_snapshot(["A", "B"]))
    report = controller.describe()
    assert report["mode"] == "flat"
    assert report["items"] == ["A", "B"]
    assert report["selected"] == [["A"]]
    assert report["state"]["max_item_count"] == 2
