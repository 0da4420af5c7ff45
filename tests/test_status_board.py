from __future__ import annotations

from types import SimpleNamespace

import pytest

from app.domain.node_status import InvalidStatusTransition, NodeStatus
from graph.status import StatusBoard, drop_status_board, get_status_board, statuses_from_logs


def _recording_board():
    board = StatusBoard("auto-1")
    events: list[tuple[str, str, NodeStatus]] = []
    board.add_listener(lambda run_id, node_id, status: events.append((run_id, node_id, status)))
    return board, events


def test_new_run_resets_error_before_loading():
    board, events = _recording_board()
    board.start_run("run-1", ["a", "b"])
    board.set_status("a", NodeStatus.LOADING, "run-1")
    board.set_status("a", NodeStatus.ERROR, "run-1")

    events.clear()
    board.start_run("run-2", ["a", "b"])
    board.set_status("a", NodeStatus.LOADING, "run-2")

    assert events == [
        ("run-2", "a", NodeStatus.INITIAL),
        ("run-2", "a", NodeStatus.LOADING),
    ]


def test_loading_never_coexists_with_terminal_status():
    board, events = _recording_board()
    board.start_run("run-1", ["a"])
    board.set_status("a", "loading", "run-1")
    board.set_status("a", "success", "run-1")

    assert board.status_of("a") == NodeStatus.SUCCESS
    statuses = [status for _, node_id, status in events if node_id == "a"]
    assert statuses == [NodeStatus.LOADING, NodeStatus.SUCCESS]


def test_success_cannot_go_straight_back_to_loading():
    board = StatusBoard("auto-1")
    board.start_run("run-1", ["a"])
    board.set_status("a", NodeStatus.LOADING, "run-1")
    board.set_status("a", NodeStatus.SUCCESS, "run-1")

    with pytest.raises(InvalidStatusTransition):
        board.set_status("a", NodeStatus.LOADING, "run-1")


def test_initial_cannot_jump_to_success():
    board = StatusBoard("auto-1")
    board.start_run("run-1", ["a"])
    with pytest.raises(InvalidStatusTransition):
        board.set_status("a", NodeStatus.SUCCESS, "run-1")


def test_stale_update_is_discarded():
    board, events = _recording_board()
    board.start_run("run-1", ["a"])
    board.set_status("a", NodeStatus.LOADING, "run-1")
    board.start_run("run-2", ["a"])
    events.clear()

    assert board.set_status("a", NodeStatus.ERROR, "run-1") is False
    assert board.status_of("a") == NodeStatus.INITIAL
    assert events == []


def test_same_status_is_a_noop():
    board = StatusBoard("auto-1")
    board.start_run("run-1", ["a"])
    assert board.set_status("a", NodeStatus.LOADING, "run-1") is True
    assert board.set_status("a", NodeStatus.LOADING, "run-1") is False


def test_finish_run_moves_loading_to_error():
    board, events = _recording_board()
    board.start_run("run-1", ["a", "b"])
    board.set_status("a", NodeStatus.LOADING, "run-1")
    board.set_status("a", NodeStatus.SUCCESS, "run-1")
    board.set_status("b", NodeStatus.LOADING, "run-1")

    assert board.finish_run("run-1") == ["b"]
    assert board.snapshot() == {"a": NodeStatus.SUCCESS, "b": NodeStatus.ERROR}
    assert events[-1] == ("run-1", "b", NodeStatus.ERROR)


def test_finish_run_for_stale_run_is_ignored():
    board = StatusBoard("auto-1")
    board.start_run("run-1", ["a"])
    board.set_status("a", NodeStatus.LOADING, "run-1")
    board.start_run("run-2", ["a"])
    assert board.finish_run("run-1") == []


def test_removed_listener_stops_receiving():
    board = StatusBoard("auto-1")
    seen = []

    def listener(run_id, node_id, status):
        seen.append(node_id)

    board.add_listener(listener)
    board.remove_listener(listener)
    board.start_run("run-1", ["a"])
    board.set_status("a", NodeStatus.LOADING, "run-1")
    assert seen == []


def test_board_registry_is_per_automation():
    first = get_status_board("reg-1")
    assert get_status_board("reg-1") is first
    assert get_status_board("reg-2") is not first

    drop_status_board("reg-1")
    assert get_status_board("reg-1") is not first
    drop_status_board("reg-1")
    drop_status_board("reg-2")


def test_statuses_from_logs():
    logs = [
        SimpleNamespace(node_id="a", error=None),
        SimpleNamespace(node_id="b", error="boom"),
    ]
    assert statuses_from_logs(logs) == {"a": NodeStatus.SUCCESS, "b": NodeStatus.ERROR}
