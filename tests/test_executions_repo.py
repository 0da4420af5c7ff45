from __future__ import annotations

from datetime import timedelta

import pytest

from db.models.execution import ExecutionStatus
from db.repos.automations_repo import create_automation, require_automation, set_active_execution
from db.repos.executions_repo import (
    STALE_EXECUTION_ERROR,
    ExecutionStatusConflictError,
    clear_stale_executions,
    create_execution,
    get_execution,
    is_active_execution,
    latest_node_results,
    list_logs_for_execution,
    log_node_result,
    update_execution_status,
)
from db.session import SessionLocal
from db.utils.time import utcnow
from graph.model import default_graph

WALLET = "0x" + "aa" * 20


@pytest.fixture
def db():
    with SessionLocal() as session:
        yield session


@pytest.fixture
def automation(db):
    return create_automation(
        db,
        name="daily swap",
        wallet_address=WALLET,
        definition=default_graph().to_definition(),
        default_slippage=0.01,
    )


def _active_execution(db, automation):
    execution = create_execution(db, automation_id=automation.id)
    set_active_execution(db, automation_id=automation.id, execution_id=execution.id)
    return execution


def test_execution_starts_running(db, automation):
    execution = create_execution(db, automation_id=automation.id)
    assert execution.status == ExecutionStatus.RUNNING.value
    assert execution.finished_at is None


def test_status_transition_and_terminal_lock(db, automation):
    execution = create_execution(db, automation_id=automation.id)
    done = update_execution_status(db, execution_id=execution.id, to_status=ExecutionStatus.SUCCESS)
    assert done.status == "SUCCESS"
    assert done.finished_at is not None

    with pytest.raises(ValueError):
        update_execution_status(db, execution_id=execution.id, to_status=ExecutionStatus.FAILED)


def test_expected_from_conflict(db, automation):
    execution = create_execution(db, automation_id=automation.id)
    update_execution_status(db, execution_id=execution.id, to_status=ExecutionStatus.FAILED, error="boom")

    with pytest.raises(ExecutionStatusConflictError):
        update_execution_status(
            db,
            execution_id=execution.id,
            to_status=ExecutionStatus.SUCCESS,
            expected_from=ExecutionStatus.RUNNING,
        )


def test_log_node_result_for_active_execution(db, automation):
    execution = _active_execution(db, automation)
    log = log_node_result(
        db,
        execution_id=execution.id,
        node_id="swap-1",
        node_type="swap",
        output={"amountOut": "123456789012345678901234567890"},
    )
    assert log is not None
    assert log.output == {"amountOut": "123456789012345678901234567890"}
    assert [l.node_id for l in list_logs_for_execution(db, execution_id=execution.id)] == ["swap-1"]


def test_stale_node_result_is_dropped(db, automation):
    first = _active_execution(db, automation)
    second = _active_execution(db, automation)

    stale = log_node_result(db, execution_id=first.id, node_id="n1", node_type="wait", output={})
    assert stale is None
    assert list_logs_for_execution(db, execution_id=first.id) == []

    fresh = log_node_result(db, execution_id=second.id, node_id="n1", node_type="wait", output={})
    assert fresh is not None
    assert set(latest_node_results(db, automation_id=automation.id)) == {"n1"}


def test_latest_node_results_without_active_execution(db, automation):
    assert latest_node_results(db, automation_id=automation.id) == {}


def test_clear_stale_executions(db, automation):
    old = create_execution(db, automation_id=automation.id)
    recent = create_execution(db, automation_id=automation.id)
    finished = create_execution(db, automation_id=automation.id)
    update_execution_status(db, execution_id=finished.id, to_status=ExecutionStatus.SUCCESS)

    cleared = clear_stale_executions(
        db,
        older_than=timedelta(minutes=10),
        now=utcnow() + timedelta(minutes=5),
    )
    assert cleared == 0

    later = utcnow() + timedelta(minutes=30)
    recent_row = get_execution(db, recent.id)
    recent_row.started_at = later - timedelta(minutes=1)
    db.commit()

    assert clear_stale_executions(db, older_than=timedelta(minutes=10), now=later) == 1

    db.expire_all()
    assert get_execution(db, old.id).status == "FAILED"
    assert get_execution(db, old.id).error == STALE_EXECUTION_ERROR
    assert get_execution(db, recent.id).status == "RUNNING"
    assert get_execution(db, finished.id).status == "SUCCESS"


def test_run_superseded_from_another_session_is_dropped(automation):
    with SessionLocal() as worker, SessionLocal() as request:
        first = create_execution(worker, automation_id=automation.id)
        set_active_execution(worker, automation_id=automation.id, execution_id=first.id)
        # worker holds the automation in its identity map, as execute_run does
        require_automation(worker, automation.id)

        second = create_execution(request, automation_id=automation.id)
        set_active_execution(request, automation_id=automation.id, execution_id=second.id)

        stale = log_node_result(worker, execution_id=first.id, node_id="n1", node_type="wait", output={})
        assert stale is None
        assert is_active_execution(worker, get_execution(worker, first.id)) is False


def test_stale_clear_from_another_session_keeps_recorded_outcome(automation):
    with SessionLocal() as worker, SessionLocal() as request:
        execution = create_execution(worker, automation_id=automation.id)
        assert get_execution(worker, execution.id).status == "RUNNING"

        cleared = clear_stale_executions(
            request,
            older_than=timedelta(minutes=10),
            now=utcnow() + timedelta(hours=1),
        )
        assert cleared == 1

        with pytest.raises(ExecutionStatusConflictError):
            update_execution_status(
                worker,
                execution_id=execution.id,
                to_status=ExecutionStatus.SUCCESS,
                expected_from=ExecutionStatus.RUNNING,
            )

    with SessionLocal() as fresh:
        row = get_execution(fresh, execution.id)
        assert row.status == "FAILED"
        assert row.error == STALE_EXECUTION_ERROR
