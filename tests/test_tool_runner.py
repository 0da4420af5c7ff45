from __future__ import annotations

import pytest

from db.repos.automations_repo import create_automation
from db.repos.executions_repo import create_execution
from db.repos.tool_calls_repo import list_tool_calls_for_execution
from db.session import SessionLocal
from graph.model import default_graph
from tools.tool_runner import run_tool


@pytest.fixture
def execution():
    with SessionLocal() as db:
        automation = create_automation(
            db,
            name="audit",
            wallet_address="0x" + "aa" * 20,
            definition=default_graph().to_definition(),
            default_slippage=0.01,
        )
        yield db, create_execution(db, automation_id=automation.id)


def test_success_is_audited_with_serialized_response(execution):
    db, ex = execution
    result = run_tool(
        db,
        execution_id=ex.id,
        node_id="bal-1",
        tool_name="erc20_balance",
        request={"token": "0x" + "11" * 20, "amount": 10**30},
        fn=lambda: 10**30,
    )

    # caller keeps the raw value
    assert result == 10**30

    calls = list_tool_calls_for_execution(db, execution_id=ex.id)
    assert len(calls) == 1
    assert calls[0].tool_name == "erc20_balance"
    assert calls[0].request["amount"] == str(10**30)
    assert calls[0].response == str(10**30)
    assert calls[0].error is None
    assert calls[0].ended_at is not None


def test_failure_is_recorded_and_reraised(execution):
    db, ex = execution

    def boom():
        raise RuntimeError("execution reverted: TRANSFER_FAILED")

    with pytest.raises(RuntimeError):
        run_tool(db, execution_id=ex.id, node_id="t1", tool_name="erc20_transfer", request={}, fn=boom)

    calls = list_tool_calls_for_execution(db, execution_id=ex.id)
    assert calls[0].error == "RuntimeError: execution reverted: TRANSFER_FAILED"
    assert calls[0].response is None
