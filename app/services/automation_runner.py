from __future__ import annotations

import logging
import threading
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.context import bind_run
from app.domain.node_status import NodeStatus
from app.services.run_events import DONE_EVENT, publish_event
from chain.chains import get_rpc_url
from chain.errors import parse_blockchain_error
from db.models.automation import Automation
from db.models.execution import Execution, ExecutionStatus
from db.repos.automations_repo import require_automation, set_active_execution
from db.repos.executions_repo import (
    ExecutionNotFoundError,
    ExecutionStatusConflictError,
    create_execution,
    get_execution,
    update_execution_status,
)
from db.session import SessionLocal
from graph.graph import run_graph
from graph.model import AutomationGraph, validate_graph
from graph.state import RunState
from graph.status import StatusBoard, get_status_board
from policy.engine import evaluate_graph
from policy.types import ValidationResult

logger = logging.getLogger(__name__)


class AutomationInvalidError(ValueError):
    def __init__(self, validation: ValidationResult) -> None:
        super().__init__(f"Automation has {validation.fail_count} invalid field(s)")
        self.validation = validation


def load_graph(automation: Automation) -> AutomationGraph:
    return AutomationGraph.from_definition(automation.definition)


def prepare_run(db: Session, *, automation_id: UUID, was_scheduled: bool = False) -> Execution:
    """
    Validate the automation and open a new execution for it.

    The new execution becomes the automation's active one, so results still
    arriving from an earlier run of the same automation are discarded from
    here on.
    """
    automation = require_automation(db, automation_id)
    graph = load_graph(automation)
    validate_graph(graph)

    validation = evaluate_graph(graph)
    if not validation.is_valid:
        raise AutomationInvalidError(validation)

    execution = create_execution(db, automation_id=automation.id, was_scheduled=was_scheduled)
    set_active_execution(db, automation_id=automation.id, execution_id=execution.id)
    logger.info("execution %s created for automation %s", execution.id, automation.id)
    return execution


def _finalize(db: Session, *, execution_id: UUID, final: RunState) -> Execution | None:
    to_status = ExecutionStatus.SUCCESS if final.succeeded else ExecutionStatus.FAILED
    error = None if final.succeeded else (final.error or {}).get("user_message")
    try:
        return update_execution_status(
            db,
            execution_id=execution_id,
            to_status=to_status,
            expected_from=ExecutionStatus.RUNNING,
            error=error,
        )
    except ExecutionStatusConflictError as e:
        # cleared as stale while it was still running; keep the recorded outcome
        logger.warning("execution %s already finalized: %s", execution_id, e)
        return get_execution(db, execution_id)


def execute_run(db: Session, *, execution_id: UUID) -> dict:
    """
    Run an execution created by prepare_run to completion.

    Node status changes are published as ``node_status`` events, node results
    as ``node_complete`` / ``node_error``, and a final ``done`` event closes
    the stream.
    """
    execution = get_execution(db, execution_id)
    if execution is None:
        raise ExecutionNotFoundError(f"Execution not found: {execution_id}")

    automation = require_automation(db, execution.automation_id)
    graph = load_graph(automation)
    settings = get_settings()

    run_id = str(execution.id)
    board = get_status_board(str(automation.id))

    def _on_status(changed_run_id: str, node_id: str, status: NodeStatus) -> None:
        if changed_run_id == run_id:
            publish_event(run_id, {"type": "node_status", "nodeId": node_id, "status": status.value})

    board.add_listener(_on_status)
    try:
        with bind_run(run_id, str(automation.id)):
            board.start_run(run_id, [n.id for n in graph.nodes])

            state = RunState(
                execution_id=execution.id,
                automation_id=automation.id,
                rpc_url=automation.rpc_endpoint or settings.PULSECHAIN_RPC_URL,
                wallet_address=automation.wallet_address,
                default_slippage=Decimal(str(automation.default_slippage)),
            )

            try:
                state.rpc_url = get_rpc_url(settings.chain_id, automation.rpc_endpoint)
                final = run_graph(db, state, automation=graph, board=board)
            except Exception as e:
                logger.exception("execution %s aborted", run_id)
                final = state.model_copy(
                    update={
                        # "" marks a failure outside any single node
                        "failed_node_id": _loading_node(board) or "",
                        "error": parse_blockchain_error(e).model_dump(mode="json"),
                    }
                )

            board.finish_run(run_id)
            finalized = _finalize(db, execution_id=execution.id, final=final)
            status = finalized.status if finalized else ExecutionStatus.FAILED.value

            result = {
                "ok": final.succeeded,
                "executionId": run_id,
                "status": status,
                "completed": final.completed,
                "failedNodeId": final.failed_node_id or None,
                "error": (final.error or {}).get("user_message"),
            }
            logger.info("execution %s finished status=%s", run_id, status)
    finally:
        board.remove_listener(_on_status)

    publish_event(
        run_id,
        {
            "type": DONE_EVENT,
            "success": result["ok"],
            "executionId": run_id,
            "error": result["error"],
        },
    )
    return result


def _loading_node(board: StatusBoard) -> str | None:
    for node_id, status in board.snapshot().items():
        if status == NodeStatus.LOADING:
            return node_id
    return None


def run_automation_sync(db: Session, *, automation_id: UUID) -> dict:
    execution = prepare_run(db, automation_id=automation_id)
    return execute_run(db, execution_id=execution.id)


def _run_in_background(execution_id: UUID) -> None:
    db = SessionLocal()
    try:
        execute_run(db, execution_id=execution_id)
    except Exception:
        logger.exception("background execution %s failed", execution_id)
        publish_event(
            str(execution_id),
            {
                "type": DONE_EVENT,
                "success": False,
                "executionId": str(execution_id),
                "error": "Execution failed to start",
            },
        )
    finally:
        db.close()


def start_run_in_background(execution_id: UUID) -> threading.Thread:
    worker = threading.Thread(
        target=_run_in_background,
        args=(execution_id,),
        name=f"execution-{execution_id}",
        daemon=True,
    )
    worker.start()
    return worker
