from __future__ import annotations

import logging
from queue import Empty
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from api.schemas.automations import RunStartResponse, StatusesResponse
from api.v1.automations import load_automation
from app.config import get_settings
from app.domain.node_status import NodeStatus
from app.services.automation_runner import (
    AutomationInvalidError,
    execute_run,
    load_graph,
    prepare_run,
    start_run_in_background,
)
from app.services.run_events import is_done, sse_event, subscribe, unsubscribe
from db.deps import get_db
from db.models.automation import Automation
from db.models.execution import Execution
from db.repos.executions_repo import latest_node_results
from graph.model import GraphStructureError
from graph.overlay import render_node
from graph.status import get_status_board, statuses_from_logs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/automations", tags=["runs"])


def _current_statuses(db: Session, automation: Automation) -> tuple[str | None, dict[str, NodeStatus]]:
    """
    Live statuses while this process holds a board for the automation;
    otherwise rebuilt from the persisted logs of its active execution.
    """
    node_ids = [n.id for n in load_graph(automation).nodes]
    board = get_status_board(str(automation.id))

    if board.run_id is not None:
        run_id = board.run_id
        live = board.snapshot()
    else:
        run_id = str(automation.active_execution_id) if automation.active_execution_id else None
        live = statuses_from_logs(latest_node_results(db, automation_id=automation.id).values())

    return run_id, {node_id: live.get(node_id, NodeStatus.INITIAL) for node_id in node_ids}


def _prepare(db: Session, automation_id: UUID) -> Execution:
    load_automation(db, automation_id)
    try:
        return prepare_run(db, automation_id=automation_id)
    except AutomationInvalidError as e:
        raise HTTPException(
            status_code=422,
            detail={
                "message": str(e),
                "hardErrors": e.validation.hard_errors,
                "softWarnings": e.validation.soft_warnings,
            },
        )
    except GraphStructureError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/{automation_id}/statuses", response_model=StatusesResponse)
def get_statuses(automation_id: UUID, db: Session = Depends(get_db)) -> StatusesResponse:
    automation = load_automation(db, automation_id)
    run_id, statuses = _current_statuses(db, automation)
    return StatusesResponse(runId=run_id, statuses={k: v.value for k, v in statuses.items()})


@router.get("/{automation_id}/view")
def get_view(automation_id: UUID, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Render trees for every node: handles, add-step button, status overlay."""
    automation = load_automation(db, automation_id)
    graph = load_graph(automation)
    run_id, statuses = _current_statuses(db, automation)
    return {
        "runId": run_id,
        "nodes": [
            render_node(
                node.id,
                node.kind,
                status=statuses[node.id],
                show_add_button=node.is_last_node,
            )
            for node in graph.nodes
        ],
        "edges": [c.model_dump(by_alias=True) for c in graph.connections],
    }


@router.post("/{automation_id}/run")
def run_automation_stream(automation_id: UUID, db: Session = Depends(get_db)) -> StreamingResponse:
    execution = _prepare(db, automation_id)
    run_id = str(execution.id)
    keepalive_s = get_settings().sse_keepalive_s

    # subscribe before the worker starts so no event is missed
    queue = subscribe(run_id)
    start_run_in_background(execution.id)

    def event_stream():
        try:
            yield sse_event({"type": "run_started", "executionId": run_id})
            while True:
                try:
                    event = queue.get(timeout=keepalive_s)
                except Empty:
                    yield ": keepalive\n\n"
                    continue
                yield sse_event(event)
                if is_done(event):
                    break
        finally:
            unsubscribe(run_id, queue)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Execution-Id": run_id},
    )


@router.post("/{automation_id}/run-sync", response_model=RunStartResponse)
def run_automation_sync_endpoint(automation_id: UUID, db: Session = Depends(get_db)) -> RunStartResponse:
    execution = _prepare(db, automation_id)
    result = execute_run(db, execution_id=execution.id)
    return RunStartResponse(**result)
