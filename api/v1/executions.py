from __future__ import annotations

from datetime import timedelta
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api.schemas.executions import (
    ClearStaleResponse,
    ExecutionDetailResponse,
    ExecutionLogRead,
    ExecutionRead,
    ToolCallRead,
)
from app.config import get_settings
from db.deps import get_db
from db.repos.executions_repo import (
    clear_stale_executions,
    get_execution,
    is_active_execution,
    list_executions_for_automation,
    list_logs_for_execution,
)
from db.repos.tool_calls_repo import list_tool_calls_for_execution

router = APIRouter(tags=["executions"])


@router.post("/executions/clear-stale", response_model=ClearStaleResponse)
def clear_stale_endpoint(db: Session = Depends(get_db)) -> ClearStaleResponse:
    minutes = get_settings().stale_execution_minutes
    cleared = clear_stale_executions(db, older_than=timedelta(minutes=minutes))
    return ClearStaleResponse(cleared=cleared)


@router.get("/executions/{execution_id}", response_model=ExecutionDetailResponse)
def get_execution_endpoint(execution_id: UUID, db: Session = Depends(get_db)) -> ExecutionDetailResponse:
    execution = get_execution(db, execution_id)
    if execution is None:
        raise HTTPException(status_code=404, detail="Execution not found")

    logs = list_logs_for_execution(db, execution_id=execution_id)
    return ExecutionDetailResponse(
        execution=ExecutionRead.model_validate(execution),
        logs=[ExecutionLogRead.model_validate(log) for log in logs],
        isActive=is_active_execution(db, execution),
    )


@router.get("/executions/{execution_id}/tool-calls", response_model=list[ToolCallRead])
def list_execution_tool_calls(execution_id: UUID, db: Session = Depends(get_db)):
    if get_execution(db, execution_id) is None:
        raise HTTPException(status_code=404, detail="Execution not found")
    return list_tool_calls_for_execution(db, execution_id=execution_id)


@router.get("/automations/{automation_id}/executions", response_model=list[ExecutionRead])
def list_automation_executions(automation_id: UUID, limit: int = 20, db: Session = Depends(get_db)):
    return list_executions_for_automation(db, automation_id=automation_id, limit=min(max(limit, 1), 100))
