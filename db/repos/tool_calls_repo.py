from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.tool_call import ToolCall
from db.utils.time import utcnow


def list_tool_calls_for_execution(
    db: Session,
    *,
    execution_id: uuid.UUID,
) -> list[ToolCall]:
    stmt = (
        select(ToolCall)
        .where(ToolCall.execution_id == execution_id)
        .order_by(ToolCall.started_at.asc())
    )
    return list(db.execute(stmt).scalars().all())


def start_tool_call(
    db: Session,
    *,
    execution_id: uuid.UUID,
    node_id: str | None,
    tool_name: str,
    request: Any = None,
) -> ToolCall:
    tool_call = ToolCall(
        execution_id=execution_id,
        node_id=node_id,
        tool_name=tool_name,
        request=request,
        response=None,
        error=None,
        started_at=utcnow(),
        ended_at=None,
    )
    db.add(tool_call)
    db.commit()
    db.refresh(tool_call)
    return tool_call


def finish_tool_call(
    db: Session,
    *,
    tool_call_id: uuid.UUID,
    response: Any = None,
    error: str | None = None,
) -> ToolCall:
    if response is not None and error is not None:
        raise ValueError("finish_tool_call: provide either response or error, not both")

    tool_call = db.get(ToolCall, tool_call_id)
    if tool_call is None:
        raise ValueError(f"ToolCall not found: {tool_call_id}")

    tool_call.ended_at = utcnow()

    if error is not None:
        tool_call.error = error
        tool_call.response = None
    else:
        tool_call.response = response
        tool_call.error = None

    db.commit()
    db.refresh(tool_call)
    return tool_call
