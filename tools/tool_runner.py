from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

from sqlalchemy.orm import Session

from app.core.serialization import serialize_for_json
from db.repos.tool_calls_repo import finish_tool_call, start_tool_call

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_tool(
    db: Session,
    *,
    execution_id,
    node_id: str | None,
    tool_name: str,
    request: Any,
    fn: Callable[[], T],
) -> T:
    """
    Run one chain call and audit it in tool_calls.

    Request and response are stored through serialize_for_json (receipts carry
    provider objects and big ints); the caller still gets the raw result.
    Exceptions are recorded and re-raised.
    """
    tool_call = start_tool_call(
        db,
        execution_id=execution_id,
        node_id=node_id,
        tool_name=tool_name,
        request=serialize_for_json(request),
    )

    try:
        result = fn()
    except Exception as e:
        logger.info("tool %s failed: %s", tool_name, e, extra={"node_id": node_id})
        finish_tool_call(
            db,
            tool_call_id=tool_call.id,
            error=f"{type(e).__name__}: {e}",
        )
        raise

    finish_tool_call(
        db,
        tool_call_id=tool_call.id,
        response=serialize_for_json(result),
    )
    return result
