from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.domain.execution_status import assert_valid_transition
from app.services.run_events import publish_event
from db.models.automation import Automation
from db.models.execution import Execution, ExecutionStatus
from db.models.execution_log import ExecutionLog
from db.utils.time import utcnow

logger = logging.getLogger(__name__)

STALE_EXECUTION_ERROR = "Execution timed out"


class ExecutionNotFoundError(Exception):
    pass


class ExecutionStatusConflictError(Exception):
    pass


def create_execution(
    db: Session,
    *,
    automation_id: uuid.UUID,
    was_scheduled: bool = False,
) -> Execution:
    execution = Execution(
        automation_id=automation_id,
        status=ExecutionStatus.RUNNING.value,
        was_scheduled=was_scheduled,
    )
    db.add(execution)
    db.commit()
    db.refresh(execution)
    return execution


def get_execution(db: Session, execution_id: uuid.UUID) -> Execution | None:
    return db.execute(select(Execution).where(Execution.id == execution_id)).scalar_one_or_none()


def list_executions_for_automation(
    db: Session,
    *,
    automation_id: uuid.UUID,
    limit: int = 20,
) -> list[Execution]:
    stmt = (
        select(Execution)
        .where(Execution.automation_id == automation_id)
        .order_by(Execution.started_at.desc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


def update_execution_status(
    db: Session,
    *,
    execution_id: uuid.UUID,
    to_status: ExecutionStatus,
    expected_from: ExecutionStatus | None = None,
    error: str | None = None,
) -> Execution:
    # another session (stale clearing) may have finalized the row since it was loaded
    stmt = select(Execution).where(Execution.id == execution_id).execution_options(populate_existing=True)
    execution = db.execute(stmt).scalar_one_or_none()
    if not execution:
        raise ExecutionNotFoundError(f"Execution not found: {execution_id}")

    current = ExecutionStatus(execution.status)

    if expected_from is not None and current != expected_from:
        raise ExecutionStatusConflictError(f"Expected {expected_from.value}, found {current.value}")

    assert_valid_transition(current, to_status)

    execution.status = to_status.value
    execution.error = error
    execution.finished_at = utcnow()

    db.add(execution)
    db.commit()
    db.refresh(execution)

    publish_event(
        str(execution_id),
        {
            "type": "execution_status",
            "eventId": f"status:{execution_id}:{execution.status}",
            "status": execution.status,
        },
    )
    return execution


def is_active_execution(db: Session, execution: Execution) -> bool:
    # read the column, not the identity map: a newer run may have been started elsewhere
    stmt = select(Automation.active_execution_id).where(Automation.id == execution.automation_id)
    active_id = db.execute(stmt).scalar_one_or_none()
    return active_id is not None and active_id == execution.id


def log_node_result(
    db: Session,
    *,
    execution_id: uuid.UUID,
    node_id: str,
    node_type: str,
    input: Any = None,
    output: Any = None,
    error: str | None = None,
    error_type: str | None = None,
) -> ExecutionLog | None:
    """
    Persist one node result. Results from an execution that is no longer the
    automation's active run are dropped and None is returned.
    """
    execution = get_execution(db, execution_id)
    if execution is None:
        raise ExecutionNotFoundError(f"Execution not found: {execution_id}")

    if not is_active_execution(db, execution):
        logger.warning(
            "dropping stale node result node=%s execution=%s",
            node_id,
            execution_id,
        )
        return None

    log = ExecutionLog(
        execution_id=execution_id,
        node_id=node_id,
        node_type=node_type,
        input=input,
        output=output,
        error=error,
        error_type=error_type,
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    return log


def list_logs_for_execution(db: Session, *, execution_id: uuid.UUID) -> list[ExecutionLog]:
    stmt = (
        select(ExecutionLog)
        .where(ExecutionLog.execution_id == execution_id)
        .order_by(ExecutionLog.created_at.asc())
    )
    return list(db.execute(stmt).scalars().all())


def latest_node_results(db: Session, *, automation_id: uuid.UUID) -> dict[str, ExecutionLog]:
    """Latest durable result per node: the logs of the automation's active run."""
    automation = db.get(Automation, automation_id)
    if automation is None or automation.active_execution_id is None:
        return {}
    logs = list_logs_for_execution(db, execution_id=automation.active_execution_id)
    return {log.node_id: log for log in logs}


def clear_stale_executions(
    db: Session,
    *,
    older_than: timedelta,
    now: datetime | None = None,
) -> int:
    now = now or utcnow()
    threshold = now - older_than

    stmt = select(Execution).where(
        Execution.status == ExecutionStatus.RUNNING.value,
        Execution.started_at < threshold,
    )
    stale = list(db.execute(stmt).scalars().all())
    for execution in stale:
        execution.status = ExecutionStatus.FAILED.value
        execution.error = STALE_EXECUTION_ERROR
        execution.finished_at = now
        db.add(execution)
    db.commit()

    if stale:
        logger.info("cleared %d stale executions", len(stale))
    return len(stale)
