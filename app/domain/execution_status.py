from __future__ import annotations

from db.models.execution import ExecutionStatus

TERMINAL = {
    ExecutionStatus.SUCCESS,
    ExecutionStatus.FAILED,
}

ALLOWED = {
    ExecutionStatus.RUNNING: {ExecutionStatus.SUCCESS, ExecutionStatus.FAILED},
    ExecutionStatus.SUCCESS: set(),
    ExecutionStatus.FAILED: set(),
}


def assert_valid_transition(frm: ExecutionStatus, to: ExecutionStatus) -> None:
    if frm in TERMINAL:
        raise ValueError(f"Cannot transition from terminal status: {frm.value}")

    if to not in ALLOWED.get(frm, set()):
        raise ValueError(f"Invalid status transition: {frm.value} -> {to.value}")
