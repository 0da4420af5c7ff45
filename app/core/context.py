from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

# run id == execution id; tags log lines and status updates of one automation run
run_id_ctx: ContextVar[Optional[str]] = ContextVar("run_id", default=None)
automation_id_ctx: ContextVar[Optional[str]] = ContextVar("automation_id", default=None)


def set_run_id(run_id: Optional[str]) -> None:
    run_id_ctx.set(run_id)


def get_run_id() -> Optional[str]:
    return run_id_ctx.get()


def get_automation_id() -> Optional[str]:
    return automation_id_ctx.get()


@contextmanager
def bind_run(run_id: str, automation_id: str | None = None) -> Iterator[None]:
    """
    Bind run/automation ids for code running outside a request
    (the background run worker).
    """
    run_token = run_id_ctx.set(run_id)
    automation_token = automation_id_ctx.set(automation_id)
    try:
        yield
    finally:
        automation_id_ctx.reset(automation_token)
        run_id_ctx.reset(run_token)
