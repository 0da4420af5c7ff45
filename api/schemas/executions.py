from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ToolCallRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    execution_id: UUID
    node_id: str | None
    tool_name: str
    request: Any | None
    response: Any | None
    error: str | None
    started_at: datetime
    ended_at: datetime | None


class ExecutionLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    node_id: str
    node_type: str
    input: Any | None
    output: Any | None
    error: str | None
    error_type: str | None
    created_at: datetime


class ExecutionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    automation_id: UUID
    status: str
    error: str | None
    was_scheduled: bool
    started_at: datetime
    finished_at: datetime | None


class ExecutionDetailResponse(BaseModel):
    execution: ExecutionRead
    logs: list[ExecutionLogRead] = Field(default_factory=list)
    isActive: bool


class ClearStaleResponse(BaseModel):
    cleared: int
