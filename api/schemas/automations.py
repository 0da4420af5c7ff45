from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from graph.params import NodeKind


class AutomationCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    walletAddress: str = Field(..., min_length=3, max_length=64)
    defaultSlippage: float | None = Field(default=None, gt=0, lt=1)
    rpcEndpoint: str | None = Field(default=None, max_length=256)
    definition: dict[str, Any] | None = None

    @field_validator("walletAddress")
    @classmethod
    def _wallet_prefix(cls, value: str) -> str:
        if not value.startswith("0x"):
            raise ValueError("walletAddress must start with '0x'")
        return value


class AutomationSettingsRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    defaultSlippage: float | None = Field(default=None, gt=0, lt=1)
    rpcEndpoint: str | None = Field(default=None, max_length=256)


class AutomationResponse(BaseModel):
    id: UUID
    name: str
    walletAddress: str
    defaultSlippage: float
    defaultSlippagePreset: str | None = None
    rpcEndpoint: str | None = None
    activeExecutionId: UUID | None = None
    definition: dict[str, Any]
    createdAt: datetime
    updatedAt: datetime


class DefinitionUpdateRequest(BaseModel):
    definition: dict[str, Any]


class AppendNodeRequest(BaseModel):
    kind: NodeKind
    params: dict[str, Any] | None = None
    nodeId: str | None = Field(default=None, min_length=1, max_length=64)


class UpdateNodeRequest(BaseModel):
    params: dict[str, Any]


class ValidationResponse(BaseModel):
    isValid: bool
    hardErrors: dict[str, dict[str, str]]
    softWarnings: dict[str, dict[str, str]]


class StatusesResponse(BaseModel):
    runId: str | None
    statuses: dict[str, str]


class RunStartResponse(BaseModel):
    ok: bool
    executionId: UUID
    status: str
    completed: list[str]
    failedNodeId: str | None = None
    error: str | None = None
