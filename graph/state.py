from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.services.execution_context import ExecutionContext


class RunState(BaseModel):
    """
    RunState is the ONLY object that flows through LangGraph.

    Rules:
    - No DB sessions, status boards, or clients (those travel in the config)
    - node_outputs keeps raw ints; receipts are left out
    - failed_node_id set -> the graph routes to END
    """

    model_config = ConfigDict(extra="allow")

    execution_id: UUID
    automation_id: UUID
    rpc_url: str
    wallet_address: str | None = None
    default_slippage: Decimal | None = None

    node_outputs: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    previous_node_id: str | None = None
    previous_node_type: str | None = None

    completed: List[str] = Field(default_factory=list)
    failed_node_id: str | None = None
    error: Dict[str, Any] | None = None

    def context(self) -> ExecutionContext:
        return ExecutionContext(
            node_outputs={k: dict(v) for k, v in self.node_outputs.items()},
            previous_node_id=self.previous_node_id,
            previous_node_type=self.previous_node_type,
        )

    @property
    def succeeded(self) -> bool:
        return self.failed_node_id is None
