# policy/types.py
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CheckStatus(str, Enum):
    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


class NodeCheckResult(BaseModel):
    node_id: str
    field: str
    status: CheckStatus
    reason: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ValidationResult(BaseModel):
    checks: List[NodeCheckResult] = Field(default_factory=list)

    @property
    def fail_count(self) -> int:
        return sum(1 for c in self.checks if c.status == CheckStatus.FAIL)

    @property
    def warn_count(self) -> int:
        return sum(1 for c in self.checks if c.status == CheckStatus.WARN)

    @property
    def is_valid(self) -> bool:
        return self.fail_count == 0

    def _by_node(self, status: CheckStatus) -> Dict[str, Dict[str, str]]:
        out: Dict[str, Dict[str, str]] = {}
        for c in self.checks:
            if c.status == status:
                # first message per field wins
                out.setdefault(c.node_id, {}).setdefault(c.field, c.reason or "")
        return out

    @property
    def hard_errors(self) -> Dict[str, Dict[str, str]]:
        return self._by_node(CheckStatus.FAIL)

    @property
    def soft_warnings(self) -> Dict[str, Dict[str, str]]:
        return self._by_node(CheckStatus.WARN)

    def for_node(self, node_id: str) -> "ValidationResult":
        return ValidationResult(checks=[c for c in self.checks if c.node_id == node_id])
