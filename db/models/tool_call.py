from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base
from db.utils.json_type import JSONType
from db.utils.time import utcnow
from db.utils.uuid_type import UUIDType


class ToolCall(Base):
    """One chain call made while executing a node (RPC read or signed tx)."""

    __tablename__ = "tool_calls"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)

    execution_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("executions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    node_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    tool_name: Mapped[str] = mapped_column(String(64), nullable=False)

    request: Mapped[Any | None] = mapped_column(JSONType, nullable=True)
    response: Mapped[Any | None] = mapped_column(JSONType, nullable=True)

    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
