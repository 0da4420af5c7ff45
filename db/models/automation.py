from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Float, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base
from db.utils.json_type import JSONType
from db.utils.time import utcnow
from db.utils.uuid_type import UUIDType


class Automation(Base):
    __tablename__ = "automations"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(128), nullable=False)
    wallet_address: Mapped[str] = mapped_column(String(64), nullable=False)

    # AutomationGraph.to_definition()
    definition: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    default_slippage: Mapped[float] = mapped_column(Float, nullable=False, default=0.01)
    rpc_endpoint: Mapped[str | None] = mapped_column(String(256), nullable=True)

    # run whose results are still accepted; anything else is stale
    active_execution_id: Mapped[uuid.UUID | None] = mapped_column(UUIDType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
