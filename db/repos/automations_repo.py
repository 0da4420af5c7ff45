from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.automation import Automation


class AutomationNotFoundError(Exception):
    pass


def create_automation(
    db: Session,
    *,
    name: str,
    wallet_address: str,
    definition: dict[str, Any],
    default_slippage: float,
    rpc_endpoint: str | None = None,
) -> Automation:
    automation = Automation(
        name=name,
        wallet_address=wallet_address,
        definition=definition,
        default_slippage=default_slippage,
        rpc_endpoint=rpc_endpoint,
    )
    db.add(automation)
    db.commit()
    db.refresh(automation)
    return automation


def get_automation(db: Session, automation_id: uuid.UUID) -> Automation | None:
    return db.execute(select(Automation).where(Automation.id == automation_id)).scalar_one_or_none()


def require_automation(db: Session, automation_id: uuid.UUID) -> Automation:
    automation = get_automation(db, automation_id)
    if automation is None:
        raise AutomationNotFoundError(f"Automation not found: {automation_id}")
    return automation


def list_automations(db: Session) -> list[Automation]:
    stmt = select(Automation).order_by(Automation.created_at.desc())
    return list(db.execute(stmt).scalars().all())


def save_definition(
    db: Session,
    *,
    automation_id: uuid.UUID,
    definition: dict[str, Any],
) -> Automation:
    automation = require_automation(db, automation_id)

    # reassign, JSON columns do not track in-place mutation
    automation.definition = definition

    db.add(automation)
    db.commit()
    db.refresh(automation)
    return automation


def update_settings(
    db: Session,
    *,
    automation_id: uuid.UUID,
    name: str | None = None,
    default_slippage: float | None = None,
    rpc_endpoint: str | None = None,
) -> Automation:
    automation = require_automation(db, automation_id)
    if name is not None:
        automation.name = name
    if default_slippage is not None:
        automation.default_slippage = default_slippage
    if rpc_endpoint is not None:
        automation.rpc_endpoint = rpc_endpoint or None

    db.add(automation)
    db.commit()
    db.refresh(automation)
    return automation


def set_active_execution(
    db: Session,
    *,
    automation_id: uuid.UUID,
    execution_id: uuid.UUID | None,
) -> Automation:
    automation = require_automation(db, automation_id)
    automation.active_execution_id = execution_id

    db.add(automation)
    db.commit()
    db.refresh(automation)
    return automation


def delete_automation(db: Session, automation_id: uuid.UUID) -> None:
    automation = require_automation(db, automation_id)
    db.delete(automation)
    db.commit()
