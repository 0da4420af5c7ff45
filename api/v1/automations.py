from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api.schemas.automations import (
    AppendNodeRequest,
    AutomationCreateRequest,
    AutomationResponse,
    AutomationSettingsRequest,
    DefinitionUpdateRequest,
    UpdateNodeRequest,
    ValidationResponse,
)
from app.config import get_settings
from db.deps import get_db
from db.models.automation import Automation
from db.repos.automations_repo import (
    AutomationNotFoundError,
    create_automation,
    delete_automation,
    list_automations,
    require_automation,
    save_definition,
    update_settings,
)
from graph.model import (
    AutomationGraph,
    GraphStructureError,
    append_node,
    default_graph,
    remove_node,
    reset_graph,
    update_node_params,
    validate_graph,
)
from graph.status import drop_status_board
from policy.engine import evaluate_graph
from policy.slippage import selected_preset

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/automations", tags=["automations"])


def to_response(automation: Automation) -> AutomationResponse:
    preset = selected_preset(automation.default_slippage)
    return AutomationResponse(
        id=automation.id,
        name=automation.name,
        walletAddress=automation.wallet_address,
        defaultSlippage=automation.default_slippage,
        defaultSlippagePreset=preset.label if preset else None,
        rpcEndpoint=automation.rpc_endpoint,
        activeExecutionId=automation.active_execution_id,
        definition=automation.definition or {},
        createdAt=automation.created_at,
        updatedAt=automation.updated_at,
    )


def load_automation(db: Session, automation_id: UUID) -> Automation:
    try:
        return require_automation(db, automation_id)
    except AutomationNotFoundError:
        raise HTTPException(status_code=404, detail="Automation not found")


def _parse_graph(definition: dict | None) -> AutomationGraph:
    try:
        graph = AutomationGraph.from_definition(definition)
        validate_graph(graph)
    except ValueError as e:
        # GraphStructureError and pydantic ValidationError
        raise HTTPException(status_code=422, detail=str(e))
    return graph


def _save(db: Session, automation: Automation, graph: AutomationGraph) -> AutomationResponse:
    updated = save_definition(db, automation_id=automation.id, definition=graph.to_definition())
    return to_response(updated)


@router.post("", response_model=AutomationResponse)
def create_automation_endpoint(
    payload: AutomationCreateRequest,
    db: Session = Depends(get_db),
) -> AutomationResponse:
    graph = _parse_graph(payload.definition) if payload.definition else default_graph()
    default_slippage = payload.defaultSlippage
    if default_slippage is None:
        default_slippage = get_settings().default_slippage

    automation = create_automation(
        db,
        name=payload.name,
        wallet_address=payload.walletAddress,
        definition=graph.to_definition(),
        default_slippage=default_slippage,
        rpc_endpoint=payload.rpcEndpoint,
    )
    logger.info("automation %s created", automation.id)
    return to_response(automation)


@router.get("", response_model=list[AutomationResponse])
def list_automations_endpoint(db: Session = Depends(get_db)) -> list[AutomationResponse]:
    return [to_response(a) for a in list_automations(db)]


@router.get("/{automation_id}", response_model=AutomationResponse)
def get_automation_endpoint(automation_id: UUID, db: Session = Depends(get_db)) -> AutomationResponse:
    return to_response(load_automation(db, automation_id))


@router.patch("/{automation_id}/settings", response_model=AutomationResponse)
def update_settings_endpoint(
    automation_id: UUID,
    payload: AutomationSettingsRequest,
    db: Session = Depends(get_db),
) -> AutomationResponse:
    load_automation(db, automation_id)
    automation = update_settings(
        db,
        automation_id=automation_id,
        name=payload.name,
        default_slippage=payload.defaultSlippage,
        rpc_endpoint=payload.rpcEndpoint,
    )
    return to_response(automation)


@router.delete("/{automation_id}", status_code=204)
def delete_automation_endpoint(automation_id: UUID, db: Session = Depends(get_db)) -> None:
    load_automation(db, automation_id)
    delete_automation(db, automation_id)
    drop_status_board(str(automation_id))


@router.put("/{automation_id}/definition", response_model=AutomationResponse)
def replace_definition(
    automation_id: UUID,
    payload: DefinitionUpdateRequest,
    db: Session = Depends(get_db),
) -> AutomationResponse:
    automation = load_automation(db, automation_id)
    graph = _parse_graph(payload.definition)
    return _save(db, automation, graph)


@router.post("/{automation_id}/nodes", response_model=AutomationResponse)
def append_node_endpoint(
    automation_id: UUID,
    payload: AppendNodeRequest,
    db: Session = Depends(get_db),
) -> AutomationResponse:
    automation = load_automation(db, automation_id)
    graph = _parse_graph(automation.definition)
    try:
        graph = append_node(graph, payload.kind, payload.params, node_id=payload.nodeId)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _save(db, automation, graph)


@router.patch("/{automation_id}/nodes/{node_id}", response_model=AutomationResponse)
def update_node_endpoint(
    automation_id: UUID,
    node_id: str,
    payload: UpdateNodeRequest,
    db: Session = Depends(get_db),
) -> AutomationResponse:
    automation = load_automation(db, automation_id)
    graph = _parse_graph(automation.definition)
    try:
        graph = update_node_params(graph, node_id, payload.params)
    except GraphStructureError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _save(db, automation, graph)


@router.delete("/{automation_id}/nodes/{node_id}", response_model=AutomationResponse)
def remove_node_endpoint(
    automation_id: UUID,
    node_id: str,
    db: Session = Depends(get_db),
) -> AutomationResponse:
    automation = load_automation(db, automation_id)
    graph = _parse_graph(automation.definition)
    try:
        graph = remove_node(graph, node_id)
    except GraphStructureError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _save(db, automation, graph)


@router.post("/{automation_id}/reset", response_model=AutomationResponse)
def reset_endpoint(automation_id: UUID, db: Session = Depends(get_db)) -> AutomationResponse:
    automation = load_automation(db, automation_id)
    graph = reset_graph(_parse_graph(automation.definition))
    return _save(db, automation, graph)


@router.post("/{automation_id}/validate", response_model=ValidationResponse)
def validate_endpoint(automation_id: UUID, db: Session = Depends(get_db)) -> ValidationResponse:
    automation = load_automation(db, automation_id)
    graph = _parse_graph(automation.definition)
    result = evaluate_graph(graph)
    return ValidationResponse(
        isValid=result.is_valid,
        hardErrors=result.hard_errors,
        softWarnings=result.soft_warnings,
    )
