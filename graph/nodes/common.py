from __future__ import annotations

import logging
from typing import Any, Callable

from langchain_core.runnables import RunnableConfig
from sqlalchemy.orm import Session

from app.core.serialization import serialize_for_json
from app.domain.node_status import NodeStatus
from app.services.execution_context import ExecutionContext, update_context_with_output
from app.services.run_events import publish_event
from chain.client import ChainClient
from chain.errors import parse_blockchain_error
from db.repos.executions_repo import log_node_result
from graph.model import Node
from graph.state import RunState
from graph.status import StatusBoard

logger = logging.getLogger(__name__)

# (node, state, context, client) -> output dict
NodeAction = Callable[[Node, RunState, ExecutionContext, ChainClient], dict[str, Any]]

# carried in the persisted log but never chained to the next node
_LOG_ONLY_KEYS = ("receipt",)


def _context_output(output: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in output.items() if k not in _LOG_ONLY_KEYS}


def execute_node(
    node: Node,
    state: RunState,
    config: RunnableConfig,
    action: NodeAction,
) -> dict[str, Any]:
    """
    One executor step: loading -> action -> persisted log -> success, or
    error with the classified failure. Returns the RunState update.
    """
    db: Session = config["configurable"]["db"]
    board: StatusBoard = config["configurable"]["board"]
    run_id = str(state.execution_id)

    board.set_status(node.id, NodeStatus.LOADING, run_id)
    context = state.context()
    client = ChainClient(
        db=db,
        execution_id=state.execution_id,
        node_id=node.id,
        rpc_url=state.rpc_url,
    )
    node_input = node.params.model_dump(mode="json", by_alias=True)

    try:
        output = action(node, state, context, client)
    except Exception as e:
        parsed = parse_blockchain_error(e)
        logger.warning(
            "node failed: %s (%s)",
            parsed.technical_details,
            parsed.error_type.value,
            extra={"node_id": node.id},
        )
        log_node_result(
            db,
            execution_id=state.execution_id,
            node_id=node.id,
            node_type=node.kind,
            input=node_input,
            output={"technicalDetails": parsed.technical_details, "txHash": parsed.tx_hash},
            error=parsed.user_message,
            error_type=parsed.error_type.value,
        )
        publish_event(
            run_id,
            {
                "type": "node_error",
                "nodeId": node.id,
                "nodeType": node.kind,
                "error": parsed.user_message,
                "errorType": parsed.error_type.value,
                "isRetryable": parsed.is_retryable,
            },
        )
        board.set_status(node.id, NodeStatus.ERROR, run_id)
        return {
            "failed_node_id": node.id,
            "error": parsed.model_dump(mode="json"),
        }

    data = serialize_for_json(output)
    log_node_result(
        db,
        execution_id=state.execution_id,
        node_id=node.id,
        node_type=node.kind,
        input=node_input,
        output=data,
    )
    publish_event(
        run_id,
        {"type": "node_complete", "nodeId": node.id, "nodeType": node.kind, "data": data},
    )
    board.set_status(node.id, NodeStatus.SUCCESS, run_id)
    logger.info("node complete", extra={"node_id": node.id})

    updated = update_context_with_output(context, node.id, node.kind, _context_output(output))
    return {
        "node_outputs": updated.node_outputs,
        "previous_node_id": updated.previous_node_id,
        "previous_node_type": updated.previous_node_type,
        "completed": [*state.completed, node.id],
    }
