# policy/engine.py
from __future__ import annotations

from typing import Dict, List, Optional

from graph.model import AutomationGraph, execution_order
from graph.params import (
    CheckTokenBalanceParams,
    GasGuardParams,
    NodeKind,
    SwapParams,
    TransferParams,
    TransferPLSParams,
    WaitParams,
)
from policy.rules import (
    check_gas_guard,
    check_swap,
    check_token_balance,
    check_transfer,
    check_transfer_pls,
    check_wait,
)
from policy.types import NodeCheckResult, ValidationResult


def _check_node(node, previous_kind: Optional[str]) -> List[NodeCheckResult]:
    params = node.params
    if isinstance(params, TransferParams):
        return check_transfer(node.id, params, previous_kind)
    if isinstance(params, TransferPLSParams):
        return check_transfer_pls(node.id, params, previous_kind)
    if isinstance(params, SwapParams):
        return check_swap(node.id, params, previous_kind)
    if isinstance(params, CheckTokenBalanceParams):
        return check_token_balance(node.id, params)
    if isinstance(params, WaitParams):
        return check_wait(node.id, params)
    if isinstance(params, GasGuardParams):
        return check_gas_guard(node.id, params)
    return []


def evaluate_graph(graph: AutomationGraph) -> ValidationResult:
    """
    Run the per-kind node checks in execution order. ``previousOutput``
    amounts are checked against the outputs of the node executed just before
    (start nodes produce nothing and are not counted).

    Structural problems (cycles) surface as GraphStructureError from
    execution_order.
    """
    by_id: Dict[str, object] = {n.id: n for n in graph.nodes}
    checks: List[NodeCheckResult] = []
    previous_kind: Optional[str] = None

    for node_id in execution_order(graph):
        node = by_id[node_id]
        if node.kind == NodeKind.START.value:
            continue
        checks.extend(_check_node(node, previous_kind))
        previous_kind = node.kind

    return ValidationResult(checks=checks)
