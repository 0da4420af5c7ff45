from __future__ import annotations

from typing import Any

from app.services.execution_context import ExecutionContext, resolve_amount
from chain.client import ChainClient
from graph.model import Node
from graph.params import SwapParams
from graph.state import RunState
from policy.slippage import resolve_tolerance


def swap(node: Node, state: RunState, context: ExecutionContext, client: ChainClient) -> dict[str, Any]:
    params: SwapParams = node.params
    if len(params.path) < 2:
        raise ValueError("Swap path needs at least two token addresses")

    amount_in = resolve_amount(params.amount_in, context)
    if amount_in <= 0:
        raise ValueError("Swap amount must be greater than zero")

    tolerance = resolve_tolerance(params.slippage, default=state.default_slippage)
    return client.swap_exact_tokens(
        path=params.path,
        amount_in=amount_in,
        tolerance=tolerance,
        to=params.to,
    )
