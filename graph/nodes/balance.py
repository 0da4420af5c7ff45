from __future__ import annotations

from typing import Any

from app.services.execution_context import ExecutionContext
from chain.client import ChainClient
from graph.model import Node
from graph.params import CheckTokenBalanceParams
from graph.state import RunState


def check_token_balance(node: Node, state: RunState, context: ExecutionContext, client: ChainClient) -> dict[str, Any]:
    params: CheckTokenBalanceParams = node.params
    if not params.token:
        raise ValueError("Token address is required for checkTokenBalance")

    owner = state.wallet_address or client.wallet_address()
    return {
        "balance": client.token_balance(params.token, owner),
        "token": params.token,
    }
