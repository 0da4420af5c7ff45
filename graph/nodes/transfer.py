from __future__ import annotations

from typing import Any

from app.services.execution_context import ExecutionContext, resolve_amount
from chain.client import ChainClient
from graph.model import Node
from graph.params import TransferParams, TransferPLSParams
from graph.state import RunState


def transfer(node: Node, state: RunState, context: ExecutionContext, client: ChainClient) -> dict[str, Any]:
    params: TransferParams = node.params
    if not params.token:
        raise ValueError("Token address is required for transfer")
    if not params.to:
        raise ValueError("Recipient address is required for transfer")

    amount = resolve_amount(params.amount, context)
    output = client.transfer_token(token=params.token, to=params.to, amount=amount)
    output["amount"] = amount
    return output


def transfer_pls(node: Node, state: RunState, context: ExecutionContext, client: ChainClient) -> dict[str, Any]:
    params: TransferPLSParams = node.params
    if not params.to:
        raise ValueError("Recipient address is required for transferPLS")

    amount = resolve_amount(params.amount, context)
    output = client.transfer_native(to=params.to, amount=amount)
    output["amount"] = amount
    return output
