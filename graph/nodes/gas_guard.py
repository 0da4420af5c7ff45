from __future__ import annotations

from decimal import Decimal
from typing import Any

from app.services.execution_context import ExecutionContext
from chain.client import ChainClient
from chain.errors import AutomationStopped
from graph.model import Node
from graph.params import GasGuardParams
from graph.state import RunState

DEFAULT_MAX_GWEI = Decimal(100)
WEI_PER_GWEI = Decimal(10) ** 9


class GasGuardTriggered(AutomationStopped):
    pass


def gas_guard(node: Node, state: RunState, context: ExecutionContext, client: ChainClient) -> dict[str, Any]:
    """
    Stop the run when gas is above the threshold. The price paid by the
    previous transaction is used when there is one, otherwise the current
    network price.
    """
    params: GasGuardParams = node.params
    threshold = params.max_gas_price if params.max_gas_price is not None else DEFAULT_MAX_GWEI

    previous = context.previous_output() or {}
    if previous.get("gasPrice") is not None:
        gas_price_wei = int(previous["gasPrice"])
    else:
        gas_price_wei = client.gas_price_wei()

    gas_price_gwei = Decimal(gas_price_wei) / WEI_PER_GWEI
    if gas_price_gwei > threshold:
        raise GasGuardTriggered(
            f"Gas Guard stopped automation: Gas price was {gas_price_gwei:.2f} gwei, "
            f"threshold was {threshold} gwei"
        )

    return {
        "passed": True,
        "currentGasPrice": float(gas_price_gwei),
        "threshold": float(threshold),
    }
