from graph.nodes.balance import check_token_balance
from graph.nodes.common import NodeAction, execute_node
from graph.nodes.gas_guard import GasGuardTriggered, gas_guard
from graph.nodes.swap import swap
from graph.nodes.transfer import transfer, transfer_pls
from graph.nodes.wait import wait
from graph.params import NodeKind

EXECUTORS: dict[str, NodeAction] = {
    NodeKind.TRANSFER.value: transfer,
    NodeKind.TRANSFER_PLS.value: transfer_pls,
    NodeKind.SWAP.value: swap,
    NodeKind.CHECK_TOKEN_BALANCE.value: check_token_balance,
    NodeKind.WAIT.value: wait,
    NodeKind.GAS_GUARD.value: gas_guard,
}

__all__ = [
    "EXECUTORS",
    "GasGuardTriggered",
    "NodeAction",
    "execute_node",
    "check_token_balance",
    "gas_guard",
    "swap",
    "transfer",
    "transfer_pls",
    "wait",
]
