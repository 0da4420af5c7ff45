# policy/rules.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import List, Optional

from web3 import Web3

from graph.params import (
    CheckTokenBalanceParams,
    GasGuardParams,
    PreviousOutputAmount,
    StaticAmount,
    SwapParams,
    TransferParams,
    TransferPLSParams,
    WaitParams,
    numeric_output_fields,
)
from policy.slippage import HIGH_SLIPPAGE_THRESHOLD
from policy.types import CheckStatus, NodeCheckResult

MIN_WAIT_S = 1
MAX_WAIT_S = 10
HIGH_GAS_GWEI = Decimal(1000)


def _fail(node_id: str, field: str, reason: str, **metadata) -> NodeCheckResult:
    return NodeCheckResult(
        node_id=node_id, field=field, status=CheckStatus.FAIL, reason=reason, metadata=metadata
    )


def _warn(node_id: str, field: str, reason: str, **metadata) -> NodeCheckResult:
    return NodeCheckResult(
        node_id=node_id, field=field, status=CheckStatus.WARN, reason=reason, metadata=metadata
    )


def rule_address(
    node_id: str,
    field: str,
    value: Optional[str],
    *,
    required: bool,
    label: str = "Address",
) -> List[NodeCheckResult]:
    if not value:
        if required:
            return [_fail(node_id, field, f"{label} is required")]
        return []
    if not Web3.is_address(value):
        return [_fail(node_id, field, "Invalid address format", value=value)]
    return []


def rule_amount(
    node_id: str,
    field: str,
    amount,
    previous_kind: Optional[str],
) -> List[NodeCheckResult]:
    if isinstance(amount, StaticAmount):
        try:
            value = Decimal(amount.value)
        except InvalidOperation:
            return [_fail(node_id, field, "Amount must be a number", value=amount.value)]
        if value < 0:
            return [_fail(node_id, field, "Amount cannot be negative")]
        if value == 0:
            return [_warn(node_id, field, "Amount is 0, this node may not execute as expected")]
        return []

    if isinstance(amount, PreviousOutputAmount):
        if previous_kind is None:
            return [_fail(node_id, field, "No previous node to take the amount from")]
        allowed = numeric_output_fields(previous_kind)
        if amount.field not in allowed:
            return [
                _fail(
                    node_id,
                    field,
                    f"Previous node ({previous_kind}) has no numeric output '{amount.field}'",
                    allowed=allowed,
                )
            ]
    return []


def rule_slippage(node_id: str, slippage: Optional[Decimal]) -> List[NodeCheckResult]:
    if slippage is None:
        return []
    if slippage < 0 or slippage > 1:
        return [_fail(node_id, "slippage", "Must be between 0 and 1", value=str(slippage))]
    if slippage > HIGH_SLIPPAGE_THRESHOLD:
        return [
            _warn(
                node_id,
                "slippage",
                "Slippage is very high, you may receive significantly less than expected",
            )
        ]
    return []


def check_transfer(node_id: str, params: TransferParams, previous_kind: Optional[str]) -> List[NodeCheckResult]:
    return [
        *rule_address(node_id, "token", params.token, required=True, label="Token address"),
        *rule_address(node_id, "to", params.to, required=True, label="Recipient address"),
        *rule_amount(node_id, "amount", params.amount, previous_kind),
    ]


def check_transfer_pls(node_id: str, params: TransferPLSParams, previous_kind: Optional[str]) -> List[NodeCheckResult]:
    return [
        *rule_address(node_id, "to", params.to, required=True, label="Recipient address"),
        *rule_amount(node_id, "amount", params.amount, previous_kind),
    ]


def check_swap(node_id: str, params: SwapParams, previous_kind: Optional[str]) -> List[NodeCheckResult]:
    results: List[NodeCheckResult] = []
    if not params.path:
        results.append(_fail(node_id, "path", "Token path cannot be empty"))
    elif len(params.path) < 2:
        results.append(_fail(node_id, "path", "Token path needs at least two tokens"))
    for index, addr in enumerate(params.path):
        results.extend(rule_address(node_id, f"path[{index}]", addr, required=True, label="Token address"))
    results.extend(rule_address(node_id, "to", params.to, required=False))
    results.extend(rule_amount(node_id, "amountIn", params.amount_in, previous_kind))
    results.extend(rule_slippage(node_id, params.slippage))
    return results


def check_token_balance(node_id: str, params: CheckTokenBalanceParams) -> List[NodeCheckResult]:
    return rule_address(node_id, "token", params.token, required=True, label="Token address")


def check_wait(node_id: str, params: WaitParams) -> List[NodeCheckResult]:
    if params.delay < MIN_WAIT_S or params.delay > MAX_WAIT_S:
        return [_fail(node_id, "delay", f"Must be between {MIN_WAIT_S} and {MAX_WAIT_S}")]
    if params.delay == MAX_WAIT_S:
        return [_warn(node_id, "delay", "Maximum delay reached")]
    return []


def check_gas_guard(node_id: str, params: GasGuardParams) -> List[NodeCheckResult]:
    if params.max_gas_price is None:
        return [_fail(node_id, "maxGasPrice", "Gas price is required")]
    if params.max_gas_price <= 0:
        return [_fail(node_id, "maxGasPrice", "Gas price must be a positive number")]
    if params.max_gas_price > HIGH_GAS_GWEI:
        return [_warn(node_id, "maxGasPrice", "Gas price is very high, transaction may be expensive")]
    return []
