from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Any

from web3 import Web3

from graph.params import PreviousOutputAmount, StaticAmount

BPS = 10000


class AmountResolutionError(ValueError):
    pass


@dataclass
class ExecutionContext:
    """Outputs of the nodes executed so far in one run."""

    node_outputs: dict[str, dict[str, Any]] = field(default_factory=dict)
    previous_node_id: str | None = None
    previous_node_type: str | None = None

    def previous_output(self) -> dict[str, Any] | None:
        if self.previous_node_id is None:
            return None
        return self.node_outputs.get(self.previous_node_id)


def update_context_with_output(
    context: ExecutionContext,
    node_id: str,
    node_type: str,
    output: dict[str, Any] | None,
) -> ExecutionContext:
    outputs = dict(context.node_outputs)
    outputs[node_id] = dict(output or {})
    return ExecutionContext(
        node_outputs=outputs,
        previous_node_id=node_id,
        previous_node_type=node_type,
    )


def _static_to_wei(value: str) -> int:
    text = (value or "0").strip() or "0"
    try:
        return int(Web3.to_wei(Decimal(text), "ether"))
    except (InvalidOperation, ValueError):
        pass
    # legacy values were stored as raw wei integers
    try:
        return int(text)
    except ValueError as e:
        raise AmountResolutionError(f"Invalid amount: {value!r}") from e


def resolve_amount(amount: StaticAmount | PreviousOutputAmount | str | None, context: ExecutionContext) -> int:
    """
    Resolve an amount reference to wei.

    static: human units (18 decimals); previousOutput: a numeric field of the
    previous node's output times percentage/100, truncated to 4 decimals of
    the ratio.
    """
    if amount is None:
        return 0
    if isinstance(amount, str):
        return int(amount or "0")

    if isinstance(amount, StaticAmount):
        return _static_to_wei(amount.value)

    previous = context.previous_output()
    if context.previous_node_id is None:
        raise AmountResolutionError("No previous node output available")
    if previous is None:
        raise AmountResolutionError(f"Previous node {context.previous_node_id} has no output")

    raw = previous.get(amount.field)
    if raw is None:
        raise AmountResolutionError(f"Previous node output does not have field: {amount.field}")
    if isinstance(raw, bool):
        raise AmountResolutionError(f"Field {amount.field} is not numeric")

    try:
        value = int(raw)
    except (TypeError, ValueError) as e:
        raise AmountResolutionError(f"Field {amount.field} is not numeric: {raw!r}") from e

    ratio_bps = int((Decimal(amount.percentage) / 100 * BPS).to_integral_value(rounding=ROUND_FLOOR))
    return value * ratio_bps // BPS
