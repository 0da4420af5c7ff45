from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class NodeKind(str, Enum):
    START = "start"
    TRANSFER = "transfer"
    TRANSFER_PLS = "transferPLS"
    SWAP = "swap"
    CHECK_TOKEN_BALANCE = "checkTokenBalance"
    WAIT = "wait"
    GAS_GUARD = "gasGuard"


class _Params(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ---------------------------
# Amount references
# ---------------------------

class StaticAmount(_Params):
    type: Literal["static"] = "static"
    value: str = "0"


class PreviousOutputAmount(_Params):
    type: Literal["previousOutput"] = "previousOutput"
    field: str
    percentage: Decimal = Field(default=Decimal(100), gt=0, le=100)


AmountValue = Annotated[Union[StaticAmount, PreviousOutputAmount], Field(discriminator="type")]


# ---------------------------
# Per-kind parameters
# ---------------------------

class StartParams(_Params):
    kind: Literal["start"] = "start"


class TransferParams(_Params):
    kind: Literal["transfer"] = "transfer"
    token: str | None = None
    to: str | None = None
    amount: AmountValue = Field(default_factory=StaticAmount)


class TransferPLSParams(_Params):
    kind: Literal["transferPLS"] = "transferPLS"
    to: str | None = None
    amount: AmountValue = Field(default_factory=StaticAmount)


class SwapParams(_Params):
    kind: Literal["swap"] = "swap"
    path: list[str] = Field(default_factory=list)
    amount_in: AmountValue = Field(default_factory=StaticAmount)
    # None -> automation default
    slippage: Decimal | None = None
    to: str | None = None

    @property
    def token_in(self) -> str | None:
        return self.path[0] if self.path else None

    @property
    def token_out(self) -> str | None:
        return self.path[-1] if self.path else None


class CheckTokenBalanceParams(_Params):
    kind: Literal["checkTokenBalance"] = "checkTokenBalance"
    token: str | None = None


class WaitParams(_Params):
    kind: Literal["wait"] = "wait"
    delay: int = 1


class GasGuardParams(_Params):
    kind: Literal["gasGuard"] = "gasGuard"
    max_gas_price: Decimal | None = None  # gwei


NodeParams = Annotated[
    Union[
        StartParams,
        TransferParams,
        TransferPLSParams,
        SwapParams,
        CheckTokenBalanceParams,
        WaitParams,
        GasGuardParams,
    ],
    Field(discriminator="kind"),
]

_params_adapter: TypeAdapter = TypeAdapter(NodeParams)


def params_for(kind: NodeKind | str, data: dict[str, Any] | None = None) -> NodeParams:
    kind_value = NodeKind(kind).value
    payload = dict(data or {})
    payload["kind"] = kind_value
    return _params_adapter.validate_python(payload)


# Outputs each kind adds to the execution context, used by previousOutput amounts.
NODE_OUTPUTS: dict[str, dict[str, str] | None] = {
    NodeKind.START.value: None,
    NodeKind.SWAP.value: {
        "amountOut": "bigint",
        "tokenOut": "address",
        "gasPrice": "bigint",
        "gasUsed": "bigint",
    },
    NodeKind.TRANSFER.value: {"gasPrice": "bigint", "gasUsed": "bigint"},
    NodeKind.TRANSFER_PLS.value: {"gasPrice": "bigint", "gasUsed": "bigint"},
    NodeKind.CHECK_TOKEN_BALANCE.value: {"balance": "bigint", "token": "address"},
    NodeKind.WAIT.value: None,
    NodeKind.GAS_GUARD.value: {
        "passed": "boolean",
        "currentGasPrice": "number",
        "threshold": "number",
    },
}


def output_fields(kind: str) -> list[str]:
    outputs = NODE_OUTPUTS.get(kind)
    return list(outputs) if outputs else []


def numeric_output_fields(kind: str) -> list[str]:
    outputs = NODE_OUTPUTS.get(kind) or {}
    return [name for name, typ in outputs.items() if typ == "bigint"]
