"""
JSON-safe projection of blockchain artifacts.

Everything that leaves the process (DB JSON columns, SSE payloads, the debug
view) goes through ``serialize_for_json``. Web3 hands back receipts wrapping
provider objects, arbitrary-precision integers and ``HexBytes``; none of those
survive ``json.dumps`` unchanged.
"""
from __future__ import annotations

import dataclasses
import math
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Union
from uuid import UUID

from pydantic import BaseModel

JsonLike = Union[None, bool, int, float, str, list["JsonLike"], dict[str, "JsonLike"]]

UNSERIALIZABLE: dict[str, bool] = {"unserializable": True}

RECEIPT_FIELDS: tuple[str, ...] = (
    "hash",
    "blockHash",
    "blockNumber",
    "transactionIndex",
    "from",
    "to",
    "status",
    "gasUsed",
    "gasPrice",
    "effectiveGasPrice",
)


class UnserializableValueError(ValueError):
    pass


@dataclasses.dataclass(frozen=True)
class ReceiptSummary:
    """Fixed-shape projection of a transaction receipt."""

    fields: dict[str, JsonLike]

    def as_dict(self) -> dict[str, JsonLike]:
        return {key: self.fields.get(key) for key in RECEIPT_FIELDS}


def _hex(value: bytes) -> str:
    # HexBytes.hex() prefixes 0x on some releases; plain bytes.hex() never does
    return "0x" + bytes(value).hex()


def _scalar(value: Any) -> JsonLike:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return _hex(value)
    if isinstance(value, str):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Enum):
        return _scalar(value.value)
    raise UnserializableValueError(f"unsupported receipt field type: {type(value).__name__}")


def _receipt_hash(value: Mapping) -> str | None:
    tx_hash = value.get("hash")
    if tx_hash is None:
        tx_hash = value.get("transactionHash")
    if isinstance(tx_hash, str):
        return tx_hash
    if isinstance(tx_hash, (bytes, bytearray)):
        return _hex(tx_hash)
    return None


def as_receipt(value: Any) -> ReceiptSummary | None:
    """
    Shape check for transaction receipts.

    A receipt is a mapping with a string (or bytes, as web3 returns) ``hash`` /
    ``transactionHash`` and a ``blockNumber`` key. Returns None for anything
    else so the caller falls through to the generic walk.
    """
    if not isinstance(value, Mapping):
        return None
    tx_hash = _receipt_hash(value)
    if tx_hash is None or "blockNumber" not in value:
        return None

    try:
        fields: dict[str, JsonLike] = {"hash": tx_hash}
        for key in RECEIPT_FIELDS[1:]:
            fields[key] = _scalar(value.get(key))
    except UnserializableValueError:
        return None
    return ReceiptSummary(fields=fields)


def _walk(value: Any, active: set[int]) -> JsonLike:
    if value is None:
        return None
    if isinstance(value, (str, bool)):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return _hex(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Enum):
        return _walk(value.value, active)

    marker = id(value)
    if marker in active:
        raise UnserializableValueError("circular reference")
    active.add(marker)
    try:
        receipt = as_receipt(value)
        if receipt is not None:
            return receipt.as_dict()
        if isinstance(value, BaseModel):
            return _walk(value.model_dump(), active)
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return _walk(
                {f.name: getattr(value, f.name) for f in dataclasses.fields(value)},
                active,
            )
        if isinstance(value, Mapping):
            out: dict[str, JsonLike] = {}
            for k, v in value.items():
                key = _walk_key(k)
                if key in out:
                    raise UnserializableValueError(f"duplicate key after coercion: {key!r}")
                out[key] = _walk(v, active)
            return out
        if isinstance(value, (list, tuple)):
            return [_walk(item, active) for item in value]
    finally:
        active.discard(marker)

    raise UnserializableValueError(f"unsupported type: {type(value).__name__}")


def _walk_key(key: Any) -> str:
    if isinstance(key, str):
        return key
    if isinstance(key, Enum):
        return _walk_key(key.value)
    # same coercion as json.dumps
    if key is None:
        return "null"
    if isinstance(key, bool):
        return "true" if key else "false"
    if isinstance(key, (int, float)):
        return str(key)
    raise UnserializableValueError(f"unsupported key type: {type(key).__name__}")


def serialize_for_json(value: Any) -> JsonLike:
    """
    Serialize any value into JSON-safe data for DB storage, SSE payloads and
    the debug view. Never raises.

    - None stays None
    - receipts collapse to the fixed RECEIPT_FIELDS set (missing keys -> None)
    - ints become decimal strings at any depth, no precision loss
    - anything cyclic or of an unknown type becomes {"unserializable": True}
    """
    if value is None:
        return None

    receipt = as_receipt(value)
    if receipt is not None:
        return receipt.as_dict()

    try:
        return _walk(value, set())
    except (UnserializableValueError, RecursionError, TypeError, ValueError):
        return dict(UNSERIALIZABLE)
