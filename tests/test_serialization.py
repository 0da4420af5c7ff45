from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID

from app.core.serialization import RECEIPT_FIELDS, UNSERIALIZABLE, as_receipt, serialize_for_json


def _receipt(**overrides):
    receipt = {
        "hash": "0xabc",
        "blockHash": "0xdef",
        "blockNumber": 19_000_001,
        "transactionIndex": 3,
        "from": "0x1111111111111111111111111111111111111111",
        "to": "0x2222222222222222222222222222222222222222",
        "status": 1,
        "gasUsed": 21_000,
        "gasPrice": 7_000_000_000_000,
        "effectiveGasPrice": 7_000_000_000_000,
        "logs": [{"data": b"\x00" * 32}],
        "provider": object(),
    }
    receipt.update(overrides)
    return receipt


def test_none_stays_none():
    assert serialize_for_json(None) is None


def test_receipt_projects_to_fixed_keys():
    out = serialize_for_json(_receipt())
    assert list(out.keys()) == list(RECEIPT_FIELDS)
    assert out["hash"] == "0xabc"
    assert out["blockNumber"] == "19000001"
    assert out["gasPrice"] == "7000000000000"
    assert out["status"] == "1"


def test_receipt_missing_fields_are_null_not_dropped():
    out = serialize_for_json({"hash": "0xabc", "blockNumber": 1})
    assert set(out.keys()) == set(RECEIPT_FIELDS)
    assert out["effectiveGasPrice"] is None
    assert out["to"] is None


def test_web3_style_receipt_with_bytes_hash():
    raw = _receipt()
    del raw["hash"]
    raw["transactionHash"] = bytes.fromhex("ab" * 32)
    out = serialize_for_json(raw)
    assert out["hash"] == "0x" + "ab" * 32


def test_mapping_without_block_number_is_not_a_receipt():
    assert as_receipt({"hash": "0xabc"}) is None
    assert serialize_for_json({"hash": "0xabc", "amount": 5}) == {"hash": "0xabc", "amount": "5"}


def test_big_integers_at_any_depth_become_exact_strings():
    big = 123456789012345678901234567890
    out = serialize_for_json({"a": [{"b": big}], "c": (big, 1)})
    assert out == {
        "a": [{"b": "123456789012345678901234567890"}],
        "c": ["123456789012345678901234567890", "1"],
    }


def test_receipt_nested_in_output_is_projected():
    out = serialize_for_json({"txHash": "0xabc", "receipt": _receipt()})
    assert list(out["receipt"].keys()) == list(RECEIPT_FIELDS)
    assert "provider" not in out["receipt"]


def test_scalars_and_containers():
    class Color(Enum):
        RED = "red"

    @dataclass
    class Point:
        x: int
        y: float

    out = serialize_for_json(
        {
            "flag": True,
            "ratio": 0.5,
            "price": Decimal("1.25"),
            "raw": b"\x01\x02",
            "id": UUID("12345678-1234-5678-1234-567812345678"),
            "color": Color.RED,
            "point": Point(x=3, y=1.5),
            "inf": float("inf"),
            7: "int key",
        }
    )
    assert out == {
        "flag": True,
        "ratio": 0.5,
        "price": "1.25",
        "raw": "0x0102",
        "id": "12345678-1234-5678-1234-567812345678",
        "color": "red",
        "point": {"x": "3", "y": 1.5},
        "inf": None,
        "7": "int key",
    }


def test_idempotent():
    samples = [
        _receipt(),
        {"a": [1, 2, {"b": 10**30}], "c": "x"},
        {"hash": "0xabc", "blockNumber": 5},
        [0.25, None, True],
    ]
    for sample in samples:
        once = serialize_for_json(sample)
        assert serialize_for_json(once) == once


def test_cycle_returns_sentinel():
    cyclic: dict = {"name": "loop"}
    cyclic["self"] = cyclic
    assert serialize_for_json(cyclic) == UNSERIALIZABLE

    items: list = [1]
    items.append(items)
    assert serialize_for_json(items) == {"unserializable": True}


def test_unknown_type_returns_sentinel():
    assert serialize_for_json({"handle": object()}) == {"unserializable": True}


def test_shared_reference_is_not_a_cycle():
    shared = {"v": 1}
    assert serialize_for_json({"a": shared, "b": shared}) == {"a": {"v": "1"}, "b": {"v": "1"}}


def test_colliding_keys_return_sentinel():
    assert serialize_for_json({1: "int", "1": "str"}) == {"unserializable": True}
    assert serialize_for_json({"outer": {True: 1, "true": 2}}) == UNSERIALIZABLE
