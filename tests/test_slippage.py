from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from policy.slippage import (
    SLIPPAGE_PRESETS,
    SlippageTolerance,
    is_custom,
    is_preset_selected,
    min_amount_out,
    resolve_tolerance,
    selected_preset,
    tolerance_from_percent,
)


def test_exact_preset_match_selects_only_that_preset():
    selected = [p.label for p in SLIPPAGE_PRESETS if is_preset_selected(p, 0.03)]
    assert selected == ["3%"]


def test_custom_value_selects_no_preset():
    assert selected_preset(0.07) is None
    assert not any(is_preset_selected(p, 0.07) for p in SLIPPAGE_PRESETS)
    assert SlippageTolerance(value=0.07).is_custom


def test_none_selects_no_preset():
    assert selected_preset(None) is None
    assert is_custom(None) is False


def test_is_custom():
    assert is_custom(0.07) is True
    assert is_custom("0.10") is False


def test_custom_percent_input():
    assert tolerance_from_percent("0.5").value == Decimal("0.005")
    assert tolerance_from_percent(" 7 ").value == Decimal("0.07")


def test_empty_percent_input_defaults_to_one_percent():
    assert tolerance_from_percent("").value == Decimal("0.01")
    assert tolerance_from_percent(None).preset.label == "1%"


def test_out_of_range_tolerance_rejected():
    with pytest.raises(ValidationError):
        SlippageTolerance(value=0)
    with pytest.raises(ValidationError):
        SlippageTolerance(value=1)
    with pytest.raises(ValueError):
        tolerance_from_percent("abc")


def test_resolve_tolerance_precedence():
    assert resolve_tolerance("0.02", "0.05").value == Decimal("0.02")
    assert resolve_tolerance(None, "0.05").value == Decimal("0.05")
    assert resolve_tolerance(None, None).value == Decimal("0.01")


def test_min_amount_out_floors():
    assert min_amount_out(10_000, SlippageTolerance(value="0.03")) == 9_700
    assert min_amount_out(999, SlippageTolerance(value="0.01")) == 989
    assert min_amount_out(0, SlippageTolerance(value="0.1")) == 0


def test_min_amount_out_rejects_negative():
    with pytest.raises(ValueError):
        min_amount_out(-1, SlippageTolerance(value="0.01"))
