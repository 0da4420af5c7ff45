from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal, InvalidOperation

from pydantic import BaseModel, ConfigDict, Field, field_validator

BPS = 10_000
HIGH_SLIPPAGE_THRESHOLD = Decimal("0.5")


@dataclass(frozen=True)
class SlippagePreset:
    label: str
    value: Decimal


SLIPPAGE_PRESETS: tuple[SlippagePreset, ...] = (
    SlippagePreset(label="1%", value=Decimal("0.01")),
    SlippagePreset(label="3%", value=Decimal("0.03")),
    SlippagePreset(label="10%", value=Decimal("0.10")),
)

DEFAULT_SLIPPAGE = SLIPPAGE_PRESETS[0].value


def to_decimal(value: Decimal | float | int | str) -> Decimal:
    # floats go through str() so 0.03 stays 0.03, not its binary expansion
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"invalid slippage value: {value!r}") from e


class SlippageTolerance(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: Decimal = Field(gt=0, lt=1)

    @field_validator("value", mode="before")
    @classmethod
    def _coerce(cls, value):
        return to_decimal(value)

    @property
    def preset(self) -> SlippagePreset | None:
        return selected_preset(self.value)

    @property
    def is_custom(self) -> bool:
        return self.preset is None

    @property
    def percent(self) -> Decimal:
        return self.value * 100


def selected_preset(value: Decimal | float | str | None) -> SlippagePreset | None:
    """Return the preset matching ``value`` exactly, or None for custom values."""
    if value is None:
        return None
    current = to_decimal(value)
    for preset in SLIPPAGE_PRESETS:
        if preset.value == current:
            return preset
    return None


def is_preset_selected(preset: SlippagePreset, value: Decimal | float | str | None) -> bool:
    return selected_preset(value) == preset


def is_custom(value: Decimal | float | str | None) -> bool:
    return value is not None and selected_preset(value) is None


def tolerance_from_percent(text: str | None) -> SlippageTolerance:
    """
    Custom input is typed in percent ("0.5" -> 0.005). Empty input falls back
    to the default 1%.
    """
    if text is None or not text.strip():
        return SlippageTolerance(value=DEFAULT_SLIPPAGE)
    percent = to_decimal(text.strip())
    return SlippageTolerance(value=percent / 100)


def resolve_tolerance(
    node_slippage: Decimal | float | str | None,
    default: Decimal | float | str | None = None,
) -> SlippageTolerance:
    """Node-level value wins, then the automation default, then 1%."""
    if node_slippage is not None:
        return SlippageTolerance(value=node_slippage)
    if default is not None:
        return SlippageTolerance(value=default)
    return SlippageTolerance(value=DEFAULT_SLIPPAGE)


def min_amount_out(expected_out: int, tolerance: SlippageTolerance) -> int:
    """
    amountOutMin passed to the router: the swap reverts on-chain when the
    realized output falls below it.
    """
    if expected_out < 0:
        raise ValueError("expected_out must be non-negative")
    keep_bps = int(((1 - tolerance.value) * BPS).to_integral_value(rounding=ROUND_FLOOR))
    return (expected_out * keep_bps) // BPS
