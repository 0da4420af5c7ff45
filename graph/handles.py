from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict

START_OUTPUT_HANDLE = "start-output"
OUTPUT_HANDLE = "output"


class HandlePosition(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"


class HandleType(str, Enum):
    SOURCE = "source"
    TARGET = "target"


@dataclass(frozen=True)
class Anchor:
    """
    Anchor of a handle relative to the node's bounding box.

    ``x``/``y`` are fractions of width/height; ``shift_x``/``shift_y`` are
    fractions of the handle's own size (the CSS translate).
    """

    x: float
    y: float
    shift_x: float
    shift_y: float

    def as_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "shiftX": self.shift_x, "shiftY": self.shift_y}


_ANCHORS: dict[HandlePosition | None, Anchor] = {
    HandlePosition.TOP: Anchor(x=0.5, y=0.0, shift_x=-0.5, shift_y=-0.5),
    HandlePosition.BOTTOM: Anchor(x=0.5, y=1.0, shift_x=-0.5, shift_y=0.5),
    HandlePosition.LEFT: Anchor(x=0.0, y=0.5, shift_x=-0.5, shift_y=-0.5),
    HandlePosition.RIGHT: Anchor(x=1.0, y=0.5, shift_x=0.5, shift_y=-0.5),
    None: Anchor(x=0.5, y=0.5, shift_x=-0.5, shift_y=-0.5),
}


def handle_anchor(position: HandlePosition | None) -> Anchor:
    return _ANCHORS[HandlePosition(position) if position is not None else None]


class Handle(BaseModel):
    model_config = ConfigDict(frozen=True)

    node_id: str
    type: HandleType
    position: HandlePosition
    id: str | None = None

    @property
    def anchor(self) -> Anchor:
        return handle_anchor(self.position)


def attach_handle(
    node_id: str,
    position: HandlePosition,
    kind: HandleType,
    id: str | None = None,
) -> Handle:
    return Handle(node_id=node_id, type=kind, position=position, id=id)


def default_handles(node_id: str, node_kind: str) -> list[Handle]:
    """
    Start nodes expose a single ``start-output`` source; every other kind has
    an unlabeled input on the left and an ``output`` source on the right.
    """
    if node_kind == "start":
        return [attach_handle(node_id, HandlePosition.RIGHT, HandleType.SOURCE, START_OUTPUT_HANDLE)]
    return [
        attach_handle(node_id, HandlePosition.LEFT, HandleType.TARGET),
        attach_handle(node_id, HandlePosition.RIGHT, HandleType.SOURCE, OUTPUT_HANDLE),
    ]


def output_handle_id(node_kind: str) -> str:
    return START_OUTPUT_HANDLE if node_kind == "start" else OUTPUT_HANDLE


def find_handle(
    node_id: str,
    node_kind: str,
    handle_id: str | None,
    handle_type: HandleType,
) -> Handle | None:
    for handle in default_handles(node_id, node_kind):
        if handle.type == handle_type and handle.id == handle_id:
            return handle
    return None
