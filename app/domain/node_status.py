from __future__ import annotations

from enum import Enum


class NodeStatus(str, Enum):
    INITIAL = "initial"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class InvalidStatusTransition(ValueError):
    pass


# success/error only go back through initial, which a new run does for every node
ALLOWED = {
    NodeStatus.INITIAL: {NodeStatus.LOADING},
    NodeStatus.LOADING: {NodeStatus.SUCCESS, NodeStatus.ERROR},
    NodeStatus.SUCCESS: {NodeStatus.INITIAL},
    NodeStatus.ERROR: {NodeStatus.INITIAL},
}


def assert_valid_transition(frm: NodeStatus, to: NodeStatus) -> None:
    if frm == to:
        return
    if to not in ALLOWED.get(frm, set()):
        raise InvalidStatusTransition(f"Invalid node status transition: {frm.value} -> {to.value}")
