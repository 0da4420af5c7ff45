from __future__ import annotations

from typing import Any

from app.domain.node_status import NodeStatus
from graph.handles import default_handles

OVERLAY_CLASSES: dict[NodeStatus, str] = {
    NodeStatus.LOADING: "node-status-loading",
    NodeStatus.SUCCESS: "node-status-success ring-green",
    NodeStatus.ERROR: "node-status-error ring-red",
}


def status_overlay(status: NodeStatus) -> dict[str, Any] | None:
    """
    Overlay element for a non-initial status. Absolutely positioned over the
    node with pointer events disabled so the node's hit area is unchanged.
    """
    status = NodeStatus(status)
    if status == NodeStatus.INITIAL:
        return None
    return {
        "type": "overlay",
        "status": status.value,
        "className": OVERLAY_CLASSES[status],
        "style": {"position": "absolute", "inset": 0, "pointerEvents": "none", "zIndex": 10},
    }


def has_wrapped_child_shape(content: Any) -> bool:
    """True when content is a single element whose children start with a base node."""
    if not isinstance(content, dict):
        return False
    children = content.get("children")
    return isinstance(children, list) and len(children) > 0 and isinstance(children[0], dict)


def render_status_overlay(status: NodeStatus | str, content: Any) -> dict[str, Any]:
    """
    Place the status overlay on rendered node content.

    Nested shape: the overlay goes into a relative box around the first child
    (the card) and the remaining children (handles, buttons) stay outside it.
    Anything else: the whole content is wrapped.
    """
    overlay = status_overlay(NodeStatus(status))

    if has_wrapped_child_shape(content):
        base, *rest = content["children"]
        inner = [overlay, base] if overlay else [base]
        rendered = dict(content)
        rendered["children"] = [
            {"type": "div", "style": {"position": "relative"}, "children": inner},
            *rest,
        ]
        return rendered

    inner = [overlay, content] if overlay else [content]
    return {"type": "div", "style": {"position": "relative"}, "children": inner}


def render_node(
    node_id: str,
    node_kind: str,
    *,
    status: NodeStatus | str,
    show_add_button: bool,
    label: str | None = None,
) -> dict[str, Any]:
    """Render tree for one node: card, handles, optional add-step button, status overlay."""
    handles = []
    for handle in default_handles(node_id, node_kind):
        handles.append(
            {
                "type": "handle",
                "id": handle.id,
                "handleType": handle.type.value,
                "position": handle.position.value,
                "anchor": handle.anchor.as_dict(),
                "button": bool(show_add_button and handle.type.value == "source"),
            }
        )

    content = {
        "type": "node",
        "id": node_id,
        "kind": node_kind,
        "children": [
            {"type": "card", "label": label or node_kind},
            *handles,
        ],
    }
    return render_status_overlay(status, content)
