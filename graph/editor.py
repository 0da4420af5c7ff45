from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from graph.handles import HandleType, find_handle
from graph.model import (
    AutomationGraph,
    GraphStructureError,
    append_node,
    connect,
    default_graph,
    get_node,
)
from graph.params import NodeKind


class ConnectionDraft(BaseModel):
    model_config = ConfigDict(frozen=True)

    node_id: str
    handle_id: str | None
    handle_type: HandleType


class EditorSession(BaseModel):
    """
    One editing session over a graph.

    Only one wire can be dragged at a time, so the draft is a single optional
    field rather than per-handle state.
    """

    graph: AutomationGraph = Field(default_factory=default_graph)
    active_connection_draft: ConnectionDraft | None = None

    def is_connection_in_progress(self) -> bool:
        return self.active_connection_draft is not None

    def begin_connection(
        self,
        node_id: str,
        handle_id: str | None,
        handle_type: HandleType = HandleType.SOURCE,
    ) -> ConnectionDraft:
        if self.active_connection_draft is not None:
            raise GraphStructureError("A connection is already being drawn")
        node = get_node(self.graph, node_id)
        if find_handle(node_id, node.kind, handle_id, handle_type) is None:
            raise GraphStructureError(f"Node {node_id} has no {handle_type.value} handle {handle_id!r}")
        draft = ConnectionDraft(node_id=node_id, handle_id=handle_id, handle_type=handle_type)
        self.active_connection_draft = draft
        return draft

    def cancel_connection(self) -> None:
        self.active_connection_draft = None

    def complete_connection(self, node_id: str, handle_id: str | None = None) -> AutomationGraph:
        draft = self.active_connection_draft
        if draft is None:
            raise GraphStructureError("No connection is being drawn")

        try:
            if draft.handle_type == HandleType.SOURCE:
                updated = connect(
                    self.graph,
                    source=draft.node_id,
                    source_handle=draft.handle_id,
                    target=node_id,
                    target_handle=handle_id,
                )
            else:
                updated = connect(
                    self.graph,
                    source=node_id,
                    source_handle=handle_id,
                    target=draft.node_id,
                    target_handle=draft.handle_id,
                )
        finally:
            # a drop ends the drag whether or not it produced a connection
            self.active_connection_draft = None

        self.graph = updated
        return updated

    def add_node_affordance(self, node_id: str) -> bool:
        """
        Whether the "add next step" button renders on this node: terminal node
        only, and never while any wire is being dragged anywhere in the graph.
        """
        if self.is_connection_in_progress():
            return False
        return get_node(self.graph, node_id).is_last_node

    def append(self, kind: NodeKind | str, params: dict[str, Any] | None = None) -> AutomationGraph:
        if self.is_connection_in_progress():
            raise GraphStructureError("Cannot add a step while a connection is being drawn")
        self.graph = append_node(self.graph, kind, params)
        return self.graph
