"""
Automation graph: nodes, connections and the editor-level operations on them.

Every operation works on a deep copy and returns the new graph, so a failed
operation leaves the caller's graph untouched and a successful one is never
observed half-applied.
"""
from __future__ import annotations

import uuid
from collections import deque
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from graph.handles import HandleType, find_handle, output_handle_id
from graph.params import NodeKind, NodeParams, StartParams, params_for

APPEND_OFFSET_X = 250.0
DEFAULT_START_ID = "start-1"


class GraphStructureError(ValueError):
    pass


class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0


class Node(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    position: Position = Field(default_factory=Position)
    params: NodeParams
    is_last_node: bool = Field(default=False, alias="isLastNode")

    @property
    def kind(self) -> str:
        return self.params.kind


class Connection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    source: str
    target: str
    source_handle: str | None = Field(default=None, alias="sourceHandle")
    target_handle: str | None = Field(default=None, alias="targetHandle")


class AutomationGraph(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    nodes: list[Node] = Field(default_factory=list)
    connections: list[Connection] = Field(default_factory=list, alias="edges")

    def to_definition(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_definition(cls, definition: dict[str, Any] | None) -> "AutomationGraph":
        if not definition:
            return default_graph()
        return with_terminal_flags(cls.model_validate(definition))


def default_graph() -> AutomationGraph:
    return AutomationGraph(
        nodes=[Node(id=DEFAULT_START_ID, params=StartParams(), is_last_node=True)],
    )


# ---------------------------
# Lookups
# ---------------------------

def get_node(graph: AutomationGraph, node_id: str) -> Node:
    for node in graph.nodes:
        if node.id == node_id:
            return node
    raise GraphStructureError(f"Unknown node: {node_id}")


def outgoing(graph: AutomationGraph, node_id: str) -> list[Connection]:
    return [c for c in graph.connections if c.source == node_id]


def incoming(graph: AutomationGraph, node_id: str) -> list[Connection]:
    return [c for c in graph.connections if c.target == node_id]


def compute_terminal_id(graph: AutomationGraph) -> str | None:
    """First node without an outgoing connection."""
    sources = {c.source for c in graph.connections}
    for node in graph.nodes:
        if node.id not in sources:
            return node.id
    return None


def with_terminal_flags(graph: AutomationGraph) -> AutomationGraph:
    terminal_id = compute_terminal_id(graph)
    updated = graph.model_copy(deep=True)
    for node in updated.nodes:
        node.is_last_node = node.id == terminal_id
    return updated


def terminal_node(graph: AutomationGraph) -> Node:
    flagged = [n for n in graph.nodes if n.is_last_node]
    if len(flagged) != 1:
        raise GraphStructureError(
            f"Expected exactly one terminal node, found {len(flagged)}"
        )
    return flagged[0]


def nodes_after(graph: AutomationGraph, node_id: str) -> list[str]:
    """Ids of the chain downstream of ``node_id`` (excluding it)."""
    get_node(graph, node_id)
    result: list[str] = []
    seen = {node_id}
    current = node_id
    while True:
        edges = outgoing(graph, current)
        if not edges:
            break
        nxt = edges[0].target
        if nxt in seen:
            raise GraphStructureError(f"Cycle detected at node: {nxt}")
        result.append(nxt)
        seen.add(nxt)
        current = nxt
    return result


# ---------------------------
# Mutations (copy-on-write)
# ---------------------------

def _new_node_id(kind: str) -> str:
    return f"{kind}-{uuid.uuid4().hex[:12]}"


def append_node(
    graph: AutomationGraph,
    kind: NodeKind | str,
    params: dict[str, Any] | NodeParams | None = None,
    *,
    node_id: str | None = None,
) -> AutomationGraph:
    """
    Append a step after the terminal node.

    The old tail loses its terminal flag, the new node gets it, and exactly one
    connection tail.output -> new.input is added.
    """
    kind_value = NodeKind(kind).value
    if kind_value == NodeKind.START.value:
        raise GraphStructureError("Cannot append a start node")

    tail = terminal_node(graph)

    if isinstance(params, BaseModel):
        if params.kind != kind_value:
            raise GraphStructureError(
                f"Params kind {params.kind} does not match node kind {kind_value}"
            )
        new_params = params.model_copy(deep=True)
    else:
        new_params = params_for(kind_value, params)

    new_id = node_id or _new_node_id(kind_value)
    if any(n.id == new_id for n in graph.nodes):
        raise GraphStructureError(f"Duplicate node id: {new_id}")

    updated = graph.model_copy(deep=True)
    for node in updated.nodes:
        if node.id == tail.id:
            node.is_last_node = False

    updated.nodes.append(
        Node(
            id=new_id,
            position=Position(x=tail.position.x + APPEND_OFFSET_X, y=tail.position.y),
            params=new_params,
            is_last_node=True,
        )
    )
    updated.connections.append(
        Connection(
            id=f"edge-{tail.id}-{new_id}",
            source=tail.id,
            target=new_id,
            source_handle=output_handle_id(tail.kind),
            target_handle=None,
        )
    )
    return updated


def connect(
    graph: AutomationGraph,
    *,
    source: str,
    target: str,
    source_handle: str | None = None,
    target_handle: str | None = None,
) -> AutomationGraph:
    if source == target:
        raise GraphStructureError("A node cannot connect to itself")

    source_node = get_node(graph, source)
    target_node = get_node(graph, target)

    if source_handle is None:
        source_handle = output_handle_id(source_node.kind)
    if find_handle(source, source_node.kind, source_handle, HandleType.SOURCE) is None:
        raise GraphStructureError(f"Node {source} has no source handle {source_handle!r}")
    if find_handle(target, target_node.kind, target_handle, HandleType.TARGET) is None:
        raise GraphStructureError(f"Node {target} has no target handle {target_handle!r}")

    if any(c.source == source and c.source_handle == source_handle for c in graph.connections):
        raise GraphStructureError(f"Handle {source_handle!r} on {source} is already connected")
    if incoming(graph, target):
        raise GraphStructureError(f"Node {target} already has an incoming connection")

    updated = graph.model_copy(deep=True)
    updated.connections.append(
        Connection(
            id=f"edge-{source}-{target}",
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
        )
    )
    execution_order(updated)
    return with_terminal_flags(updated)


def update_node_params(
    graph: AutomationGraph,
    node_id: str,
    params: dict[str, Any],
) -> AutomationGraph:
    node = get_node(graph, node_id)
    new_params = params_for(node.kind, params)

    updated = graph.model_copy(deep=True)
    for item in updated.nodes:
        if item.id == node_id:
            item.params = new_params
    return updated


def remove_node(graph: AutomationGraph, node_id: str) -> AutomationGraph:
    """Remove a node together with every node after it in the chain."""
    node = get_node(graph, node_id)
    if node.kind == NodeKind.START.value:
        raise GraphStructureError("The start node cannot be removed")

    doomed = {node_id, *nodes_after(graph, node_id)}
    updated = AutomationGraph(
        nodes=[n.model_copy(deep=True) for n in graph.nodes if n.id not in doomed],
        connections=[
            c.model_copy(deep=True)
            for c in graph.connections
            if c.source not in doomed and c.target not in doomed
        ],
    )
    return with_terminal_flags(updated)


def reset_graph(graph: AutomationGraph) -> AutomationGraph:
    starts = [n for n in graph.nodes if n.kind == NodeKind.START.value]
    if not starts:
        return default_graph()
    start = starts[0].model_copy(deep=True)
    start.is_last_node = True
    return AutomationGraph(nodes=[start], connections=[])


# ---------------------------
# Validation / ordering
# ---------------------------

def execution_order(graph: AutomationGraph) -> list[str]:
    """Kahn topological sort; connections to unknown nodes are ignored."""
    ids = [n.id for n in graph.nodes]
    adjacency: dict[str, list[str]] = {node_id: [] for node_id in ids}
    in_degree: dict[str, int] = {node_id: 0 for node_id in ids}

    for conn in graph.connections:
        if conn.source not in adjacency or conn.target not in adjacency:
            continue
        adjacency[conn.source].append(conn.target)
        in_degree[conn.target] += 1

    queue = deque(node_id for node_id in ids if in_degree[node_id] == 0)
    order: list[str] = []
    while queue:
        node_id = queue.popleft()
        order.append(node_id)
        for neighbor in adjacency[node_id]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    if len(order) != len(ids):
        raise GraphStructureError("Automation graph contains a cycle")
    return order


def validate_graph(graph: AutomationGraph) -> None:
    seen: set[str] = set()
    for node in graph.nodes:
        if node.id in seen:
            raise GraphStructureError(f"Duplicate node id: {node.id}")
        seen.add(node.id)

    starts = [n for n in graph.nodes if n.kind == NodeKind.START.value]
    if len(starts) != 1:
        raise GraphStructureError(f"Expected exactly one start node, found {len(starts)}")

    for conn in graph.connections:
        if conn.source not in seen or conn.target not in seen:
            raise GraphStructureError(f"Connection {conn.id} references an unknown node")

    terminal_node(graph)
    execution_order(graph)
