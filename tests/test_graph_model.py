from __future__ import annotations

import pytest

from graph.handles import OUTPUT_HANDLE, START_OUTPUT_HANDLE
from graph.model import (
    APPEND_OFFSET_X,
    DEFAULT_START_ID,
    AutomationGraph,
    GraphStructureError,
    append_node,
    connect,
    default_graph,
    execution_order,
    nodes_after,
    remove_node,
    reset_graph,
    terminal_node,
    update_node_params,
    validate_graph,
)
from graph.params import SwapParams, WaitParams

ADDR_A = "0x1111111111111111111111111111111111111111"
ADDR_B = "0x2222222222222222222222222222222222222222"


def _chain(*kinds: str) -> AutomationGraph:
    graph = default_graph()
    for i, kind in enumerate(kinds):
        graph = append_node(graph, kind, node_id=f"n{i + 1}")
    return graph


def test_default_graph_has_single_terminal_start():
    graph = default_graph()
    assert [n.id for n in graph.nodes] == [DEFAULT_START_ID]
    assert terminal_node(graph).id == DEFAULT_START_ID
    validate_graph(graph)


def test_append_to_start_uses_start_output_handle():
    graph = default_graph()
    updated = append_node(graph, "wait", {"delay": 2}, node_id="w1")

    assert len(updated.connections) == 1
    conn = updated.connections[0]
    assert (conn.source, conn.target) == (DEFAULT_START_ID, "w1")
    assert conn.source_handle == START_OUTPUT_HANDLE
    assert conn.target_handle is None

    flags = {n.id: n.is_last_node for n in updated.nodes}
    assert flags == {DEFAULT_START_ID: False, "w1": True}

    new_node = updated.nodes[-1]
    assert new_node.position.x == APPEND_OFFSET_X
    assert isinstance(new_node.params, WaitParams)
    assert new_node.params.delay == 2


def test_append_after_regular_node_uses_output_handle():
    graph = _chain("wait")
    updated = append_node(graph, "checkTokenBalance", {"token": ADDR_A}, node_id="b1")

    new_edges = [c for c in updated.connections if c.target == "b1"]
    assert len(new_edges) == 1
    assert new_edges[0].source == "n1"
    assert new_edges[0].source_handle == OUTPUT_HANDLE
    assert terminal_node(updated).id == "b1"
    assert updated.nodes[-1].position.x == 2 * APPEND_OFFSET_X


def test_append_does_not_mutate_input():
    graph = default_graph()
    before = graph.model_dump()
    append_node(graph, "wait")
    assert graph.model_dump() == before


def test_append_rejects_start_kind_and_leaves_graph_unchanged():
    graph = default_graph()
    with pytest.raises(GraphStructureError):
        append_node(graph, "start")
    assert len(graph.nodes) == 1


def test_append_rejects_graph_without_unique_terminal():
    graph = _chain("wait")
    broken = graph.model_copy(deep=True)
    for node in broken.nodes:
        node.is_last_node = True
    with pytest.raises(GraphStructureError):
        append_node(broken, "wait")


def test_append_generates_unique_ids():
    graph = append_node(append_node(default_graph(), "wait"), "wait")
    ids = [n.id for n in graph.nodes]
    assert len(set(ids)) == 3
    assert all(i.startswith("wait-") for i in ids[1:])


def test_append_accepts_params_model_and_checks_kind():
    graph = default_graph()
    updated = append_node(graph, "swap", SwapParams(path=[ADDR_A, ADDR_B]))
    assert updated.nodes[-1].params.token_out == ADDR_B

    with pytest.raises(GraphStructureError):
        append_node(graph, "wait", SwapParams())


def test_from_definition_recomputes_terminal_flags():
    definition = {
        "nodes": [
            {"id": "s", "params": {"kind": "start"}},
            {"id": "a", "params": {"kind": "wait", "delay": 1}},
        ],
        "edges": [{"id": "e", "source": "s", "target": "a", "sourceHandle": "start-output"}],
    }
    graph = AutomationGraph.from_definition(definition)
    assert terminal_node(graph).id == "a"
    assert graph.to_definition()["nodes"][1]["isLastNode"] is True


def test_from_definition_empty_gives_default():
    assert AutomationGraph.from_definition(None).nodes[0].id == DEFAULT_START_ID


def test_nodes_after_and_remove_cascade():
    graph = _chain("wait", "wait", "wait")
    assert nodes_after(graph, "n1") == ["n2", "n3"]

    updated = remove_node(graph, "n2")
    assert [n.id for n in updated.nodes] == [DEFAULT_START_ID, "n1"]
    assert all(c.target != "n2" and c.source != "n2" for c in updated.connections)
    assert terminal_node(updated).id == "n1"


def test_start_node_cannot_be_removed():
    with pytest.raises(GraphStructureError):
        remove_node(default_graph(), DEFAULT_START_ID)


def test_reset_keeps_only_start():
    graph = reset_graph(_chain("wait", "gasGuard"))
    assert [n.id for n in graph.nodes] == [DEFAULT_START_ID]
    assert graph.connections == []
    assert terminal_node(graph).id == DEFAULT_START_ID


def test_update_node_params_replaces_params():
    graph = _chain("wait")
    updated = update_node_params(graph, "n1", {"delay": 7})
    assert updated.nodes[1].params.delay == 7
    assert graph.nodes[1].params.delay == 1


def test_update_unknown_node():
    with pytest.raises(GraphStructureError):
        update_node_params(default_graph(), "missing", {})


def test_connect_rejects_second_incoming_and_self_loop():
    graph = _chain("wait")
    graph = graph.model_copy(deep=True)

    with pytest.raises(GraphStructureError):
        connect(graph, source="n1", target="n1")

    with pytest.raises(GraphStructureError):
        connect(graph, source=DEFAULT_START_ID, target="n1")


def test_connect_rejects_unknown_handle():
    graph = AutomationGraph.from_definition(
        {
            "nodes": [
                {"id": "s", "params": {"kind": "start"}},
                {"id": "a", "params": {"kind": "wait"}},
            ],
            "edges": [],
        }
    )
    with pytest.raises(GraphStructureError):
        connect(graph, source="s", target="a", source_handle="output")

    joined = connect(graph, source="s", target="a")
    assert joined.connections[0].source_handle == START_OUTPUT_HANDLE
    assert terminal_node(joined).id == "a"


def test_execution_order_and_cycle_rejection():
    graph = _chain("wait", "checkTokenBalance")
    assert execution_order(graph) == [DEFAULT_START_ID, "n1", "n2"]

    cyclic = AutomationGraph.model_validate(
        {
            "nodes": [
                {"id": "s", "params": {"kind": "start"}},
                {"id": "a", "params": {"kind": "wait"}},
                {"id": "b", "params": {"kind": "wait"}},
            ],
            "edges": [
                {"id": "e1", "source": "a", "target": "b"},
                {"id": "e2", "source": "b", "target": "a"},
            ],
        }
    )
    with pytest.raises(GraphStructureError):
        execution_order(cyclic)


def test_validate_graph_rejects_dangling_connection_and_duplicate_ids():
    graph = _chain("wait").model_copy(deep=True)
    graph.connections[0].target = "ghost"
    with pytest.raises(GraphStructureError):
        validate_graph(graph)

    dup = _chain("wait").model_copy(deep=True)
    dup.nodes[1].id = DEFAULT_START_ID
    with pytest.raises(GraphStructureError):
        validate_graph(dup)
