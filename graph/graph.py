from __future__ import annotations

from typing import Any

from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, StateGraph
from sqlalchemy.orm import Session

from graph.model import AutomationGraph, GraphStructureError, Node, execution_order, get_node
from graph.nodes import EXECUTORS, execute_node
from graph.params import NodeKind
from graph.state import RunState
from graph.status import StatusBoard


def runnable_nodes(automation: AutomationGraph) -> list[Node]:
    """Nodes in execution order, start nodes skipped."""
    nodes = [get_node(automation, node_id) for node_id in execution_order(automation)]
    return [n for n in nodes if n.kind != NodeKind.START.value]


def _step(node: Node):
    action = EXECUTORS.get(node.kind)
    if action is None:
        raise GraphStructureError(f"No executor for node kind: {node.kind}")

    def _run(state: RunState, config: RunnableConfig) -> dict[str, Any]:
        return execute_node(node, state, config, action)

    return _run


def _route_after(next_step: str):
    def _route(state: RunState) -> str:
        if state.failed_node_id is not None:
            return END
        return next_step

    return _route


def build_graph(automation: AutomationGraph) -> StateGraph:
    """
    One LangGraph node per automation node, chained in execution order:

      n1 -> n2 -> ... -> nk -> END

    Any failure routes straight to END; there are no retries.
    """
    graph = StateGraph(RunState)
    nodes = runnable_nodes(automation)

    if not nodes:
        raise GraphStructureError("Automation has no steps to run")

    # automation node ids are user data; graph node names must not clash
    # with state keys or LangGraph separators
    names = [f"step_{i}" for i in range(len(nodes))]
    for name, node in zip(names, nodes):
        graph.add_node(name, _step(node))

    graph.set_entry_point(names[0])

    for current, following in zip(names, names[1:]):
        graph.add_conditional_edges(
            current,
            _route_after(following),
            {following: following, END: END},
        )
    graph.add_edge(names[-1], END)

    return graph


def run_graph(
    db: Session,
    state: RunState,
    *,
    automation: AutomationGraph,
    board: StatusBoard,
) -> RunState:
    if not runnable_nodes(automation):
        return state

    app = build_graph(automation).compile()

    config: dict[str, Any] = {
        "configurable": {"db": db, "board": board},
        "tags": ["pulse-automations", "langgraph"],
        "metadata": {
            "execution_id": str(state.execution_id),
            "automation_id": str(state.automation_id),
        },
        "recursion_limit": max(25, len(automation.nodes) + 5),
    }

    result = app.invoke(state.model_dump(), config=config)
    return RunState.model_validate(result)
