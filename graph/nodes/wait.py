from __future__ import annotations

import time
from typing import Any

from app.services.execution_context import ExecutionContext
from chain.client import ChainClient
from graph.model import Node
from graph.params import WaitParams
from graph.state import RunState

MIN_DELAY_S = 1
MAX_DELAY_S = 10


def wait(node: Node, state: RunState, context: ExecutionContext, client: ChainClient) -> dict[str, Any]:
    params: WaitParams = node.params
    delay = min(MAX_DELAY_S, max(MIN_DELAY_S, int(params.delay or MAX_DELAY_S)))
    time.sleep(delay)
    return {"delaySeconds": delay}
