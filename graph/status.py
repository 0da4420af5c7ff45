from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Callable, Iterable

from app.domain.node_status import NodeStatus, assert_valid_transition

logger = logging.getLogger(__name__)

# (run_id, node_id, status)
StatusListener = Callable[[str, str, NodeStatus], None]


class StatusBoard:
    """
    Per-automation node statuses for the current run.

    Every update carries the run id it belongs to; updates for any run other
    than the current one are dropped, so a slow writer from a previous run can
    never overwrite the statuses of the run that replaced it.
    """

    def __init__(self, automation_id: str) -> None:
        self.automation_id = automation_id
        self._lock = Lock()
        self._run_id: str | None = None
        self._statuses: dict[str, NodeStatus] = {}
        self._listeners: list[StatusListener] = []

    @property
    def run_id(self) -> str | None:
        return self._run_id

    def add_listener(self, listener: StatusListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: StatusListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def status_of(self, node_id: str) -> NodeStatus:
        with self._lock:
            return self._statuses.get(node_id, NodeStatus.INITIAL)

    def snapshot(self) -> dict[str, NodeStatus]:
        with self._lock:
            return dict(self._statuses)

    def _notify(self, run_id: str, changes: list[tuple[str, NodeStatus]]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for node_id, status in changes:
            for listener in listeners:
                listener(run_id, node_id, status)

    def start_run(self, run_id: str, node_ids: Iterable[str]) -> None:
        """Reset every node to initial, then make ``run_id`` current."""
        node_ids = list(node_ids)
        with self._lock:
            changes = [
                (node_id, NodeStatus.INITIAL)
                for node_id, status in self._statuses.items()
                if status != NodeStatus.INITIAL and node_id in node_ids
            ]
            self._statuses = {node_id: NodeStatus.INITIAL for node_id in node_ids}
            previous = self._run_id
            self._run_id = run_id

        if previous and previous != run_id:
            logger.info("run %s superseded by %s", previous, run_id)
        self._notify(run_id, changes)

    def set_status(self, node_id: str, status: NodeStatus | str, run_id: str) -> bool:
        """
        Apply one status update. Returns False when the update was a no-op
        (same status) or was discarded as stale.
        """
        status = NodeStatus(status)
        with self._lock:
            if run_id != self._run_id:
                logger.warning(
                    "discarding stale status update node=%s status=%s run=%s current=%s",
                    node_id,
                    status.value,
                    run_id,
                    self._run_id,
                )
                return False

            current = self._statuses.get(node_id, NodeStatus.INITIAL)
            if current == status:
                return False
            assert_valid_transition(current, status)
            self._statuses[node_id] = status

        self._notify(run_id, [(node_id, status)])
        return True

    def finish_run(self, run_id: str) -> list[str]:
        """Move anything still loading to error; returns the affected node ids."""
        with self._lock:
            if run_id != self._run_id:
                return []
            stuck = [nid for nid, st in self._statuses.items() if st == NodeStatus.LOADING]
            for node_id in stuck:
                self._statuses[node_id] = NodeStatus.ERROR

        if stuck:
            logger.warning("run %s finished with loading nodes %s", run_id, stuck)
        self._notify(run_id, [(node_id, NodeStatus.ERROR) for node_id in stuck])
        return stuck


_boards: dict[str, StatusBoard] = {}
_boards_lock = Lock()


def get_status_board(automation_id: str) -> StatusBoard:
    with _boards_lock:
        board = _boards.get(automation_id)
        if board is None:
            board = StatusBoard(automation_id)
            _boards[automation_id] = board
        return board


def drop_status_board(automation_id: str) -> None:
    with _boards_lock:
        _boards.pop(automation_id, None)


def statuses_from_logs(logs: Iterable[Any]) -> dict[str, NodeStatus]:
    """Rebuild node statuses from persisted execution logs (reconnect path)."""
    statuses: dict[str, NodeStatus] = {}
    for log in logs:
        statuses[log.node_id] = NodeStatus.ERROR if log.error else NodeStatus.SUCCESS
    return statuses
