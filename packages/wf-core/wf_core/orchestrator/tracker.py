"""
wfkit Execution Tracker - run-time state machine for one workflow run.

The tracker does not execute anything. An external driver asks which nodes
are eligible, then reports begin/complete/fail for each one in turn; the
tracker enforces legal transitions and keeps the ExecutionRecord.

Run:   pending -> running -> completed | failed | cancelled
Node:  pending -> running -> completed | failed

Decision nodes select one outgoing handle on completion; nodes that can
only be reached through the other handle stay pending for the whole run.
Loop nodes go back to pending after each iteration until ``loop_count``
iterations have completed; an unfinished loop is offered ahead of other
eligible nodes. Nodes run one at a time.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, Field

from ..errors import InvalidTransition
from ..workflow.models import BranchHandle, NodeType, Workflow, WorkflowEdge, now_ms
from .compiler import linearize

logger = logging.getLogger(__name__)


# =============================================================================
# RECORD MODELS
# =============================================================================

class RunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class NodeStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_RUN_STATES = frozenset({RunStatus.COMPLETED, RunStatus.FAILED, RunStatus.CANCELLED})


class NodeResult(BaseModel):
    """Per-node slot in an execution record."""
    status: NodeStatus = NodeStatus.PENDING
    result: Optional[str] = None
    error: Optional[str] = None
    started_at: Optional[int] = None
    completed_at: Optional[int] = None
    iterations: int = 0  # completed loop iterations
    selected_handle: Optional[str] = None  # decision outcome


class TransitionEvent(BaseModel):
    """One state change, appended to the record's history."""
    ts: int = Field(default_factory=now_ms)
    kind: str  # "run" | "node"
    node_id: Optional[str] = None
    from_status: str
    to_status: str
    detail: Optional[str] = None


class ExecutionRecord(BaseModel):
    """Run-time progress ledger for one traversal of a workflow."""
    workflow_id: str
    started_at: Optional[int] = None
    finished_at: Optional[int] = None
    status: RunStatus = RunStatus.PENDING
    current_node_id: Optional[str] = None
    visited_nodes: List[str] = Field(default_factory=list)
    node_results: Dict[str, NodeResult] = Field(default_factory=dict)
    final_result: Optional[str] = None
    error: Optional[str] = None
    events: List[TransitionEvent] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_RUN_STATES


# =============================================================================
# TRACKER
# =============================================================================

class ExecutionTracker:
    """
    Track one execution of a workflow.

    Usage:
        tracker = ExecutionTracker(workflow)
        tracker.start()
        while not tracker.is_terminal:
            eligible = tracker.eligible_nodes()
            if not eligible:
                break
            node_id = eligible[0]
            tracker.begin_node(node_id)
            tracker.complete_node(node_id, result="...")
    """

    def __init__(self, workflow: Workflow):
        self.workflow = workflow
        self._order = linearize(workflow).node_ids()
        self._nodes = {}
        for node in workflow.nodes:
            self._nodes.setdefault(node.id, node)

        self._in_edges: Dict[str, List[WorkflowEdge]] = {node_id: [] for node_id in self._nodes}
        for edge in workflow.edges:
            if edge.source in self._nodes and edge.target in self._nodes:
                self._in_edges[edge.target].append(edge)

        self.record = ExecutionRecord(
            workflow_id=workflow.id,
            node_results={node_id: NodeResult() for node_id in self._nodes},
        )
        self._last_result: Optional[str] = None

    # =========================================================================
    # RUN LIFECYCLE
    # =========================================================================

    @property
    def status(self) -> RunStatus:
        return self.record.status

    @property
    def is_terminal(self) -> bool:
        return self.record.is_terminal

    def start(self) -> ExecutionRecord:
        """
        Move the run from pending to running.

        A workflow with nothing eligible to run (empty, or cycles only)
        completes immediately.
        """
        if self.record.status != RunStatus.PENDING:
            raise InvalidTransition(f"Cannot start run in state '{self.record.status.value}'")
        self._set_run_status(RunStatus.RUNNING)
        self.record.started_at = now_ms()
        self._check_finished()
        return self.record

    def cancel(self, reason: Optional[str] = None) -> ExecutionRecord:
        """
        Cancel the run.

        Cooperative: a node already running may still report completion or
        failure, but no further node can begin.
        """
        if self.record.is_terminal:
            raise InvalidTransition(f"Cannot cancel run in state '{self.record.status.value}'")
        self._set_run_status(RunStatus.CANCELLED, detail=reason)
        self.record.finished_at = now_ms()
        return self.record

    # =========================================================================
    # NODE TRANSITIONS
    # =========================================================================

    def eligible_nodes(self) -> List[str]:
        """
        Node ids that may begin now, in linearization order.

        A loop node part way through its iterations comes first, so a
        driver taking the head of the list finishes the loop before
        moving to another branch. Empty while the run is terminal or a
        node is running.
        """
        if self.record.is_terminal or self.running_node() is not None:
            return []

        dead = self._dead_nodes()
        eligible = []
        for node_id in self._order:
            if node_id in dead:
                continue
            if self.record.node_results[node_id].status != NodeStatus.PENDING:
                continue
            if self._predecessors_done(node_id, dead):
                eligible.append(node_id)

        in_loop = [n for n in eligible if self.record.node_results[n].iterations > 0]
        return in_loop + [n for n in eligible if n not in in_loop]

    def running_node(self) -> Optional[str]:
        for node_id, slot in self.record.node_results.items():
            if slot.status == NodeStatus.RUNNING:
                return node_id
        return None

    def begin_node(self, node_id: str) -> NodeResult:
        """Mark a node running. Starts the run if it is still pending."""
        slot = self._slot(node_id)
        if self.record.is_terminal:
            raise InvalidTransition(
                f"Cannot begin '{node_id}': run is {self.record.status.value}"
            )
        if node_id not in self.eligible_nodes():
            raise InvalidTransition(f"Node '{node_id}' is not eligible to run")
        # A rejected begin leaves a pending run untouched
        if self.record.status == RunStatus.PENDING:
            self._set_run_status(RunStatus.RUNNING)
            self.record.started_at = now_ms()

        detail = None
        if self._node_type(node_id) == NodeType.LOOP:
            detail = f"iteration {slot.iterations + 1}/{self._loop_count(node_id)}"
        self._set_node_status(node_id, NodeStatus.RUNNING, detail=detail)
        if slot.started_at is None:
            slot.started_at = now_ms()
        if node_id not in self.record.visited_nodes:
            self.record.visited_nodes.append(node_id)
        self.record.current_node_id = node_id
        return slot

    def complete_node(
        self,
        node_id: str,
        result: Optional[str] = None,
        outcome: Optional[bool] = None,
    ) -> NodeResult:
        """
        Mark a running node completed.

        Args:
            node_id: Node that finished
            result: Optional result text
            outcome: Required for decision nodes - which branch to follow

        Returns:
            The node's result slot
        """
        slot = self._require_running(node_id)
        node_type = self._node_type(node_id)

        if node_type == NodeType.DECISION:
            if outcome is None:
                raise InvalidTransition(f"Decision '{node_id}' needs an outcome to complete")
            slot.selected_handle = (BranchHandle.TRUE if outcome else BranchHandle.FALSE).value

        slot.result = result
        self.record.current_node_id = None

        if node_type == NodeType.LOOP:
            slot.iterations += 1
            total = self._loop_count(node_id)
            if slot.iterations < total:
                self._set_node_status(
                    node_id, NodeStatus.PENDING,
                    detail=f"iteration {slot.iterations}/{total} done",
                )
                return slot

        self._set_node_status(node_id, NodeStatus.COMPLETED, detail=slot.selected_handle)
        slot.completed_at = now_ms()
        self._last_result = result

        if self.record.status == RunStatus.RUNNING:
            self._check_finished()
        return slot

    def fail_node(self, node_id: str, error: str) -> NodeResult:
        """Mark a running node failed; the run fails with it."""
        slot = self._require_running(node_id)
        slot.error = error
        slot.completed_at = now_ms()
        self.record.current_node_id = None
        self._set_node_status(node_id, NodeStatus.FAILED, detail=error)

        if self.record.status == RunStatus.RUNNING:
            self.record.error = f"Node '{node_id}' failed: {error}"
            self._set_run_status(RunStatus.FAILED, detail=error)
            self.record.finished_at = now_ms()
        return slot

    # =========================================================================
    # OBSERVABILITY
    # =========================================================================

    def progress(self) -> Dict[str, Any]:
        """Summary counts for display."""
        counts = {status.value: 0 for status in NodeStatus}
        for slot in self.record.node_results.values():
            counts[slot.status.value] += 1
        return {
            "workflow_id": self.record.workflow_id,
            "status": self.record.status.value,
            "current_node_id": self.record.current_node_id,
            "visited": len(self.record.visited_nodes),
            "total": len(self.record.node_results),
            "nodes": counts,
        }

    def snapshot(self) -> ExecutionRecord:
        """Deep copy of the current record."""
        return self.record.model_copy(deep=True)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _slot(self, node_id: str) -> NodeResult:
        slot = self.record.node_results.get(node_id)
        if slot is None:
            raise InvalidTransition(f"Node '{node_id}' not found in workflow")
        return slot

    def _require_running(self, node_id: str) -> NodeResult:
        slot = self._slot(node_id)
        if slot.status != NodeStatus.RUNNING:
            raise InvalidTransition(
                f"Node '{node_id}' is {slot.status.value}, not running"
            )
        if self.record.status == RunStatus.FAILED:
            raise InvalidTransition(f"Run already failed; '{node_id}' cannot change")
        return slot

    def _node_type(self, node_id: str) -> NodeType:
        return NodeType(self._nodes[node_id].type)

    def _loop_count(self, node_id: str) -> int:
        return self._nodes[node_id].data.loop_count

    def _edge_dead(self, edge: WorkflowEdge, dead: Set[str]) -> bool:
        """An edge is dead once it can never be followed in this run."""
        if edge.source in dead:
            return True
        if self._node_type(edge.source) != NodeType.DECISION:
            return False
        slot = self.record.node_results[edge.source]
        if slot.status != NodeStatus.COMPLETED:
            return False
        return edge.source_handle != slot.selected_handle

    def _dead_nodes(self) -> Set[str]:
        """Nodes whose every inbound edge is dead (branches not taken)."""
        dead: Set[str] = set()
        for node_id in self._order:
            edges = self._in_edges[node_id]
            if edges and all(self._edge_dead(e, dead) for e in edges):
                dead.add(node_id)
        return dead

    def _predecessors_done(self, node_id: str, dead: Set[str]) -> bool:
        edges = self._in_edges[node_id]
        if not edges:
            return True
        live = [e for e in edges if not self._edge_dead(e, dead)]
        return bool(live) and all(
            self.record.node_results[e.source].status == NodeStatus.COMPLETED
            for e in live
        )

    def _check_finished(self) -> None:
        if self.running_node() is None and not self.eligible_nodes():
            self.record.final_result = self._last_result
            self.record.finished_at = now_ms()
            self._set_run_status(RunStatus.COMPLETED)

    def _set_run_status(self, status: RunStatus, detail: Optional[str] = None) -> None:
        previous = self.record.status
        self.record.status = status
        self.record.events.append(TransitionEvent(
            kind="run",
            from_status=previous.value,
            to_status=status.value,
            detail=detail,
        ))
        logger.info(f"Run '{self.record.workflow_id}': {previous.value} -> {status.value}")

    def _set_node_status(self, node_id: str, status: NodeStatus, detail: Optional[str] = None) -> None:
        slot = self.record.node_results[node_id]
        previous = slot.status
        slot.status = status
        self.record.events.append(TransitionEvent(
            kind="node",
            node_id=node_id,
            from_status=previous.value,
            to_status=status.value,
            detail=detail,
        ))
        logger.debug(f"Node '{node_id}': {previous.value} -> {status.value}")
