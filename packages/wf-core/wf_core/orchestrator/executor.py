"""
wfkit Simulated Executor - drive an ExecutionTracker over a workflow.

No node is actually executed. Decision outcomes and node failures are
supplied up front, which makes runs reproducible for previews and tests.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from ..workflow.models import NodeType, Workflow, WorkflowNode
from .tracker import ExecutionRecord, ExecutionTracker

logger = logging.getLogger(__name__)

# Called before each node begins; returning True cancels the run
CancelCheck = Callable[[ExecutionTracker], bool]


def _describe(node: WorkflowNode) -> str:
    return f"{node.type}:{node.data.label}"


def simulate_run(
    workflow: Workflow,
    outcomes: Optional[Dict[str, bool]] = None,
    failures: Optional[Dict[str, str]] = None,
    results: Optional[Dict[str, str]] = None,
    should_cancel: Optional[CancelCheck] = None,
    max_steps: int = 10_000,
) -> ExecutionRecord:
    """
    Walk a workflow node by node, the way an execution driver would.

    Args:
        workflow: Workflow snapshot
        outcomes: Decision node id -> branch taken (default: True)
        failures: Node id -> error text; the node fails when it runs
        results: Node id -> result text (default: "<type>:<label>")
        should_cancel: Checked before each node starts
        max_steps: Safety limit on begin/complete cycles

    Returns:
        The final ExecutionRecord
    """
    outcomes = outcomes or {}
    failures = failures or {}
    results = results or {}

    tracker = ExecutionTracker(workflow)
    tracker.start()

    steps = 0
    while not tracker.is_terminal:
        if should_cancel is not None and should_cancel(tracker):
            tracker.cancel("cancelled by driver")
            break

        eligible = tracker.eligible_nodes()
        if not eligible:
            break

        steps += 1
        if steps > max_steps:
            tracker.cancel(f"step limit {max_steps} reached")
            logger.warning(f"Run '{workflow.id}' hit the step limit")
            break

        node_id = eligible[0]
        node = tracker.workflow.get_node(node_id)
        tracker.begin_node(node_id)

        if node_id in failures:
            tracker.fail_node(node_id, failures[node_id])
            break

        outcome = None
        if node.type == NodeType.DECISION:
            outcome = outcomes.get(node_id, True)
        tracker.complete_node(node_id, result=results.get(node_id, _describe(node)), outcome=outcome)

    return tracker.snapshot()
