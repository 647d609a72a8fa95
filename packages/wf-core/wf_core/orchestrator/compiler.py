"""
wfkit Compiler - deterministic linearization of a workflow graph.

Kahn's algorithm with a FIFO frontier. The initial frontier and every
batch of nodes released by one processing step are ordered by the node's
position in the workflow's node list, so identical graphs always produce
identical orders.

Decision nodes are not resolved here: both branches are part of the order.
Nodes on a cycle (and nodes only reachable through one) never reach zero
in-degree; they are left out of ``order`` and reported in ``excluded``.
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, List, Sequence

from ..workflow.models import Workflow, WorkflowEdge, WorkflowNode

logger = logging.getLogger(__name__)


@dataclass
class Linearization:
    """Result of ordering a workflow graph."""
    order: List[WorkflowNode] = field(default_factory=list)
    excluded: List[WorkflowNode] = field(default_factory=list)

    @property
    def has_cycle(self) -> bool:
        return bool(self.excluded)

    def node_ids(self) -> List[str]:
        """Ids of ordered nodes."""
        return [n.id for n in self.order]

    def excluded_ids(self) -> List[str]:
        return [n.id for n in self.excluded]

    def __len__(self) -> int:
        return len(self.order)

    def __iter__(self):
        return iter(self.order)


def topological_order(
    nodes: Sequence[WorkflowNode],
    edges: Iterable[WorkflowEdge],
) -> List[WorkflowNode]:
    """Return the linear node order only. See linearize()."""
    return _kahn(nodes, edges).order


def linearize(workflow: Workflow) -> Linearization:
    """
    Order a workflow's nodes for compilation.

    Args:
        workflow: Workflow snapshot (not modified)

    Returns:
        Linearization with the ordered nodes (same objects, not copies)
        and the nodes excluded because of cycles
    """
    result = _kahn(workflow.nodes, workflow.edges)
    if result.excluded:
        logger.warning(
            f"Workflow '{workflow.id}': cycle detected, nodes "
            f"{result.excluded_ids()} excluded"
        )
    return result


def _kahn(nodes: Sequence[WorkflowNode], edges: Iterable[WorkflowEdge]) -> Linearization:
    index: Dict[str, int] = {}
    unique: List[WorkflowNode] = []
    for node in nodes:
        if node.id in index:
            logger.warning(f"Duplicate node id '{node.id}' ignored")
            continue
        index[node.id] = len(unique)
        unique.append(node)

    in_degree: Dict[str, int] = {n.id: 0 for n in unique}
    adjacency: Dict[str, List[str]] = {n.id: [] for n in unique}

    for edge in edges:
        # Dangling edges do not constrain the order
        if edge.source not in index or edge.target not in index:
            logger.debug(f"Edge '{edge.id}' has a missing endpoint, ignored")
            continue
        in_degree[edge.target] += 1
        adjacency[edge.source].append(edge.target)

    frontier: Deque[str] = deque(n.id for n in unique if in_degree[n.id] == 0)
    order: List[WorkflowNode] = []

    while frontier:
        current = frontier.popleft()
        order.append(unique[index[current]])

        released = []
        for neighbor in adjacency[current]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                released.append(neighbor)
        released.sort(key=index.__getitem__)
        frontier.extend(released)

    placed = {n.id for n in order}
    excluded = [n for n in unique if n.id not in placed]

    logger.debug(f"Linearized {len(order)}/{len(unique)} nodes")
    return Linearization(order=order, excluded=excluded)
