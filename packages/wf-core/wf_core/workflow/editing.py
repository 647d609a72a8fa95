"""
Workflow editing operations.

The editor mutates a workflow through these functions. Each takes a
snapshot and returns a new one; the input is never modified. Removing a
node does NOT drop its edges: call remove_edges_for_node() as the second
step.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel

from .models import (
    NODE_CLASSES,
    NodeType,
    Position,
    TriggerNode,
    TriggerData,
    Workflow,
    WorkflowEdge,
    WorkflowNode,
    now_ms,
)
from .templates import default_data_for

logger = logging.getLogger(__name__)


def generate_workflow_id() -> str:
    """Generate a unique workflow ID."""
    return f"wf_{now_ms()}_{uuid4().hex[:7]}"


def generate_node_id() -> str:
    """Generate a unique node ID."""
    return f"node_{now_ms()}_{uuid4().hex[:5]}"


def generate_edge_id() -> str:
    """Generate a unique edge ID."""
    return f"edge_{now_ms()}_{uuid4().hex[:5]}"


def _normalize_keys(model: type, changes: Dict[str, Any]) -> Dict[str, Any]:
    """Map camelCase or snake_case keys onto the model's field names."""
    lookup: Dict[str, str] = {}
    for name, info in model.model_fields.items():
        lookup[name] = name
        if info.alias:
            lookup[info.alias] = name
    return {lookup[k]: v for k, v in changes.items() if k in lookup}


def _merge(model: BaseModel, changes: Dict[str, Any]) -> BaseModel:
    merged = model.model_dump()
    merged.update(_normalize_keys(type(model), changes))
    return type(model).model_validate(merged)


def _touch(workflow: Workflow, **update: Any) -> Workflow:
    update["updated_at"] = now_ms()
    return workflow.model_copy(update=update)


# =============================================================================
# WORKFLOW LIFECYCLE
# =============================================================================

def create_workflow(name: str, description: Optional[str] = None) -> Workflow:
    """
    Create a new workflow seeded with a manual Start trigger.

    Args:
        name: Human name
        description: Optional description

    Returns:
        New Workflow
    """
    created = now_ms()
    start = TriggerNode(
        id="trigger_start",
        position=Position(x=250, y=50),
        data=TriggerData(label="Start"),
    )
    return Workflow(
        id=generate_workflow_id(),
        name=name,
        description=description,
        nodes=[start],
        edges=[],
        created_at=created,
        updated_at=created,
        version="1.0.0",
    )


def duplicate_workflow(workflow: Workflow) -> Workflow:
    """Copy a workflow under a new id with ' (Copy)' appended to its name."""
    created = now_ms()
    return workflow.model_copy(
        update={
            "id": generate_workflow_id(),
            "name": f"{workflow.name} (Copy)",
            "created_at": created,
            "updated_at": created,
        },
        deep=True,
    )


def update_meta(
    workflow: Workflow,
    name: Optional[str] = None,
    description: Optional[str] = None,
    icon: Optional[str] = None,
) -> Workflow:
    """Update name, description and/or icon."""
    update: Dict[str, Any] = {}
    if name is not None:
        update["name"] = name
    if description is not None:
        update["description"] = description
    if icon is not None:
        update["icon"] = icon
    return _touch(workflow, **update)


# =============================================================================
# NODE OPERATIONS
# =============================================================================

def add_node(
    node_type: NodeType | str,
    position: Position | Dict[str, float],
    data: Optional[Dict[str, Any]] = None,
) -> WorkflowNode:
    """
    Build a fresh node with type-appropriate defaults.

    The node is returned, not inserted; use insert_node() to place it.

    Args:
        node_type: One of the NodeType values
        position: Canvas position
        data: Payload overrides (camelCase or snake_case keys)
    """
    node_type = NodeType(node_type)
    node_cls = NODE_CLASSES[node_type]
    payload = default_data_for(node_type)
    payload.update(data or {})
    if isinstance(position, dict):
        position = Position.model_validate(position)
    return node_cls.model_validate({
        "id": generate_node_id(),
        "type": node_type.value,
        "position": position,
        "data": payload,
    })


def insert_node(workflow: Workflow, node: WorkflowNode) -> Workflow:
    """Append a node to the workflow's node list."""
    return _touch(workflow, nodes=[*workflow.nodes, node])


def update_node(workflow: Workflow, node_id: str, **changes: Any) -> Workflow:
    """
    Shallow-merge ``changes`` into a node's data payload.

    Keys may use either spelling (``loopCount`` or ``loop_count``). Keys the
    node type does not carry are ignored. An unknown node id is a no-op.
    """
    if workflow.get_node(node_id) is None:
        logger.debug(f"update_node: '{node_id}' not found")
        return workflow
    nodes = [
        n.model_copy(update={"data": _merge(n.data, changes)}) if n.id == node_id else n
        for n in workflow.nodes
    ]
    return _touch(workflow, nodes=nodes)


def move_node(workflow: Workflow, node_id: str, position: Position | Dict[str, float]) -> Workflow:
    """Set a node's canvas position."""
    if isinstance(position, dict):
        position = Position.model_validate(position)
    nodes = [
        n.model_copy(update={"position": position}) if n.id == node_id else n
        for n in workflow.nodes
    ]
    return _touch(workflow, nodes=nodes)


def remove_node(workflow: Workflow, node_id: str) -> Workflow:
    """Remove a node. Edges referencing it are left in place."""
    return _touch(workflow, nodes=[n for n in workflow.nodes if n.id != node_id])


def remove_edges_for_node(workflow: Workflow, node_id: str) -> Workflow:
    """Remove every edge whose source or target is ``node_id``."""
    edges = [e for e in workflow.edges if e.source != node_id and e.target != node_id]
    return _touch(workflow, edges=edges)


# =============================================================================
# EDGE OPERATIONS
# =============================================================================

def connect(
    workflow: Workflow,
    source: str,
    target: str,
    source_handle: Optional[str] = None,
    target_handle: Optional[str] = None,
) -> Tuple[Workflow, str]:
    """
    Add an edge from ``source`` to ``target``.

    Endpoints are not checked here; validate_workflow() reports dangling ones.

    Returns:
        (updated workflow, new edge id)
    """
    edge = WorkflowEdge(
        id=generate_edge_id(),
        source=source,
        target=target,
        source_handle=source_handle,
        target_handle=target_handle,
        type="smoothstep",
    )
    return _touch(workflow, edges=[*workflow.edges, edge]), edge.id


def remove_edge(workflow: Workflow, edge_id: str) -> Workflow:
    """Remove an edge by id."""
    return _touch(workflow, edges=[e for e in workflow.edges if e.id != edge_id])


def update_edge_label(workflow: Workflow, edge_id: str, label: str) -> Workflow:
    """Set an edge's display label."""
    edges = [
        e.model_copy(update={"label": label}) if e.id == edge_id else e
        for e in workflow.edges
    ]
    return _touch(workflow, edges=edges)
