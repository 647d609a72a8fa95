"""
wfkit Workflow - graph model, editing operations, and validation.
"""
from .models import (
    NodeType,
    TriggerType,
    ExportTarget,
    BranchHandle,
    Position,
    WorkflowNode,
    WorkflowEdge,
    Workflow,
)
from .editing import add_node, create_workflow
from .validation import ValidationResult, validate_workflow
from .loader import load_workflow

__all__ = [
    "NodeType",
    "TriggerType",
    "ExportTarget",
    "BranchHandle",
    "Position",
    "WorkflowNode",
    "WorkflowEdge",
    "Workflow",
    "add_node",
    "create_workflow",
    "ValidationResult",
    "validate_workflow",
    "load_workflow",
]
