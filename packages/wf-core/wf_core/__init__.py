"""
wfkit Core Library.

Compiles visually authored agent workflows into instruction documents:
- Workflow graph model, editing operations, and validation
- Deterministic linearization (topological order with cycle exclusion)
- Renderers for command and subagent documents
- Execution state tracker for run-time progress
"""

__version__ = "0.1.0"

from .errors import InvalidTransition, WorkflowError, WorkflowLoadError
from .workflow import (
    ExportTarget,
    NodeType,
    Workflow,
    WorkflowEdge,
    WorkflowNode,
    ValidationResult,
    load_workflow,
    validate_workflow,
)
from .orchestrator import ExecutionTracker, linearize
from .export import CompileResult, compile_workflow, render_document

__all__ = [
    "__version__",
    "InvalidTransition",
    "WorkflowError",
    "WorkflowLoadError",
    "ExportTarget",
    "NodeType",
    "Workflow",
    "WorkflowEdge",
    "WorkflowNode",
    "ValidationResult",
    "load_workflow",
    "validate_workflow",
    "ExecutionTracker",
    "linearize",
    "CompileResult",
    "compile_workflow",
    "render_document",
]
