"""
wfkit Orchestrator - linearization and run-time state tracking.

Pure Python; the only third-party dependency is pydantic for the record models.
"""
from .compiler import Linearization, linearize, topological_order
from .tracker import ExecutionRecord, ExecutionTracker, NodeStatus, RunStatus
from .executor import simulate_run

__all__ = [
    "Linearization",
    "linearize",
    "topological_order",
    "ExecutionRecord",
    "ExecutionTracker",
    "NodeStatus",
    "RunStatus",
    "simulate_run",
]
