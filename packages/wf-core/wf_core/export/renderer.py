"""
wfkit Renderer - turn an ordered node sequence into an instruction document.

Two targets share one body:
    command   - a linear instruction script
    subagent  - a brief for an isolated-context agent

Trigger and loop nodes shape the order but render no section. Missing
optional fields fall back to an empty string or a fixed placeholder; the
renderer never raises on payload content.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence

from ..orchestrator.compiler import topological_order
from ..workflow.models import ExportTarget, NodeType, Workflow, WorkflowNode

logger = logging.getLogger(__name__)

SECTION_SEPARATOR = "\n\n"


# =============================================================================
# HEADERS
# =============================================================================

def render_header(workflow: Workflow, target: ExportTarget | str) -> str:
    """Header text, including its trailing blank line."""
    target = ExportTarget(target)
    description = workflow.description or ""
    if target == ExportTarget.COMMAND:
        return f"# {workflow.name}\n\n{description}\n\n"
    return (
        f"# Subagent: {workflow.name}\n\n"
        f"{description}\n\n"
        f"## Context\n"
        f"Isolated context agent for: {workflow.description or workflow.name}\n\n"
    )


# =============================================================================
# SECTIONS
# =============================================================================

def _prompt(node: WorkflowNode) -> Optional[str]:
    if not node.data.prompt:
        return None
    return f"## Prompt\n{node.data.prompt}"


def _action(node: WorkflowNode) -> str:
    return f"## Action: {node.data.label}\n{node.data.description or ''}"


def _decision(node: WorkflowNode) -> str:
    return f"## Decision\nCondition: {node.data.condition or 'Check condition'}"


def _mcp_call(node: WorkflowNode) -> str:
    return (
        f"## MCP Call: {node.data.mcp_tool or 'tool'}\n"
        f"Server: {node.data.mcp_server or 'server'}"
    )


def _subagent(node: WorkflowNode) -> str:
    return f"## Spawn Subagent\n{node.data.subagent_prompt or ''}"


def _output(node: WorkflowNode) -> str:
    return "## Output\nReturn the result."


SECTION_RENDERERS: Dict[NodeType, Callable[[WorkflowNode], Optional[str]]] = {
    NodeType.PROMPT: _prompt,
    NodeType.ACTION: _action,
    NodeType.DECISION: _decision,
    NodeType.MCP_CALL: _mcp_call,
    NodeType.SUBAGENT: _subagent,
    NodeType.OUTPUT: _output,
}


def render_section(node: WorkflowNode) -> Optional[str]:
    """Section text for one node, or None if the node renders nothing."""
    renderer = SECTION_RENDERERS.get(NodeType(node.type))
    if renderer is None:
        return None
    return renderer(node)


def render_sections(order: Sequence[WorkflowNode]) -> List[str]:
    """Sections for an ordered node sequence, skipping silent nodes."""
    sections = []
    for node in order:
        section = render_section(node)
        if section is not None:
            sections.append(section)
    return sections


def render_document(
    workflow: Workflow,
    target: ExportTarget | str,
    order: Optional[Sequence[WorkflowNode]] = None,
) -> str:
    """
    Render a workflow as an instruction document.

    Args:
        workflow: Workflow snapshot
        target: "command" or "subagent"
        order: Pre-computed node order (default: linearize the workflow)

    Returns:
        Document text
    """
    if order is None:
        order = topological_order(workflow.nodes, workflow.edges)
    sections = render_sections(order)
    logger.debug(f"Rendered {len(sections)} sections for '{workflow.id}' ({ExportTarget(target).value})")
    return render_header(workflow, target) + SECTION_SEPARATOR.join(sections)
