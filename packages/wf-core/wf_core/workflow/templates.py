"""
Node templates - the palette of steps the editor can drop onto the canvas.

Each template names a node type and the payload defaults a fresh node of
that type starts with.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .models import NodeType


@dataclass(frozen=True)
class NodeTemplate:
    """A palette entry."""
    type: NodeType
    label: str
    description: str
    icon: str
    category: str  # trigger | flow | action | advanced
    default_data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "label": self.label,
            "description": self.description,
            "icon": self.icon,
            "category": self.category,
            "defaultData": dict(self.default_data),
        }


NODE_TEMPLATES: List[NodeTemplate] = [
    # Triggers
    NodeTemplate(
        type=NodeType.TRIGGER,
        label="Manual Trigger",
        description="Start workflow manually",
        icon="play",
        category="trigger",
        default_data={"label": "Start", "triggerType": "manual"},
    ),
    NodeTemplate(
        type=NodeType.TRIGGER,
        label="Command Trigger",
        description="Start when /command is invoked",
        icon="terminal",
        category="trigger",
        default_data={"label": "On Command", "triggerType": "command"},
    ),
    # Flow control
    NodeTemplate(
        type=NodeType.PROMPT,
        label="Prompt",
        description="Agent instruction/prompt",
        icon="message",
        category="flow",
        default_data={"label": "Prompt", "prompt": ""},
    ),
    NodeTemplate(
        type=NodeType.DECISION,
        label="Decision",
        description="If/else branching",
        icon="git-branch",
        category="flow",
        default_data={"label": "Decision", "condition": ""},
    ),
    NodeTemplate(
        type=NodeType.LOOP,
        label="Loop",
        description="Repeat actions",
        icon="repeat",
        category="flow",
        default_data={"label": "Loop", "loopCount": 3},
    ),
    # Actions
    NodeTemplate(
        type=NodeType.ACTION,
        label="Action",
        description="Execute a skill or command",
        icon="zap",
        category="action",
        default_data={"label": "Action"},
    ),
    NodeTemplate(
        type=NodeType.MCP_CALL,
        label="MCP Call",
        description="Call an MCP server tool",
        icon="plug",
        category="action",
        default_data={"label": "MCP Call"},
    ),
    # Advanced
    NodeTemplate(
        type=NodeType.SUBAGENT,
        label="Subagent",
        description="Spawn isolated context agent",
        icon="users",
        category="advanced",
        default_data={"label": "Subagent", "subagentPrompt": ""},
    ),
    NodeTemplate(
        type=NodeType.OUTPUT,
        label="Output",
        description="Return result",
        icon="check-circle",
        category="flow",
        default_data={"label": "Output"},
    ),
]

# Label a node gets when no template data overrides it
DEFAULT_LABELS: Dict[NodeType, str] = {
    NodeType.TRIGGER: "Start",
    NodeType.PROMPT: "Prompt",
    NodeType.ACTION: "Action",
    NodeType.DECISION: "Decision",
    NodeType.LOOP: "Loop",
    NodeType.SUBAGENT: "Subagent",
    NodeType.MCP_CALL: "MCP Call",
    NodeType.OUTPUT: "Output",
}


def get_template(node_type: NodeType | str) -> Optional[NodeTemplate]:
    """Return the first palette template for a node type."""
    node_type = NodeType(node_type)
    return next((t for t in NODE_TEMPLATES if t.type == node_type), None)


def default_data_for(node_type: NodeType | str) -> Dict[str, Any]:
    """Payload defaults for a fresh node of ``node_type``."""
    node_type = NodeType(node_type)
    template = get_template(node_type)
    data: Dict[str, Any] = {"label": DEFAULT_LABELS[node_type]}
    if template is not None:
        data.update(template.default_data)
    return data


def templates_by_category() -> Dict[str, List[NodeTemplate]]:
    """Group the palette by category, keeping palette order."""
    grouped: Dict[str, List[NodeTemplate]] = {}
    for template in NODE_TEMPLATES:
        grouped.setdefault(template.category, []).append(template)
    return grouped
