"""
wfkit Workflow Model - Pydantic Models

Defines the node/edge graph that the visual editor produces. Node payloads
are a tagged union keyed by the node ``type``; each variant carries only the
fields that matter for that kind of step.

Wire keys follow the editor's camelCase spelling (``sourceHandle``,
``mcpTool``, ``loopCount``); snake_case attribute names are accepted too.
"""
from __future__ import annotations

import time
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS
# =============================================================================

class NodeType(str, Enum):
    """Kind of workflow step."""
    TRIGGER = "trigger"    # Entry point (user input, file change, ...)
    PROMPT = "prompt"      # Instruction text for the agent
    ACTION = "action"      # Run a skill, command, or tool
    DECISION = "decision"  # If/else branch
    LOOP = "loop"          # Repeat
    SUBAGENT = "subagent"  # Spawn an isolated-context agent
    MCP_CALL = "mcp_call"  # Call an MCP server tool
    OUTPUT = "output"      # Return the result


class TriggerType(str, Enum):
    """How a workflow gets started."""
    MANUAL = "manual"
    FILE_CHANGE = "file_change"
    COMMAND = "command"
    SCHEDULE = "schedule"
    HOOK = "hook"


class ExportTarget(str, Enum):
    """Document shape produced by the renderer."""
    COMMAND = "command"
    SUBAGENT = "subagent"


class BranchHandle(str, Enum):
    """Output handles exposed by decision nodes."""
    TRUE = "true"
    FALSE = "false"


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


class _WireModel(BaseModel):
    """Base for models serialized with the editor's camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Position(_WireModel):
    """Canvas coordinates. Not used by compilation."""
    x: float = 0.0
    y: float = 0.0


# =============================================================================
# NODE PAYLOADS
# =============================================================================

class NodeData(_WireModel):
    """Fields shared by every node payload."""
    label: str = ""
    description: Optional[str] = None
    # Link to an inventory item (skill, command, mcp, ...)
    linked_item_id: Optional[str] = None
    linked_item_type: Optional[str] = None


class TriggerData(NodeData):
    trigger_type: TriggerType = TriggerType.MANUAL
    trigger_config: Dict[str, Any] = Field(default_factory=dict)


class PromptData(NodeData):
    prompt: Optional[str] = None


class ActionData(NodeData):
    pass


class DecisionData(NodeData):
    condition: Optional[str] = None


class LoopData(NodeData):
    loop_count: int = Field(default=3, ge=1)


class SubagentData(NodeData):
    subagent_prompt: Optional[str] = None
    subagent_context: Optional[str] = None


class McpCallData(NodeData):
    mcp_server: Optional[str] = None
    mcp_tool: Optional[str] = None
    mcp_args: Dict[str, Any] = Field(default_factory=dict)


class OutputData(NodeData):
    pass


# =============================================================================
# NODES (tagged union on ``type``)
# =============================================================================

class _NodeBase(_WireModel):
    id: str
    position: Position = Field(default_factory=Position)

    @property
    def label(self) -> str:
        return self.data.label  # type: ignore[attr-defined]


class TriggerNode(_NodeBase):
    type: Literal["trigger"] = "trigger"
    data: TriggerData = Field(default_factory=TriggerData)


class PromptNode(_NodeBase):
    type: Literal["prompt"] = "prompt"
    data: PromptData = Field(default_factory=PromptData)


class ActionNode(_NodeBase):
    type: Literal["action"] = "action"
    data: ActionData = Field(default_factory=ActionData)


class DecisionNode(_NodeBase):
    type: Literal["decision"] = "decision"
    data: DecisionData = Field(default_factory=DecisionData)


class LoopNode(_NodeBase):
    type: Literal["loop"] = "loop"
    data: LoopData = Field(default_factory=LoopData)


class SubagentNode(_NodeBase):
    type: Literal["subagent"] = "subagent"
    data: SubagentData = Field(default_factory=SubagentData)


class McpCallNode(_NodeBase):
    type: Literal["mcp_call"] = "mcp_call"
    data: McpCallData = Field(default_factory=McpCallData)


class OutputNode(_NodeBase):
    type: Literal["output"] = "output"
    data: OutputData = Field(default_factory=OutputData)


WorkflowNode = Annotated[
    Union[
        TriggerNode, PromptNode, ActionNode, DecisionNode,
        LoopNode, SubagentNode, McpCallNode, OutputNode,
    ],
    Field(discriminator="type"),
]

NODE_CLASSES: Dict[NodeType, type] = {
    NodeType.TRIGGER: TriggerNode,
    NodeType.PROMPT: PromptNode,
    NodeType.ACTION: ActionNode,
    NodeType.DECISION: DecisionNode,
    NodeType.LOOP: LoopNode,
    NodeType.SUBAGENT: SubagentNode,
    NodeType.MCP_CALL: McpCallNode,
    NodeType.OUTPUT: OutputNode,
}


# =============================================================================
# EDGES
# =============================================================================

class WorkflowEdge(_WireModel):
    """A directed connection between two nodes."""
    id: str
    source: str
    target: str
    source_handle: Optional[str] = None  # decision: "true" | "false"
    target_handle: Optional[str] = None
    # Cosmetic, ignored by compilation
    label: Optional[str] = None
    animated: bool = False
    type: str = "smoothstep"

    @field_validator("source_handle", "target_handle", mode="before")
    @classmethod
    def _handle_from_bool(cls, value: Any) -> Any:
        # YAML reads an unquoted true/false handle as a boolean
        if isinstance(value, bool):
            return "true" if value else "false"
        return value


# =============================================================================
# WORKFLOW (aggregate)
# =============================================================================

class Workflow(_WireModel):
    """
    A complete workflow snapshot.

    The unit the validator, compiler, and renderer operate on. Node order
    is significant: it breaks ties in the linearization.
    """
    id: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    nodes: List[WorkflowNode] = Field(default_factory=list)
    edges: List[WorkflowEdge] = Field(default_factory=list)
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)
    version: str = "1.0.0"
    author: Optional[str] = None
    export_type: Optional[ExportTarget] = None
    export_path: Optional[str] = None

    def get_node(self, node_id: str) -> Optional[WorkflowNode]:
        """Find a node by id. Returns None if not found."""
        return next((n for n in self.nodes if n.id == node_id), None)

    def node_ids(self) -> List[str]:
        """Node ids in insertion order."""
        return [n.id for n in self.nodes]

    def outgoing(self, node_id: str) -> List[WorkflowEdge]:
        """Edges leaving a node, in edge-list order."""
        return [e for e in self.edges if e.source == node_id]

    def incoming(self, node_id: str) -> List[WorkflowEdge]:
        """Edges entering a node, in edge-list order."""
        return [e for e in self.edges if e.target == node_id]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with editor (camelCase) keys, dropping unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Workflow":
        """Build from editor-shaped data. Raises pydantic ValidationError."""
        return cls.model_validate(data)
