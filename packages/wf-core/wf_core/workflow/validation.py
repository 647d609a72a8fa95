"""
Workflow Validation - Report structural problems in a node/edge graph.

Problems are collected, never raised: the caller decides whether to block
compilation. Compiling an invalid graph still yields a best-effort document.

Errors (make the result invalid):
    DANGLING_SOURCE, DANGLING_TARGET, DUPLICATE_NODE_ID, DUPLICATE_EDGE_ID,
    INVALID_HANDLE, DUPLICATE_BRANCH, MULTIPLE_OUTPUTS, OUTPUT_HAS_EDGES

Warnings:
    NO_TRIGGER, MULTIPLE_TRIGGERS, TRIGGER_HAS_INPUT, UNEXPECTED_HANDLE,
    SELF_LOOP, CYCLE_EXCLUDED

Info:
    EMPTY_PROMPT, UNREACHABLE
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from .models import BranchHandle, NodeType, Workflow


class ValidationSeverity(str, Enum):
    """Severity level for validation issues."""
    ERROR = "error"      # Fails validation
    WARNING = "warning"  # Non-blocking issue
    INFO = "info"        # Informational note


@dataclass
class ValidationIssue:
    """One problem, anchored to the node and/or edge it concerns."""
    severity: ValidationSeverity
    code: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def node_id(self) -> Optional[str]:
        return self.context.get("node")

    @property
    def edge_id(self) -> Optional[str]:
        return self.context.get("edge")

    def location(self) -> str:
        """Edge and extra context as a parenthesised suffix, or an empty string."""
        parts = []
        if self.edge_id:
            parts.append(f"edge {self.edge_id}")
        for key, value in self.context.items():
            if key in ("node", "edge"):
                continue
            if isinstance(value, list):
                value = ", ".join(str(v) for v in value)
            parts.append(f"{key}: {value}")
        return f" ({'; '.join(parts)})" if parts else ""


@dataclass
class ValidationResult:
    """Issues found in one workflow, grouped by the node they concern."""
    valid: bool = True
    issues: List[ValidationIssue] = field(default_factory=list)
    workflow_id: Optional[str] = None
    workflow_name: Optional[str] = None

    def _add(self, severity: ValidationSeverity, code: str, message: str, context: Dict[str, Any]) -> None:
        self.issues.append(ValidationIssue(severity, code, message, context))
        if severity == ValidationSeverity.ERROR:
            self.valid = False

    def add_error(self, code: str, message: str, **context) -> None:
        self._add(ValidationSeverity.ERROR, code, message, context)

    def add_warning(self, code: str, message: str, **context) -> None:
        self._add(ValidationSeverity.WARNING, code, message, context)

    def add_info(self, code: str, message: str, **context) -> None:
        self._add(ValidationSeverity.INFO, code, message, context)

    def _of(self, severity: ValidationSeverity) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == severity]

    @property
    def errors(self) -> List[ValidationIssue]:
        return self._of(ValidationSeverity.ERROR)

    @property
    def warnings(self) -> List[ValidationIssue]:
        return self._of(ValidationSeverity.WARNING)

    @property
    def infos(self) -> List[ValidationIssue]:
        return self._of(ValidationSeverity.INFO)

    def codes(self) -> List[str]:
        """Issue codes in the order they were found."""
        return [i.code for i in self.issues]

    def for_node(self, node_id: str) -> List[ValidationIssue]:
        """Issues anchored to one node (what the editor badges on the canvas)."""
        return [i for i in self.issues if i.node_id == node_id]

    def by_node(self) -> Dict[Optional[str], List[ValidationIssue]]:
        """
        Group issues by node id, in first-seen order.

        Issues with no node (edge problems, trigger and cycle summaries)
        are keyed by None and listed first.
        """
        grouped: Dict[Optional[str], List[ValidationIssue]] = {None: []}
        for issue in self.issues:
            grouped.setdefault(issue.node_id, []).append(issue)
        if not grouped[None]:
            del grouped[None]
        return grouped

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "workflow_id": self.workflow_id,
            "workflow_name": self.workflow_name,
            "issue_count": len(self.issues),
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "issues": [
                {
                    "severity": i.severity.value,
                    "code": i.code,
                    "message": i.message,
                    "context": i.context,
                }
                for i in self.issues
            ],
            "nodes": {
                node_id: [i.code for i in issues]
                for node_id, issues in self.by_node().items()
                if node_id is not None
            },
        }

    def to_markdown(self) -> str:
        """Markdown report with one section per affected node."""
        status = "PASS" if self.valid else "FAIL"
        title = self.workflow_name or self.workflow_id or "workflow"
        lines = [
            f"# {title}: {status}",
            "",
            f"{len(self.errors)} error(s), {len(self.warnings)} warning(s), {len(self.infos)} note(s)",
        ]
        if self.workflow_id:
            lines.append(f"Workflow id: `{self.workflow_id}`")
        lines.append("")

        if not self.issues:
            lines.append("No issues found.")
            return "\n".join(lines)

        for node_id, issues in self.by_node().items():
            lines.append(f"## Node `{node_id}`" if node_id else "## Graph")
            lines.append("")
            for issue in issues:
                lines.append(
                    f"- {issue.severity.value} **{issue.code}**: {issue.message}{issue.location()}"
                )
            lines.append("")

        return "\n".join(lines).rstrip() + "\n"

    def __str__(self) -> str:
        status = "PASS" if self.valid else "FAIL"
        lines = [f"Validation: {status} ({len(self.errors)} errors, {len(self.warnings)} warnings)"]
        for node_id, issues in self.by_node().items():
            lines.append(f"  {node_id}:" if node_id else "  graph:")
            for issue in issues:
                lines.append(f"    [{issue.severity.value.upper()}] {issue.code}: {issue.message}")
        return "\n".join(lines)


class WorkflowValidator:
    """
    Validates the structure of a workflow graph.

    Usage:
        result = WorkflowValidator().validate(workflow)
        if not result.valid:
            print(result.to_markdown())
    """

    def validate(self, workflow: Workflow) -> ValidationResult:
        """
        Check a workflow snapshot.

        Args:
            workflow: Workflow to check

        Returns:
            ValidationResult with any issues found
        """
        result = ValidationResult(workflow_id=workflow.id, workflow_name=workflow.name)

        self._validate_ids(workflow, result)
        self._validate_endpoints(workflow, result)
        self._validate_outputs(workflow, result)
        self._validate_triggers(workflow, result)
        self._validate_cycles(workflow, result)
        self._validate_content(workflow, result)

        return result

    def _validate_ids(self, workflow: Workflow, result: ValidationResult) -> None:
        for node_id, count in Counter(workflow.node_ids()).items():
            if count > 1:
                result.add_error(
                    "DUPLICATE_NODE_ID",
                    f"Node id '{node_id}' is used {count} times",
                    node=node_id,
                )
        for edge_id, count in Counter(e.id for e in workflow.edges).items():
            if count > 1:
                result.add_error(
                    "DUPLICATE_EDGE_ID",
                    f"Edge id '{edge_id}' is used {count} times",
                    edge=edge_id,
                )

    def _validate_endpoints(self, workflow: Workflow, result: ValidationResult) -> None:
        """Every edge must reference existing nodes."""
        known = set(workflow.node_ids())
        for edge in workflow.edges:
            if edge.source not in known:
                result.add_error(
                    "DANGLING_SOURCE",
                    f"Edge '{edge.id}' source '{edge.source}' not found in nodes",
                    edge=edge.id,
                )
            if edge.target not in known:
                result.add_error(
                    "DANGLING_TARGET",
                    f"Edge '{edge.id}' target '{edge.target}' not found in nodes",
                    edge=edge.id,
                )
            if edge.source == edge.target:
                result.add_warning(
                    "SELF_LOOP",
                    f"Edge '{edge.id}' connects '{edge.source}' to itself",
                    edge=edge.id,
                )

    def _validate_outputs(self, workflow: Workflow, result: ValidationResult) -> None:
        """Outbound edge rules per node type."""
        branch_values = {h.value for h in BranchHandle}

        for node in workflow.nodes:
            outgoing = workflow.outgoing(node.id)

            if node.type == NodeType.DECISION:
                per_handle: Counter = Counter()
                for edge in outgoing:
                    if edge.source_handle not in branch_values:
                        result.add_error(
                            "INVALID_HANDLE",
                            f"Decision '{node.id}' edge '{edge.id}' has handle "
                            f"{edge.source_handle!r}; expected 'true' or 'false'",
                            node=node.id,
                            edge=edge.id,
                        )
                        continue
                    per_handle[edge.source_handle] += 1
                for handle, count in sorted(per_handle.items()):
                    if count > 1:
                        result.add_error(
                            "DUPLICATE_BRANCH",
                            f"Decision '{node.id}' has {count} edges on handle '{handle}'",
                            node=node.id,
                            handle=handle,
                        )
                continue

            if node.type == NodeType.OUTPUT:
                if outgoing:
                    result.add_error(
                        "OUTPUT_HAS_EDGES",
                        f"Output '{node.id}' has {len(outgoing)} outbound edge(s)",
                        node=node.id,
                    )
                continue

            if len(outgoing) > 1:
                result.add_error(
                    "MULTIPLE_OUTPUTS",
                    f"{node.type.capitalize()} '{node.id}' has {len(outgoing)} outbound edges; "
                    f"only one is allowed",
                    node=node.id,
                )
            for edge in outgoing:
                if edge.source_handle:
                    result.add_warning(
                        "UNEXPECTED_HANDLE",
                        f"Edge '{edge.id}' from {node.type} '{node.id}' carries "
                        f"handle {edge.source_handle!r}",
                        node=node.id,
                        edge=edge.id,
                    )

    def _validate_triggers(self, workflow: Workflow, result: ValidationResult) -> None:
        """Entry point conventions and reachability."""
        triggers = [n for n in workflow.nodes if n.type == NodeType.TRIGGER]

        if not triggers:
            result.add_warning("NO_TRIGGER", "Workflow has no trigger node")
            return
        if len(triggers) > 1:
            result.add_warning(
                "MULTIPLE_TRIGGERS",
                f"Workflow has {len(triggers)} trigger nodes",
                nodes=[t.id for t in triggers],
            )
        for trigger in triggers:
            if workflow.incoming(trigger.id):
                result.add_warning(
                    "TRIGGER_HAS_INPUT",
                    f"Trigger '{trigger.id}' has inbound edges",
                    node=trigger.id,
                )

        reached = _reachable(workflow, [t.id for t in triggers])
        for node in workflow.nodes:
            if node.id not in reached:
                result.add_info(
                    "UNREACHABLE",
                    f"Node '{node.id}' cannot be reached from a trigger",
                    node=node.id,
                )

    def _validate_cycles(self, workflow: Workflow, result: ValidationResult) -> None:
        """Report nodes the compiler will drop."""
        from ..orchestrator.compiler import linearize

        excluded = linearize(workflow).excluded
        if excluded:
            ids = [n.id for n in excluded]
            result.add_warning(
                "CYCLE_EXCLUDED",
                f"Cycle detected, nodes {', '.join(ids)} excluded from compilation",
                nodes=ids,
            )

    def _validate_content(self, workflow: Workflow, result: ValidationResult) -> None:
        for node in workflow.nodes:
            if node.type == NodeType.PROMPT and not node.data.prompt:
                result.add_info(
                    "EMPTY_PROMPT",
                    f"Prompt '{node.id}' has no text and will not be rendered",
                    node=node.id,
                )


def _reachable(workflow: Workflow, start_ids: List[str]) -> Set[str]:
    seen: Set[str] = set()
    stack = list(start_ids)
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        stack.extend(e.target for e in workflow.outgoing(current))
    return seen


def validate_workflow(workflow: Workflow) -> ValidationResult:
    """Convenience function: validate a workflow snapshot."""
    return WorkflowValidator().validate(workflow)
