"""
Compile façade: linearize, render, and report in one call.

CompileResult carries the document plus what a caller needs to surface
problems (excluded nodes, warnings) and to cache or diff outputs
(``document_hash``).
"""
from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..orchestrator.compiler import linearize
from ..services.config_service import get_compiler_settings
from ..workflow.models import ExportTarget, Workflow
from .renderer import render_document

logger = logging.getLogger(__name__)


@dataclass
class CompileResult:
    """Result of compiling a workflow to a document."""
    document: str
    target: ExportTarget
    order: List[str] = field(default_factory=list)
    excluded: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    document_hash: str = ""

    @property
    def complete(self) -> bool:
        """True when every node made it into the order."""
        return not self.excluded

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target.value,
            "order": list(self.order),
            "excluded": list(self.excluded),
            "warnings": list(self.warnings),
            "document_hash": self.document_hash,
            "document": self.document,
        }


def hash_document(text: str) -> str:
    """16-character hex SHA-256 prefix of a document."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


def resolve_target(workflow: Workflow, target: ExportTarget | str | None = None) -> ExportTarget:
    """
    Pick the export target.

    Order: explicit argument, the workflow's own export_type, the configured
    ``compiler.default_target``, then "command".
    """
    if target is not None:
        return ExportTarget(target)
    if workflow.export_type is not None:
        return ExportTarget(workflow.export_type)
    configured = get_compiler_settings().get("default_target")
    try:
        return ExportTarget(configured)
    except ValueError:
        logger.warning(f"Unknown compiler.default_target {configured!r}, using 'command'")
        return ExportTarget.COMMAND


def compile_workflow(
    workflow: Workflow,
    target: ExportTarget | str | None = None,
) -> CompileResult:
    """
    Compile a workflow snapshot into an instruction document.

    Args:
        workflow: Workflow snapshot (not modified)
        target: "command" or "subagent" (see resolve_target())

    Returns:
        CompileResult
    """
    resolved = resolve_target(workflow, target)
    linear = linearize(workflow)
    document = render_document(workflow, resolved, order=linear.order)

    warnings: List[str] = []
    if linear.excluded and get_compiler_settings().get("warn_on_cycles", True):
        warnings.append(
            f"Cycle detected, nodes {', '.join(linear.excluded_ids())} excluded"
        )

    result = CompileResult(
        document=document,
        target=resolved,
        order=linear.node_ids(),
        excluded=linear.excluded_ids(),
        warnings=warnings,
        document_hash=hash_document(document),
    )
    logger.debug(
        f"Compiled '{workflow.id}' -> {resolved.value}: "
        f"{len(result.order)} nodes, hash {result.document_hash}"
    )
    return result
