"""
Load workflow snapshots from YAML or JSON files.

Expected format (editor keys, camelCase):
```yaml
id: wf_summarize
name: Summarize
description: Summarize a file
nodes:
  - id: start
    type: trigger
    data: {label: Start, triggerType: manual}
  - id: ask
    type: prompt
    data: {label: Prompt, prompt: Summarize the file}
edges:
  - {id: e1, source: start, target: ask}
```
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from ..errors import WorkflowLoadError
from .models import Workflow

logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}


def load_workflow_data(data: Dict[str, Any], source: str = "<data>") -> Workflow:
    """
    Build a Workflow from already-parsed data.

    Raises:
        WorkflowLoadError: If the data does not describe a workflow
    """
    if not isinstance(data, dict):
        raise WorkflowLoadError(source, f"expected a mapping, got {type(data).__name__}")
    try:
        return Workflow.from_dict(data)
    except ValidationError as e:
        raise WorkflowLoadError(source, f"{e.error_count()} validation error(s)\n{e}") from e


def load_workflow(path: str | Path) -> Workflow:
    """
    Load a workflow snapshot from a .yaml/.yml/.json file.

    Raises:
        FileNotFoundError: If the file does not exist
        WorkflowLoadError: If it cannot be parsed or validated
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Workflow file not found: {path}")

    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() in YAML_SUFFIXES:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (UnicodeDecodeError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise WorkflowLoadError(str(path), str(e)) from e

    workflow = load_workflow_data(data, source=str(path))
    logger.debug(f"Loaded workflow '{workflow.id}' ({len(workflow.nodes)} nodes) from {path}")
    return workflow


def dump_workflow(workflow: Workflow, path: str | Path) -> Path:
    """Write a workflow snapshot as YAML or JSON depending on the suffix."""
    path = Path(path)
    data = workflow.to_dict()
    if path.suffix.lower() in YAML_SUFFIXES:
        text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    else:
        text = json.dumps(data, indent=2) + "\n"
    path.write_text(text, encoding="utf-8")
    return path
