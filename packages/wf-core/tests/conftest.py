"""Shared fixtures and builders for wfkit tests."""
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

from wf_core.services.config_service import clear_config_cache
from wf_core.workflow.models import Workflow

REPO_ROOT = Path(__file__).resolve().parents[3]
EXAMPLES_DIR = REPO_ROOT / "examples" / "workflows"


def build_workflow(
    nodes: List[Tuple[str, str, Optional[Dict[str, Any]]]],
    edges: List[Tuple[str, str, Optional[str]]] = (),
    name: str = "Test Workflow",
    description: Optional[str] = None,
    **extra: Any,
) -> Workflow:
    """
    Build a workflow from compact tuples.

    nodes: (id, type, data) - data may be None
    edges: (source, target, source_handle) - handle may be None
    """
    data = {
        "id": "wf_test",
        "name": name,
        "description": description,
        "nodes": [
            {"id": node_id, "type": node_type, "data": node_data or {"label": node_id}}
            for node_id, node_type, node_data in nodes
        ],
        "edges": [
            {"id": f"e{i}", "source": src, "target": tgt, "sourceHandle": handle}
            for i, (src, tgt, handle) in enumerate(edges)
        ],
    }
    data.update(extra)
    return Workflow.from_dict(data)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point config at an empty temp location so a local wfkit.yaml never leaks in."""
    monkeypatch.setenv("WFKIT_CONFIG_PATH", str(tmp_path / "wfkit.yaml"))
    clear_config_cache()
    yield tmp_path / "wfkit.yaml"
    clear_config_cache()


@pytest.fixture
def linear_workflow() -> Workflow:
    """trigger -> prompt -> output."""
    return build_workflow(
        nodes=[
            ("start", "trigger", {"label": "Start"}),
            ("ask", "prompt", {"label": "Prompt", "prompt": "Summarize the file"}),
            ("done", "output", {"label": "Output"}),
        ],
        edges=[("start", "ask", None), ("ask", "done", None)],
        name="Summarize",
    )


@pytest.fixture
def branching_workflow() -> Workflow:
    """trigger -> decision -(true)-> yes -> out, -(false)-> no -> out."""
    return build_workflow(
        nodes=[
            ("start", "trigger", None),
            ("check", "decision", {"label": "Check", "condition": "file exists"}),
            ("yes", "action", {"label": "Read", "description": "Read the file"}),
            ("no", "prompt", {"label": "Ask", "prompt": "Ask for a path"}),
            ("out", "output", None),
        ],
        edges=[
            ("start", "check", None),
            ("check", "yes", "true"),
            ("check", "no", "false"),
            ("yes", "out", None),
            ("no", "out", None),
        ],
        name="Branching",
    )
