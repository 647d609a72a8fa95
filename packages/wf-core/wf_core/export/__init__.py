"""wfkit Export - render workflows as command or subagent documents."""
from .renderer import render_document
from .compile import CompileResult, compile_workflow

__all__ = ["render_document", "CompileResult", "compile_workflow"]
