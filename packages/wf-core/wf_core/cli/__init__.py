"""
wfkit CLI - Command-line interface for compiling and checking workflows.

Commands:
- wfkit compile <file> - Render a workflow as a command or subagent document
- wfkit validate <file> - Report structural problems
- wfkit order <file> - Show the linearized node order
- wfkit simulate <file> - Walk the workflow with the execution tracker
- wfkit new <name> - Create a workflow file
- wfkit templates - List the node palette
- wfkit version - Show version
"""

from .main import cli

__all__ = ["cli"]
