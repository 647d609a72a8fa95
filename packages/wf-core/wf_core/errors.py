"""
wfkit exceptions.

Structural graph problems are reported through ValidationResult, not raised.
These cover load failures and illegal execution transitions.
"""


class WorkflowError(ValueError):
    """Base class for wfkit errors."""


class WorkflowLoadError(WorkflowError):
    """A workflow snapshot could not be read or parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not load workflow '{path}': {reason}")


class InvalidTransition(WorkflowError):
    """An execution record was asked to make an illegal state change."""
