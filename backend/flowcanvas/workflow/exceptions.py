"""Errors raised by the workflow engine."""

from __future__ import annotations

from typing import List, Optional


class WorkflowImportError(ValueError):
    """An import document is structurally malformed. Nothing was changed."""


class WorkflowValidationError(ValueError):
    """A graph failed ``validate_workflow``."""

    def __init__(self, errors: List[str], message: Optional[str] = None) -> None:
        self.errors = list(errors)
        super().__init__(
            message
            or "Workflow validation failed:\n" + "\n".join(f"  • {e}" for e in self.errors)
        )
