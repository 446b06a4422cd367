"""
Workflow error taxonomy.

Every failure the review workflow can report is a ``WorkflowError`` subclass
with a stable ``code``. Callers branch on the class (or ``code``), never on
message text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class WorkflowError(Exception):
    """Structured workflow error."""

    message: str
    code: str = "workflow_error"
    retryable: bool = False
    details: Dict[str, Any] = field(default_factory=dict)

    user_message = "Something went wrong while processing the submission."

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.user_message,
            "detail": self.message,
            "retryable": self.retryable,
            **({"context": self.details} if self.details else {}),
        }


@dataclass
class ValidationError(WorkflowError):
    """A required field or mandatory review note is missing."""

    code: str = "validation_error"

    user_message = "Please fill in all required fields."


@dataclass
class InvalidTransitionError(WorkflowError):
    """The action is not legal from the current status for any actor."""

    code: str = "invalid_transition"

    user_message = "This action is not available for the paper's current status."


@dataclass
class UnauthorizedTransitionError(WorkflowError):
    """The actor's role may not perform the action on the current status."""

    code: str = "unauthorized_transition"

    user_message = "You are not allowed to perform this action on this paper."


@dataclass
class ConflictError(WorkflowError):
    """The record changed since the actor last read it."""

    code: str = "conflict"
    retryable: bool = True

    user_message = "This submission was just updated — refreshing."


@dataclass
class NotFoundError(WorkflowError):
    """Unknown paper id."""

    code: str = "not_found"

    user_message = "Research paper not found."
