"""
Core abstractions: workflow error taxonomy and value-style action results.
"""

from .errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedTransitionError,
    ValidationError,
    WorkflowError,
)
from .result import ActionResult

__all__ = [
    "WorkflowError",
    "ValidationError",
    "InvalidTransitionError",
    "UnauthorizedTransitionError",
    "ConflictError",
    "NotFoundError",
    "ActionResult",
]
