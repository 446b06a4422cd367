from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, TypeVar

from .errors import WorkflowError

TOutput = TypeVar("TOutput")


@dataclass
class ActionResult(Generic[TOutput]):
    """Value-style outcome of a workflow call: either ``record`` or ``error``."""

    ok: bool
    record: Optional[TOutput] = None
    error: Optional[WorkflowError] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, record: TOutput, **metadata: Any) -> "ActionResult[TOutput]":
        return cls(ok=True, record=record, metadata=metadata or {})

    @classmethod
    def failure(cls, error: WorkflowError, **metadata: Any) -> "ActionResult[TOutput]":
        return cls(ok=False, error=error, metadata=metadata or {})

    def unwrap(self) -> TOutput:
        if not self.ok or self.record is None:
            raise self.error or WorkflowError("empty action result")
        return self.record
