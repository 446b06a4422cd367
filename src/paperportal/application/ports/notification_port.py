"""NotificationHook: best-effort side effects fired after a workflow transition."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from paperportal.domain.paper import PaperStatus, ReviewAction


@dataclass(frozen=True)
class TransitionEvent:
    """Immutable description of one applied transition."""

    paper_id: str
    from_status: Optional[PaperStatus]
    to_status: PaperStatus
    actor_id: str
    action: Optional[ReviewAction] = None
    ts: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "paper_id": self.paper_id,
            "from_status": self.from_status.value if self.from_status else None,
            "to_status": self.to_status.value,
            "actor_id": self.actor_id,
            "action": self.action.value if self.action else None,
            "ts": self.ts.isoformat(),
        }


@runtime_checkable
class NotificationHook(Protocol):
    """Abstract interface for transition notifications (email, inbox, badges)."""

    def notify(self, event: TransitionEvent) -> None: ...


class NullNotificationHook:
    """No-op hook used when nothing listens for transitions."""

    def notify(self, event: TransitionEvent) -> None:
        return None
