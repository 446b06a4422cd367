"""
Notification hook implementations.

Hooks run after a transition is stored. The processor isolates their
failures, so implementations may raise freely.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol

from paperportal.application.ports.directory_port import DirectoryPort
from paperportal.application.ports.notification_port import NotificationHook, TransitionEvent
from paperportal.application.ports.paper_record_port import PaperRecordPort
from paperportal.application.services.workflow_engine import next_stage_label
from paperportal.domain.paper import PaperRecord, PaperStatus, ReviewAction, Role
from paperportal.utils.logging_config import LogFiles, Logger

logger = logging.getLogger(__name__)

_APPROVAL_MESSAGES = {
    PaperStatus.PENDING_EDITOR: "Your research has been approved by faculty and is now under editor review",
    PaperStatus.PENDING_ADMIN: "Your research has been approved by the editor and is awaiting final admin approval",
    PaperStatus.APPROVED: "Congratulations! Your research has been approved and published",
}


class InboxWriter(Protocol):
    def add(
        self, *, user_id: str, research_id: str, type: str, title: str, message: str
    ) -> Dict[str, Any]: ...


class LoggingNotificationHook:
    """Writes one line per transition to the workflow log file."""

    def __init__(self, file: Optional[str] = None):
        self.file = file or LogFiles.WORKFLOW

    def notify(self, event: TransitionEvent) -> None:
        Logger.info(
            f"paper={event.paper_id} action={event.action.value if event.action else '-'} "
            f"{event.from_status.value if event.from_status else '-'} -> {event.to_status.value} "
            f"actor={event.actor_id}",
            file=self.file,
        )


class InboxNotificationHook:
    """
    Persists inbox rows for the author and for whoever reviews next.

    Row types follow the portal inbox: ``approval``, ``rejection``,
    ``revision``, ``submission`` and ``review_request``.
    """

    def __init__(
        self,
        papers: PaperRecordPort,
        inbox: InboxWriter,
        directory: Optional[DirectoryPort] = None,
    ):
        self.papers = papers
        self.inbox = inbox
        self.directory = directory

    def notify(self, event: TransitionEvent) -> None:
        paper = self.papers.get(event.paper_id)
        for row in self.messages_for(event, paper):
            self.inbox.add(research_id=paper.id, **row)

    def messages_for(self, event: TransitionEvent, paper: PaperRecord) -> List[Dict[str, str]]:
        rows: List[Dict[str, str]] = []
        note = paper.review_trail[-1].note if paper.review_trail else ""

        if event.action == ReviewAction.APPROVE:
            rows.append(
                {
                    "user_id": paper.author_id,
                    "type": "approval",
                    "title": "Research Approved",
                    "message": _APPROVAL_MESSAGES.get(
                        event.to_status, f"Your research moved to {next_stage_label(event.to_status)}"
                    ),
                }
            )
        elif event.action == ReviewAction.REJECT:
            rows.append(
                {
                    "user_id": paper.author_id,
                    "type": "rejection",
                    "title": "Research Rejected",
                    "message": f'Your research "{paper.title}" was rejected: {note}',
                }
            )
        elif event.action == ReviewAction.REQUEST_REVISION:
            rows.append(
                {
                    "user_id": paper.author_id,
                    "type": "revision",
                    "title": "Revision Requested",
                    "message": f'Revisions were requested for "{paper.title}": {note}',
                }
            )

        submitted = event.action in (None, ReviewAction.RESUBMIT)
        for user_id in self._next_reviewers(paper, event.to_status):
            if submitted:
                author = paper.author_name or paper.author_id
                verb = "resubmitted" if event.action == ReviewAction.RESUBMIT else "submitted"
                rows.append(
                    {
                        "user_id": user_id,
                        "type": "submission",
                        "title": "Research Revised" if verb == "resubmitted" else "New Research Submission",
                        "message": f'{author} {verb} "{paper.title}" for review',
                    }
                )
            else:
                rows.append(
                    {
                        "user_id": user_id,
                        "type": "review_request",
                        "title": "New Research for Review",
                        "message": f'Research "{paper.title}" is ready for your review',
                    }
                )
        return rows

    def _next_reviewers(self, paper: PaperRecord, status: PaperStatus) -> Iterable[str]:
        if status == PaperStatus.PENDING_FACULTY:
            return [paper.faculty_id] if paper.faculty_id else []
        if self.directory is None:
            return []
        role = {
            PaperStatus.PENDING_EDITOR: Role.STAFF,
            PaperStatus.PENDING_ADMIN: Role.ADMIN,
        }.get(status)
        if role is None:
            return []
        return [u["id"] for u in self.directory.list_users(role=role.value)]


class CompositeNotificationHook:
    """Fans one event out to several hooks; a failing hook does not stop the rest."""

    def __init__(self, hooks: Iterable[NotificationHook]):
        self.hooks = list(hooks)

    def notify(self, event: TransitionEvent) -> None:
        for hook in self.hooks:
            try:
                hook.notify(event)
            except Exception:
                logger.exception(
                    "%s failed for paper %s", type(hook).__name__, event.paper_id
                )
