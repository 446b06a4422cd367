# src/paperportal/application/services/review_action_processor.py
"""
Review action processor.

Validates and applies approve / reject / request_revision / resubmit actions
against the stored record with optimistic concurrency, then fires the
notification hook.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Union

from paperportal.application.ports.notification_port import (
    NotificationHook,
    NullNotificationHook,
    TransitionEvent,
)
from paperportal.application.ports.paper_record_port import PaperRecordPort
from paperportal.application.services.workflow_engine import WorkflowEngine
from paperportal.core.abstractions.errors import ConflictError, ValidationError, WorkflowError
from paperportal.core.abstractions.result import ActionResult
from paperportal.domain.paper import Actor, PaperRecord, ReviewAction, normalize_action

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Fields an author may change when resubmitting.
RESUBMIT_EDITABLE = (
    "title",
    "abstract",
    "keywords",
    "co_authors",
    "category",
    "department",
    "file_ref",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReviewActionProcessor:
    """
    Apply workflow actions to stored research papers.

    Flow for every action:
    1. re-read the current record from the store
    2. reject stale snapshots (ConflictError)
    3. ask the engine for the destination (typed errors, nothing written)
    4. compare-and-set write of the new record
    5. fire-and-forget notification
    """

    def __init__(
        self,
        store: PaperRecordPort,
        *,
        engine: Optional[WorkflowEngine] = None,
        notifier: Optional[NotificationHook] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.engine = engine or WorkflowEngine()
        self.notifier = notifier or NullNotificationHook()
        self._clock = clock or _utcnow

    def apply(
        self,
        paper: PaperRecord,
        action: Union[ReviewAction, str],
        actor: Actor,
        note: Optional[str] = None,
        **changes,
    ) -> PaperRecord:
        """
        Apply ``action`` to the snapshot ``paper`` the actor was looking at.

        Args:
            paper: Record as last read by the actor; its version is the expected version
            action: Workflow action
            actor: Acting user
            note: Comment / rejection reason / revision notes
            **changes: Author edits carried by a resubmission (RESUBMIT_EDITABLE only)

        Returns:
            The stored record after the transition
        """
        return self.apply_by_id(
            paper.id, action, actor, note, expected_version=paper.version, **changes
        )

    def apply_by_id(
        self,
        paper_id: str,
        action: Union[ReviewAction, str],
        actor: Actor,
        note: Optional[str] = None,
        *,
        expected_version: Optional[int] = None,
        **changes,
    ) -> PaperRecord:
        action = normalize_action(action)
        current = self.store.get(paper_id)
        if expected_version is not None and current.version != int(expected_version):
            raise ConflictError(
                f"paper {paper_id} changed since it was read "
                f"(seen v{expected_version}, now v{current.version})",
                details={"expected_version": expected_version, "version": current.version},
            )

        base = current
        if changes:
            self._check_changes(action, changes)
            self.engine.authorize(current, action, actor)
            base = current.evolve(**changes)
        updated = self.engine.transition(base, action, actor, note, now=self._clock())
        saved = self.store.save(updated, expected_version=current.version)

        logger.info(
            "paper %s %s by %s(%s): %s -> %s",
            paper_id,
            action.value,
            actor.role.value,
            actor.id,
            current.status.value,
            saved.status.value,
        )
        self.notify(
            TransitionEvent(
                paper_id=saved.id,
                from_status=current.status,
                to_status=saved.status,
                actor_id=actor.id,
                action=action,
            )
        )
        return saved

    @staticmethod
    def _check_changes(action: ReviewAction, changes: Dict[str, Any]) -> None:
        if action != ReviewAction.RESUBMIT:
            raise ValidationError(
                f"field edits are only accepted with a resubmission, not {action.value}",
                details={"action": action.value, "fields": sorted(changes)},
            )
        unknown = sorted(set(changes) - set(RESUBMIT_EDITABLE))
        if unknown:
            raise ValidationError(
                f"fields cannot be edited on resubmission: {', '.join(unknown)}",
                details={"fields": unknown},
            )

    def try_apply(
        self,
        paper: PaperRecord,
        action: Union[ReviewAction, str],
        actor: Actor,
        note: Optional[str] = None,
        **changes,
    ) -> ActionResult[PaperRecord]:
        """Same as ``apply`` but returns the error as a value."""
        try:
            return ActionResult.success(self.apply(paper, action, actor, note, **changes))
        except WorkflowError as exc:
            return ActionResult.failure(exc, paper_id=paper.id)

    def notify(self, event: TransitionEvent) -> None:
        """Fire the hook; its failures are logged and never reach the caller."""
        try:
            self.notifier.notify(event)
        except Exception:
            logger.exception("notification hook failed for paper %s", event.paper_id)
