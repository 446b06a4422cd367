# src/paperportal/application/services/workflow_engine.py
"""
Review workflow state machine.

Sequential review: Faculty -> Editor (staff) -> Admin -> Published.

The engine is pure: it never reads ambient state or touches storage. Callers
hand it the current record snapshot and get back either the destination state
or a typed ``WorkflowError``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import IntEnum
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

from paperportal.core.abstractions.errors import (
    InvalidTransitionError,
    UnauthorizedTransitionError,
    ValidationError,
)
from paperportal.domain.paper import (
    Actor,
    PaperRecord,
    PaperStatus,
    ReviewAction,
    ReviewEntry,
    Role,
    normalize_action,
)

logger = logging.getLogger(__name__)


class Stage(IntEnum):
    """Position of a record in the sequential review."""

    FACULTY = 0
    EDITOR = 1
    ADMIN = 2
    PUBLISHED = 3


STAGE_LABELS: Dict[Stage, str] = {
    Stage.FACULTY: "Faculty Review",
    Stage.EDITOR: "Editor Review",
    Stage.ADMIN: "Admin Review",
    Stage.PUBLISHED: "Published",
}

_STATUS_STAGE: Dict[PaperStatus, Stage] = {
    PaperStatus.PENDING_FACULTY: Stage.FACULTY,
    PaperStatus.PENDING_EDITOR: Stage.EDITOR,
    PaperStatus.PENDING_ADMIN: Stage.ADMIN,
    PaperStatus.APPROVED: Stage.PUBLISHED,
}

_STAGE_OWNER: Dict[Stage, Role] = {
    Stage.FACULTY: Role.FACULTY,
    Stage.EDITOR: Role.STAFF,
    Stage.ADMIN: Role.ADMIN,
}

_ROLE_STAGE: Dict[Role, Stage] = {role: stage for stage, role in _STAGE_OWNER.items()}

# (role, source) -> destination for approve. revision_required is only a
# valid source when the editor stage flagged the record.
APPROVE_EDGES: Dict[Tuple[Role, PaperStatus], PaperStatus] = {
    (Role.FACULTY, PaperStatus.PENDING_FACULTY): PaperStatus.PENDING_EDITOR,
    (Role.STAFF, PaperStatus.PENDING_EDITOR): PaperStatus.PENDING_ADMIN,
    (Role.STAFF, PaperStatus.REVISION_REQUIRED): PaperStatus.PENDING_ADMIN,
    (Role.ADMIN, PaperStatus.PENDING_ADMIN): PaperStatus.APPROVED,
}

REVIEWER_ROLES: FrozenSet[Role] = frozenset({Role.FACULTY, Role.STAFF, Role.ADMIN})
REVIEWER_ACTIONS: Tuple[ReviewAction, ...] = (
    ReviewAction.APPROVE,
    ReviewAction.REJECT,
    ReviewAction.REQUEST_REVISION,
)
RESUBMITTABLE: FrozenSet[PaperStatus] = frozenset(
    {PaperStatus.REVISION_REQUIRED, PaperStatus.REJECTED}
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def stage_of(status: PaperStatus) -> Optional[Stage]:
    """Stage for an in-flight or published status; None for revision/rejected."""
    return _STATUS_STAGE.get(status)


def initial_status(faculty_id: Optional[str]) -> PaperStatus:
    """Advisor assigned -> faculty review first; otherwise straight to the editor."""
    return PaperStatus.PENDING_FACULTY if faculty_id else PaperStatus.PENDING_EDITOR


def authority_stage(role: Role) -> Optional[Stage]:
    return _ROLE_STAGE.get(role)


def next_stage_label(status: PaperStatus) -> str:
    stage = stage_of(status)
    return STAGE_LABELS[stage] if stage is not None else "Unknown"


class WorkflowEngine:
    """
    Governs status transitions, role permissions and terminal states.

    Legality is decided in three steps:
    1. which roles may perform the action from the current state at all
       (none -> InvalidTransitionError)
    2. whether the actor holds one of those roles and owns the record where
       ownership matters (faculty advisor, submitting student)
       (no -> UnauthorizedTransitionError)
    3. whether the mandatory note is present (no -> ValidationError)
    """

    def initial_status(self, faculty_id: Optional[str]) -> PaperStatus:
        return initial_status(faculty_id)

    # --- stages ---

    def flagged_stage(self, record: PaperRecord) -> Stage:
        """Stage whose reviewer most recently rejected or flagged the record."""
        for entry in reversed(record.review_trail):
            if entry.action not in (ReviewAction.REJECT, ReviewAction.REQUEST_REVISION):
                continue
            stage = stage_of(entry.from_status)
            if stage is not None and stage != Stage.PUBLISHED:
                return stage
        stage = stage_of(initial_status(record.faculty_id))
        return stage if stage is not None else Stage.EDITOR

    def stage_of_record(self, record: PaperRecord) -> Stage:
        stage = stage_of(record.status)
        if stage is not None:
            return stage
        return self.flagged_stage(record)

    def resubmission_status(self, record: PaperRecord) -> PaperStatus:
        stage = self.flagged_stage(record)
        if stage == Stage.FACULTY:
            return initial_status(record.faculty_id)
        if stage == Stage.ADMIN:
            return PaperStatus.PENDING_ADMIN
        return PaperStatus.PENDING_EDITOR

    # --- permissions ---

    def allowed_roles(self, record: PaperRecord, action: ReviewAction) -> FrozenSet[Role]:
        """Roles that may perform ``action`` on ``record`` in its current state."""
        status = record.status
        if action == ReviewAction.RESUBMIT:
            return frozenset({Role.STUDENT}) if status in RESUBMITTABLE else frozenset()
        if status.is_terminal:
            return frozenset()

        if status == PaperStatus.REVISION_REQUIRED:
            owner = _STAGE_OWNER[self.flagged_stage(record)]
            if action == ReviewAction.REJECT:
                return frozenset({owner})
            # approve and request_revision share their source states
            if (owner, status) in APPROVE_EDGES:
                return frozenset({owner})
            return frozenset()

        stage = stage_of(status)
        if stage is None or stage not in _STAGE_OWNER:
            return frozenset()
        return frozenset({_STAGE_OWNER[stage]})

    def review_statuses(self, role: Role) -> FrozenSet[PaperStatus]:
        """Every state from which ``role`` may act on some record."""
        if role == Role.STUDENT:
            return RESUBMITTABLE
        stage = _ROLE_STAGE[role]
        statuses = {s for s, st in _STATUS_STAGE.items() if st == stage}
        statuses.add(PaperStatus.REVISION_REQUIRED)
        return frozenset(statuses)

    def authorize(self, record: PaperRecord, action: ReviewAction, actor: Actor) -> None:
        """Raise unless ``actor`` may perform ``action`` now (note not checked)."""
        status = record.status
        if status == PaperStatus.APPROVED:
            raise InvalidTransitionError(
                f"paper {record.id} is approved; no further transitions",
                details={"status": status.value, "action": action.value},
            )
        if status == PaperStatus.REJECTED and action != ReviewAction.RESUBMIT:
            raise InvalidTransitionError(
                f"paper {record.id} is rejected; only the author may resubmit",
                details={"status": status.value, "action": action.value},
            )

        roles = self.allowed_roles(record, action)
        if not roles:
            raise InvalidTransitionError(
                f"cannot {action.value} a paper in status {status.value}",
                details={"status": status.value, "action": action.value},
            )
        if actor.role not in roles:
            raise UnauthorizedTransitionError(
                f"role {actor.role.value} cannot {action.value} a paper in status {status.value}",
                details={
                    "status": status.value,
                    "action": action.value,
                    "role": actor.role.value,
                },
            )
        if actor.role == Role.FACULTY and actor.id != record.faculty_id:
            raise UnauthorizedTransitionError(
                f"faculty {actor.id} is not the assigned reviewer of paper {record.id}",
                details={"faculty_id": record.faculty_id, "actor_id": actor.id},
            )
        if actor.role == Role.STUDENT and actor.id != record.author_id:
            raise UnauthorizedTransitionError(
                f"only the author may resubmit paper {record.id}",
                details={"author_id": record.author_id, "actor_id": actor.id},
            )

    def destination(self, record: PaperRecord, action: ReviewAction, actor: Actor) -> PaperStatus:
        if action == ReviewAction.APPROVE:
            return APPROVE_EDGES[(actor.role, record.status)]
        if action == ReviewAction.REJECT:
            return PaperStatus.REJECTED
        if action == ReviewAction.REQUEST_REVISION:
            return PaperStatus.REVISION_REQUIRED
        return self.resubmission_status(record)

    def check(
        self,
        record: PaperRecord,
        action: Union[ReviewAction, str],
        actor: Actor,
        note: Optional[str] = None,
    ) -> PaperStatus:
        """Validate a transition and return its destination state."""
        action = normalize_action(action)
        self.authorize(record, action, actor)
        if action in REVIEWER_ACTIONS and not (note or "").strip():
            raise ValidationError(
                f"a note is required to {action.value.replace('_', ' ')}",
                details={"action": action.value},
            )
        return self.destination(record, action, actor)

    def available_actions(self, record: PaperRecord, actor: Actor) -> List[ReviewAction]:
        actions: List[ReviewAction] = []
        for action in (*REVIEWER_ACTIONS, ReviewAction.RESUBMIT):
            try:
                self.authorize(record, action, actor)
            except (InvalidTransitionError, UnauthorizedTransitionError):
                continue
            actions.append(action)
        return actions

    def can_act(self, record: PaperRecord, role: Role, actor_id: Optional[str] = None) -> bool:
        """Whether ``role`` has any legal action on ``record``.

        Without ``actor_id`` the ownership checks assume the actor owns the
        record (assigned advisor / author).
        """
        if actor_id is None:
            actor_id = {
                Role.FACULTY: record.faculty_id,
                Role.STUDENT: record.author_id,
            }.get(role) or "reviewer"
        actor = Actor(id=actor_id, role=role)
        return bool(self.available_actions(record, actor))

    # --- transitions ---

    def transition(
        self,
        record: PaperRecord,
        action: Union[ReviewAction, str],
        actor: Actor,
        note: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> PaperRecord:
        """Apply a legal transition and return the new record value."""
        action = normalize_action(action)
        target = self.check(record, action, actor, note)
        ts = now or _utcnow()
        entry = ReviewEntry(
            actor_id=actor.id,
            actor_role=actor.role,
            action=action,
            note=(note or "").strip(),
            timestamp=ts,
            from_status=record.status,
            to_status=target,
        )
        changes = {"status": target}
        if target == PaperStatus.APPROVED and record.published_date is None:
            changes["published_date"] = ts
        logger.debug(
            "paper %s: %s -> %s by %s(%s)",
            record.id,
            record.status.value,
            target.value,
            actor.role.value,
            actor.id,
        )
        return record.with_entry(entry, **changes)
