"""Every (state, role, action) triple against the transition table."""

from __future__ import annotations

import itertools
from datetime import datetime, timezone

import pytest

from paperportal.application.services.review_action_processor import ReviewActionProcessor
from paperportal.core.abstractions.errors import (
    InvalidTransitionError,
    UnauthorizedTransitionError,
)
from paperportal.domain.paper import Actor, PaperRecord, PaperStatus, ReviewAction, ReviewEntry, Role
from paperportal.infrastructure.stores.memory_paper_store import InMemoryResearchPaperStore

T0 = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
T1 = datetime(2024, 5, 2, 9, 0, tzinfo=timezone.utc)

ACTORS = {
    Role.STUDENT: Actor(id="stu-1", role=Role.STUDENT),
    Role.FACULTY: Actor(id="fac-1", role=Role.FACULTY),
    Role.STAFF: Actor(id="ed-1", role=Role.STAFF),
    Role.ADMIN: Actor(id="adm-1", role=Role.ADMIN),
}

_STAGE_STATUS = {
    "faculty": PaperStatus.PENDING_FACULTY,
    "editor": PaperStatus.PENDING_EDITOR,
    "admin": PaperStatus.PENDING_ADMIN,
}
_STAGE_ROLE = {"faculty": Role.FACULTY, "editor": Role.STAFF, "admin": Role.ADMIN}

A, R, V, S = (
    ReviewAction.APPROVE,
    ReviewAction.REJECT,
    ReviewAction.REQUEST_REVISION,
    ReviewAction.RESUBMIT,
)

# case -> {(role, action): destination}; every other pair must fail
LEGAL = {
    "pending_faculty": {
        (Role.FACULTY, A): PaperStatus.PENDING_EDITOR,
        (Role.FACULTY, R): PaperStatus.REJECTED,
        (Role.FACULTY, V): PaperStatus.REVISION_REQUIRED,
    },
    "pending_editor": {
        (Role.STAFF, A): PaperStatus.PENDING_ADMIN,
        (Role.STAFF, R): PaperStatus.REJECTED,
        (Role.STAFF, V): PaperStatus.REVISION_REQUIRED,
    },
    "pending_admin": {
        (Role.ADMIN, A): PaperStatus.APPROVED,
        (Role.ADMIN, R): PaperStatus.REJECTED,
        (Role.ADMIN, V): PaperStatus.REVISION_REQUIRED,
    },
    "approved": {},
    "revision_required@faculty": {
        (Role.FACULTY, R): PaperStatus.REJECTED,
        (Role.STUDENT, S): PaperStatus.PENDING_FACULTY,
    },
    "revision_required@editor": {
        (Role.STAFF, A): PaperStatus.PENDING_ADMIN,
        (Role.STAFF, R): PaperStatus.REJECTED,
        (Role.STAFF, V): PaperStatus.REVISION_REQUIRED,
        (Role.STUDENT, S): PaperStatus.PENDING_EDITOR,
    },
    "revision_required@admin": {
        (Role.ADMIN, R): PaperStatus.REJECTED,
        (Role.STUDENT, S): PaperStatus.PENDING_ADMIN,
    },
    "rejected@faculty": {(Role.STUDENT, S): PaperStatus.PENDING_FACULTY},
    "rejected@editor": {(Role.STUDENT, S): PaperStatus.PENDING_EDITOR},
    "rejected@admin": {(Role.STUDENT, S): PaperStatus.PENDING_ADMIN},
}


def _record(case: str) -> PaperRecord:
    data = {
        "id": "p-matrix",
        "title": "Solar Charging Kiosk",
        "abstract": "Prototype and field test.",
        "category": "software-engineering",
        "author_id": "stu-1",
        "faculty_id": "fac-1",
        "submission_date": T0,
    }
    if "@" not in case:
        data["status"] = PaperStatus(case)
        if data["status"] == PaperStatus.APPROVED:
            data["published_date"] = T1
        return PaperRecord(**data)

    status_name, stage = case.split("@")
    status = PaperStatus(status_name)
    flag_role = _STAGE_ROLE[stage]
    data["status"] = status
    data["review_trail"] = (
        ReviewEntry(
            actor_id=ACTORS[flag_role].id,
            actor_role=flag_role,
            action=ReviewAction.REJECT if status == PaperStatus.REJECTED else V,
            note="needs work",
            timestamp=T1,
            from_status=_STAGE_STATUS[stage],
            to_status=status,
        ),
    )
    return PaperRecord(**data)


MATRIX = list(itertools.product(LEGAL, list(Role), [A, R, V, S]))


@pytest.mark.parametrize("case,role,action", MATRIX, ids=lambda v: getattr(v, "value", v))
def test_transition_matrix(case, role, action):
    store = InMemoryResearchPaperStore()
    paper = store.add(_record(case))
    processor = ReviewActionProcessor(store, clock=lambda: T1)
    expected = LEGAL[case].get((role, action))

    if expected is not None:
        saved = processor.apply(paper, action, ACTORS[role], "note")
        assert saved.status == expected
        assert saved.version == paper.version + 1
        assert len(saved.review_trail) == len(paper.review_trail) + 1
        return

    with pytest.raises((InvalidTransitionError, UnauthorizedTransitionError)):
        processor.apply(paper, action, ACTORS[role], "note")
    current = store.get(paper.id)
    assert current.status == paper.status
    assert current.version == paper.version
    assert current.review_trail == paper.review_trail
    assert current.published_date == paper.published_date
