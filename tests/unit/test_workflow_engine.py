from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from paperportal.application.services.workflow_engine import (
    Stage,
    WorkflowEngine,
    next_stage_label,
    stage_of,
)
from paperportal.core.abstractions.errors import (
    InvalidTransitionError,
    UnauthorizedTransitionError,
    ValidationError,
)
from paperportal.domain.paper import Actor, PaperRecord, PaperStatus, ReviewAction, Role

T0 = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

STUDENT = Actor(id="stu-1", role=Role.STUDENT)
FACULTY = Actor(id="fac-1", role=Role.FACULTY)
OTHER_FACULTY = Actor(id="fac-2", role=Role.FACULTY)
EDITOR = Actor(id="ed-1", role=Role.STAFF)
ADMIN = Actor(id="adm-1", role=Role.ADMIN)


@pytest.fixture
def engine() -> WorkflowEngine:
    return WorkflowEngine()


def _paper(engine: WorkflowEngine, faculty_id=None, **overrides) -> PaperRecord:
    data = {
        "title": "Federated Learning on Lab PCs",
        "abstract": "An experiment.",
        "category": "artificial-intelligence",
        "author_id": STUDENT.id,
        "faculty_id": faculty_id,
        "status": engine.initial_status(faculty_id),
        "submission_date": T0,
    }
    data.update(overrides)
    return PaperRecord(**data)


def _step(engine, record, action, actor, note="ok", minutes=1):
    return engine.transition(record, action, actor, note, now=T0 + timedelta(minutes=minutes))


class TestInitialStatus:
    def test_with_advisor_starts_at_faculty(self, engine):
        assert engine.initial_status("fac-1") == PaperStatus.PENDING_FACULTY

    def test_without_advisor_starts_at_editor(self, engine):
        assert engine.initial_status(None) == PaperStatus.PENDING_EDITOR
        assert engine.initial_status("") == PaperStatus.PENDING_EDITOR


class TestHappyPath:
    def test_faculty_approval_moves_to_editor(self, engine):
        paper = _paper(engine, faculty_id="fac-1")
        assert paper.status == PaperStatus.PENDING_FACULTY

        updated = _step(engine, paper, ReviewAction.APPROVE, FACULTY, "Looks good")

        assert updated.status == PaperStatus.PENDING_EDITOR
        assert len(updated.review_trail) == 1
        entry = updated.review_trail[0]
        assert entry.note == "Looks good"
        assert entry.from_status == PaperStatus.PENDING_FACULTY
        assert entry.to_status == PaperStatus.PENDING_EDITOR
        assert entry.actor_role == Role.FACULTY
        # input snapshot untouched
        assert paper.status == PaperStatus.PENDING_FACULTY
        assert paper.review_trail == ()

    def test_full_pipeline_sets_published_date_once(self, engine):
        paper = _paper(engine, faculty_id="fac-1")
        paper = _step(engine, paper, "approve", FACULTY, minutes=1)
        paper = _step(engine, paper, "approve", EDITOR, minutes=2)
        assert paper.status == PaperStatus.PENDING_ADMIN
        assert paper.published_date is None

        paper = _step(engine, paper, "approve", ADMIN, "Approved for publication", minutes=3)
        assert paper.status == PaperStatus.APPROVED
        assert paper.published_date == T0 + timedelta(minutes=3)
        assert [e.to_status for e in paper.review_trail] == [
            PaperStatus.PENDING_EDITOR,
            PaperStatus.PENDING_ADMIN,
            PaperStatus.APPROVED,
        ]

    def test_second_admin_approve_is_invalid(self, engine):
        paper = _paper(engine, status=PaperStatus.PENDING_ADMIN)
        published = _step(engine, paper, "approve", ADMIN, "Approved for publication")

        with pytest.raises(InvalidTransitionError):
            _step(engine, published, "approve", ADMIN, "again")

    def test_engine_does_not_bump_version(self, engine):
        paper = _paper(engine)
        assert _step(engine, paper, "approve", EDITOR).version == paper.version


class TestPermissions:
    def test_staff_cannot_approve_faculty_stage(self, engine):
        paper = _paper(engine, faculty_id="fac-1")
        with pytest.raises(UnauthorizedTransitionError):
            _step(engine, paper, "approve", EDITOR)

    def test_only_assigned_faculty_may_review(self, engine):
        paper = _paper(engine, faculty_id="fac-1")
        with pytest.raises(UnauthorizedTransitionError):
            _step(engine, paper, "approve", OTHER_FACULTY)

    def test_student_cannot_approve(self, engine):
        with pytest.raises(UnauthorizedTransitionError):
            _step(engine, _paper(engine), "approve", STUDENT)

    def test_admin_cannot_skip_editor(self, engine):
        with pytest.raises(UnauthorizedTransitionError):
            _step(engine, _paper(engine), "approve", ADMIN)

    def test_resubmit_from_pending_is_invalid(self, engine):
        with pytest.raises(InvalidTransitionError):
            _step(engine, _paper(engine), "resubmitted", STUDENT)

    def test_only_author_may_resubmit(self, engine):
        paper = _step(engine, _paper(engine), "reject", EDITOR, "out of scope")
        with pytest.raises(UnauthorizedTransitionError):
            _step(engine, paper, "resubmitted", Actor(id="stu-2", role=Role.STUDENT))


class TestNotes:
    @pytest.mark.parametrize("action", ["approve", "reject", "request_revision"])
    @pytest.mark.parametrize("note", ["", "   ", None])
    def test_reviewer_actions_require_note(self, engine, action, note):
        paper = _paper(engine, faculty_id="fac-1")
        with pytest.raises(ValidationError):
            engine.transition(paper, action, FACULTY, note, now=T0)

    def test_resubmit_note_is_optional(self, engine):
        paper = _step(engine, _paper(engine), "request_revision", EDITOR, "fix refs")
        resubmitted = engine.transition(paper, "resubmitted", STUDENT, None, now=T0)
        assert resubmitted.review_trail[-1].note == ""

    def test_permission_checked_before_note(self, engine):
        paper = _paper(engine, faculty_id="fac-1")
        with pytest.raises(UnauthorizedTransitionError):
            engine.transition(paper, "approve", EDITOR, "", now=T0)


class TestRevisionCycle:
    def test_rejection_then_resubmit_returns_to_faculty(self, engine):
        paper = _paper(engine, faculty_id="fac-1")
        rejected = _step(engine, paper, "reject", FACULTY, "Methodology unclear", minutes=1)
        assert rejected.status == PaperStatus.REJECTED

        resubmitted = _step(engine, rejected, "resubmitted", STUDENT, "rewrote section 3", minutes=2)

        assert resubmitted.status == PaperStatus.PENDING_FACULTY
        assert resubmitted.review_trail[-1].action == ReviewAction.RESUBMIT
        assert resubmitted.review_trail[0].note == "Methodology unclear"
        assert len(resubmitted.review_trail) == 2

    def test_editor_flag_returns_to_editor(self, engine):
        paper = _step(engine, _paper(engine, faculty_id="fac-1"), "approve", FACULTY, minutes=1)
        flagged = _step(engine, paper, "request_revision", EDITOR, "format", minutes=2)
        assert engine.flagged_stage(flagged) == Stage.EDITOR

        back = _step(engine, flagged, "resubmitted", STUDENT, minutes=3)
        assert back.status == PaperStatus.PENDING_EDITOR

    def test_admin_flag_returns_to_admin(self, engine):
        paper = _paper(engine, status=PaperStatus.PENDING_ADMIN)
        flagged = _step(engine, paper, "request_revision", ADMIN, "title")
        back = _step(engine, flagged, "resubmitted", STUDENT, minutes=2)
        assert back.status == PaperStatus.PENDING_ADMIN

    def test_staff_may_approve_editor_flagged_revision(self, engine):
        flagged = _step(engine, _paper(engine), "request_revision", EDITOR, "minor")
        approved = _step(engine, flagged, "approve", EDITOR, "fine after all", minutes=2)
        assert approved.status == PaperStatus.PENDING_ADMIN

    def test_faculty_flagged_revision_cannot_be_approved_by_staff(self, engine):
        paper = _paper(engine, faculty_id="fac-1")
        flagged = _step(engine, paper, "request_revision", FACULTY, "more data")
        with pytest.raises(InvalidTransitionError):
            _step(engine, flagged, "approve", EDITOR, minutes=2)
        with pytest.raises(InvalidTransitionError):
            _step(engine, flagged, "approve", FACULTY, minutes=2)

    def test_reject_from_revision_only_by_flagging_role(self, engine):
        flagged = _step(engine, _paper(engine), "request_revision", EDITOR, "minor")
        with pytest.raises(UnauthorizedTransitionError):
            _step(engine, flagged, "reject", ADMIN, "no", minutes=2)
        rejected = _step(engine, flagged, "reject", EDITOR, "no", minutes=2)
        assert rejected.status == PaperStatus.REJECTED


class TestFlaggedStageWithoutTrail:
    """Imported rows can be rejected or flagged with no review history."""

    def _imported(self, faculty_id, status):
        return PaperRecord.from_dict(
            {
                "id": "legacy-1",
                "title": "Library Queue Simulation",
                "abstract": "Discrete event model.",
                "category": "data-science",
                "author_id": STUDENT.id,
                "faculty_id": faculty_id,
                "status": status,
            }
        )

    @pytest.mark.parametrize("status", ["rejected", "revision_required"])
    def test_falls_back_to_faculty_stage_with_advisor(self, engine, status):
        paper = self._imported("fac-1", status)
        assert paper.review_trail == ()
        assert engine.flagged_stage(paper) == Stage.FACULTY
        assert engine.stage_of_record(paper) == Stage.FACULTY

        back = _step(engine, paper, "resubmitted", STUDENT, None)
        assert back.status == PaperStatus.PENDING_FACULTY

    @pytest.mark.parametrize("status", ["rejected", "revision_required"])
    def test_falls_back_to_editor_stage_without_advisor(self, engine, status):
        paper = self._imported(None, status)
        assert engine.flagged_stage(paper) == Stage.EDITOR
        back = _step(engine, paper, "resubmitted", STUDENT, None)
        assert back.status == PaperStatus.PENDING_EDITOR

    def test_assigned_faculty_keeps_the_revision(self, engine):
        paper = self._imported("fac-1", "revision_required")

        assert engine.allowed_roles(paper, ReviewAction.REJECT) == frozenset({Role.FACULTY})
        with pytest.raises(UnauthorizedTransitionError):
            _step(engine, paper, "reject", EDITOR, "no")
        rejected = _step(engine, paper, "reject", FACULTY, "still incomplete")
        assert rejected.status == PaperStatus.REJECTED


class TestTerminalStates:
    @pytest.mark.parametrize("action", ["approve", "reject", "request_revision"])
    @pytest.mark.parametrize("actor", [FACULTY, EDITOR, ADMIN])
    def test_approved_accepts_no_reviewer_action(self, engine, action, actor):
        paper = _paper(engine, faculty_id="fac-1", status=PaperStatus.APPROVED, published_date=T0)
        with pytest.raises(InvalidTransitionError):
            engine.transition(paper, action, actor, "note", now=T0)

    def test_approved_cannot_be_resubmitted(self, engine):
        paper = _paper(engine, status=PaperStatus.APPROVED, published_date=T0)
        with pytest.raises(InvalidTransitionError):
            engine.transition(paper, "resubmitted", STUDENT, None, now=T0)

    @pytest.mark.parametrize("actor", [FACULTY, EDITOR, ADMIN])
    def test_rejected_accepts_only_resubmit(self, engine, actor):
        paper = _paper(engine, faculty_id="fac-1", status=PaperStatus.REJECTED)
        with pytest.raises(InvalidTransitionError):
            engine.transition(paper, "approve", actor, "note", now=T0)


class TestQueries:
    def test_available_actions(self, engine):
        paper = _paper(engine, faculty_id="fac-1")
        assert engine.available_actions(paper, FACULTY) == [
            ReviewAction.APPROVE,
            ReviewAction.REJECT,
            ReviewAction.REQUEST_REVISION,
        ]
        assert engine.available_actions(paper, EDITOR) == []
        assert engine.available_actions(paper, STUDENT) == []

    def test_can_act_assumes_ownership_without_actor_id(self, engine):
        paper = _paper(engine, faculty_id="fac-1")
        assert engine.can_act(paper, Role.FACULTY)
        assert not engine.can_act(paper, Role.FACULTY, "fac-2")

    def test_stage_labels(self):
        assert next_stage_label(PaperStatus.PENDING_EDITOR) == "Editor Review"
        assert next_stage_label(PaperStatus.PENDING_ADMIN) == "Admin Review"
        assert next_stage_label(PaperStatus.APPROVED) == "Published"
        assert next_stage_label(PaperStatus.REJECTED) == "Unknown"
        assert stage_of(PaperStatus.REVISION_REQUIRED) is None
