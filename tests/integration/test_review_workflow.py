"""End-to-end review workflow on the SQLAlchemy stores."""

from __future__ import annotations

import threading

import pytest

from paperportal.application.services.research_service import ResearchService
from paperportal.core.abstractions.errors import (
    ConflictError,
    InvalidTransitionError,
    UnauthorizedTransitionError,
    ValidationError,
)
from paperportal.domain.paper import Actor, PaperStatus, ReviewAction, Role
from paperportal.infrastructure.service_factory import build_research_service

STUDENT = Actor(id="stu-1", role=Role.STUDENT)
FACULTY = Actor(id="fac-1", role=Role.FACULTY)
EDITOR = Actor(id="ed-1", role=Role.STAFF)
EDITOR_2 = Actor(id="ed-2", role=Role.STAFF)
ADMIN = Actor(id="adm-1", role=Role.ADMIN)


@pytest.fixture
def service(tmp_path) -> ResearchService:
    svc = build_research_service(f"sqlite:///{tmp_path / 'workflow.db'}", seed_reference=True)
    svc.directory.add_user(email="f@u.edu", full_name="Faculty", role="faculty", user_id="fac-1")
    svc.directory.add_user(email="e@u.edu", full_name="Editor", role="staff", user_id="ed-1")
    svc.directory.add_user(email="e2@u.edu", full_name="Editor 2", role="staff", user_id="ed-2")
    svc.directory.add_user(email="a@u.edu", full_name="Admin", role="admin", user_id="adm-1")
    return svc


def _submit(service, faculty_id="fac-1"):
    return service.submit_research(
        author_id=STUDENT.id,
        title="Thermal Imaging for Crop Health",
        abstract="Drone survey.",
        category="data-science",
        keywords=["drones", "agriculture"],
        faculty_id=faculty_id,
    )


def test_submission_to_publication(service):
    paper = _submit(service)
    assert paper.status == PaperStatus.PENDING_FACULTY

    paper = service.approve(paper.id, FACULTY, "Looks good")
    assert paper.status == PaperStatus.PENDING_EDITOR
    assert len(paper.review_trail) == 1

    with pytest.raises(UnauthorizedTransitionError):
        service.approve(paper.id, ADMIN, "skip editor")

    paper = service.approve(paper.id, EDITOR, "formatted")
    paper = service.approve(paper.id, ADMIN, "Approved for publication")
    assert paper.status == PaperStatus.APPROVED
    published_at = paper.published_date
    assert published_at is not None

    with pytest.raises(InvalidTransitionError):
        service.approve(paper.id, ADMIN, "again")
    assert service.get_research_by_id(paper.id).published_date == published_at

    assert service.repository_stats()["total_papers"] == 1
    assert [p.id for p in service.get_published_research()] == [paper.id]


def test_blank_revision_notes_leave_record_unchanged(service):
    paper = _submit(service)
    with pytest.raises(ValidationError):
        service.request_revision(paper.id, FACULTY, "   ")
    current = service.get_research_by_id(paper.id)
    assert current.status == PaperStatus.PENDING_FACULTY
    assert current.version == paper.version


def test_stale_reader_gets_conflict(service):
    paper = _submit(service, faculty_id=None)

    service.approve(paper.id, EDITOR, "ok", expected_version=paper.version)
    with pytest.raises(ConflictError):
        service.approve(paper.id, EDITOR_2, "also ok", expected_version=paper.version)

    current = service.get_research_by_id(paper.id)
    assert current.status == PaperStatus.PENDING_ADMIN
    assert len(current.review_trail) == 1


def test_racing_reviewers_produce_one_transition(service):
    paper = _submit(service, faculty_id=None)
    barrier = threading.Barrier(2)
    outcomes = []

    def review(actor):
        barrier.wait()
        try:
            service.approve(paper.id, actor, "race", expected_version=paper.version)
            outcomes.append("ok")
        except ConflictError:
            outcomes.append("conflict")

    threads = [threading.Thread(target=review, args=(a,)) for a in (EDITOR, EDITOR_2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["conflict", "ok"]
    current = service.get_research_by_id(paper.id)
    assert current.version == paper.version + 1
    assert len(current.review_trail) == 1


def test_rejection_and_resubmission_keep_history(service):
    paper = _submit(service)
    service.reject(paper.id, FACULTY, "Methodology unclear")

    resubmitted = service.resubmit(paper.id, STUDENT, "clarified", abstract="Drone survey, v2.")

    assert resubmitted.status == PaperStatus.PENDING_FACULTY
    assert resubmitted.abstract == "Drone survey, v2."
    assert [e.action for e in resubmitted.review_trail] == [
        ReviewAction.REJECT,
        ReviewAction.RESUBMIT,
    ]
    assert resubmitted.review_trail[0].note == "Methodology unclear"


def test_resubmit_rejects_non_editable_fields(service):
    paper = _submit(service)
    service.reject(paper.id, FACULTY, "no")
    with pytest.raises(ValidationError):
        service.resubmit(paper.id, STUDENT, None, author_id="stu-2")


def test_inbox_rows_follow_transitions(service):
    paper = _submit(service)
    assert [n["type"] for n in service.get_notifications("fac-1")] == ["submission"]

    service.request_revision(paper.id, FACULTY, "add baseline")
    service.resubmit(paper.id, STUDENT, "added")

    titles = [n["title"] for n in service.get_notifications("fac-1")]
    assert titles[0] == "Research Revised"
    assert [n["type"] for n in service.get_notifications(STUDENT.id)] == ["revision"]


def test_repeated_reads_return_the_same_records(service):
    first_paper = _submit(service)
    service.approve(first_paper.id, FACULTY, "ok")
    _submit(service, faculty_id=None)

    first = [p.to_dict() for p in service.get_all_research()]
    second = [p.to_dict() for p in service.get_all_research()]

    assert first == second
    assert len(first) == 2
    assert service.get_research_by_id(first_paper.id).version == 2
