from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from paperportal.application.services.query_filter import BrowseSpec
from paperportal.application.services.research_service import ResearchService
from paperportal.application.services.workflow_engine import (
    STAGE_LABELS,
    WorkflowEngine,
    next_stage_label,
)
from paperportal.domain.paper import Actor, PaperRecord
from paperportal.infrastructure.service_factory import build_research_service
from paperportal.utils.logging_config import LogFiles, Logger, set_trace_id

router = APIRouter()

_service: Optional[ResearchService] = None


def _get_service() -> ResearchService:
    """Lazy initialization of the research service."""
    global _service
    if _service is None:
        _service = build_research_service()
    return _service


_engine = WorkflowEngine()


def _paper_dict(record: PaperRecord) -> Dict[str, Any]:
    data = record.to_dict()
    stage = _engine.stage_of_record(record)
    data["stage"] = int(stage)
    data["stage_label"] = STAGE_LABELS[stage]
    return data


# --- request / response models ---


class SubmitResearchRequest(BaseModel):
    author_id: str = Field(..., min_length=1)
    title: str = ""
    abstract: str = ""
    category: str = ""
    keywords: Union[List[str], str] = []
    co_authors: Optional[str] = None
    department: Optional[str] = None
    file_ref: Optional[str] = None
    faculty_id: Optional[str] = None


class ActorRequest(BaseModel):
    actor_id: str = Field(..., min_length=1)
    actor_role: str = Field(..., min_length=1)
    version: Optional[int] = Field(None, ge=1)

    def actor(self) -> Actor:
        return Actor(id=self.actor_id, role=self.actor_role)


class ApproveRequest(ActorRequest):
    comments: str = ""


class RejectRequest(ActorRequest):
    reason: str = ""


class RevisionRequest(ActorRequest):
    notes: str = ""


class ResubmitRequest(ActorRequest):
    actor_role: str = "student"
    notes: str = ""
    title: Optional[str] = None
    abstract: Optional[str] = None
    keywords: Optional[Union[List[str], str]] = None
    co_authors: Optional[str] = None
    category: Optional[str] = None
    department: Optional[str] = None
    file_ref: Optional[str] = None


class PaperResponse(BaseModel):
    message: str = ""
    paper: Dict[str, Any]


class PaperListResponse(BaseModel):
    papers: List[Dict[str, Any]]


class MyPapersResponse(BaseModel):
    author_id: str
    papers: List[Dict[str, Any]]
    counts: Dict[str, int]


class ApproveResponse(BaseModel):
    message: str
    status: str
    next_stage: str
    paper: Dict[str, Any]


class ReviewQueueResponse(BaseModel):
    role: str
    filter: str
    papers: List[Dict[str, Any]]
    stats: Dict[str, int]


class CategoryListResponse(BaseModel):
    categories: List[Dict[str, Any]]


class FacultyListResponse(BaseModel):
    faculty_members: List[Dict[str, Any]]


class RepositoryStatsResponse(BaseModel):
    total_papers: int
    total_authors: int
    total_views: int
    total_downloads: int
    years: List[int]


class NotificationListResponse(BaseModel):
    user_id: str
    notifications: List[Dict[str, Any]]


class CounterResponse(BaseModel):
    success: bool = True
    message: str
    view_count: int
    download_count: int


# --- submission & reads ---


@router.post("/research/submit", response_model=PaperResponse, status_code=201)
def submit_research(req: SubmitResearchRequest):
    set_trace_id()
    record = _get_service().submit_research(
        author_id=req.author_id,
        title=req.title,
        abstract=req.abstract,
        category=req.category,
        keywords=req.keywords,
        co_authors=req.co_authors,
        department=req.department,
        file_ref=req.file_ref,
        faculty_id=req.faculty_id,
    )
    Logger.info(f"submitted paper={record.id} status={record.status.value}", file=LogFiles.API)
    return PaperResponse(message="Research submitted successfully", paper=_paper_dict(record))


@router.get("/research/my/papers", response_model=MyPapersResponse)
def get_my_research(author_id: str = Query(..., min_length=1)):
    service = _get_service()
    papers = service.get_my_research(author_id)
    return MyPapersResponse(
        author_id=author_id,
        papers=[_paper_dict(p) for p in papers],
        counts=service.my_status_counts(author_id),
    )


@router.get("/research/all/papers", response_model=PaperListResponse)
def get_all_research(status: Optional[str] = None):
    papers = _get_service().get_all_research(status)
    return PaperListResponse(papers=[_paper_dict(p) for p in papers])


@router.get("/research/review", response_model=ReviewQueueResponse)
def get_review_queue(
    role: str = Query(..., min_length=1),
    status_filter: str = Query("all", alias="filter"),
    search: str = "",
    actor_id: Optional[str] = None,
    category: Optional[str] = None,
):
    queue = _get_service().review_queue(
        role, status_filter=status_filter, search=search, actor_id=actor_id, category=category
    )
    return ReviewQueueResponse(
        role=role,
        filter=status_filter,
        papers=[_paper_dict(p) for p in queue["papers"]],
        stats=queue["stats"],
    )


@router.get("/research/categories", response_model=CategoryListResponse)
def get_categories():
    return CategoryListResponse(categories=_get_service().get_categories())


@router.get("/research/faculty", response_model=FacultyListResponse)
def get_faculty_members(department: Optional[str] = None):
    return FacultyListResponse(faculty_members=_get_service().get_faculty_members(department))


@router.get("/research/faculty/{faculty_id}/papers", response_model=PaperListResponse)
def get_faculty_assigned_papers(faculty_id: str, status: Optional[str] = None):
    papers = _get_service().get_faculty_assigned_papers(faculty_id, status)
    return PaperListResponse(papers=[_paper_dict(p) for p in papers])


@router.get("/research/published", response_model=PaperListResponse)
def get_published_research(
    search: str = "",
    author: str = "",
    category: Optional[str] = None,
    year: Optional[int] = Query(None, ge=1900, le=9999),
    sort: str = "newest",
):
    spec = BrowseSpec(search=search, author=author, category=category, year=year, sort=sort)
    papers = _get_service().get_published_research(spec)
    return PaperListResponse(papers=[_paper_dict(p) for p in papers])


@router.get("/research/published/stats", response_model=RepositoryStatsResponse)
def get_repository_stats():
    return RepositoryStatsResponse(**_get_service().repository_stats())


@router.get("/research/notifications", response_model=NotificationListResponse)
def get_notifications(user_id: str = Query(..., min_length=1), unread_only: bool = False):
    rows = _get_service().get_notifications(user_id, unread_only=unread_only)
    return NotificationListResponse(user_id=user_id, notifications=rows)


@router.get("/research/{paper_id}", response_model=PaperResponse)
def get_research_by_id(paper_id: str):
    return PaperResponse(paper=_paper_dict(_get_service().get_research_by_id(paper_id)))


# --- workflow actions ---


@router.post("/research/{paper_id}/approve", response_model=ApproveResponse)
def approve_research(paper_id: str, req: ApproveRequest):
    set_trace_id()
    record = _get_service().approve(
        paper_id, req.actor(), req.comments, expected_version=req.version
    )
    Logger.info(
        f"approve paper={paper_id} by {req.actor_role}:{req.actor_id} -> {record.status.value}",
        file=LogFiles.API,
    )
    return ApproveResponse(
        message="Research approved successfully",
        status=record.status.value,
        next_stage=next_stage_label(record.status),
        paper=_paper_dict(record),
    )


@router.post("/research/{paper_id}/reject", response_model=PaperResponse)
def reject_research(paper_id: str, req: RejectRequest):
    set_trace_id()
    record = _get_service().reject(paper_id, req.actor(), req.reason, expected_version=req.version)
    Logger.info(f"reject paper={paper_id} by {req.actor_role}:{req.actor_id}", file=LogFiles.API)
    return PaperResponse(message="Research rejected successfully", paper=_paper_dict(record))


@router.post("/research/{paper_id}/revision", response_model=PaperResponse)
def request_revision(paper_id: str, req: RevisionRequest):
    set_trace_id()
    record = _get_service().request_revision(
        paper_id, req.actor(), req.notes, expected_version=req.version
    )
    Logger.info(
        f"revision paper={paper_id} by {req.actor_role}:{req.actor_id}", file=LogFiles.API
    )
    return PaperResponse(message="Revision requested successfully", paper=_paper_dict(record))


@router.post("/research/{paper_id}/resubmit", response_model=PaperResponse)
def resubmit_research(paper_id: str, req: ResubmitRequest):
    set_trace_id()
    edits = req.model_dump(
        exclude_none=True,
        exclude={"actor_id", "actor_role", "version", "notes"},
    )
    record = _get_service().resubmit(
        paper_id, req.actor(), req.notes, expected_version=req.version, **edits
    )
    Logger.info(
        f"resubmit paper={paper_id} by {req.actor_id} -> {record.status.value}", file=LogFiles.API
    )
    return PaperResponse(message="Research updated successfully", paper=_paper_dict(record))


@router.post("/research/{paper_id}/view", response_model=CounterResponse)
def track_view(paper_id: str):
    record = _get_service().track_view(paper_id)
    return CounterResponse(
        message="View tracked successfully",
        view_count=record.view_count,
        download_count=record.download_count,
    )


@router.post("/research/{paper_id}/download", response_model=CounterResponse)
def track_download(paper_id: str):
    record = _get_service().track_download(paper_id)
    return CounterResponse(
        message="Download tracked successfully",
        view_count=record.view_count,
        download_count=record.download_count,
    )
