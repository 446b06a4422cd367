# src/paperportal/application/services/query_filter.py
"""
Role-scoped views and counts over a snapshot of research papers.

Every function here is pure: it takes the current collection as an argument,
never caches, and never mutates the records it is given.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from paperportal.application.services.workflow_engine import (
    WorkflowEngine,
    authority_stage,
)
from paperportal.domain.paper import PaperRecord, PaperStatus, Role, normalize_status

FILTER_ALL = "all"
FILTER_NEEDS_REVIEW = "needs_review"
FILTER_NEEDS_ACTION = "needs_action"

BROWSE_SORTS = ("newest", "oldest", "most_viewed", "most_downloaded", "title")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_default_engine = WorkflowEngine()


@dataclass(frozen=True)
class FilterSpec:
    """Dashboard filter: status bucket, free-text search, scoping."""

    status: str = FILTER_ALL
    search: str = ""
    actor_id: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class BrowseSpec:
    """Public repository browsing filter."""

    search: str = ""
    author: str = ""
    category: Optional[str] = None
    year: Optional[int] = None
    sort: str = "newest"


def sort_key(paper: PaperRecord):
    """submission_date descending, then id ascending."""
    ts = paper.submission_date or _EPOCH
    return (-ts.timestamp(), paper.id)


def sort_papers(papers: Iterable[PaperRecord]) -> List[PaperRecord]:
    return sorted(papers, key=sort_key)


def matches_search(paper: PaperRecord, term: str) -> bool:
    """Case-insensitive substring match on title, abstract, author name, keywords."""
    needle = (term or "").strip().lower()
    if not needle:
        return True
    haystacks = [paper.title, paper.abstract, paper.author_name or ""]
    haystacks.extend(paper.keywords)
    return any(needle in (h or "").lower() for h in haystacks)


def _scoped(papers: Iterable[PaperRecord], role: Role, actor_id: Optional[str]) -> List[PaperRecord]:
    if not actor_id:
        return list(papers)
    if role == Role.STUDENT:
        return [p for p in papers if p.author_id == actor_id]
    if role == Role.FACULTY:
        return [p for p in papers if p.faculty_id == actor_id]
    return list(papers)


def _visible(
    paper: PaperRecord, role: Role, engine: WorkflowEngine
) -> bool:
    """Whether ``paper`` belongs to the role's ``all`` view."""
    if paper.status.is_terminal:
        return True
    authority = authority_stage(role)
    if authority is None:
        return True
    return engine.stage_of_record(paper) >= authority


def _needs_review(
    paper: PaperRecord, role: Role, actor_id: Optional[str], engine: WorkflowEngine
) -> bool:
    return engine.can_act(paper, role, actor_id)


def filter_papers(
    papers: Sequence[PaperRecord],
    role: Role,
    spec: Optional[FilterSpec] = None,
    *,
    engine: Optional[WorkflowEngine] = None,
) -> List[PaperRecord]:
    """
    Apply a dashboard filter for ``role``.

    Status buckets:
    - ``all``: the role's view, minus active records that have not yet reached
      the role's stage
    - ``needs_review`` / ``needs_action``: records the role can act on now
    - any status string (legacy aliases accepted): that status within ``all``
    """
    spec = spec or FilterSpec()
    engine = engine or _default_engine
    bucket = (spec.status or FILTER_ALL).strip().lower()

    pool = [p for p in _scoped(papers, role, spec.actor_id) if _visible(p, role, engine)]

    if bucket in (FILTER_NEEDS_REVIEW, FILTER_NEEDS_ACTION):
        pool = [p for p in pool if _needs_review(p, role, spec.actor_id, engine)]
    elif bucket != FILTER_ALL:
        wanted = normalize_status(bucket)
        pool = [p for p in pool if p.status == wanted]

    if spec.category:
        pool = [p for p in pool if p.category == spec.category]
    if spec.search:
        pool = [p for p in pool if matches_search(p, spec.search)]
    return sort_papers(pool)


def compute_stats(
    papers: Sequence[PaperRecord],
    role: Role,
    actor_id: Optional[str] = None,
    *,
    engine: Optional[WorkflowEngine] = None,
) -> Dict[str, int]:
    """Dashboard counters derived from a single scan of the snapshot."""
    engine = engine or _default_engine
    authority = authority_stage(role)
    stats: Dict[str, int] = {"total": 0, "needs_review": 0, "advanced": 0}
    stats.update({s.value: 0 for s in PaperStatus})

    for paper in _scoped(papers, role, actor_id):
        if not _visible(paper, role, engine):
            continue
        stats["total"] += 1
        stats[paper.status.value] += 1
        if _needs_review(paper, role, actor_id, engine):
            stats["needs_review"] += 1
        if (
            authority is not None
            and paper.status != PaperStatus.REJECTED
            and engine.stage_of_record(paper) > authority
        ):
            stats["advanced"] += 1
    return stats


def status_counts(papers: Iterable[PaperRecord]) -> Dict[str, int]:
    counts = Counter(p.status.value for p in papers)
    return {s.value: counts.get(s.value, 0) for s in PaperStatus}


# --- public repository ---


def _display_date(paper: PaperRecord) -> datetime:
    return paper.published_date or paper.submission_date or _EPOCH


def _matches_author(paper: PaperRecord, term: str) -> bool:
    needle = term.strip().lower()
    if not needle:
        return True
    if needle in (paper.author_name or "").lower():
        return True
    return needle in (paper.co_authors or "").lower()


def browse_published(
    papers: Sequence[PaperRecord], spec: Optional[BrowseSpec] = None
) -> List[PaperRecord]:
    """Approved papers filtered and sorted for the public repository page."""
    spec = spec or BrowseSpec()
    pool = [p for p in papers if p.status == PaperStatus.APPROVED]

    if spec.search.strip():
        term = spec.search.strip().lower()
        pool = [
            p
            for p in pool
            if term in p.title.lower()
            or term in p.abstract.lower()
            or any(term in k.lower() for k in p.keywords)
        ]
    if spec.author:
        pool = [p for p in pool if _matches_author(p, spec.author)]
    if spec.category:
        pool = [p for p in pool if p.category == spec.category]
    if spec.year:
        pool = [p for p in pool if _display_date(p).year == int(spec.year)]

    sort = spec.sort if spec.sort in BROWSE_SORTS else "newest"
    # stable sorts: id first so ties are deterministic
    pool.sort(key=lambda p: p.id)
    if sort == "newest":
        pool.sort(key=_display_date, reverse=True)
    elif sort == "oldest":
        pool.sort(key=_display_date)
    elif sort == "most_viewed":
        pool.sort(key=lambda p: p.view_count, reverse=True)
    elif sort == "most_downloaded":
        pool.sort(key=lambda p: p.download_count, reverse=True)
    elif sort == "title":
        pool.sort(key=lambda p: p.title.lower())
    return pool


def available_years(papers: Iterable[PaperRecord]) -> List[int]:
    years = {_display_date(p).year for p in papers if p.status == PaperStatus.APPROVED}
    return sorted(years, reverse=True)


def repository_stats(papers: Iterable[PaperRecord]) -> Dict[str, Any]:
    published = [p for p in papers if p.status == PaperStatus.APPROVED]
    return {
        "total_papers": len(published),
        "total_authors": len({p.author_id for p in published}),
        "total_views": sum(p.view_count for p in published),
        "total_downloads": sum(p.download_count for p in published),
    }
