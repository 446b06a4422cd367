# src/paperportal/application/services/research_service.py
"""
Research submission service.

Facade over the paper store, the workflow engine, the review action processor
and the query functions. HTTP routes and the CLI talk to this class only.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from paperportal.application.ports.directory_port import DirectoryPort
from paperportal.application.ports.notification_port import (
    NotificationHook,
    NullNotificationHook,
    TransitionEvent,
)
from paperportal.application.ports.paper_record_port import PaperRecordPort
from paperportal.application.services import query_filter
from paperportal.application.services.query_filter import BrowseSpec, FilterSpec
from paperportal.application.services.review_action_processor import ReviewActionProcessor
from paperportal.application.services.workflow_engine import WorkflowEngine
from paperportal.core.abstractions.errors import ValidationError
from paperportal.domain.paper import (
    Actor,
    PaperRecord,
    PaperStatus,
    ReviewAction,
    Role,
    normalize_role,
    normalize_status,
    parse_keywords,
)

logger = logging.getLogger(__name__)


class ResearchService:
    def __init__(
        self,
        papers: PaperRecordPort,
        directory: Optional[DirectoryPort] = None,
        *,
        engine: Optional[WorkflowEngine] = None,
        notifier: Optional[NotificationHook] = None,
        inbox: Optional[Any] = None,
    ):
        self.papers = papers
        self.directory = directory
        self.engine = engine or WorkflowEngine()
        self.notifier = notifier or NullNotificationHook()
        self.inbox = inbox
        self.processor = ReviewActionProcessor(papers, engine=self.engine, notifier=self.notifier)

    # --- submission ---

    def submit_research(
        self,
        *,
        author_id: str,
        title: str,
        abstract: str,
        category: str,
        keywords: Union[str, Sequence[str], None] = None,
        co_authors: Optional[str] = None,
        department: Optional[str] = None,
        file_ref: Optional[str] = None,
        faculty_id: Optional[str] = None,
    ) -> PaperRecord:
        """
        Create a new submission.

        The initial status depends on whether a faculty advisor is assigned:
        ``pending_faculty`` with one, ``pending_editor`` without.
        """
        author_id = (author_id or "").strip()
        if not author_id:
            raise ValidationError("author_id is required")
        faculty_id = (faculty_id or "").strip() or None
        if faculty_id and self.directory is not None:
            advisor = self.directory.get_user(faculty_id)
            if not advisor or advisor.get("role") != Role.FACULTY.value:
                raise ValidationError(
                    f"{faculty_id} is not a faculty member", details={"faculty_id": faculty_id}
                )

        record = PaperRecord(
            title=title,
            abstract=abstract,
            category=category,
            author_id=author_id,
            keywords=parse_keywords(keywords),
            co_authors=co_authors or None,
            department=department or None,
            file_ref=file_ref or None,
            faculty_id=faculty_id,
            status=self.engine.initial_status(faculty_id),
        )
        stored = self.papers.add(record)
        logger.info("paper %s submitted by %s -> %s", stored.id, author_id, stored.status.value)
        self.processor.notify(
            TransitionEvent(
                paper_id=stored.id,
                from_status=None,
                to_status=stored.status,
                actor_id=author_id,
            )
        )
        return stored

    # --- reads ---

    def get_research_by_id(self, paper_id: str) -> PaperRecord:
        return self.papers.get(paper_id)

    def get_my_research(self, author_id: str) -> List[PaperRecord]:
        return self.papers.list_by_author(author_id)

    def get_all_research(self, status: Optional[str] = None) -> List[PaperRecord]:
        wanted = normalize_status(status) if status else None
        return self.papers.list_all(status=wanted)

    def get_faculty_assigned_papers(
        self, faculty_id: str, status: Optional[str] = None
    ) -> List[PaperRecord]:
        wanted = normalize_status(status) if status else None
        return self.papers.list_by_faculty(faculty_id, status=wanted)

    def my_status_counts(self, author_id: str) -> Dict[str, int]:
        return query_filter.status_counts(self.papers.list_by_author(author_id))

    def review_queue(
        self,
        role: Union[Role, str],
        *,
        status_filter: str = query_filter.FILTER_ALL,
        search: str = "",
        actor_id: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Filtered dashboard list plus counters, both from one snapshot."""
        role = normalize_role(role)
        snapshot = self.papers.list_all()
        spec = FilterSpec(
            status=status_filter or query_filter.FILTER_ALL,
            search=search or "",
            actor_id=actor_id or None,
            category=category or None,
        )
        return {
            "papers": query_filter.filter_papers(snapshot, role, spec, engine=self.engine),
            "stats": query_filter.compute_stats(
                snapshot, role, actor_id or None, engine=self.engine
            ),
        }

    def get_published_research(self, spec: Optional[BrowseSpec] = None) -> List[PaperRecord]:
        return query_filter.browse_published(
            self.papers.list_all(status=PaperStatus.APPROVED), spec
        )

    def repository_stats(self) -> Dict[str, Any]:
        published = self.papers.list_all(status=PaperStatus.APPROVED)
        stats = query_filter.repository_stats(published)
        stats["years"] = query_filter.available_years(published)
        return stats

    # --- reviewer actions ---

    def approve(
        self,
        paper_id: str,
        actor: Actor,
        comments: Optional[str],
        *,
        expected_version: Optional[int] = None,
    ) -> PaperRecord:
        return self.processor.apply_by_id(
            paper_id, ReviewAction.APPROVE, actor, comments, expected_version=expected_version
        )

    def reject(
        self,
        paper_id: str,
        actor: Actor,
        reason: Optional[str],
        *,
        expected_version: Optional[int] = None,
    ) -> PaperRecord:
        return self.processor.apply_by_id(
            paper_id, ReviewAction.REJECT, actor, reason, expected_version=expected_version
        )

    def request_revision(
        self,
        paper_id: str,
        actor: Actor,
        notes: Optional[str],
        *,
        expected_version: Optional[int] = None,
    ) -> PaperRecord:
        return self.processor.apply_by_id(
            paper_id,
            ReviewAction.REQUEST_REVISION,
            actor,
            notes,
            expected_version=expected_version,
        )

    def resubmit(
        self,
        paper_id: str,
        actor: Actor,
        notes: Optional[str] = None,
        *,
        expected_version: Optional[int] = None,
        **edits: Any,
    ) -> PaperRecord:
        changes = {k: v for k, v in edits.items() if v is not None}
        if "keywords" in changes:
            changes["keywords"] = parse_keywords(changes["keywords"])
        return self.processor.apply_by_id(
            paper_id,
            ReviewAction.RESUBMIT,
            actor,
            notes,
            expected_version=expected_version,
            **changes,
        )

    def available_actions(self, paper_id: str, actor: Actor) -> List[str]:
        record = self.papers.get(paper_id)
        return [a.value for a in self.engine.available_actions(record, actor)]

    # --- counters ---

    def track_view(self, paper_id: str) -> PaperRecord:
        return self.papers.increment_counter(paper_id, "view_count")

    def track_download(self, paper_id: str) -> PaperRecord:
        return self.papers.increment_counter(paper_id, "download_count")

    # --- reference data ---

    def get_categories(self) -> List[Dict[str, Any]]:
        return self.directory.list_categories() if self.directory is not None else []

    def get_faculty_members(self, department: Optional[str] = None) -> List[Dict[str, Any]]:
        if self.directory is None:
            return []
        return self.directory.list_faculty(department=department or None)

    def get_notifications(self, user_id: str, *, unread_only: bool = False) -> List[Dict[str, Any]]:
        if self.inbox is None:
            return []
        return self.inbox.list_for_user(user_id, unread_only=unread_only)
