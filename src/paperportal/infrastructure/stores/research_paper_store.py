"""Research paper store: SQLAlchemy persistence with optimistic versioning."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import asc, desc, func, select, update
from sqlalchemy.orm import selectinload

from paperportal.core.abstractions.errors import ConflictError, NotFoundError, WorkflowError
from paperportal.domain.paper import (
    LEGACY_STATUS_ALIASES,
    PaperRecord,
    PaperStatus,
    ReviewEntry,
    as_utc,
    published_date_on_read,
    normalize_action,
    normalize_role,
    normalize_status,
)
from paperportal.infrastructure.stores.models import (
    Base,
    PortalUserModel,
    ResearchPaperModel,
    ReviewTrailEntryModel,
)
from paperportal.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url

logger = logging.getLogger(__name__)

COUNTERS = ("view_count", "download_count")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _stored_values(status: PaperStatus) -> List[str]:
    """Canonical value plus every legacy alias that normalizes onto it."""
    return [status.value] + [k for k, v in LEGACY_STATUS_ALIASES.items() if v == status]


class SqlAlchemyResearchPaperStore:
    """
    Research paper repository.

    Handles:
    - insert of new submissions
    - compare-and-set saves keyed on ``version``
    - append-only review trail rows
    - counter increments that never touch status or version
    """

    def __init__(self, db_url: Optional[str] = None, *, auto_create_schema: bool = True):
        self.db_url = db_url or get_db_url()
        self._provider = SessionProvider(self.db_url)
        if auto_create_schema:
            Base.metadata.create_all(self._provider.engine)

    # --- writes ---

    def add(self, record: PaperRecord) -> PaperRecord:
        with self._provider.session() as session:
            row = ResearchPaperModel(
                id=record.id,
                title=record.title,
                abstract=record.abstract,
                co_authors=record.co_authors,
                category=record.category,
                department=record.department,
                file_ref=record.file_ref,
                author_id=record.author_id,
                faculty_id=record.faculty_id,
                status=record.status.value,
                submission_date=record.submission_date or _utcnow(),
                published_date=record.published_date,
                view_count=record.view_count,
                download_count=record.download_count,
                version=record.version,
            )
            row.set_keywords(list(record.keywords))
            session.add(row)
            for seq, entry in enumerate(record.review_trail):
                session.add(self._entry_row(record.id, seq, entry))
            session.commit()
        return self.get(record.id)

    def save(self, record: PaperRecord, *, expected_version: int) -> PaperRecord:
        with self._provider.session() as session:
            result = session.execute(
                update(ResearchPaperModel)
                .where(
                    ResearchPaperModel.id == record.id,
                    ResearchPaperModel.version == int(expected_version),
                )
                .values(
                    title=record.title,
                    abstract=record.abstract,
                    keywords_json=json.dumps(list(record.keywords), ensure_ascii=False),
                    co_authors=record.co_authors,
                    category=record.category,
                    department=record.department,
                    file_ref=record.file_ref,
                    faculty_id=record.faculty_id,
                    status=record.status.value,
                    published_date=record.published_date,
                    version=int(expected_version) + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                session.rollback()
                exists = session.execute(
                    select(ResearchPaperModel.version).where(ResearchPaperModel.id == record.id)
                ).scalar_one_or_none()
                if exists is None:
                    raise NotFoundError(f"research paper {record.id} not found")
                raise ConflictError(
                    f"paper {record.id} was modified concurrently "
                    f"(expected v{expected_version}, found v{exists})",
                    details={"expected_version": expected_version, "version": exists},
                )

            stored = session.execute(
                select(func.count(ReviewTrailEntryModel.id)).where(
                    ReviewTrailEntryModel.paper_id == record.id
                )
            ).scalar_one()
            if len(record.review_trail) < stored:
                session.rollback()
                raise WorkflowError(
                    f"review trail of paper {record.id} is append-only",
                    code="trail_truncated",
                )
            for seq in range(stored, len(record.review_trail)):
                session.add(self._entry_row(record.id, seq, record.review_trail[seq]))
            session.commit()
        return self.get(record.id)

    def increment_counter(self, paper_id: str, counter: str) -> PaperRecord:
        if counter not in COUNTERS:
            raise ValueError(f"unknown counter: {counter}")
        column = getattr(ResearchPaperModel, counter)
        with self._provider.session() as session:
            result = session.execute(
                update(ResearchPaperModel)
                .where(ResearchPaperModel.id == paper_id)
                .values({counter: column + 1})
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"research paper {paper_id} not found")
            session.commit()
        return self.get(paper_id)

    # --- reads ---

    def get(self, paper_id: str) -> PaperRecord:
        with self._provider.session() as session:
            row = session.execute(
                self._base_query().where(ResearchPaperModel.id == str(paper_id))
            ).first()
            if row is None:
                raise NotFoundError(f"research paper {paper_id} not found")
            return self._row_to_record(row[0], row[1])

    def list_all(self, *, status: Optional[PaperStatus] = None) -> List[PaperRecord]:
        stmt = self._base_query()
        if status is not None:
            stmt = stmt.where(ResearchPaperModel.status.in_(_stored_values(normalize_status(status))))
        return self._fetch(stmt)

    def list_by_author(self, author_id: str) -> List[PaperRecord]:
        return self._fetch(self._base_query().where(ResearchPaperModel.author_id == author_id))

    def list_by_faculty(
        self, faculty_id: str, *, status: Optional[PaperStatus] = None
    ) -> List[PaperRecord]:
        stmt = self._base_query().where(ResearchPaperModel.faculty_id == faculty_id)
        if status is not None:
            stmt = stmt.where(ResearchPaperModel.status.in_(_stored_values(normalize_status(status))))
        return self._fetch(stmt)

    def count(self) -> int:
        with self._provider.session() as session:
            return int(session.execute(select(func.count(ResearchPaperModel.id))).scalar_one())

    def close(self) -> None:
        self._provider.engine.dispose()

    # --- helpers ---

    @staticmethod
    def _base_query():
        return (
            select(ResearchPaperModel, PortalUserModel.full_name)
            .outerjoin(PortalUserModel, PortalUserModel.id == ResearchPaperModel.author_id)
            .options(selectinload(ResearchPaperModel.trail))
            .order_by(desc(ResearchPaperModel.submission_date), asc(ResearchPaperModel.id))
        )

    def _fetch(self, stmt) -> List[PaperRecord]:
        with self._provider.session() as session:
            rows = session.execute(stmt).all()
            return [self._row_to_record(r[0], r[1]) for r in rows]

    @staticmethod
    def _entry_row(paper_id: str, seq: int, entry: ReviewEntry) -> ReviewTrailEntryModel:
        return ReviewTrailEntryModel(
            paper_id=paper_id,
            seq=seq,
            actor_id=entry.actor_id,
            actor_role=entry.actor_role.value,
            action=entry.action.value,
            note=entry.note,
            from_status=entry.from_status.value,
            to_status=entry.to_status.value,
            ts=entry.timestamp,
        )

    @staticmethod
    def _row_to_record(row: ResearchPaperModel, author_name: Optional[str]) -> PaperRecord:
        trail = tuple(
            ReviewEntry(
                actor_id=t.actor_id,
                actor_role=normalize_role(t.actor_role),
                action=normalize_action(t.action),
                note=t.note or "",
                timestamp=as_utc(t.ts),
                from_status=normalize_status(t.from_status),
                to_status=normalize_status(t.to_status),
            )
            for t in row.trail
        )
        return PaperRecord(
            id=row.id,
            title=row.title,
            abstract=row.abstract,
            category=row.category,
            author_id=row.author_id,
            keywords=tuple(row.get_keywords()),
            co_authors=row.co_authors,
            department=row.department,
            file_ref=row.file_ref,
            author_name=author_name,
            faculty_id=row.faculty_id,
            status=normalize_status(row.status),
            submission_date=row.submission_date,
            published_date=published_date_on_read(
                normalize_status(row.status), as_utc(row.published_date), trail, row.submission_date
            ),
            review_trail=trail,
            view_count=int(row.view_count or 0),
            download_count=int(row.download_count or 0),
            version=int(row.version or 1),
        )

