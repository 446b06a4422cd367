from __future__ import annotations

import json
from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class ResearchPaperModel(Base):
    __tablename__ = "research_papers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(Text, default="")
    abstract: Mapped[str] = mapped_column(Text, default="")
    keywords_json: Mapped[str] = mapped_column(Text, default="[]")
    co_authors: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(64), default="", index=True)
    department: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    file_ref: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    author_id: Mapped[str] = mapped_column(String(64), index=True)
    faculty_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)

    # raw stored value; legacy strings (pending/under_review/published) are
    # normalized when rows are read back
    status: Mapped[str] = mapped_column(String(32), default="pending_editor", index=True)

    submission_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    published_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    view_count: Mapped[int] = mapped_column(Integer, default=0)
    download_count: Mapped[int] = mapped_column(Integer, default=0)

    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    trail = relationship(
        "ReviewTrailEntryModel",
        back_populates="paper",
        cascade="all, delete-orphan",
        order_by="ReviewTrailEntryModel.seq",
    )

    def set_keywords(self, keywords: List[str]) -> None:
        self.keywords_json = json.dumps(list(keywords or []), ensure_ascii=False)

    def get_keywords(self) -> List[str]:
        try:
            data = json.loads(self.keywords_json or "[]")
        except (TypeError, ValueError):
            return []
        return [str(k) for k in data] if isinstance(data, list) else []


class ReviewTrailEntryModel(Base):
    """Append-only audit log; one row per applied transition."""

    __tablename__ = "review_trail_entries"
    __table_args__ = (UniqueConstraint("paper_id", "seq", name="uq_review_trail_paper_seq"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    paper_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("research_papers.id", ondelete="CASCADE"), index=True
    )
    seq: Mapped[int] = mapped_column(Integer, default=0)

    actor_id: Mapped[str] = mapped_column(String(64), default="")
    actor_role: Mapped[str] = mapped_column(String(16), default="")
    action: Mapped[str] = mapped_column(String(32), default="")
    note: Mapped[str] = mapped_column(Text, default="")
    from_status: Mapped[str] = mapped_column(String(32), default="")
    to_status: Mapped[str] = mapped_column(String(32), default="")
    ts: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    paper = relationship("ResearchPaperModel", back_populates="trail")


class PortalUserModel(Base):
    __tablename__ = "portal_users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(256), unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(256), default="")
    role: Mapped[str] = mapped_column(String(16), default="student", index=True)
    department: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    program: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class ResearchCategoryModel(Base):
    __tablename__ = "research_categories"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), unique=True)
    description: Mapped[str] = mapped_column(Text, default="")


class NotificationModel(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    research_id: Mapped[str] = mapped_column(String(64), index=True)
    type: Mapped[str] = mapped_column(String(32), default="")
    title: Mapped[str] = mapped_column(String(256), default="")
    message: Mapped[str] = mapped_column(Text, default="")
    is_read: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
