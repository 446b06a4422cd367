"""
Research submission domain model.

Contains the value objects the review workflow operates on:
- Role: closed set of portal roles
- PaperStatus: canonical workflow states (legacy strings normalized on read)
- ReviewAction: actions that can move a submission between states
- ReviewEntry: one immutable audit-trail entry
- PaperRecord: the submission aggregate, updated by returning new values
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple, Union
from uuid import uuid4

from paperportal.core.abstractions.errors import ValidationError


class Role(str, Enum):
    """Portal roles."""

    STUDENT = "student"
    FACULTY = "faculty"
    STAFF = "staff"
    ADMIN = "admin"


class PaperStatus(str, Enum):
    """Canonical workflow states."""

    PENDING_FACULTY = "pending_faculty"
    PENDING_EDITOR = "pending_editor"
    PENDING_ADMIN = "pending_admin"
    APPROVED = "approved"
    REJECTED = "rejected"
    REVISION_REQUIRED = "revision_required"

    @property
    def is_terminal(self) -> bool:
        return self in (PaperStatus.APPROVED, PaperStatus.REJECTED)


class ReviewAction(str, Enum):
    """Workflow actions recorded in the review trail."""

    APPROVE = "approve"
    REJECT = "reject"
    REQUEST_REVISION = "request_revision"
    RESUBMIT = "resubmitted"


# Values written by older records and the legacy admin publish toggle.
LEGACY_STATUS_ALIASES: Dict[str, PaperStatus] = {
    "pending": PaperStatus.PENDING_EDITOR,
    "under_review": PaperStatus.PENDING_EDITOR,
    "published": PaperStatus.APPROVED,
}

_ACTION_ALIASES: Dict[str, ReviewAction] = {
    "resubmit": ReviewAction.RESUBMIT,
    "revision": ReviewAction.REQUEST_REVISION,
    "revision_required": ReviewAction.REQUEST_REVISION,
    "approved": ReviewAction.APPROVE,
    "rejected": ReviewAction.REJECT,
}


def normalize_status(value: Union[str, PaperStatus, None]) -> PaperStatus:
    """Map a stored or requested status string onto a canonical state."""
    if isinstance(value, PaperStatus):
        return value
    text = str(value or "").strip().lower()
    if text in LEGACY_STATUS_ALIASES:
        return LEGACY_STATUS_ALIASES[text]
    try:
        return PaperStatus(text)
    except ValueError:
        raise ValidationError(
            f"unknown status: {value!r}", details={"status": value}
        ) from None


def normalize_role(value: Union[str, Role, None]) -> Role:
    if isinstance(value, Role):
        return value
    text = str(value or "").strip().lower()
    if text == "editor":
        return Role.STAFF
    try:
        return Role(text)
    except ValueError:
        raise ValidationError(f"unknown role: {value!r}", details={"role": value}) from None


def normalize_action(value: Union[str, ReviewAction]) -> ReviewAction:
    if isinstance(value, ReviewAction):
        return value
    text = str(value or "").strip().lower()
    if text in _ACTION_ALIASES:
        return _ACTION_ALIASES[text]
    try:
        return ReviewAction(text)
    except ValueError:
        raise ValidationError(f"unknown action: {value!r}", details={"action": value}) from None


def parse_keywords(value: Any) -> Tuple[str, ...]:
    """Accept either a comma separated string or a sequence of keywords."""
    if value is None:
        return ()
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    else:
        items = value
    return tuple(str(k).strip() for k in items if str(k).strip())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return as_utc(value)
    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def published_date_on_read(
    status: PaperStatus,
    published_date: Optional[datetime],
    review_trail: Iterable["ReviewEntry"] = (),
    submission_date: Optional[datetime] = None,
) -> Optional[datetime]:
    """
    Publication date to load for a stored row.

    Rows written by the old publish toggle can be ``published`` without a
    date; those take the timestamp of the approval that reached ``approved``,
    else the submission date. A date left on a row that is not approved is
    dropped.
    """
    if status != PaperStatus.APPROVED:
        return None
    if published_date is not None:
        return published_date
    for entry in reversed(tuple(review_trail)):
        if entry.to_status == PaperStatus.APPROVED:
            return entry.timestamp
    return submission_date or _utcnow()


@dataclass(frozen=True)
class Actor:
    """Whoever performs a workflow action. Identity comes from the session layer."""

    id: str
    role: Role

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", str(self.id or "").strip())
        object.__setattr__(self, "role", normalize_role(self.role))
        if not self.id:
            raise ValidationError("actor id is required")


@dataclass(frozen=True)
class ReviewEntry:
    """Immutable review-trail entry."""

    actor_id: str
    actor_role: Role
    action: ReviewAction
    note: str
    timestamp: datetime
    from_status: PaperStatus
    to_status: PaperStatus

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actor_id": self.actor_id,
            "actor_role": self.actor_role.value,
            "action": self.action.value,
            "note": self.note,
            "timestamp": _iso(self.timestamp),
            "from_status": self.from_status.value,
            "to_status": self.to_status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewEntry":
        return cls(
            actor_id=str(data.get("actor_id") or ""),
            actor_role=normalize_role(data.get("actor_role")),
            action=normalize_action(data.get("action") or ""),
            note=str(data.get("note") or ""),
            timestamp=parse_datetime(data.get("timestamp")) or _utcnow(),
            from_status=normalize_status(data.get("from_status")),
            to_status=normalize_status(data.get("to_status")),
        )


@dataclass(frozen=True, eq=False)
class PaperRecord:
    """
    One research submission.

    Required fields: title, abstract, category.
    Records are never mutated in place; workflow code derives new values with
    ``evolve``. Equality and hashing use ``id`` only.
    """

    title: str
    abstract: str
    category: str
    author_id: str
    id: str = field(default_factory=lambda: uuid4().hex)
    keywords: Tuple[str, ...] = ()
    co_authors: Optional[str] = None
    department: Optional[str] = None
    file_ref: Optional[str] = None
    author_name: Optional[str] = None
    faculty_id: Optional[str] = None
    status: PaperStatus = PaperStatus.PENDING_EDITOR
    submission_date: datetime = field(default_factory=_utcnow)
    published_date: Optional[datetime] = None
    review_trail: Tuple[ReviewEntry, ...] = ()
    view_count: int = 0
    download_count: int = 0
    version: int = 1

    def __post_init__(self) -> None:
        missing = [
            name
            for name in ("title", "abstract", "category")
            if not str(getattr(self, name) or "").strip()
        ]
        if missing:
            raise ValidationError(
                "All required fields must be filled", details={"missing": missing}
            )
        object.__setattr__(self, "title", self.title.strip())
        object.__setattr__(self, "abstract", self.abstract.strip())
        object.__setattr__(self, "category", str(self.category).strip())
        object.__setattr__(self, "keywords", parse_keywords(self.keywords))
        object.__setattr__(self, "status", normalize_status(self.status))
        object.__setattr__(self, "faculty_id", self.faculty_id or None)
        object.__setattr__(self, "submission_date", as_utc(self.submission_date))
        object.__setattr__(self, "published_date", as_utc(self.published_date))
        object.__setattr__(self, "review_trail", tuple(self.review_trail))
        approved = self.status == PaperStatus.APPROVED
        if approved != (self.published_date is not None):
            raise ValidationError(
                "published_date must be set exactly when the paper is approved",
                details={
                    "status": self.status.value,
                    "published_date": _iso(self.published_date),
                },
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PaperRecord):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def evolve(self, **changes: Any) -> "PaperRecord":
        """Return a copy with ``changes`` applied (identity fields stay fixed)."""
        for frozen in ("id", "author_id", "submission_date"):
            if frozen in changes and changes[frozen] != getattr(self, frozen):
                raise ValidationError(f"{frozen} is immutable")
        return dataclasses.replace(self, **changes)

    def with_entry(self, entry: ReviewEntry, **changes: Any) -> "PaperRecord":
        return self.evolve(review_trail=self.review_trail + (entry,), **changes)

    @property
    def latest_flag(self) -> Optional[ReviewEntry]:
        """Most recent reject / revision-request entry, if any."""
        for entry in reversed(self.review_trail):
            if entry.action in (ReviewAction.REJECT, ReviewAction.REQUEST_REVISION):
                return entry
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "abstract": self.abstract,
            "keywords": list(self.keywords),
            "co_authors": self.co_authors,
            "category": self.category,
            "department": self.department,
            "file_ref": self.file_ref,
            "author_id": self.author_id,
            "author_name": self.author_name,
            "faculty_id": self.faculty_id,
            "status": self.status.value,
            "submission_date": _iso(self.submission_date),
            "published_date": _iso(self.published_date),
            "review_trail": [e.to_dict() for e in self.review_trail],
            "view_count": self.view_count,
            "download_count": self.download_count,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaperRecord":
        """Create a record from a stored/API dictionary, normalizing legacy values."""
        kwargs: Dict[str, Any] = {
            "title": data.get("title", ""),
            "abstract": data.get("abstract", ""),
            "category": data.get("category", ""),
            "author_id": str(data.get("author_id") or ""),
            "keywords": parse_keywords(data.get("keywords")),
            "co_authors": data.get("co_authors"),
            "department": data.get("department"),
            "file_ref": data.get("file_ref"),
            "author_name": data.get("author_name"),
            "faculty_id": data.get("faculty_id"),
            "status": normalize_status(data.get("status") or PaperStatus.PENDING_EDITOR),
            "published_date": parse_datetime(data.get("published_date")),
            "review_trail": tuple(
                ReviewEntry.from_dict(e) for e in data.get("review_trail") or []
            ),
            "view_count": int(data.get("view_count") or 0),
            "download_count": int(data.get("download_count") or 0),
            "version": int(data.get("version") or 1),
        }
        if data.get("id"):
            kwargs["id"] = str(data["id"])
        submitted = parse_datetime(data.get("submission_date"))
        if submitted is not None:
            kwargs["submission_date"] = submitted
        kwargs["published_date"] = published_date_on_read(
            kwargs["status"], kwargs["published_date"], kwargs["review_trail"], submitted
        )
        return cls(**kwargs)
