"""PaperRecordPort: persistence interface for research submissions."""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from paperportal.domain.paper import PaperRecord, PaperStatus


@runtime_checkable
class PaperRecordPort(Protocol):
    """Abstract interface for the research-paper collection keyed by id."""

    def add(self, record: PaperRecord) -> PaperRecord: ...

    def get(self, paper_id: str) -> PaperRecord:
        """Return the current record or raise NotFoundError."""
        ...

    def list_all(self, *, status: Optional[PaperStatus] = None) -> List[PaperRecord]: ...

    def list_by_author(self, author_id: str) -> List[PaperRecord]: ...

    def list_by_faculty(
        self, faculty_id: str, *, status: Optional[PaperStatus] = None
    ) -> List[PaperRecord]: ...

    def save(self, record: PaperRecord, *, expected_version: int) -> PaperRecord:
        """
        Compare-and-set write.

        Persists ``record`` only if the stored version still equals
        ``expected_version``; returns the stored record with its new version.
        Raises ConflictError otherwise.
        """
        ...

    def increment_counter(self, paper_id: str, counter: str) -> PaperRecord:
        """Bump ``view_count`` or ``download_count`` without touching status."""
        ...
