"""In-process research paper store (tests, CLI dry runs)."""

from __future__ import annotations

import threading
from typing import Callable, Dict, List, Optional

from paperportal.core.abstractions.errors import ConflictError, NotFoundError, WorkflowError
from paperportal.domain.paper import PaperRecord, PaperStatus, normalize_status
from paperportal.application.services.query_filter import sort_papers

COUNTERS = ("view_count", "download_count")


class InMemoryResearchPaperStore:
    """Dict-backed store with the same compare-and-set contract as the SQL store."""

    def __init__(self, *, name_resolver: Optional[Callable[[str], Optional[str]]] = None):
        self._lock = threading.Lock()
        self._records: Dict[str, PaperRecord] = {}
        self._name_resolver = name_resolver

    def add(self, record: PaperRecord) -> PaperRecord:
        with self._lock:
            if record.id in self._records:
                raise WorkflowError(f"paper {record.id} already exists", code="duplicate")
            self._records[record.id] = record
        return self.get(record.id)

    def get(self, paper_id: str) -> PaperRecord:
        with self._lock:
            record = self._records.get(str(paper_id))
        if record is None:
            raise NotFoundError(f"research paper {paper_id} not found")
        return self._resolved(record)

    def list_all(self, *, status: Optional[PaperStatus] = None) -> List[PaperRecord]:
        return self._select(lambda r: True, status)

    def list_by_author(self, author_id: str) -> List[PaperRecord]:
        return self._select(lambda r: r.author_id == author_id, None)

    def list_by_faculty(
        self, faculty_id: str, *, status: Optional[PaperStatus] = None
    ) -> List[PaperRecord]:
        return self._select(lambda r: r.faculty_id == faculty_id, status)

    def save(self, record: PaperRecord, *, expected_version: int) -> PaperRecord:
        with self._lock:
            current = self._records.get(record.id)
            if current is None:
                raise NotFoundError(f"research paper {record.id} not found")
            if current.version != int(expected_version):
                raise ConflictError(
                    f"paper {record.id} was modified concurrently "
                    f"(expected v{expected_version}, found v{current.version})",
                    details={"expected_version": expected_version, "version": current.version},
                )
            if record.review_trail[: len(current.review_trail)] != current.review_trail:
                raise WorkflowError(
                    f"review trail of paper {record.id} is append-only",
                    code="trail_truncated",
                )
            stored = record.evolve(
                version=current.version + 1,
                view_count=current.view_count,
                download_count=current.download_count,
            )
            self._records[record.id] = stored
        return self._resolved(stored)

    def increment_counter(self, paper_id: str, counter: str) -> PaperRecord:
        if counter not in COUNTERS:
            raise ValueError(f"unknown counter: {counter}")
        with self._lock:
            current = self._records.get(str(paper_id))
            if current is None:
                raise NotFoundError(f"research paper {paper_id} not found")
            stored = current.evolve(**{counter: getattr(current, counter) + 1})
            self._records[current.id] = stored
        return self._resolved(stored)

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def close(self) -> None:
        return None

    def _select(self, predicate, status: Optional[PaperStatus]) -> List[PaperRecord]:
        wanted = normalize_status(status) if status is not None else None
        with self._lock:
            rows = [
                r
                for r in self._records.values()
                if predicate(r) and (wanted is None or r.status == wanted)
            ]
        return sort_papers(self._resolved(r) for r in rows)

    def _resolved(self, record: PaperRecord) -> PaperRecord:
        if record.author_name or self._name_resolver is None:
            return record
        name = self._name_resolver(record.author_id)
        return record.evolve(author_name=name) if name else record
