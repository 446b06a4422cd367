"""Directory store: portal users and research categories."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import select

from paperportal.core.abstractions.errors import ValidationError
from paperportal.domain.paper import Role, normalize_role
from paperportal.infrastructure.stores.models import (
    Base,
    PortalUserModel,
    ResearchCategoryModel,
)
from paperportal.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url

logger = logging.getLogger(__name__)

STUDENT_PROGRAMS = ("BSIT", "BSCS")

DEFAULT_CATEGORIES = (
    ("artificial-intelligence", "Artificial Intelligence", "Machine learning, NLP and intelligent systems"),
    ("data-science", "Data Science", "Data analysis, visualization and analytics"),
    ("cybersecurity", "Cybersecurity", "Security, privacy and cryptography"),
    ("software-engineering", "Software Engineering", "Software design, testing and process"),
    ("networking", "Networking", "Computer networks and distributed systems"),
    ("human-computer-interaction", "Human-Computer Interaction", "Usability and interaction design"),
    ("information-systems", "Information Systems", "Enterprise and organizational systems"),
    ("web-mobile", "Web and Mobile Development", "Web, mobile and cloud applications"),
)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SqlAlchemyDirectoryStore:
    def __init__(self, db_url: Optional[str] = None, *, auto_create_schema: bool = True):
        self.db_url = db_url or get_db_url()
        self._provider = SessionProvider(self.db_url)
        if auto_create_schema:
            Base.metadata.create_all(self._provider.engine)

    # --- users ---

    def add_user(
        self,
        *,
        email: str,
        full_name: str,
        role: str,
        department: Optional[str] = None,
        program: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        email = (email or "").strip().lower()
        full_name = (full_name or "").strip()
        if not email or not full_name or not role:
            raise ValidationError("All fields are required")
        if not _EMAIL_RE.match(email):
            raise ValidationError(f"invalid email: {email}", details={"email": email})
        role_value = normalize_role(role)
        if role_value == Role.STUDENT:
            program = (program or "").strip().upper()
            if program not in STUDENT_PROGRAMS:
                raise ValidationError(
                    "Valid program (BSIT or BSCS) is required for students",
                    details={"program": program},
                )
        else:
            program = None

        with self._provider.session() as session:
            existing = session.execute(
                select(PortalUserModel).where(PortalUserModel.email == email)
            ).scalar_one_or_none()
            if existing is not None:
                raise ValidationError("User already exists", details={"email": email})
            row = PortalUserModel(
                id=user_id or uuid4().hex,
                email=email,
                full_name=full_name,
                role=role_value.value,
                department=department,
                program=program,
                created_at=_utcnow(),
            )
            session.add(row)
            session.commit()
            logger.info("added %s user %s", row.role, row.id)
            return self._user_to_dict(row)

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._provider.session() as session:
            row = session.get(PortalUserModel, str(user_id))
            return self._user_to_dict(row) if row else None

    def display_name(self, user_id: str) -> Optional[str]:
        user = self.get_user(user_id)
        if not user:
            return None
        return user["full_name"] or user["email"]

    def list_users(self, *, role: Optional[str] = None) -> List[Dict[str, Any]]:
        stmt = select(PortalUserModel).order_by(PortalUserModel.full_name)
        if role:
            stmt = stmt.where(PortalUserModel.role == normalize_role(role).value)
        with self._provider.session() as session:
            return [self._user_to_dict(r) for r in session.execute(stmt).scalars()]

    def list_faculty(self, *, department: Optional[str] = None) -> List[Dict[str, Any]]:
        stmt = (
            select(PortalUserModel)
            .where(PortalUserModel.role == Role.FACULTY.value)
            .order_by(PortalUserModel.full_name)
        )
        if department:
            stmt = stmt.where(PortalUserModel.department == department)
        with self._provider.session() as session:
            return [
                {
                    "id": r.id,
                    "full_name": r.full_name,
                    "email": r.email,
                    "department": r.department,
                }
                for r in session.execute(stmt).scalars()
            ]

    # --- categories ---

    def list_categories(self) -> List[Dict[str, Any]]:
        with self._provider.session() as session:
            rows = session.execute(
                select(ResearchCategoryModel).order_by(ResearchCategoryModel.name)
            ).scalars()
            return [{"id": r.id, "name": r.name, "description": r.description} for r in rows]

    def add_category(self, name: str, description: str = "", *, category_id: Optional[str] = None):
        name = (name or "").strip()
        if not name:
            raise ValidationError("category name is required")
        slug = category_id or re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
        with self._provider.session() as session:
            row = session.get(ResearchCategoryModel, slug)
            if row is None:
                row = ResearchCategoryModel(id=slug, name=name, description=description)
                session.add(row)
                session.commit()
            return {"id": row.id, "name": row.name, "description": row.description}

    def seed_defaults(self) -> int:
        """Insert the default categories that are missing; returns how many were added."""
        added = 0
        with self._provider.session() as session:
            for cat_id, name, description in DEFAULT_CATEGORIES:
                if session.get(ResearchCategoryModel, cat_id) is not None:
                    continue
                session.add(ResearchCategoryModel(id=cat_id, name=name, description=description))
                added += 1
            session.commit()
        if added:
            logger.info("seeded %d research categories", added)
        return added

    def close(self) -> None:
        self._provider.engine.dispose()

    @staticmethod
    def _user_to_dict(row: PortalUserModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "email": row.email,
            "full_name": row.full_name,
            "role": row.role,
            "department": row.department,
            "program": row.program,
            "created_at": row.created_at.isoformat() if row.created_at else None,
        }
