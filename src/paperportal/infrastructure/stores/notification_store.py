from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update

from paperportal.infrastructure.stores.models import Base, NotificationModel
from paperportal.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SqlAlchemyNotificationStore:
    """Per-user inbox rows written after workflow transitions."""

    def __init__(self, db_url: Optional[str] = None, *, auto_create_schema: bool = True):
        self.db_url = db_url or get_db_url()
        self._provider = SessionProvider(self.db_url)
        if auto_create_schema:
            Base.metadata.create_all(self._provider.engine)

    def add(
        self,
        *,
        user_id: str,
        research_id: str,
        type: str,
        title: str,
        message: str,
    ) -> Dict[str, Any]:
        with self._provider.session() as session:
            row = NotificationModel(
                user_id=user_id,
                research_id=research_id,
                type=type,
                title=title,
                message=message,
                is_read=0,
                created_at=_utcnow(),
            )
            session.add(row)
            session.commit()
            return self._row_to_dict(row)

    def list_for_user(
        self, user_id: str, *, unread_only: bool = False, limit: int = 50
    ) -> List[Dict[str, Any]]:
        stmt = (
            select(NotificationModel)
            .where(NotificationModel.user_id == user_id)
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
            .limit(max(1, int(limit)))
        )
        if unread_only:
            stmt = stmt.where(NotificationModel.is_read == 0)
        with self._provider.session() as session:
            return [self._row_to_dict(r) for r in session.execute(stmt).scalars()]

    def mark_read(self, user_id: str, notification_id: int) -> bool:
        with self._provider.session() as session:
            result = session.execute(
                update(NotificationModel)
                .where(
                    NotificationModel.id == int(notification_id),
                    NotificationModel.user_id == user_id,
                )
                .values(is_read=1)
            )
            session.commit()
            return result.rowcount > 0

    def close(self) -> None:
        self._provider.engine.dispose()

    @staticmethod
    def _row_to_dict(row: NotificationModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "user_id": row.user_id,
            "research_id": row.research_id,
            "type": row.type,
            "title": row.title,
            "message": row.message,
            "is_read": bool(row.is_read),
            "created_at": row.created_at.isoformat() if row.created_at else None,
        }
