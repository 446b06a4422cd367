"""Builds a ResearchService on the SQLAlchemy stores (API and CLI share this)."""

from __future__ import annotations

import os
from typing import Optional

from paperportal.application.services.research_service import ResearchService
from paperportal.infrastructure.notifications.hooks import (
    CompositeNotificationHook,
    InboxNotificationHook,
    LoggingNotificationHook,
)
from paperportal.infrastructure.stores.directory_store import SqlAlchemyDirectoryStore
from paperportal.infrastructure.stores.notification_store import SqlAlchemyNotificationStore
from paperportal.infrastructure.stores.research_paper_store import SqlAlchemyResearchPaperStore
from paperportal.infrastructure.stores.sqlalchemy_db import get_db_url

_TRUTHY = {"1", "true", "yes", "on"}


def seed_reference_enabled() -> bool:
    return os.getenv("PAPERPORTAL_SEED_REFERENCE", "true").strip().lower() in _TRUTHY


def build_research_service(
    db_url: Optional[str] = None, *, seed_reference: Optional[bool] = None
) -> ResearchService:
    db_url = db_url or get_db_url()
    papers = SqlAlchemyResearchPaperStore(db_url)
    directory = SqlAlchemyDirectoryStore(db_url)
    inbox = SqlAlchemyNotificationStore(db_url)

    if seed_reference if seed_reference is not None else seed_reference_enabled():
        directory.seed_defaults()

    notifier = CompositeNotificationHook(
        [LoggingNotificationHook(), InboxNotificationHook(papers, inbox, directory)]
    )
    return ResearchService(papers, directory, notifier=notifier, inbox=inbox)
