from .directory_store import SqlAlchemyDirectoryStore
from .memory_paper_store import InMemoryResearchPaperStore
from .notification_store import SqlAlchemyNotificationStore
from .research_paper_store import SqlAlchemyResearchPaperStore
from .sqlalchemy_db import SessionProvider, get_db_url

__all__ = [
    "InMemoryResearchPaperStore",
    "SessionProvider",
    "SqlAlchemyDirectoryStore",
    "SqlAlchemyNotificationStore",
    "SqlAlchemyResearchPaperStore",
    "get_db_url",
]
