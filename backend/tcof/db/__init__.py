"""Database package."""

from tcof.db.base import Base, BaseModel
from tcof.db.session import DBSession, async_session_factory, get_db_session

__all__ = ["Base", "BaseModel", "DBSession", "async_session_factory", "get_db_session"]
