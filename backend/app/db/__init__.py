from app.db.session import async_session_maker, get_db, init_db
from app.db.base import Base
from app.db.store import RecordStore

__all__ = ["Base", "RecordStore", "async_session_maker", "get_db", "init_db"]
