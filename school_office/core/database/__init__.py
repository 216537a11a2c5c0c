from school_office.core.database.session import async_session, engine, get_db
from school_office.core.database.base import Base, BaseModel, BigIntPK, utcnow

__all__ = ["async_session", "engine", "get_db", "Base", "BaseModel", "BigIntPK", "utcnow"]
