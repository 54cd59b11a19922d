from src.db.connection import Base, check_db_health, dispose_engine, get_db, get_engine, get_sessionmaker
from src.db.rate_limits import RateLimitAttempt
from src.db.schema import ensure_schema
from src.db.subscribers import Subscriber

__all__ = [
    "Base",
    "RateLimitAttempt",
    "Subscriber",
    "check_db_health",
    "dispose_engine",
    "ensure_schema",
    "get_db",
    "get_engine",
    "get_sessionmaker",
]
