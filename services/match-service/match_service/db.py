import os

from carpool_shared.database import Base, get_engine, get_session

DATABASE_URL = os.getenv("MATCH_DB")

if not DATABASE_URL:
    raise RuntimeError("MATCH_DB environment variable is not set")

engine = get_engine(DATABASE_URL)
SessionLocal = get_session(engine)

__all__ = ["Base", "engine", "SessionLocal"]
