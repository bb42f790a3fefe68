import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="carpool-match-tests-")

# must be set before match_service.db / match_service.security are imported
os.environ["MATCH_DB"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'match.db')}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ.pop("REDIS_URL", None)
os.environ.pop("RABBIT_URL", None)

import pytest

from match_service import models  # noqa: F401  registers the tables on Base
from match_service.db import Base, SessionLocal, engine


@pytest.fixture
async def db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as session:
        yield session

    await engine.dispose()
