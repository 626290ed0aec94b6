import uuid
from typing import AsyncGenerator, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine, create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from alembic import command
from alembic.config import Config
from datalab_server import database
from datalab_server.dependencies import get_db_session, get_readonly_db_session
from datalab_server.settings import Settings


def _migrated_memory_db() -> tuple[Engine, str]:
    db_name = f"datalab_test_{uuid.uuid4().hex}"
    shared_memory_uri = f"file:{db_name}?mode=memory&cache=shared&uri=true"
    # Kept open so the shared in-memory database outlives the migration.
    sync_engine = create_engine(f"sqlite+pysqlite:///{shared_memory_uri}", poolclass=StaticPool)

    alembic_cfg = Config("alembic.ini")
    with sync_engine.begin() as connection:
        alembic_cfg.attributes["connection"] = connection
        command.upgrade(alembic_cfg, "head")

    return sync_engine, shared_memory_uri


@pytest.fixture
def session_maker() -> Generator[async_sessionmaker[AsyncSession], None, None]:
    sync_engine, shared_memory_uri = _migrated_memory_db()
    engine = create_async_engine(f"sqlite+aiosqlite:///{shared_memory_uri}", echo=False, poolclass=StaticPool)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    sync_engine.dispose()


@pytest.fixture
def client(session_maker: async_sessionmaker[AsyncSession]) -> Generator[TestClient, None, None]:
    from starlette.routing import _DefaultLifespan

    from datalab_server.app import create_app

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with database.get_session(session_maker) as session:
            yield session

    async def override_readonly_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with database.get_session(session_maker, read_only=True) as session:
            yield session

    app = create_app()

    app.router.lifespan_context = _DefaultLifespan(app.router)
    app.state.settings = Settings(export_batch_size=2)
    app.state.get_db_session = lambda read_only=False: database.get_session(session_maker, read_only)

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_readonly_db_session] = override_readonly_db_session

    with TestClient(app) as test_client:
        yield test_client
