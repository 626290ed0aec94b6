from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager
from typing import Protocol, cast

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from datalab_server.settings import Settings


class SessionFactory(Protocol):
    def __call__(self, read_only: bool = False) -> AbstractAsyncContextManager[AsyncSession]: ...


class HasSessionFactory(Protocol):
    get_db_session: SessionFactory


class HasSettings(Protocol):
    settings: Settings


async def get_db_session(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.get_db_session() as session:
        yield session


async def get_readonly_db_session(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.get_db_session(read_only=True) as session:
        yield session


def get_session_factory(request: Request) -> SessionFactory:
    """Sessions whose lifetime must outlive the request handler, e.g. streamed bodies."""
    state = cast(HasSessionFactory, request.app.state)
    return state.get_db_session


def get_settings(request: Request) -> Settings:
    state = cast(HasSettings, request.app.state)
    return getattr(state, "settings", Settings())
