"""Fixtures for route tests: an in-memory database and an ASGI client."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from dealstack.db.connection import enable_sqlite_foreign_keys, set_session_factory
from dealstack.db.models import Base, CustomerModel, UserModel
from dealstack.web.app import install_error_handlers


@pytest.fixture
def make_app() -> Callable[..., FastAPI]:
    """Build a FastAPI app with the API error handlers and the given routers."""

    def _make_app(*routers) -> FastAPI:
        test_app = FastAPI()
        install_error_handlers(test_app)
        for router in routers:
            test_app.include_router(router)
        return test_app

    return _make_app


@pytest_asyncio.fixture()
async def database() -> async_sessionmaker[AsyncSession]:
    """Create in-memory database and install it as the app's session factory."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    set_session_factory(factory)
    try:
        yield factory
    finally:
        set_session_factory(None)
        await engine.dispose()


@pytest_asyncio.fixture()
async def seed(database) -> Callable:
    """Insert ORM records directly; returns them with ids assigned."""

    async def _seed(*records):
        async with database() as session:
            session.add_all(records)
            await session.commit()
        return records if len(records) > 1 else records[0]

    return _seed


@pytest_asyncio.fixture()
async def client(app: FastAPI, database) -> httpx.AsyncClient:
    """Async client for the module's ``app`` fixture."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def customer(seed, test_org_id) -> CustomerModel:
    return await seed(
        CustomerModel(
            org_id=test_org_id,
            name="Acme Corp",
            email="billing@acme.test",
            company="Acme",
            status="active",
        )
    )


@pytest_asyncio.fixture()
async def agent(seed, test_org_id) -> UserModel:
    return await seed(
        UserModel(
            org_id=test_org_id,
            email="agent@dealstack.test",
            name="Alex Agent",
            role="agent",
            password_hash="x",
        )
    )
