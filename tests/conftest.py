# tests/conftest.py
"""
Shared pytest fixtures.

- Async test support (pytest-asyncio auto mode, see pyproject.toml)
- In-memory SQLite database with every table created
- httpx AsyncClient over the FastAPI app with database and delivery
  dependencies overridden
"""

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from itsm.assignment.application import StaticPolicyProvider
from itsm.infrastructure.database import Base
from itsm.tickets.infrastructure.models import TenantModel, UserModel

# Register notification tables on Base.metadata
import itsm.notifications.infrastructure.models  # noqa: F401

from tests.fakes import FakeEmailSender


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
async def engine():
    """In-memory SQLite engine shared across connections."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
async def seeded(session_maker):
    """
    Two tenants.

    Tenant 1: admin 101, agent 102, plain user 103.
    Tenant 2: agent 201.
    """
    async with session_maker() as session:
        session.add_all([
            TenantModel(id=1, name="Acme IT", subdomain="acme"),
            TenantModel(id=2, name="Globex", subdomain="globex"),
        ])
        await session.flush()
        session.add_all([
            UserModel(id=101, tenant_id=1, username="alice", email="alice@acme.test",
                      first_name="Alice", last_name="Admin", role="admin"),
            UserModel(id=102, tenant_id=1, username="bob", email="bob@acme.test",
                      first_name="Bob", last_name="Agent", role="agent"),
            UserModel(id=103, tenant_id=1, username="carol", email="carol@acme.test", role="user"),
            UserModel(id=201, tenant_id=2, username="dave", email="dave@globex.test", role="agent"),
        ])
        await session.commit()


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture
async def client(session_maker, email_sender) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for the FastAPI app.

    The lifespan is not run: the database, policy, email sender and Slack
    client come from test fixtures instead.
    """
    from itsm.assignment.interfaces import get_policy_provider
    from itsm.infrastructure.database import get_session
    from itsm.main import app
    from itsm.notifications.interfaces.controllers import get_email_sender, get_fallback_email_config

    async def _get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_policy_provider] = lambda: StaticPolicyProvider()
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    app.dependency_overrides[get_fallback_email_config] = lambda: None
    app.state.slack_client = None

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
