"""Shared test fixtures — async DB, client, notifier, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from crm.auth.security import create_access_token, hash_password
from crm.common.constants import UserRole, UserStatus
from crm.config import settings
from crm.database import Base, get_db
from crm.main import create_app
from crm.realtime.dependencies import get_notifier

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
# (e.g. Subscription → BusinessAccount, Project → User).
import crm.users.models  # noqa: F401
import crm.alerts.models  # noqa: F401
import crm.notifications.models  # noqa: F401
import crm.leave.models  # noqa: F401
import crm.catalog.models  # noqa: F401
import crm.accounts.models  # noqa: F401
import crm.subscriptions.models  # noqa: F401
import crm.projects.models  # noqa: F401
import crm.tasks.models  # noqa: F401
import crm.events.models  # noqa: F401
import crm.attendance.models  # noqa: F401

# ── SQLite compat: compile PG-specific types to TEXT ────────────────

from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from crm.common.rate_limit import limiter
    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Recording notifier ──────────────────────────────────────────────

class RecordingPort:
    """NotificationPort that keeps every emit for later assertions."""

    def __init__(self) -> None:
        self.sent: list[tuple[Optional[str], str, Any]] = []

    async def emit_to_user(self, user_id, event: str, payload: Any) -> None:
        self.sent.append((str(user_id), event, payload))

    async def broadcast(self, event: str, payload: Any) -> None:
        self.sent.append((None, event, payload))

    def events(self, name: str) -> list[tuple[Optional[str], str, Any]]:
        return [s for s in self.sent if s[1] == name]


class FailingPort:
    """NotificationPort whose every push raises."""

    async def emit_to_user(self, user_id, event: str, payload: Any) -> None:
        raise RuntimeError("socket layer down")

    async def broadcast(self, event: str, payload: Any) -> None:
        raise RuntimeError("socket layer down")


@pytest.fixture
def notifier() -> RecordingPort:
    return RecordingPort()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app(notifier):
    """Create a fresh app instance with DB and notifier overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    application.dependency_overrides[get_notifier] = lambda: notifier
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

async def make_user(
    db: AsyncSession,
    *,
    name: str = "Test User",
    email: Optional[str] = None,
    role: UserRole = UserRole.employee,
    team_id: Optional[uuid.UUID] = None,
    password: Optional[str] = None,
    status: UserStatus = UserStatus.active,
    created_at: Optional[datetime] = None,
):
    from crm.users.models import User

    user = User(
        name=name,
        email=email or f"{uuid.uuid4().hex[:8]}@example.com",
        role=role,
        team_id=team_id,
        status=status,
        password_hash=hash_password(password) if password else None,
    )
    if created_at is not None:
        user.created_at = created_at
    db.add(user)
    await db.flush()
    return user


async def make_service(
    db: AsyncSession,
    *,
    name: str = "SEO",
    gst_rate: Decimal = Decimal("18"),
    base_price: Optional[Decimal] = None,
    plans: Optional[list[dict]] = None,
):
    from crm.catalog.models import BrandService, Plan

    if plans is None:
        plans = [
            dict(
                name="Basic",
                price_monthly=Decimal("1000"),
                price_yearly=Decimal("10000"),
                features=["Audit", "Keywords"],
            ),
        ]
    service = BrandService(
        service_name=name,
        gst_rate=gst_rate,
        base_price=base_price,
        notes=[],
        plans=[Plan(**p) for p in plans],
    )
    db.add(service)
    await db.flush()
    return service


async def make_account(
    db: AsyncSession,
    *,
    business_name: str = "Acme Traders",
    assigned_to_id: Optional[uuid.UUID] = None,
    owner_id: Optional[uuid.UUID] = None,
    **extra,
):
    from crm.accounts.models import BusinessAccount

    account = BusinessAccount(
        business_name=business_name,
        contact_name="Ravi",
        contact_number="9999999999",
        assigned_to_id=assigned_to_id,
        owner_id=owner_id,
        notes=[],
        follow_ups=[],
        **extra,
    )
    db.add(account)
    await db.flush()
    return account


# ── Auth helpers ────────────────────────────────────────────────────

def auth_headers_for(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


def expired_token(user_id: uuid.UUID, role: UserRole = UserRole.employee) -> str:
    payload = {
        "sub": str(user_id),
        "role": role.value,
        "type": "access",
        "exp": datetime.now(timezone.utc) - timedelta(hours=1),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
