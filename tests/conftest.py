"""Pytest configuration and fixtures."""
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

# Must be set before tinypm is imported: tinypm.main builds an app at import time
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from tinypm.config import Settings
from tinypm.core.container import AppContainer
from tinypm.core.errors import DomainErrorCode, DomainVerificationError
from tinypm.core.security import create_access_token
from tinypm.db.session import Database
from tinypm.models import Base, Subscription, SubscriptionStatus, User

BASE_URL = "http://tiny.pm"


class FakeClock:
    """Injectable clock the tests move forward by hand."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeDnsVerifier:
    """Answers CNAME lookups from a dict; unknown names raise DNS_ERROR."""

    def __init__(self):
        self.records: Dict[str, List[str]] = {}
        self.calls: List[str] = []

    def point(self, domain: str, *targets: str) -> None:
        self.records[domain] = list(targets)

    def resolve_cname(self, domain: str) -> List[str]:
        self.calls.append(domain)
        if domain not in self.records:
            raise DomainVerificationError(
                DomainErrorCode.DNS_ERROR,
                "No DNS records found. Please ensure you have added the CNAME record.",
            )
        return self.records[domain]


# --- Per-test fixtures ---

@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        APP_ENV="development",
        DATABASE_URL="sqlite://",
        ROOT_DOMAIN="tiny.pm",
        DOMAIN_MAX_VERIFICATION_ATTEMPTS=5,
        DOMAIN_VERIFICATION_COOLDOWN_SECONDS=300,
    )


@pytest.fixture
def database():
    """In-memory SQLite shared by every session of the test (StaticPool)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    database = Database(engine)
    yield database
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(database):
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def dns() -> FakeDnsVerifier:
    return FakeDnsVerifier()


@pytest.fixture
def container(settings, database, dns, clock) -> AppContainer:
    return AppContainer(settings=settings, database=database, dns_verifier=dns, clock=clock)


@pytest.fixture
def app(container):
    from tinypm.main import create_app

    return create_app(container=container)


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url=BASE_URL) as ac:
        yield ac


# --- Helpers ---

def create_user(
    db,
    email: Optional[str] = None,
    username: Optional[str] = None,
    subscription_status: Optional[SubscriptionStatus] = SubscriptionStatus.ACTIVE,
) -> User:
    """Insert a user, optionally with a subscription in the given status."""
    user = User(
        id=uuid.uuid4(),
        email=email or f"{uuid.uuid4().hex[:8]}@example.com",
        name="Test User",
        username=username,
    )
    db.add(user)
    db.commit()
    if subscription_status is not None:
        db.add(Subscription(user_id=user.id, status=subscription_status.value))
        db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}
