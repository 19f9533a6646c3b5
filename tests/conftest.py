"""
Test fixtures and shared setup.

Every test gets its own in-memory SQLite database: tables are created from
Base.metadata and the five statuses are seeded, so tests never see each
other's data. Scorer and rule tests build transient objects and need no DB.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

# ── Override settings BEFORE importing app modules ────────────────────────────
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("NOTIFICATION_BACKEND", "log")
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault(
    "LOCAL_STORAGE_PATH", os.path.join(tempfile.gettempdir(), "lecturer_claims_test")
)

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import get_db
from app.main import app
from app.models import *  # noqa: F401,F403  registers all models
from app.models.base import Base
from app.models.claim import Claim, SupportingDocument
from app.models.status import ClaimStatus
from app.models.user import User, UserRole
from app.reference.seed import seed_statuses
from app.routers.auth import create_access_token, token_data_for

NOW = datetime(2026, 6, 15, 9, 0, tzinfo=timezone.utc)


# ── Database ──────────────────────────────────────────────────────────────────


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    """A session on a fresh database with the statuses seeded."""
    TestSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestSessionLocal()
    seed_statuses(session)
    yield session
    session.close()


@pytest.fixture
def client(db: Session) -> TestClient:
    """
    FastAPI test client with DB dependency overridden to use the test session.
    """

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ── Data builder fixtures ──────────────────────────────────────────────────────


def _make_user(db: Session, email: str, role: str, rate: str = "0.00") -> User:
    first, _, last = email.split("@")[0].partition(".")
    user = User(
        email=email,
        # Tests authenticate with minted tokens, never with the password
        hashed_password="not-a-real-hash",
        role=role,
        first_name=first.title(),
        last_name=(last or "User").title(),
        hourly_rate=Decimal(rate),
        is_active=True,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def lecturer(db: Session) -> User:
    return _make_user(db, "thandi.mokoena@college.test", UserRole.LECTURER, "250.00")


@pytest.fixture
def other_lecturer(db: Session) -> User:
    return _make_user(db, "pieter.smit@college.test", UserRole.LECTURER, "300.00")


@pytest.fixture
def coordinator(db: Session) -> User:
    return _make_user(db, "ayesha.khan@college.test", UserRole.COORDINATOR)


@pytest.fixture
def manager(db: Session) -> User:
    return _make_user(db, "john.dlamini@college.test", UserRole.MANAGER)


@pytest.fixture
def hr_user(db: Session) -> User:
    return _make_user(db, "lerato.nkosi@college.test", UserRole.HR)


@pytest.fixture
def make_claim(db: Session):
    """
    Factory: make_claim(user, hours=10, amount=None, days_ago=0,
                        status=SUBMITTED, files=()) -> Claim

    amount defaults to user.hourly_rate x hours. Claims are committed.
    """

    def _make(
        user: User,
        hours: int = 10,
        amount=None,
        days_ago: int = 0,
        status: int = ClaimStatus.SUBMITTED,
        files=(),
    ) -> Claim:
        claim = Claim(
            user_id=user.id,
            hours_worked=hours,
            total_amount=(
                Decimal(amount) if amount is not None else user.hourly_rate * hours
            ),
            submitted_at=NOW - timedelta(days=days_ago),
            current_status_id=status,
        )
        db.add(claim)
        db.flush()
        for name in files:
            db.add(
                SupportingDocument(
                    claim_id=claim.id, file_name=name, file_path=f"claim_{claim.id}/{name}"
                )
            )
        db.commit()
        db.refresh(claim)
        return claim

    return _make


# ── Helpers ───────────────────────────────────────────────────────────────────


def auth_header(user: User) -> dict:
    """Build Authorization header with a fresh JWT for the given user."""
    return {"Authorization": f"Bearer {create_access_token(token_data_for(user))}"}


@pytest.fixture
def auth_for():
    """auth_for(user) -> headers dict; shorthand for router tests."""
    return auth_header
