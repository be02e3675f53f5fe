"""
Test Configuration and Fixtures
================================

Central configuration for pytest with all shared fixtures.

Features:
- SQLite in-memory database for testing
- TestClient setup with database, blob store and LLM overrides
- One user per role, with access tokens and auth headers
- Sample stores and an incident
"""

import os
import uuid
from datetime import datetime, UTC
from typing import Generator

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Set testing environment before importing storesafe modules
os.environ["ENVIRONMENT"] = "testing"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-min-32-chars"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"  # Disable rate limiting in tests
os.environ["OPENAI_API_KEY"] = ""

from storesafe.db.base import Base
from storesafe.db.session import get_db
from storesafe.models.user import User
from storesafe.models.store import Store
from storesafe.models.role_enum import Role
from storesafe.core.enums import IncidentCategory, Severity
from storesafe.schemas.incident import IncidentCreate
from storesafe.services.auth_service import AuthService
from storesafe.services.incident_service import IncidentService
from storesafe.services.llm_client import LLMClient, get_llm_client
from storesafe.services.storage_service import BlobStore, get_blob_store
from storesafe.main import app as main_app


# =====================================
# Database Configuration
# =====================================

# StaticPool keeps the same connection across a test
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


# =====================================
# Database Fixtures
# =====================================

@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """
    Fresh tables for every test.

    Yields:
        SQLAlchemy Session object
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


# =====================================
# Service Overrides
# =====================================

@pytest.fixture
def blob_store(tmp_path) -> BlobStore:
    return BlobStore(root=tmp_path / "blobs")


@pytest.fixture
def llm_replies() -> list:
    """
    Queue of chat-completion reply texts served by the mock LLM.

    Tests append strings; each request pops the first one.
    """
    return []


@pytest.fixture
def llm_requests() -> list:
    """Request bodies the mock LLM received."""
    return []


@pytest.fixture
def llm_client(llm_replies: list, llm_requests: list) -> LLMClient:
    def handler(request: httpx.Request) -> httpx.Response:
        llm_requests.append(request)
        content = llm_replies.pop(0) if llm_replies else ""
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    return LLMClient(
        api_key="test-key",
        base_url="https://llm.test/v1",
        model="test-model",
        max_retries=2,
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture(scope="function")
def client(
    db_session: Session,
    blob_store: BlobStore,
    llm_client: LLMClient,
) -> Generator[TestClient, None, None]:
    """
    TestClient with the database session, a temporary blob store and the
    mock LLM client injected.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    main_app.dependency_overrides[get_db] = override_get_db
    main_app.dependency_overrides[get_blob_store] = lambda: blob_store
    main_app.dependency_overrides[get_llm_client] = lambda: llm_client

    with TestClient(main_app) as test_client:
        yield test_client

    main_app.dependency_overrides.clear()


# =====================================
# User Fixtures
# =====================================

def _make_user(db_session: Session, email: str, role: Role, **overrides) -> User:
    values = dict(
        id=uuid.uuid4(),
        email=email,
        hashed_password=AuthService.hash_password("TestPassword123!"),
        full_name=email.split("@")[0].title(),
        role=role,
        is_active=True,
        is_locked=False,
        failed_attempts=0,
        token_version=1,
    )
    values.update(overrides)
    user = User(**values)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_user(db_session: Session) -> User:
    return _make_user(db_session, "admin@example.com", Role.ADMIN)


@pytest.fixture
def ops_user(db_session: Session) -> User:
    """Ops manager with a saved home in central Manchester."""
    return _make_user(
        db_session,
        "ops@example.com",
        Role.OPS,
        home_address="1 Deansgate, Manchester",
        home_latitude=53.4794,
        home_longitude=-2.2453,
    )


@pytest.fixture
def readonly_user(db_session: Session) -> User:
    return _make_user(db_session, "viewer@example.com", Role.READONLY)


@pytest.fixture
def pending_user(db_session: Session) -> User:
    return _make_user(db_session, "pending@example.com", Role.PENDING)


@pytest.fixture
def locked_user(db_session: Session) -> User:
    return _make_user(
        db_session, "locked@example.com", Role.OPS, is_locked=True, failed_attempts=5
    )


@pytest.fixture
def inactive_user(db_session: Session) -> User:
    return _make_user(db_session, "inactive@example.com", Role.OPS, is_active=False)


# =====================================
# Token and Header Fixtures
# =====================================

def _headers(user: User) -> dict:
    token = AuthService.create_access_token(user_id=user.id, token_version=user.token_version)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return _headers(admin_user)


@pytest.fixture
def ops_headers(ops_user: User) -> dict:
    return _headers(ops_user)


@pytest.fixture
def readonly_headers(readonly_user: User) -> dict:
    return _headers(readonly_user)


@pytest.fixture
def pending_headers(pending_user: User) -> dict:
    return _headers(pending_user)


@pytest.fixture
def ops_refresh_token(ops_user: User) -> str:
    return AuthService.create_refresh_token(user_id=ops_user.id, token_version=ops_user.token_version)


# =====================================
# Domain Fixtures
# =====================================

@pytest.fixture
def sample_store(db_session: Session) -> Store:
    store = Store(
        store_code="MAN01",
        store_name="Manchester Arndale",
        address_line_1="Market Street",
        city="Manchester",
        postcode="M4 3AQ",
        region="North West",
        latitude=53.4831,
        longitude=-2.2400,
    )
    db_session.add(store)
    db_session.commit()
    db_session.refresh(store)
    return store


@pytest.fixture
def north_west_stores(db_session: Session) -> list:
    """Four located stores: three in Greater Manchester and one in Liverpool."""
    rows = [
        ("MAN01", "Manchester Arndale", "M4 3AQ", 53.4831, -2.2400),
        ("MAN02", "Trafford Centre", "M17 8AA", 53.4668, -2.3470),
        ("STK01", "Stockport Merseyway", "SK1 1PD", 53.4103, -2.1575),
        ("LIV01", "Liverpool ONE", "L1 8JQ", 53.4038, -2.9870),
    ]
    stores = [
        Store(
            store_code=code,
            store_name=name,
            postcode=postcode,
            region="North West",
            latitude=lat,
            longitude=lon,
        )
        for code, name, postcode, lat, lon in rows
    ]
    db_session.add_all(stores)
    db_session.commit()
    for store in stores:
        db_session.refresh(store)
    return stores


@pytest.fixture
def sample_incident(db_session: Session, sample_store: Store, ops_user: User):
    payload = IncidentCreate(
        store_id=sample_store.id,
        incident_category=IncidentCategory.ACCIDENT,
        severity=Severity.MEDIUM,
        summary="Customer slipped near entrance",
        occurred_at=datetime(2026, 3, 1, 14, 20, tzinfo=UTC),
    )
    return IncidentService(db_session).create(payload, ops_user)
