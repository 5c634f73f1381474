import os

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./samagra_test.db")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("STORE_READ_RETRIES", "1")

from collections.abc import AsyncGenerator
from unittest.mock import MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from samagra import dependencies
from samagra.core.redis_client import CacheManager
from samagra.database import get_db
from samagra.dependencies import get_cache_manager
from samagra.main import app
from samagra.models import doctors, metadata, patients

DOCTOR_ID = "doctor-asha"
OTHER_DOCTOR_ID = "doctor-vikram"
PATIENT_ID = "patient-meera"
OTHER_PATIENT_ID = "patient-arjun"

# Bearer token -> decoded Firebase claims
TOKENS = {
    "doctor-token": {"uid": DOCTOR_ID, "role": "doctor"},
    "other-doctor-token": {"uid": OTHER_DOCTOR_ID, "role": "doctor"},
    "patient-token": {"uid": PATIENT_ID, "role": "patient"},
    "other-patient-token": {"uid": OTHER_PATIENT_ID, "role": "patient"},
    "no-role-token": {"uid": "someone"},
    "admin-token": {"uid": "someone-else", "role": "admin"},
}


async def fake_verify_firebase_token(id_token: str) -> dict:
    """Stand-in for Firebase token verification."""
    if id_token not in TOKENS:
        raise ValueError("Invalid token")
    return TOKENS[id_token]


def bearer(token: str) -> dict:
    """Authorization header for a known test token."""
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh SQLite database per test, seeded with two doctors and two patients."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'samagra.db'}",
        poolclass=NullPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
        await conn.execute(
            insert(doctors),
            [
                {
                    "id": DOCTOR_ID,
                    "first_name": "Asha",
                    "last_name": "Rao",
                    "specialization": "Cardiology",
                },
                {
                    "id": OTHER_DOCTOR_ID,
                    "first_name": "Vikram",
                    "last_name": "Shah",
                    "specialization": "Dermatology",
                },
            ],
        )
        await conn.execute(
            insert(patients),
            [
                {"id": PATIENT_ID, "first_name": "Meera", "last_name": "Iyer"},
                {"id": OTHER_PATIENT_ID, "first_name": "Arjun", "last_name": "Das"},
            ],
        )

    yield async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    await test_engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_redis() -> MagicMock:
    """Redis double that always misses."""
    redis = MagicMock()
    redis.get.return_value = None
    return redis


@pytest.fixture
def fcm_send():
    """Capture FCM sends instead of calling Firebase."""
    with patch(
        "samagra.services.notification_service.messaging.send",
        return_value="projects/samagra/messages/1",
    ) as send:
        yield send


@pytest_asyncio.fixture
async def client(
    session_factory, mock_redis: MagicMock, fcm_send, monkeypatch
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client.

    Every request gets its own session, like ``get_db`` in production, so
    concurrent requests do not share a connection.
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_manager] = lambda: CacheManager(redis_client=mock_redis)
    monkeypatch.setattr(dependencies, "verify_firebase_token", fake_verify_firebase_token)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def doctor_headers() -> dict:
    return bearer("doctor-token")


@pytest.fixture
def other_doctor_headers() -> dict:
    return bearer("other-doctor-token")


@pytest.fixture
def patient_headers() -> dict:
    return bearer("patient-token")


@pytest.fixture
def other_patient_headers() -> dict:
    return bearer("other-patient-token")


@pytest.fixture
def sample_appointment_data() -> dict:
    """Sample appointment request for testing."""
    return {
        "doctor_id": DOCTOR_ID,
        "appointment_date": "2024-03-25",
        "start_time": "10:00",
        "end_time": "10:30",
        "reason": "Follow-up on blood pressure",
    }
