"""
Test Configuration and Fixtures
Provides shared test setup for all test cases
"""
import asyncio
import time
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import settings
from app.database import connection as db_connection_module
from app.database.connection import Base
from app.database.queue import DatabaseQueue
from app.main import app
from app.models import Call  # noqa: F401
from app.services import call_service, zapier_service
from app.services.telnyx_service import client as telnyx_client
from app.services.telnyx_service.call_coordinator import CallCoordinator
from app.utils.dependencies import get_call_coordinator

# Test database URL (use in-memory SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

CUSTOMER_NUMBER = "+15551234567"
BUSINESS_NUMBER = "+15557654321"
HUMAN_NUMBER = "+15550001111"
ZAPIER_URL = "https://hooks.zapier.test/hooks/catch/123/abc"

TELNYX_ACTIONS = (
    "answer_call",
    "start_recording",
    "speak",
    "playback_audio",
    "gather_using_speak",
    "gather_using_audio",
    "bridge_calls",
    "hangup_call",
)


@pytest_asyncio.fixture(scope="function")
async def db_session_local(monkeypatch):
    """Fresh in-memory database and a fresh single-writer queue for each test"""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_local = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(db_connection_module, "AsyncSessionLocal", session_local)
    monkeypatch.setattr(call_service, "AsyncSessionLocal", session_local)
    monkeypatch.setattr(call_service, "db_queue", DatabaseQueue())

    yield session_local

    await test_engine.dispose()


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    """Collapse call-flow delays and pin phone numbers"""
    overrides = {
        "TELNYX_API_KEY": "KEY_TEST",
        "TELNYX_API_BASE": "https://api.telnyx.test/v2",
        "TELNYX_PHONE_NUMBER": BUSINESS_NUMBER,
        "TELNYX_CONNECTION_ID": "conn-123",
        "WEBHOOK_BASE_URL": "https://router.example.com",
        "HUMAN_PHONE_NUMBER": HUMAN_NUMBER,
        "USE_RECORDED_PROMPTS": False,
        "IVR_MENU_DELAY_SECONDS": 0,
        "GREETING_SETTLE_SECONDS": 0,
        "INVALID_SELECTION_DELAY_SECONDS": 0,
        "HUMAN_DIAL_DELAY_SECONDS": 0,
        "HUMAN_GREETING_DELAY_SECONDS": 0,
        "HUMAN_ANSWER_TIMEOUT_SECONDS": 35.0,
        "MAPPING_WAIT_SECONDS": 0.05,
        "MAPPING_POLL_SECONDS": 0.01,
        "CLOUDINARY_CLOUD_NAME": None,
        "CLOUDINARY_API_KEY": None,
        "CLOUDINARY_API_SECRET": None,
        "ASSEMBLYAI_API_KEY": None,
        "ZAPIER_WEBHOOK_URL": None,
        "ZAPIER_SEND_DELAY_SECONDS": 0,
        "ZAPIER_RETRY_DELAY_SECONDS": 0.01,
        "ZAPIER_ERROR_RETRY_DELAY_SECONDS": 0.02,
        "ZAPIER_MAX_ATTEMPTS": 3,
    }
    for name, value in overrides.items():
        monkeypatch.setattr(settings, name, value)
    return settings


@pytest.fixture
def telnyx(monkeypatch):
    """Replace every Telnyx REST action with an AsyncMock that succeeds"""
    mocks = {}
    for name in TELNYX_ACTIONS:
        mocks[name] = AsyncMock(return_value=True)
        monkeypatch.setattr(telnyx_client, name, mocks[name])
    mocks["create_outbound_call"] = AsyncMock(return_value="human-leg-1")
    monkeypatch.setattr(telnyx_client, "create_outbound_call", mocks["create_outbound_call"])
    return SimpleNamespace(**mocks)


@pytest_asyncio.fixture
async def coordinator(db_session_local):
    coordinator = CallCoordinator()
    yield coordinator
    await coordinator.shutdown()
    await zapier_service.cancel_pending_deliveries()


@pytest_asyncio.fixture
async def client(coordinator):
    """Create test HTTP client bound to the test coordinator"""
    app.dependency_overrides[get_call_coordinator] = lambda: coordinator
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def zapier_endpoint(monkeypatch, fast_settings):
    """
    Route Zapier POSTs to an in-process handler.
    Set endpoint.responses to a list of status codes (or exceptions) to play back.
    """
    endpoint = SimpleNamespace(requests=[], responses=[])

    def handler(request: httpx.Request) -> httpx.Response:
        endpoint.requests.append(request)
        outcome = endpoint.responses.pop(0) if endpoint.responses else 200
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome, text="ok")

    monkeypatch.setattr(settings, "ZAPIER_WEBHOOK_URL", ZAPIER_URL)
    monkeypatch.setattr(
        zapier_service,
        "_http_client",
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )
    return endpoint


def telnyx_event(event_type: str, call_id: str, **payload) -> dict:
    """Build a Telnyx webhook body"""
    return {"data": {"event_type": event_type, "payload": {"call_control_id": call_id, **payload}}}


async def eventually(predicate, timeout: float = 1.0, interval: float = 0.01) -> bool:
    """Wait until predicate() is truthy or the timeout passes"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return bool(predicate())
