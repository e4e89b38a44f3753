"""
Pytest Configuration and Fixtures

Seeds the environment before the app is imported and provides token,
repository and HTTP client fixtures.
"""

import os

os.environ.setdefault("NODE_ENV", "test")
os.environ.setdefault("BASE_URL", "https://elevateher.test")
os.environ.setdefault("NEWSLETTER_SECRET", "test-newsletter-secret")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("MAILJET_API_KEY", "mj-key")
os.environ.setdefault("MAILJET_SECRET_KEY", "mj-secret")

from unittest.mock import AsyncMock, MagicMock

import pytest

from core.base.models import Subscriber
from core.services.token_service import TokenService

SECRET = "test-newsletter-secret"
T0 = 1_700_000_000


class FrozenClock:
    """Callable clock that only moves when a test moves it."""

    def __init__(self, now: float = T0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ==================== Token Fixtures ====================

@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def token_service(clock) -> TokenService:
    return TokenService(SECRET, clock=clock)


# ==================== Database Fixtures ====================

@pytest.fixture
def mock_collection() -> AsyncMock:
    """
    Create a mock motor collection.

    Returns:
        AsyncMock with find_one/update_one configured to succeed.
    """
    collection = AsyncMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.update_one = AsyncMock(return_value=MagicMock(matched_count=1, modified_count=1))
    return collection


@pytest.fixture
def subscriber_factory():
    """Build Subscriber models with sensible defaults."""
    def _create(email: str = "a@b.com", **kwargs) -> Subscriber:
        return Subscriber(email=email, **kwargs)
    return _create


# ==================== HTTP Client Fixtures ====================

@pytest.fixture
def mock_subscriber_service(subscriber_factory) -> AsyncMock:
    service = AsyncMock()
    service.unsubscribe = AsyncMock(side_effect=lambda email: subscriber_factory(email, status="unsubscribed"))
    service.resubscribe = AsyncMock(side_effect=lambda email: subscriber_factory(email))
    service.subscribe = AsyncMock(side_effect=lambda email, name=None, source=None: subscriber_factory(email, name=name))
    service.unsubscribe_by_public_id = AsyncMock(return_value=True)
    service.resubscribe_by_public_id = AsyncMock(return_value=True)
    return service


@pytest.fixture
def mock_email_service() -> AsyncMock:
    service = AsyncMock()
    service.send_unsubscribe_confirmation_email = AsyncMock(return_value=None)
    return service


@pytest.fixture
def client(token_service, mock_subscriber_service, mock_email_service):
    """TestClient with services swapped out and rate limiting off. Lifespan is not run."""
    from fastapi.testclient import TestClient

    import app as app_module

    app = app_module.app
    app.dependency_overrides[app_module.get_token_service] = lambda: token_service
    app.dependency_overrides[app_module.get_subscriber_service] = lambda: mock_subscriber_service
    app.dependency_overrides[app_module.get_email_service] = lambda: mock_email_service
    app.state.limiter.enabled = False

    yield TestClient(app)

    app.dependency_overrides.clear()
    app.state.limiter.enabled = True
