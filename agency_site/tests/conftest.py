"""Shared fixtures for the web API tests."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from agency_site.chat import ChatProxy
from agency_site.cms import BuilderClient
from agency_site.config import Settings
from agency_site.rate_limiter import FixedWindowRateLimiter, MemoryRateLimitStore
from agency_site.web import create_app
from agency_site.webhook import WebhookDispatcher

WEBHOOK_SECRET = "whsec_test_secret"
REVALIDATE_SECRET = "revalidate-test-secret"


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def make_completion(content="Hello from the assistant", total_tokens=42):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message)],
        usage=SimpleNamespace(total_tokens=total_tokens),
    )


def make_openai_client(completion=None, side_effect=None):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=completion or make_completion(), side_effect=side_effect
    )
    return client


def make_settings(**overrides) -> Settings:
    values = {
        "openai_api_key": "sk-test-0123456789",
        "builder_api_key": "builder-public-key",
        "builder_private_key": "builder-private-key",
        "builder_space_id": "space-123",
        "builder_webhook_secret": WEBHOOK_SECRET,
        "revalidate_secret": REVALIDATE_SECRET,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def openai_client():
    return make_openai_client()


@pytest.fixture
def http_session():
    return MagicMock()


@pytest.fixture
def revalidate():
    return MagicMock(return_value=1)


@pytest.fixture
def app(clock, openai_client, http_session, revalidate):
    """Application with fakes in place of every outbound dependency."""
    application = create_app(make_settings())
    application.state.rate_limiter = FixedWindowRateLimiter(
        MemoryRateLimitStore(), max_requests=20, window_ms=60000, clock=clock
    )
    application.state.chat_proxy = ChatProxy("sk-test-0123456789", client=openai_client)
    application.state.cms_client = MagicMock(spec=BuilderClient)
    application.state.webhook_dispatcher = WebhookDispatcher(
        revalidate=revalidate,
        invalidate_model=application.state.content_cache.invalidate_model,
        deploy_hook_url="https://api.vercel.com/v1/integrations/deploy/prj_test/hook",
        notification_url="https://hooks.slack.com/services/T000/B000/XXXX",
        session=http_session,
    )
    return application


@pytest.fixture
def client(app):
    return TestClient(app)
