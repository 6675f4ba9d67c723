"""
Pytest configuration and fixtures for Soudan tests

Every test runs against in-memory tenant databases. Remote pages are served
by FakeVerifier instead of the network.
"""

import os
import sys
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH119, PTH120

from soudan.config import Settings  # noqa: E402
from soudan.main import create_app  # noqa: E402
from soudan.services.comment_store import CommentStore  # noqa: E402
from soudan.services.tenant_registry import TenantRegistry  # noqa: E402
from utils.mocks import CONTENT_ID, DOMAINS, ORIGIN, PAGE_URL, FakeVerifier  # noqa: E402


@pytest.fixture
def test_settings() -> Settings:
    return Settings(domains=DOMAINS, testing=True)


@pytest.fixture
async def registry(test_settings: Settings) -> AsyncGenerator[TenantRegistry, None]:
    """Tenant registry with freshly created in-memory stores."""
    registry = TenantRegistry.from_domains(test_settings.domains, testing=True)
    await registry.init_stores()
    yield registry
    await registry.dispose()


@pytest.fixture
def store(registry: TenantRegistry) -> CommentStore:
    """Comment store of the main test tenant."""
    return registry.lookup(ORIGIN)


@pytest.fixture
def verifier() -> FakeVerifier:
    verifier = FakeVerifier()
    verifier.add_page(PAGE_URL, CONTENT_ID)
    return verifier


@pytest.fixture
def app(test_settings: Settings, registry: TenantRegistry, verifier: FakeVerifier):
    return create_app(test_settings, registry=registry, verifier=verifier)


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client talking to the app in-process (lifespan is not run; registry fixture creates the tables)."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://soudan.test") as client:
        yield client
