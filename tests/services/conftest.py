"""Service test fixtures — reference service over ASGITransport + opened client.

Invariants:
    - Every test gets a fresh ServiceState (no cross-test call log leakage)
    - The opened ModerationClient shares the test's httpx client and is closed
      (telemetry drained) after the test
"""

import httpx
import pytest

from watchtower.config import ClientConfig
from watchtower.services.moderation_client import ModerationClient

from tests.services.reference_service import (
    BASE_URL,
    ServiceState,
    create_reference_service,
)


@pytest.fixture
def service_state():
    return ServiceState()


@pytest.fixture
async def http_client(service_state):
    app = create_reference_service(service_state)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), timeout=None,
    ) as c:
        yield c


@pytest.fixture
def client_config():
    return ClientConfig(api_base_url=BASE_URL, timeout_ms=1000)


@pytest.fixture
async def client(http_client, client_config):
    async with ModerationClient("test-key", client_config, http_client=http_client) as c:
        yield c
