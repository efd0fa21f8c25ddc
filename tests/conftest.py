from __future__ import annotations

import itertools
from types import SimpleNamespace

import pytest
from azure.core.exceptions import ResourceExistsError
from httpx import ASGITransport, AsyncClient
from starlette.testclient import TestClient

from app.core.auth import encode_client_principal
from app.main import app
from app.models.auth import ClientPrincipal
from app.models.directory import Manager
from app.services.queue_gateway import QueueGateway

TEST_CONNECTION_STRING = (
    "DefaultEndpointsProtocol=https;AccountName=hrportal;AccountKey=c2VjcmV0LWtleQ==;EndpointSuffix=core.windows.net"
)
TEST_QUEUE = "hr-entries"


def principal_headers(*roles: str, user: str = "admin@contoso.com") -> dict[str, str]:
    principal = ClientPrincipal(
        identity_provider="aad",
        user_id="user-1",
        user_details=user,
        user_roles=["anonymous", "authenticated", *roles],
    )
    return {"x-ms-client-principal": encode_client_principal(principal)}


def make_manager(
    manager_id: str,
    name: str,
    upn: str | None = None,
    title: str = "Engineering Manager",
    department: str = "Engineering",
) -> Manager:
    return Manager(id=manager_id, name=name, upn=upn, title=title, department=department)


class FakeQueueClient:
    """In-memory stand-in for ``azure.storage.queue.aio.QueueClient``."""

    def __init__(self, name: str = TEST_QUEUE) -> None:
        self.queue_name = name
        self.exists = False
        self.messages: list[str] = []
        self.create_calls = 0
        self.closed = False
        self.send_error: Exception | None = None
        self.properties_error: Exception | None = None
        self._ids = itertools.count(1)

    async def create_queue(self):
        self.create_calls += 1
        if self.exists:
            raise ResourceExistsError("The specified queue already exists.")
        self.exists = True

    async def send_message(self, content: str):
        if self.send_error is not None:
            raise self.send_error
        self.messages.append(content)
        return SimpleNamespace(id=f"msg-{next(self._ids)}", content=content)

    async def get_queue_properties(self):
        if self.properties_error is not None:
            raise self.properties_error
        return SimpleNamespace(name=self.queue_name, approximate_message_count=len(self.messages))

    async def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def _portal_settings():
    from app.core.config import settings

    original = (
        settings.DIRECTORY_CREDENTIALS,
        settings.ALLOW_ANON_LOCAL,
        settings.ALLOW_ANON_HEALTH,
        settings.ENVIRONMENT,
        settings.ADMIN_ROLE,
    )
    settings.DIRECTORY_CREDENTIALS = ["client_secret"]
    settings.ALLOW_ANON_LOCAL = False
    settings.ALLOW_ANON_HEALTH = False
    settings.ENVIRONMENT = "Production"
    settings.ADMIN_ROLE = "it_admin"
    yield
    (
        settings.DIRECTORY_CREDENTIALS,
        settings.ALLOW_ANON_LOCAL,
        settings.ALLOW_ANON_HEALTH,
        settings.ENVIRONMENT,
        settings.ADMIN_ROLE,
    ) = original


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return principal_headers("it_admin")


@pytest.fixture
def viewer_headers():
    return principal_headers("viewer", user="viewer@contoso.com")


@pytest.fixture
def fake_queue():
    return FakeQueueClient()


@pytest.fixture
def gateway(fake_queue):
    return QueueGateway(
        TEST_CONNECTION_STRING,
        TEST_QUEUE,
        timeout=1.0,
        client_factory=lambda conn, name: fake_queue,
    )


@pytest.fixture
def anyio_backend():
    return "asyncio"
