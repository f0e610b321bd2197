"""Shared pytest fixtures for Eye Portfolio tests."""

import json
from datetime import date
from typing import Callable

import httpx
import pytest

SUPABASE_URL = "https://project.supabase.test"
SERVICE_KEY = "service-role-key"


@pytest.fixture(autouse=True)
def settings():
    """Install clean settings for each test and reset afterwards."""
    from eye_portfolio.config import (
        EmailConfig,
        MagicLinkConfig,
        PortfolioConfig,
        Settings,
        SupabaseConfig,
        configure,
    )

    test_settings = Settings(
        supabase=SupabaseConfig(url=SUPABASE_URL, service_role_key=SERVICE_KEY),
        email=EmailConfig(api_key="resend-key", from_email="portfolio@example.test"),
        magic_link=MagicLinkConfig(app_url="https://app.example.test"),
        portfolio=PortfolioConfig(debug_navigation=True, trainee_name="Alex Doe"),
    )
    configure(test_settings)
    yield test_settings
    configure(None)


@pytest.fixture
def controller(settings):
    """A controller with an empty store."""
    from eye_portfolio.portfolio import PortfolioController

    return PortfolioController(settings=settings)


@pytest.fixture
def store():
    """An empty evidence store."""
    from eye_portfolio.portfolio import EvidenceStore

    return EvidenceStore()


@pytest.fixture
def populated_controller(controller):
    """Controller holding a few records of different types and statuses."""
    from eye_portfolio.models import EvidenceStatus, EvidenceType

    store = controller.store
    store.upsert(
        "crs-1",
        type=EvidenceType.CRS,
        title="CRS - Retinoscopy",
        status=EvidenceStatus.SUBMITTED,
        sia="Cataract Surgery",
        level=2,
    )
    store.upsert(
        "dops-1",
        type=EvidenceType.DOPS,
        title="DOPS - Biometry",
        status=EvidenceStatus.SIGNED_OFF,
        sia="Cataract Surgery",
        level=2,
    )
    store.upsert(
        "epa-1",
        type=EvidenceType.EPA,
        title="EPA L2 - Cataract Surgery",
        status=EvidenceStatus.DRAFT,
        sia="Cataract Surgery",
        level=2,
        date=date(2025, 3, 1),
        linked_evidence={"EPA-L1-0-0": ["dops-1"], "EPA-L2-0-0": ["crs-1"]},
    )
    return controller


class FakeBackend:
    """Routes httpx requests to per-path responders and records them.

    Responders are keyed by "METHOD /path" and return an httpx.Response.
    """

    def __init__(self):
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, responder) -> None:
        if not callable(responder):
            payload = responder
            responder = lambda request: httpx.Response(200, json=payload)  # noqa: E731
        self.routes[f"{method} {path}"] = responder

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = f"{request.method} {request.url.path}"
        if key not in self.routes:
            return httpx.Response(404, json={"message": f"No route for {key}"})
        return self.routes[key](request)

    def sent(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def json_of(self, request: httpx.Request) -> dict:
        return json.loads(request.content)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def backend():
    """Fake hosted database endpoints."""
    return FakeBackend()


@pytest.fixture
def email_api():
    """Fake email API that accepts every message."""
    fake = FakeBackend()
    fake.on("POST", "/emails", {"id": "email-123"})
    return fake


@pytest.fixture
def supabase(backend):
    from eye_portfolio.edge import SupabaseClient

    return SupabaseClient(url=SUPABASE_URL, service_role_key=SERVICE_KEY, client=backend.client())


@pytest.fixture
def mailer(email_api):
    from eye_portfolio.edge import ResendClient

    return ResendClient(
        api_key="resend-key",
        from_email="portfolio@example.test",
        api_url="https://api.resend.test/emails",
        client=email_api.client(),
    )


@pytest.fixture
def edge_client(settings, supabase, mailer):
    """TestClient for the edge function app backed by the fakes."""
    from fastapi.testclient import TestClient

    from eye_portfolio.edge.app import create_app

    app = create_app(settings=settings, supabase=supabase, mailer=mailer)
    return TestClient(app)
