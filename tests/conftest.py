"""
pytest configuration and shared fixtures for the Lexer's World API tests.

Key concern: tests must not reach a real Supabase project or FX provider.
We achieve this by:
  1. Overriding every service dependency (settings, identity client,
     allowlist, event store, fuzzer, FX service) through
     app.dependency_overrides.
  2. Routing the services' outbound HTTP through httpx.MockTransport, so
     the real request-building and response-parsing code still runs.
  3. Resetting the slowapi limiter between tests so request counts don't
     bleed across tests.
"""

import os
import time
from typing import Any, Callable, Optional

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from starlette.requests import Request

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("ENVIRONMENT", "test")

from lexer_world.core.config import Settings  # noqa: E402
from lexer_world.models.viewer import GeolocationPrivacySettings  # noqa: E402
from lexer_world.services.allowlist import AllowlistResolver  # noqa: E402
from lexer_world.services.event_store import EventStore  # noqa: E402
from lexer_world.services.fx import FxRateService  # noqa: E402
from lexer_world.services.geo_fuzzer import GeoFuzzer  # noqa: E402
from lexer_world.services.identity import IdentityProviderClient  # noqa: E402

TEST_FUZZ_SECRET = "test-fuzz-secret"
SUPABASE_URL = "https://project.supabase.test"
SUPABASE_KEY = "anon-key"


def make_settings(**overrides: Any) -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    base = {
        "environment": "test",
        "supabase_url": "",
        "supabase_anon_key": "",
        "identity_provider_url": "",
        "identity_provider_key": "",
        "insider_allowlist": "",
        "insider_preview_token": "",
        "fuzz_secret": TEST_FUZZ_SECRET,
    }
    base.update(overrides)
    return Settings(_env_file=None, **base)


# ── Factories ─────────────────────────────────────────────────────────────────

@pytest.fixture()
def settings_factory() -> Callable[..., Settings]:
    return make_settings


@pytest.fixture()
def fuzzer() -> GeoFuzzer:
    return GeoFuzzer(
        TEST_FUZZ_SECRET,
        GeolocationPrivacySettings(min_distance_km=2.0, max_distance_km=8.0, coordinate_decimals=5),
    )


@pytest.fixture()
def make_token() -> Callable[..., str]:
    """Build a JWT-shaped access token. The signature is irrelevant here."""

    def _make(subject: str = "user-1", expires_in: Optional[int] = 3600) -> str:
        claims: dict[str, Any] = {"sub": subject}
        if expires_in is not None:
            claims["exp"] = int(time.time()) + expires_in
        return jwt.encode(claims, "not-the-provider-secret", algorithm="HS256")

    return _make


@pytest.fixture()
def make_request() -> Callable[..., Request]:
    """Build a bare Starlette request for unit-testing resolvers."""

    def _make(headers: Optional[dict[str, str]] = None, query: str = "") -> Request:
        scope = {
            "type": "http",
            "method": "GET",
            "path": "/api/events",
            "query_string": query.encode("latin-1"),
            "headers": [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in (headers or {}).items()],
        }
        return Request(scope)

    return _make


@pytest.fixture()
def identity_factory() -> Callable[..., IdentityProviderClient]:
    """
    Identity client backed by an in-memory token → user map.

    Unknown tokens get a 401, like Supabase Auth. Every request is
    appended to *calls* when given.
    """

    def _make(users: dict[str, dict], calls: Optional[list] = None) -> IdentityProviderClient:
        def handler(request: httpx.Request) -> httpx.Response:
            if calls is not None:
                calls.append(request)
            token = request.headers.get("authorization", "").removeprefix("Bearer ")
            user = users.get(token)
            if user is None:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(200, json=user)

        return IdentityProviderClient(SUPABASE_URL, SUPABASE_KEY, transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture()
def allowlist_factory() -> Callable[..., AllowlistResolver]:
    """Allowlist with a static list and a fake `allowlist` table."""

    def _make(
        static: tuple[str, ...] = (),
        table: Optional[list[str]] = None,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ) -> AllowlistResolver:
        if handler is None and table is None:
            return AllowlistResolver(static_handles=static)

        def table_handler(request: httpx.Request) -> httpx.Response:
            wanted = request.url.params.get("twitter_username", "").removeprefix("ilike.")
            rows = [{"twitter_username": h} for h in (table or []) if h.lower() == wanted.lower()]
            return httpx.Response(200, json=rows)

        return AllowlistResolver(
            static_handles=static,
            store_url=SUPABASE_URL,
            store_key=SUPABASE_KEY,
            transport=httpx.MockTransport(handler or table_handler),
        )

    return _make


@pytest.fixture()
def event_store_factory() -> Callable[..., EventStore]:
    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> EventStore:
        return EventStore(SUPABASE_URL, SUPABASE_KEY, transport=httpx.MockTransport(handler))

    return _make


# ── App client ────────────────────────────────────────────────────────────────

@pytest.fixture()
async def api_client_factory(fuzzer):
    """
    Returns an async factory that opens an HTTPX client against the app
    with the given collaborators swapped in. Anything not passed keeps a
    safe default: no identity provider, empty allowlist, mock events.
    """
    from lexer_world.core.config import get_settings
    from lexer_world.core.rate_limit import limiter
    from lexer_world.main import app
    from lexer_world.services.allowlist import get_allowlist_resolver
    from lexer_world.services.event_store import get_event_store
    from lexer_world.services.fx import get_fx_service
    from lexer_world.services.geo_fuzzer import get_geo_fuzzer
    from lexer_world.services.identity import get_identity_client

    limiter.reset()
    clients: list[AsyncClient] = []

    async def _open(
        settings: Optional[Settings] = None,
        identity: Optional[IdentityProviderClient] = None,
        allowlist: Optional[AllowlistResolver] = None,
        store: Optional[EventStore] = None,
        fx_service: Optional[FxRateService] = None,
    ) -> AsyncClient:
        cfg = settings or make_settings()
        app.dependency_overrides[get_settings] = lambda: cfg
        app.dependency_overrides[get_identity_client] = lambda: identity or IdentityProviderClient()
        app.dependency_overrides[get_allowlist_resolver] = lambda: allowlist or AllowlistResolver()
        app.dependency_overrides[get_event_store] = lambda: store or EventStore()
        app.dependency_overrides[get_geo_fuzzer] = lambda: fuzzer
        if fx_service is not None:
            app.dependency_overrides[get_fx_service] = lambda: fx_service

        ac = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(ac)
        return ac

    yield _open

    for ac in clients:
        await ac.aclose()
    app.dependency_overrides.clear()
