"""
test_events_api.py — GET /api/events and GET /api/locations end to end.

The app runs in-process behind httpx.ASGITransport. Identity, allowlist
and datastore traffic goes through httpx.MockTransport (see conftest.py).
"""

import httpx
import pytest

from lexer_world.services.auth_status import PREVIEW_APPROVAL_MESSAGE
from lexer_world.services.geo_fuzzer import haversine_km
from lexer_world.services.mock_events import KEY_LOCATIONS, MOCK_EVENTS

MOCK_BY_ID = {event.id: event for event in MOCK_EVENTS}

REQUIRED_KEYS = {
    "events", "source", "viewerMode", "privacyDisclaimer",
    "geolocationSettings", "authStatus", "approvalMessage",
}


def _store_row(**overrides):
    row = {
        "id": "live-1",
        "name": "Rooftop Synth Session",
        "manual_location": "London, UK",
        "address": "Secret rooftop, Shoreditch, London",
        "lat": 51.5255,
        "lng": -0.0754,
        "description": "Modular synths at sunset.",
        "is_lexer_coming": True,
        "recurrent": False,
        "invite_url": "https://example.com/rooftop",
        "date": "2026-06-01T18:00:00+00:00",
        "cost": 8,
        "currency": "GBP",
        "has_additional_tiers": False,
    }
    row.update(overrides)
    return row


class TestOutsider:
    async def test_anonymous_caller_gets_fuzzed_events(self, api_client_factory):
        client = await api_client_factory()
        response = await client.get("/api/events")

        assert response.status_code == 200
        body = response.json()
        assert REQUIRED_KEYS <= set(body)
        assert body["viewerMode"] == "outsider"
        assert body["source"] == "mock"
        assert body["authStatus"] == {"isAuthenticated": False, "isApproved": False, "twitterUsername": None}
        assert body["approvalMessage"].startswith("Outsider access only")
        assert len(body["events"]) == len(MOCK_EVENTS)

        for event in body["events"]:
            original = MOCK_BY_ID[event["id"]]
            assert event["address"] == "[ LOCATION BLACKBOXED ]"
            assert event["isLexerComing"] == "?"
            assert event["locationPrecision"] == "fuzzed"
            assert event["manualLocation"] == original.manual_location
            moved = haversine_km(original.lat, original.lng, event["lat"], event["lng"])
            assert 1.99 <= moved <= 8.01

    async def test_headers(self, api_client_factory):
        client = await api_client_factory()
        response = await client.get("/api/events")

        assert response.headers["cache-control"] == "no-store, max-age=0"
        assert response.headers["x-lexer-viewer-mode"] == "outsider"
        assert response.headers["x-lexer-location-precision"] == "fuzzed"
        assert response.headers["x-lexer-fuzz-min-km"] == "2"
        assert response.headers["x-lexer-fuzz-max-km"] == "8"
        assert response.headers["x-lexer-fuzz-coordinate-decimals"] == "5"

    async def test_geolocation_settings_echoed(self, api_client_factory):
        client = await api_client_factory()
        body = (await client.get("/api/events")).json()
        assert body["geolocationSettings"] == {
            "minDistanceKm": 2.0,
            "maxDistanceKm": 8.0,
            "coordinateDecimals": 5,
        }

    async def test_repeat_requests_are_identical(self, api_client_factory):
        client = await api_client_factory()
        first = (await client.get("/api/events")).json()
        second = (await client.get("/api/events")).json()
        assert first["events"] == second["events"]

    async def test_signed_in_but_not_allowlisted(
        self, api_client_factory, identity_factory, allowlist_factory, make_token
    ):
        token = make_token()
        identity = identity_factory({token: {"id": "u-2", "user_metadata": {"user_name": "Bob"}}})
        client = await api_client_factory(identity=identity, allowlist=allowlist_factory(static=("alice",)))

        body = (await client.get("/api/events", headers={"Authorization": f"Bearer {token}"})).json()

        assert body["viewerMode"] == "outsider"
        assert body["authStatus"] == {"isAuthenticated": True, "isApproved": False, "twitterUsername": "bob"}
        assert body["approvalMessage"] == "Signed in as @bob. Awaiting allowlist approval."


class TestInsider:
    async def test_allowlisted_caller_gets_precise_events(
        self, api_client_factory, identity_factory, allowlist_factory, make_token
    ):
        token = make_token()
        identity = identity_factory({token: {"id": "u-1", "user_metadata": {"user_name": "Alice"}}})
        client = await api_client_factory(identity=identity, allowlist=allowlist_factory(static=("alice",)))

        response = await client.get("/api/events", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.headers["x-lexer-viewer-mode"] == "insider"
        assert response.headers["x-lexer-location-precision"] == "precise"
        body = response.json()
        assert body["viewerMode"] == "insider"
        assert body["authStatus"] == {"isAuthenticated": True, "isApproved": True, "twitterUsername": "alice"}
        assert body["approvalMessage"] == "Insider approved for @alice."

        for event in body["events"]:
            original = MOCK_BY_ID[event["id"]]
            assert event["address"] == original.address
            assert (event["lat"], event["lng"]) == (original.lat, original.lng)
            assert event["isLexerComing"] is (original.is_lexer_coming.to_wire())
            assert event["locationPrecision"] == "precise"

    async def test_preview_override_outside_production(self, api_client_factory):
        client = await api_client_factory()
        response = await client.get("/api/events", params={"viewer": "insider"})

        body = response.json()
        assert body["viewerMode"] == "insider"
        assert body["authStatus"] == {"isAuthenticated": True, "isApproved": True, "twitterUsername": None}
        assert body["approvalMessage"] == PREVIEW_APPROVAL_MESSAGE
        assert body["events"][0]["address"] == MOCK_EVENTS[0].address

    async def test_preview_override_inert_in_production(self, api_client_factory, settings_factory):
        client = await api_client_factory(settings=settings_factory(environment="production"))
        response = await client.get("/api/events", params={"viewer": "insider"})

        body = response.json()
        assert body["viewerMode"] == "outsider"
        assert body["authStatus"]["isApproved"] is False
        assert all(e["address"] == "[ LOCATION BLACKBOXED ]" for e in body["events"])

    async def test_preview_token_in_production(self, api_client_factory, settings_factory):
        cfg = settings_factory(environment="production", insider_preview_token="s3cret")
        client = await api_client_factory(settings=cfg)

        denied = await client.get("/api/events", headers={"x-lexer-viewer": "insider"})
        allowed = await client.get(
            "/api/events",
            headers={"x-lexer-viewer": "insider", "x-insider-preview-token": "s3cret"},
        )

        assert denied.json()["viewerMode"] == "outsider"
        assert allowed.json()["viewerMode"] == "insider"


class TestDatastore:
    async def test_live_events(self, api_client_factory, event_store_factory):
        store = event_store_factory(lambda request: httpx.Response(200, json=[_store_row()]))
        client = await api_client_factory(store=store)

        body = (await client.get("/api/events")).json()

        assert body["source"] == "supabase"
        (event,) = body["events"]
        assert event["id"] == "live-1"
        assert event["address"] == "[ LOCATION BLACKBOXED ]"

    async def test_empty_table_is_not_a_failure(self, api_client_factory, event_store_factory):
        store = event_store_factory(lambda request: httpx.Response(200, json=[]))
        client = await api_client_factory(store=store)

        body = (await client.get("/api/events")).json()

        assert body["source"] == "supabase"
        assert body["events"] == []

    async def test_malformed_rows_are_dropped(self, api_client_factory, event_store_factory):
        rows = [_store_row(), _store_row(id="live-2", lat="not-a-number")]
        store = event_store_factory(lambda request: httpx.Response(200, json=rows))
        client = await api_client_factory(store=store)

        body = (await client.get("/api/events")).json()

        assert [e["id"] for e in body["events"]] == ["live-1"]

    @pytest.mark.parametrize(
        "handler",
        [
            lambda request: httpx.Response(500, json={"message": "internal error"}),
            lambda request: httpx.Response(200, json=[{"id": "broken"}]),
            lambda request: httpx.Response(200, json={"not": "a list"}),
        ],
        ids=["server-error", "all-malformed", "wrong-shape"],
    )
    async def test_failure_falls_back_to_mock(self, api_client_factory, event_store_factory, handler):
        client = await api_client_factory(store=event_store_factory(handler))

        response = await client.get("/api/events")

        assert response.status_code == 200
        body = response.json()
        assert body["source"] == "mock"
        assert len(body["events"]) == len(MOCK_EVENTS)

    async def test_unreachable_store_falls_back_to_mock(self, api_client_factory, event_store_factory):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = await api_client_factory(store=event_store_factory(handler))
        response = await client.get("/api/events")

        assert response.status_code == 200
        assert response.json()["source"] == "mock"
        assert response.json()["events"]


class TestLocationFilter:
    async def test_filter_by_manual_location(self, api_client_factory):
        client = await api_client_factory()
        body = (await client.get("/api/events", params={"location": "London, UK"})).json()

        assert {e["id"] for e in body["events"]} == {"evt-3", "evt-4"}

    async def test_unknown_location_is_empty(self, api_client_factory):
        client = await api_client_factory()
        body = (await client.get("/api/events", params={"location": "Atlantis"})).json()

        assert body["events"] == []


async def test_key_locations(api_client_factory):
    client = await api_client_factory()
    response = await client.get("/api/locations")

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-store, max-age=0"
    body = response.json()
    assert [loc["id"] for loc in body] == [loc.id for loc in KEY_LOCATIONS]
    assert body[1] == {"id": "london", "name": "London, UK", "lat": 51.5074, "lng": -0.1278}
