"""
events.py — Event pins for the globe.

Routes:
  GET /api/events     — events projected for the caller's viewer mode
  GET /api/locations  — hub cities highlighted on the globe

HOW A REQUEST FLOWS
───────────────────
1. resolve_viewer_auth_status() checks the bearer token with the identity
   provider and the handle against the allowlist.
2. resolve_viewer_mode() turns that into outsider / insider, honouring the
   dev preview override.
3. The event store is queried. Any failure falls back to MOCK_EVENTS:
   the map must always have pins, so this endpoint never returns 5xx for
   a datastore problem.
4. Every event goes through apply_viewer_privacy().
5. The payload carries the disclaimer, fuzz parameters and approval
   message; headers expose the mode for debugging and disable caching.

PREVIEW INSIDERS
────────────────
When insider mode comes from the preview override rather than a real
approval, authStatus is reported as authenticated + approved (keeping any
real handle) so the frontend renders the insider UI unchanged. The
approval message is replaced with PREVIEW_APPROVAL_MESSAGE, which is how
an override can be told apart from a genuine approval. authStatus alone
is therefore not a faithful record of real authentication in that case.

    curl http://localhost:8000/api/events
    curl "http://localhost:8000/api/events?viewer=insider&token=$INSIDER_PREVIEW_TOKEN"
    curl -H "Authorization: Bearer $ACCESS_TOKEN" http://localhost:8000/api/events
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from lexer_world.core.config import Settings, get_settings, settings
from lexer_world.core.rate_limit import limiter
from lexer_world.models.event import EventProjection, KeyLocation, LexerEvent
from lexer_world.models.viewer import (
    EventsResponse,
    GeolocationPrivacySettings,
    ViewerAuthStatus,
    ViewerMode,
)
from lexer_world.services.allowlist import AllowlistResolver, get_allowlist_resolver
from lexer_world.services.auth_status import (
    PREVIEW_APPROVAL_MESSAGE,
    get_approval_message,
    resolve_viewer_auth_status,
)
from lexer_world.services.event_store import EventStore, get_event_store
from lexer_world.services.geo_fuzzer import GeoFuzzer, get_geo_fuzzer
from lexer_world.services.identity import IdentityProviderClient, get_identity_client
from lexer_world.services.mock_events import KEY_LOCATIONS, MOCK_EVENTS, get_events_for_location
from lexer_world.services.privacy import apply_viewer_privacy, get_privacy_disclaimer
from lexer_world.services.viewer_mode import resolve_viewer_mode

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["events"])

NO_STORE = "no-store, max-age=0"


def _format_number(value: float) -> str:
    return f"{value:g}"


def build_events_response(
    events: list[EventProjection],
    viewer_mode: ViewerMode,
    source: Literal["supabase", "mock"],
    auth_status: ViewerAuthStatus,
    geolocation_settings: GeolocationPrivacySettings,
) -> EventsResponse:
    is_preview_insider = viewer_mode is ViewerMode.INSIDER and not auth_status.is_approved
    if is_preview_insider:
        effective_status = ViewerAuthStatus(
            is_authenticated=True,
            is_approved=True,
            twitter_username=auth_status.twitter_username,
        )
        approval_message = PREVIEW_APPROVAL_MESSAGE
    else:
        effective_status = auth_status
        approval_message = get_approval_message(auth_status)

    return EventsResponse(
        events=events,
        source=source,
        viewer_mode=viewer_mode,
        privacy_disclaimer=get_privacy_disclaimer(viewer_mode),
        geolocation_settings=geolocation_settings,
        auth_status=effective_status,
        approval_message=approval_message,
    )


def apply_events_headers(
    response: Response,
    viewer_mode: ViewerMode,
    geolocation_settings: GeolocationPrivacySettings,
) -> None:
    precision = "precise" if viewer_mode is ViewerMode.INSIDER else "fuzzed"
    response.headers["cache-control"] = NO_STORE
    response.headers["x-lexer-viewer-mode"] = viewer_mode.value
    response.headers["x-lexer-location-precision"] = precision
    response.headers["x-lexer-fuzz-min-km"] = _format_number(geolocation_settings.min_distance_km)
    response.headers["x-lexer-fuzz-max-km"] = _format_number(geolocation_settings.max_distance_km)
    response.headers["x-lexer-fuzz-coordinate-decimals"] = str(geolocation_settings.coordinate_decimals)


async def _load_events(store: EventStore) -> tuple[list[LexerEvent], Literal["supabase", "mock"]]:
    try:
        events = await store.load_events()
    except Exception as exc:
        # Non-fatal: the map falls back to the built-in events.
        logger.warning("Event load failed, serving mock events: %s", exc)
        return list(MOCK_EVENTS), "mock"
    return events, "supabase" if store.configured else "mock"


# ── Routes ────────────────────────────────────────────────────────────────────

@router.get("/events", response_model=EventsResponse)
@limiter.limit(settings.events_rate_limit)
async def list_events(
    request: Request,
    response: Response,
    location: Optional[str] = Query(default=None, description="Only events whose manualLocation matches"),
    cfg: Settings = Depends(get_settings),
    identity: IdentityProviderClient = Depends(get_identity_client),
    allowlist: AllowlistResolver = Depends(get_allowlist_resolver),
    store: EventStore = Depends(get_event_store),
    fuzzer: GeoFuzzer = Depends(get_geo_fuzzer),
):
    """Return every event, precise for insiders and fuzzed for outsiders."""
    auth_status = await resolve_viewer_auth_status(request, identity, allowlist)
    viewer_mode = await resolve_viewer_mode(request, cfg, auth_status)

    events, source = await _load_events(store)
    if location:
        events = get_events_for_location(location, events)

    visible = [apply_viewer_privacy(event, viewer_mode, fuzzer) for event in events]

    apply_events_headers(response, viewer_mode, fuzzer.privacy)
    return build_events_response(visible, viewer_mode, source, auth_status, fuzzer.privacy)


@router.get("/locations", response_model=list[KeyLocation])
async def list_locations(response: Response):
    """Hub cities. Public city centres, so no viewer privacy applies."""
    response.headers["cache-control"] = NO_STORE
    return KEY_LOCATIONS
