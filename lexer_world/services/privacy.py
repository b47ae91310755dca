"""
privacy.py — Project an event for a given viewer.

Insiders get the event as stored. Outsiders get the same event with the
address blackboxed, Lexer's attendance hidden, and the pin moved by the
geo fuzzer. Name, description, price, date, recurrence and invite link
pass through: outsiders may discover an event, just not where exactly it
is or whether Lexer will be there.

Pure computation, no I/O.
"""

from typing import Optional

from lexer_world.models.event import AttendanceStatus, EventProjection, LexerEvent, LocationPrecision
from lexer_world.models.viewer import ViewerMode
from lexer_world.services.geo_fuzzer import GeoFuzzer, get_geo_fuzzer

REDACTED_ADDRESS_LABEL = "[ LOCATION BLACKBOXED ]"

OUTSIDER_PRIVACY_DISCLAIMER = (
    "Outsider mode: map coordinates are deterministic privacy fuzzes and venue details are blackboxed."
)
INSIDER_PRIVACY_DISCLAIMER = "Insider mode: precise coordinates and Lexer attendance are visible."


def apply_viewer_privacy(
    event: LexerEvent,
    viewer_mode: ViewerMode,
    fuzzer: Optional[GeoFuzzer] = None,
) -> EventProjection:
    fields = dict(event)

    if viewer_mode is ViewerMode.INSIDER:
        return EventProjection(**fields, location_precision=LocationPrecision.PRECISE)

    lat, lng = (fuzzer or get_geo_fuzzer()).fuzz_coordinates(event.lat, event.lng)
    fields.update(
        lat=lat,
        lng=lng,
        address=REDACTED_ADDRESS_LABEL,
        is_lexer_coming=AttendanceStatus.UNKNOWN,
    )
    return EventProjection(**fields, location_precision=LocationPrecision.FUZZED)


def get_privacy_disclaimer(viewer_mode: ViewerMode) -> str:
    if viewer_mode is ViewerMode.INSIDER:
        return INSIDER_PRIVACY_DISCLAIMER
    return OUTSIDER_PRIVACY_DISCLAIMER
