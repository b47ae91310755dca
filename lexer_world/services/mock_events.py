"""
mock_events.py — Built-in dataset served when the datastore is unavailable.

Used in two situations:
  - SUPABASE_URL / SUPABASE_ANON_KEY are not set (local dev, tests);
  - the datastore call fails (see routes/events.py).

The event list must stay non-empty: the events endpoint relies on it to
never answer with an empty map because of an upstream outage.
"""

from datetime import datetime, timezone

from lexer_world.models.event import AttendanceStatus, KeyLocation, LexerEvent

YES, NO = AttendanceStatus.YES, AttendanceStatus.NO


def _utc(year: int, month: int, day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


KEY_LOCATIONS: list[KeyLocation] = [
    KeyLocation(id="bay-area", name="Bay Area, CA",  lat=37.7749, lng=-122.4194),
    KeyLocation(id="london",   name="London, UK",    lat=51.5074, lng=-0.1278),
    KeyLocation(id="new-york", name="New York, NY",  lat=40.7128, lng=-74.006),
    KeyLocation(id="toronto",  name="Toronto, ON",   lat=43.6532, lng=-79.3832),
    KeyLocation(id="austin",   name="Austin, TX",    lat=30.2672, lng=-97.7431),
]

MOCK_EVENTS: list[LexerEvent] = [
    LexerEvent(
        id="evt-1",
        name="Neon Nights Meetup",
        manual_location="Bay Area, CA",
        address="The Midway, 900 Marin St, San Francisco, CA 94124",
        lat=37.7849, lng=-122.4094,
        description="Monthly gathering for creative technologists. Live coding, music, and neon aesthetics.",
        is_lexer_coming=YES, recurrent=True,
        invite_url="https://example.com/neon-nights",
        date=_utc(2026, 3, 15, 20),
        cost=0, currency="USD", has_additional_tiers=False,
    ),
    LexerEvent(
        id="evt-2",
        name="Synthwave Gallery Opening",
        manual_location="Bay Area, CA",
        address="Gray Area, 2665 Mission St, San Francisco, CA 94110",
        lat=37.7694, lng=-122.4262,
        description="Art exhibition featuring retro-futuristic digital art and synthwave music.",
        is_lexer_coming=NO, recurrent=False,
        invite_url="https://example.com/synthwave-gallery",
        date=_utc(2026, 3, 22, 18),
        cost=15, currency="USD", has_additional_tiers=True,
    ),
    LexerEvent(
        id="evt-3",
        name="London Hackers Social",
        manual_location="London, UK",
        address="The Barbican Centre, Silk St, London EC2Y 8DS, UK",
        lat=51.5174, lng=-0.1078,
        description="Casual drinks and demos with London's indie hacker community.",
        is_lexer_coming=YES, recurrent=True,
        invite_url="https://example.com/london-hackers",
        date=_utc(2026, 3, 10, 19),
        cost=0, currency="GBP", has_additional_tiers=False,
    ),
    LexerEvent(
        id="evt-4",
        name="Cyber Punk Rock Show",
        manual_location="London, UK",
        address="93 Feet East, 150 Brick Ln, London E1 6QL, UK",
        lat=51.5244, lng=-0.0782,
        description="Live music at the intersection of punk and cyberpunk. Bring earplugs.",
        is_lexer_coming=NO, recurrent=False,
        invite_url="https://example.com/punk-rock",
        date=_utc(2026, 4, 5, 21),
        cost=20, currency="GBP", has_additional_tiers=False,
    ),
    LexerEvent(
        id="evt-5",
        name="NYC Creative Coders",
        manual_location="New York, NY",
        address="ITP/NYU, 370 Jay St, Brooklyn, NY 11201",
        lat=40.7228, lng=-73.996,
        description="Workshop on creative coding with Three.js, shaders, and generative art.",
        is_lexer_coming=YES, recurrent=True,
        invite_url="https://example.com/nyc-coders",
        date=_utc(2026, 3, 20, 18, 30),
        cost=10, currency="USD", has_additional_tiers=True,
    ),
    LexerEvent(
        id="evt-6",
        name="Retro Arcade Night",
        manual_location="New York, NY",
        address="Barcade, 148 W 24th St, New York, NY 10011",
        lat=40.7508, lng=-73.9875,
        description="Classic arcade games, pixel art, and chiptune music.",
        is_lexer_coming=YES, recurrent=False,
        invite_url="https://example.com/arcade-night",
        date=_utc(2026, 4, 12, 20),
        cost=5, currency="USD", has_additional_tiers=False,
    ),
    LexerEvent(
        id="evt-7",
        name="Toronto Indie Devs",
        manual_location="Toronto, ON",
        address="Gamma Space, 298 Brunswick Ave, Toronto, ON M5S 2M7",
        lat=43.6472, lng=-79.3932,
        description="Showcase night for indie game devs and creative software projects.",
        is_lexer_coming=NO, recurrent=True,
        invite_url="https://example.com/toronto-indie",
        date=_utc(2026, 3, 18, 19),
        cost=0, currency="CAD", has_additional_tiers=True,
    ),
    LexerEvent(
        id="evt-8",
        name="Montréal Digital Arts Jam",
        manual_location="Montréal, QC",
        address="Eastern Bloc, 7240 Rue Clark, Montréal, QC H2R 1W4",
        lat=45.5087, lng=-73.5543,
        description="48-hour jam creating interactive digital art installations. All skill levels.",
        is_lexer_coming=YES, recurrent=False,
        invite_url="https://example.com/mtl-jam",
        date=_utc(2026, 4, 1, 10),
        cost=25, currency="CAD", has_additional_tiers=True,
    ),
    LexerEvent(
        id="evt-9",
        name="Montréal Glitch Art Workshop",
        manual_location="Montréal, QC",
        address="Perte de Signal, 243 Rue du Parc Industriel, Montréal, QC H8R 1J1",
        lat=45.4957, lng=-73.5773,
        description="Learn glitch art techniques: databending, pixel sorting, and circuit bending.",
        is_lexer_coming=NO, recurrent=True,
        invite_url="https://example.com/mtl-glitch",
        date=_utc(2026, 3, 25, 14),
        cost=0, currency="CAD", has_additional_tiers=False,
    ),
]


def get_events_for_location(location_name: str, events: list[LexerEvent]) -> list[LexerEvent]:
    return [e for e in events if e.manual_location == location_name]
