"""
event_store.py — Load events from the Supabase `events` table.

    GET {SUPABASE_URL}/rest/v1/events?select=<columns>&order=date.asc

Every row goes through parse_event_row(), which returns either an event
or the reason the row was rejected. Bad rows are skipped and logged; a
non-empty payload in which *no* row survives is treated as a failed load,
so a broken schema never shows up as an empty map.

When the datastore is not configured, load_events() returns the mock
dataset instead. Everything else that goes wrong raises EventStoreError,
and the caller decides on the fallback.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from lexer_world.core.config import Settings, settings
from lexer_world.models.event import LexerEvent
from lexer_world.services.mock_events import MOCK_EVENTS

logger = logging.getLogger(__name__)

EVENTS_TABLE = "events"
EVENTS_TIMEOUT_SECONDS = 10.0

EVENT_SELECT_COLUMNS = (
    "id",
    "name",
    "manual_location",
    "address",
    "lat",
    "lng",
    "description",
    "is_lexer_coming",
    "recurrent",
    "invite_url",
    "date",
    "cost",
    "currency",
    "has_additional_tiers",
)

_REQUIRED_COLUMNS = ("id", "name", "manual_location", "address", "lat", "lng", "invite_url", "date")

# Nullable columns and the value a NULL stands for.
_COLUMN_DEFAULTS: dict[str, Any] = {
    "description": "",
    "is_lexer_coming": False,
    "recurrent": False,
    "cost": 0,
    "currency": "USD",
    "has_additional_tiers": False,
}


class EventStoreError(Exception):
    """The datastore could not produce a usable event list."""


@dataclass(frozen=True)
class RowParseResult:
    event: Optional[LexerEvent] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.event is not None


def _describe_validation_error(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )


def parse_event_row(row: Any) -> RowParseResult:
    if not isinstance(row, dict):
        return RowParseResult(reason=f"row is {type(row).__name__}, expected an object")

    missing = [col for col in _REQUIRED_COLUMNS if row.get(col) in (None, "")]
    if missing:
        return RowParseResult(reason=f"missing {', '.join(missing)}")

    values = {col: row.get(col) for col in EVENT_SELECT_COLUMNS}
    for col, default in _COLUMN_DEFAULTS.items():
        if values[col] is None:
            values[col] = default

    if not isinstance(values["is_lexer_coming"], bool):
        return RowParseResult(reason="is_lexer_coming must be a boolean")
    values["id"] = str(values["id"])

    try:
        return RowParseResult(event=LexerEvent.model_validate(values))
    except ValidationError as exc:
        return RowParseResult(reason=_describe_validation_error(exc))


def parse_event_rows(rows: list[Any]) -> list[LexerEvent]:
    """Keep the valid rows. Raises EventStoreError if a non-empty list has none."""
    events: list[LexerEvent] = []
    for index, row in enumerate(rows):
        result = parse_event_row(row)
        if result.ok:
            events.append(result.event)
        else:
            row_id = row.get("id") if isinstance(row, dict) else None
            logger.warning("Skipping event row %s (id=%s): %s", index, row_id, result.reason)

    if rows and not events:
        raise EventStoreError(f"all {len(rows)} event rows were malformed")
    return events


class EventStore:
    def __init__(
        self,
        url: str = "",
        anon_key: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.url and self.anon_key)

    async def load_events(self) -> list[LexerEvent]:
        if not self.configured:
            return list(MOCK_EVENTS)

        async with httpx.AsyncClient(timeout=EVENTS_TIMEOUT_SECONDS, transport=self._transport) as client:
            try:
                response = await client.get(
                    f"{self.url}/rest/v1/{EVENTS_TABLE}",
                    params={"select": ",".join(EVENT_SELECT_COLUMNS), "order": "date.asc"},
                    headers={
                        "apikey": self.anon_key,
                        "Authorization": f"Bearer {self.anon_key}",
                        "Accept": "application/json",
                    },
                )
                response.raise_for_status()
                rows = response.json()
            except httpx.HTTPStatusError as exc:
                raise EventStoreError(
                    f"Supabase events fetch failed with {exc.response.status_code}"
                ) from exc
            except httpx.HTTPError as exc:
                raise EventStoreError(f"Supabase events fetch failed: {exc}") from exc
            except ValueError as exc:
                raise EventStoreError("Supabase events response was not JSON") from exc

        if not isinstance(rows, list):
            raise EventStoreError(f"Supabase events response is {type(rows).__name__}, expected a list")
        return parse_event_rows(rows)


def build_event_store(cfg: Settings) -> EventStore:
    return EventStore(url=cfg.supabase_url, anon_key=cfg.supabase_anon_key)


@lru_cache(maxsize=1)
def get_event_store() -> EventStore:
    """FastAPI dependency: one store per process."""
    return build_event_store(settings)
