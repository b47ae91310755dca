"""
allowlist.py — Insider approval by X/Twitter handle.

A handle is approved if it is in the static INSIDER_ALLOWLIST or in the
`allowlist` table of the identity project (Supabase REST). The static
list always wins; the table is only asked when the static list misses.

Graceful degradation: if the table is not configured, unreachable, or
returns something unexpected, the lookup counts as "not approved by the
table" and a warning is logged. is_approved() never raises.
"""

import logging
import re
from functools import lru_cache
from typing import Any, Iterable, Optional

import httpx

from lexer_world.core.config import Settings, settings

logger = logging.getLogger(__name__)

_HANDLE_RE = re.compile(r"^[a-z0-9_]{1,15}$")

ALLOWLIST_TABLE = "allowlist"
ALLOWLIST_TIMEOUT_SECONDS = 5.0


def normalize_twitter_username(raw: Any) -> Optional[str]:
    """
    Normalise a handle: trim, drop leading "@"s, lowercase.

    Returns None unless the result is a valid handle (1-15 of [a-z0-9_]).
    """
    if not isinstance(raw, str):
        return None
    candidate = raw.strip().lstrip("@").lower()
    if not candidate:
        return None
    return candidate if _HANDLE_RE.match(candidate) else None


def parse_static_allowlist(configured: str) -> frozenset[str]:
    """Parse a comma-separated handle list; invalid entries are dropped."""
    handles = (normalize_twitter_username(entry) for entry in (configured or "").split(","))
    return frozenset(h for h in handles if h)


class AllowlistResolver:
    """
    Static list plus an optional Supabase-backed table.

    Pass *transport* to route the table query somewhere else (tests use
    httpx.MockTransport).
    """

    def __init__(
        self,
        static_handles: Iterable[str] = (),
        store_url: str = "",
        store_key: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.static_handles = frozenset(static_handles)
        self.store_url = store_url.rstrip("/")
        self.store_key = store_key
        self.store_enabled = bool(self.store_url and self.store_key)
        self._transport = transport

    async def is_approved(self, handle: str) -> bool:
        """*handle* must already be normalised."""
        if handle in self.static_handles:
            return True
        return await self._approved_by_store(handle)

    async def _approved_by_store(self, handle: str) -> bool:
        if not self.store_enabled:
            return False

        async with httpx.AsyncClient(timeout=ALLOWLIST_TIMEOUT_SECONDS, transport=self._transport) as client:
            try:
                response = await client.get(
                    f"{self.store_url}/rest/v1/{ALLOWLIST_TABLE}",
                    params={
                        "select": "twitter_username",
                        "twitter_username": f"ilike.{handle}",
                    },
                    headers={
                        "apikey": self.store_key,
                        "Authorization": f"Bearer {self.store_key}",
                        "Accept": "application/json",
                    },
                )
                response.raise_for_status()
                rows = response.json()
            except httpx.HTTPStatusError as exc:
                logger.warning("Allowlist query rejected: %s", exc.response.status_code)
                return False
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("Allowlist query failed: %s", exc)
                return False

        if not isinstance(rows, list):
            logger.warning("Allowlist query returned %s, expected a list", type(rows).__name__)
            return False

        # ilike treats "_" as a wildcard, so re-check every row exactly.
        return any(
            isinstance(row, dict) and normalize_twitter_username(row.get("twitter_username")) == handle
            for row in rows
        )


def build_allowlist_resolver(cfg: Settings) -> AllowlistResolver:
    return AllowlistResolver(
        static_handles=parse_static_allowlist(cfg.insider_allowlist),
        store_url=cfg.identity_url,
        store_key=cfg.identity_key,
    )


@lru_cache(maxsize=1)
def get_allowlist_resolver() -> AllowlistResolver:
    """FastAPI dependency: one resolver per process."""
    return build_allowlist_resolver(settings)
