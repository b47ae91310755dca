"""
identity.py — Thin async client for the Supabase Auth user endpoint.

    GET {url}/auth/v1/user
        apikey: <anon key>
        Authorization: Bearer <user access token>

Returns the user record (a dict carrying `user_metadata`) when the token
is accepted, otherwise None. "Otherwise" covers an unconfigured client,
network failures, timeouts, non-2xx answers and non-JSON bodies. Callers
treat None as "not authenticated"; nothing here raises.
"""

import logging
from functools import lru_cache
from typing import Any, Optional

import httpx

from lexer_world.core.config import Settings, settings

logger = logging.getLogger(__name__)

IDENTITY_TIMEOUT_SECONDS = 5.0

# Metadata keys that may carry the X/Twitter handle, highest priority first.
HANDLE_METADATA_FIELDS = ("user_name", "preferred_username", "username")


class IdentityProviderClient:
    def __init__(
        self,
        url: str = "",
        anon_key: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.enabled = bool(self.url and self.anon_key)
        self._transport = transport

        if not self.enabled:
            logger.warning(
                "Identity provider not configured; every viewer is treated as unauthenticated."
            )

    async def get_user(self, token: str) -> Optional[dict[str, Any]]:
        if not self.enabled:
            return None

        async with httpx.AsyncClient(timeout=IDENTITY_TIMEOUT_SECONDS, transport=self._transport) as client:
            try:
                response = await client.get(
                    f"{self.url}/auth/v1/user",
                    headers={
                        "apikey": self.anon_key,
                        "Authorization": f"Bearer {token}",
                        "Accept": "application/json",
                    },
                )
            except httpx.HTTPError as exc:
                logger.warning("Identity provider unreachable: %s", exc)
                return None

        if response.status_code in (401, 403):
            logger.info("Identity provider rejected access token (%s)", response.status_code)
            return None
        if response.is_error:
            logger.warning("Identity provider error: %s", response.status_code)
            return None

        try:
            user = response.json()
        except ValueError:
            logger.warning("Identity provider returned a non-JSON body")
            return None

        if not isinstance(user, dict) or not user.get("id"):
            logger.warning("Identity provider returned an unexpected user payload")
            return None
        return user


def build_identity_client(cfg: Settings) -> IdentityProviderClient:
    return IdentityProviderClient(url=cfg.identity_url, anon_key=cfg.identity_key)


@lru_cache(maxsize=1)
def get_identity_client() -> IdentityProviderClient:
    """FastAPI dependency: one client per process."""
    return build_identity_client(settings)
