"""
fx.py — Live currency rates for the price-conversion UI.

The provider (open.er-api.com by default) publishes "1 USD = x CUR". We
invert that into "1 CUR = y USD" for a fixed set of currencies and keep
the result in a single-slot cache for FX_CACHE_TTL_SECONDS.

Failure policy: fail loudly. A missing or non-positive rate for any
supported currency fails the whole fetch, an expired cache is never
served, and there are no mock rates. A price that cannot be converted is
shown as unavailable rather than wrong.

Concurrency: two requests that miss the cache at the same moment both
fetch and the later write wins. Both payloads are valid, so this costs
at most one extra provider call and is deliberately not locked.
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Optional

import httpx

from lexer_world.core.config import Settings, settings
from lexer_world.models.fx import FxRatesResponse

logger = logging.getLogger(__name__)

SUPPORTED_CURRENCIES = ("USD", "CAD", "GBP", "EUR", "JPY", "AUD", "NZD", "CHF", "SEK", "NOK", "DKK")

FX_REQUEST_TIMEOUT_SECONDS = 4.5
RATE_DECIMALS = 6


class FxUnavailableError(Exception):
    """Live FX rates could not be obtained. The message is safe to show users."""


@dataclass(frozen=True)
class _CachedFxPayload:
    payload: FxRatesResponse
    expires_at: float


def _to_finite_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def normalize_provider_rates(provider_rates: dict[str, Any]) -> dict[str, float]:
    """Invert USD→currency multipliers into currency→USD. All-or-nothing."""
    rates_to_usd: dict[str, float] = {"USD": 1.0}
    for currency in SUPPORTED_CURRENCIES:
        if currency == "USD":
            continue
        usd_to_currency = _to_finite_number(provider_rates.get(currency))
        if usd_to_currency is None or usd_to_currency <= 0:
            raise FxUnavailableError(f"Missing or invalid live FX rate for {currency}")
        to_usd = round(1 / usd_to_currency, RATE_DECIMALS)
        if to_usd <= 0:
            raise FxUnavailableError(f"Live FX rate for {currency} is out of range")
        rates_to_usd[currency] = to_usd
    return rates_to_usd


class FxRateService:
    """
    Owns the FX cache slot.

    *clock* returns seconds on a monotonic scale; tests pass their own.
    """

    def __init__(
        self,
        provider_url: str,
        ttl_seconds: int,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.provider_url = provider_url
        self.ttl_seconds = ttl_seconds
        self._transport = transport
        self._clock = clock
        self._cache: Optional[_CachedFxPayload] = None

    def clear_cache(self) -> None:
        self._cache = None

    async def get_fx_rates(self) -> FxRatesResponse:
        now = self._clock()
        cached = self._cache
        if cached is not None and now < cached.expires_at:
            return cached.payload

        payload = await self._fetch_live_rates()
        self._cache = _CachedFxPayload(payload=payload, expires_at=now + self.ttl_seconds)
        return payload

    async def _fetch_live_rates(self) -> FxRatesResponse:
        # httpx's timeout is per phase; asyncio.timeout bounds the whole call.
        async with httpx.AsyncClient(timeout=FX_REQUEST_TIMEOUT_SECONDS, transport=self._transport) as client:
            try:
                async with asyncio.timeout(FX_REQUEST_TIMEOUT_SECONDS):
                    response = await client.get(self.provider_url, headers={"Accept": "application/json"})
            except (httpx.TimeoutException, TimeoutError) as exc:
                logger.warning("FX provider timed out after %ss", FX_REQUEST_TIMEOUT_SECONDS)
                raise FxUnavailableError("FX provider timed out") from exc
            except httpx.HTTPError as exc:
                logger.warning("FX provider request failed: %s", exc)
                raise FxUnavailableError("FX provider is unreachable") from exc

        if response.is_error:
            logger.warning("FX provider returned %s", response.status_code)
            raise FxUnavailableError(f"FX provider returned {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise FxUnavailableError("FX provider returned invalid payload") from exc

        if (
            not isinstance(data, dict)
            or data.get("result") != "success"
            or not isinstance(data.get("rates"), dict)
        ):
            raise FxUnavailableError("FX provider returned invalid payload")

        updated_at = data.get("time_last_update_utc")
        return FxRatesResponse(
            rates_to_usd=normalize_provider_rates(data["rates"]),
            source="live",
            updated_at=updated_at if isinstance(updated_at, str) else None,
        )


def build_fx_service(cfg: Settings) -> FxRateService:
    return FxRateService(provider_url=cfg.fx_provider_url, ttl_seconds=cfg.fx_cache_ttl_seconds)


@lru_cache(maxsize=1)
def get_fx_service() -> FxRateService:
    """FastAPI dependency: the process-wide FX cache lives on this instance."""
    return build_fx_service(settings)
