"""
geo_fuzzer.py — Deterministic, secret-keyed coordinate fuzzing.

Outsiders never see a venue's real position. Instead every (lat, lng) is
moved a pseudo-random distance along a pseudo-random bearing, where both
come from an HMAC-SHA256 of the coordinate pair:

    digest   = HMAC(secret, "37.784900|-122.409400")
    distance = min_km + u32(digest[0:4]) / 2**32 * (max_km - min_km)
    bearing  = u32(digest[4:8]) / 2**32 * 2π

The same pin always lands on the same fuzzed point, so averaging many
responses gets an observer nowhere, and without the secret the mapping
cannot be recomputed. Rotating FUZZ_SECRET moves every pin.

USAGE
─────
    from lexer_world.services.geo_fuzzer import fuzz_coordinates
    lat, lng = fuzz_coordinates(51.5174, -0.1078)
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import math
import struct
from functools import lru_cache

from lexer_world.core.config import Settings, settings
from lexer_world.models.viewer import GeolocationPrivacySettings

logger = logging.getLogger(__name__)

# Used only when FUZZ_SECRET is unset. Never acceptable in production.
FALLBACK_FUZZ_SECRET = "dev-fuzz-secret-change-me"

EARTH_RADIUS_KM = 6371.0
_UINT32_RANGE = 2 ** 32

_warned_about_fallback_secret = False


def resolve_fuzz_secret(configured: str) -> str:
    """Return the configured secret, or the dev fallback (warning once per process)."""
    global _warned_about_fallback_secret

    secret = (configured or "").strip()
    if secret:
        return secret

    if not _warned_about_fallback_secret:
        _warned_about_fallback_secret = True
        logger.warning("FUZZ_SECRET is missing. Using development fallback secret.")
    return FALLBACK_FUZZ_SECRET


def build_geolocation_privacy_settings(cfg: Settings) -> GeolocationPrivacySettings:
    """Derive fuzz parameters from (already clamped) settings; a reversed range is swapped."""
    low, high = sorted((cfg.fuzz_min_distance_km, cfg.fuzz_max_distance_km))
    return GeolocationPrivacySettings(
        min_distance_km=low,
        max_distance_km=high,
        coordinate_decimals=cfg.fuzz_coordinate_decimals,
    )


@lru_cache(maxsize=1)
def get_geolocation_privacy_settings() -> GeolocationPrivacySettings:
    """Process-wide fuzz parameters, computed on first use."""
    return build_geolocation_privacy_settings(settings)


def normalize_lng(value: float) -> float:
    """Wrap a longitude into [-180, 180]."""
    if -180.0 <= value <= 180.0:
        return value
    return ((value + 180.0) % 360.0) - 180.0


def destination_point(lat: float, lng: float, distance_km: float, bearing_rad: float) -> tuple[float, float]:
    """Great-circle destination from (lat, lng) after *distance_km* along *bearing_rad*."""
    angular = distance_km / EARTH_RADIUS_KM
    lat_rad = math.radians(lat)
    lng_rad = math.radians(lng)

    dest_lat = math.asin(
        math.sin(lat_rad) * math.cos(angular)
        + math.cos(lat_rad) * math.sin(angular) * math.cos(bearing_rad)
    )
    dest_lng = lng_rad + math.atan2(
        math.sin(bearing_rad) * math.sin(angular) * math.cos(lat_rad),
        math.cos(angular) - math.sin(lat_rad) * math.sin(dest_lat),
    )
    return math.degrees(dest_lat), normalize_lng(math.degrees(dest_lng))


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in km on the same sphere the fuzzer uses."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


class GeoFuzzer:
    """Keyed coordinate fuzzer. Stateless apart from its secret and bounds."""

    def __init__(self, secret: str, privacy: GeolocationPrivacySettings) -> None:
        self._key = secret.encode("utf-8")
        self.privacy = privacy

    def _fractions(self, lat: float, lng: float) -> tuple[float, float]:
        seed = f"{lat:.6f}|{lng:.6f}".encode("utf-8")
        digest = hmac.new(self._key, seed, hashlib.sha256).digest()
        distance_word, bearing_word = struct.unpack(">II", digest[:8])
        return distance_word / _UINT32_RANGE, bearing_word / _UINT32_RANGE

    def fuzz_coordinates(self, lat: float, lng: float) -> tuple[float, float]:
        """
        Return the fuzzed position for (lat, lng).

        Callers must pass finite coordinates; that is not checked here.
        """
        distance_fraction, bearing_fraction = self._fractions(lat, lng)
        span = self.privacy.max_distance_km - self.privacy.min_distance_km
        distance_km = self.privacy.min_distance_km + distance_fraction * span
        bearing = bearing_fraction * 2 * math.pi

        fuzzed_lat, fuzzed_lng = destination_point(lat, lng, distance_km, bearing)
        decimals = self.privacy.coordinate_decimals
        return round(fuzzed_lat, decimals), round(normalize_lng(fuzzed_lng), decimals)


@lru_cache(maxsize=1)
def get_geo_fuzzer() -> GeoFuzzer:
    """Process-wide fuzzer built from the global settings."""
    return GeoFuzzer(
        resolve_fuzz_secret(settings.fuzz_secret),
        get_geolocation_privacy_settings(),
    )


def fuzz_coordinates(lat: float, lng: float) -> tuple[float, float]:
    return get_geo_fuzzer().fuzz_coordinates(lat, lng)
