"""
viewer.py — Pydantic models for viewer resolution and the events payload.

  ViewerMode                  — outsider | insider, derived per request
  ViewerAuthStatus            — normalised result of the auth check
  GeolocationPrivacySettings  — fuzz parameters, echoed to clients
  EventsResponse              — body of GET /api/events
"""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from lexer_world.models.event import EventProjection


class ViewerMode(str, Enum):
    OUTSIDER = "outsider"
    INSIDER = "insider"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class ViewerAuthStatus(_CamelModel):
    """Who the caller is, as far as this request could verify."""

    is_authenticated: bool = False
    is_approved: bool = False
    twitter_username: Optional[str] = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "ViewerAuthStatus":
        if self.is_approved and not self.is_authenticated:
            raise ValueError("an approved viewer must be authenticated")
        if self.twitter_username is not None and not self.is_authenticated:
            raise ValueError("an unauthenticated viewer has no username")
        return self

    @classmethod
    def anonymous(cls) -> "ViewerAuthStatus":
        return cls()


class GeolocationPrivacySettings(_CamelModel):
    min_distance_km: float
    max_distance_km: float
    coordinate_decimals: int


class EventsResponse(_CamelModel):
    """Combined payload returned by GET /api/events."""

    events: list[EventProjection]
    source: Literal["supabase", "mock"]
    viewer_mode: ViewerMode
    privacy_disclaimer: str
    geolocation_settings: GeolocationPrivacySettings
    auth_status: ViewerAuthStatus
    approval_message: str
