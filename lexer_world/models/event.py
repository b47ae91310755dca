"""
event.py — Pydantic models for event pins.

Separation of concerns:
  LexerEvent       — a raw event as loaded from the datastore or mock set
  EventProjection  — what the API returns after viewer privacy is applied
  KeyLocation      — a hub city highlighted on the globe

Wire format is camelCase (alias generator) to match the frontend; Python
code uses snake_case field names. Both are accepted on input.
"""

import math
import re
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
_URL_RE = re.compile(r"^https?://\S+$")


class AttendanceStatus(str, Enum):
    """
    Whether Lexer is coming to an event.

    Serialised as ``true`` / ``false`` / ``"?"``. UNKNOWN only ever appears
    in outsider projections.
    """

    YES = "yes"
    NO = "no"
    UNKNOWN = "unknown"

    @classmethod
    def from_flag(cls, flag: bool) -> "AttendanceStatus":
        return cls.YES if flag else cls.NO

    def to_wire(self) -> bool | str:
        if self is AttendanceStatus.YES:
            return True
        if self is AttendanceStatus.NO:
            return False
        return "?"


class LocationPrecision(str, Enum):
    PRECISE = "precise"
    FUZZED = "fuzzed"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class LexerEvent(_CamelModel):
    """A single event pin. Read-only to this service."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    manual_location: str            # key location name or nearest major city
    address: str                    # precise street address
    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)
    description: str = ""
    is_lexer_coming: AttendanceStatus
    recurrent: bool = False
    invite_url: str
    date: datetime
    cost: float = Field(default=0.0, ge=0.0)   # base price, 0 = free
    currency: str = "USD"                      # ISO 4217
    has_additional_tiers: bool = False         # true = "+" suffix on price

    @field_validator("lat", "lng", "cost", mode="before")
    @classmethod
    def _finite_number(cls, value: Any) -> float:
        # The datastore may hand back numerics as strings.
        if isinstance(value, bool):
            raise ValueError("expected a number")
        if isinstance(value, str):
            value = value.strip()
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValueError("expected a number") from None
        if not math.isfinite(number):
            raise ValueError("must be a finite number")
        return number

    @field_validator("is_lexer_coming", mode="before")
    @classmethod
    def _parse_attendance(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return AttendanceStatus.from_flag(value)
        if value == "?":
            return AttendanceStatus.UNKNOWN
        return value

    @field_validator("currency")
    @classmethod
    def _check_currency(cls, value: str) -> str:
        code = value.strip().upper()
        if not _CURRENCY_RE.match(code):
            raise ValueError(f"invalid ISO 4217 currency code: {value!r}")
        return code

    @field_validator("invite_url")
    @classmethod
    def _check_invite_url(cls, value: str) -> str:
        url = value.strip()
        if not _URL_RE.match(url):
            raise ValueError("invite URL must be an http(s) URL")
        return url

    @field_serializer("is_lexer_coming")
    def _serialize_attendance(self, value: AttendanceStatus) -> bool | str:
        return value.to_wire()


class EventProjection(LexerEvent):
    """LexerEvent as shown to a particular viewer."""

    location_precision: LocationPrecision


class KeyLocation(_CamelModel):
    """A hub city the globe highlights."""

    id: str
    name: str
    lat: float
    lng: float
