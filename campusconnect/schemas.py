from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .models import EVENT_CATEGORIES


def _parse_datetime(value: Any) -> Any:
    """Accept ``YYYY-MM-DD`` or full ISO8601; store naive campus-local time."""
    if value is None or isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            raise ValueError("must be an ISO8601 date (e.g. 2026-02-01 or 2026-02-01T10:00:00)")
    else:
        return value
    # Same clock as datetime.now(), which the slider and retention sweep compare against
    if dt is not None and dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


_EVENT_REQUIRED_FIELDS = ("title", "description", "category", "date", "time", "venue", "has_amenities")


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, str_strip_whitespace=True)


class EventCreate(_Payload):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    category: str = "Other"
    date: datetime
    time: str = Field(min_length=1, max_length=40)
    venue: str = Field(min_length=1, max_length=200)
    registration_link: Optional[str] = Field(default=None, alias="registrationLink", max_length=500)
    has_amenities: bool = Field(default=False, alias="hasAmenities")
    registration_deadline: Optional[datetime] = Field(default=None, alias="registrationDeadline")

    @field_validator("category")
    @classmethod
    def _known_category(cls, value: str) -> str:
        if value not in EVENT_CATEGORIES:
            raise ValueError(f"must be one of {', '.join(EVENT_CATEGORIES)}")
        return value

    @field_validator("date", "registration_deadline", mode="before")
    @classmethod
    def _dates(cls, value):
        return _parse_datetime(value)

    @field_validator("registration_link", mode="before")
    @classmethod
    def _optional_link(cls, value):
        return _blank_to_none(value)


class EventUpdate(_Payload):
    """Partial event edit. Only the fields sent are applied."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = None
    date: Optional[datetime] = None
    time: Optional[str] = Field(default=None, min_length=1, max_length=40)
    venue: Optional[str] = Field(default=None, min_length=1, max_length=200)
    registration_link: Optional[str] = Field(default=None, alias="registrationLink", max_length=500)
    has_amenities: Optional[bool] = Field(default=None, alias="hasAmenities")
    registration_deadline: Optional[datetime] = Field(default=None, alias="registrationDeadline")

    @field_validator("category")
    @classmethod
    def _known_category(cls, value):
        if value is not None and value not in EVENT_CATEGORIES:
            raise ValueError(f"must be one of {', '.join(EVENT_CATEGORIES)}")
        return value

    @field_validator("date", "registration_deadline", mode="before")
    @classmethod
    def _dates(cls, value):
        return _parse_datetime(value)

    @field_validator("registration_link", mode="before")
    @classmethod
    def _optional_link(cls, value):
        return _blank_to_none(value)

    @model_validator(mode="after")
    def _no_cleared_required_fields(self):
        for name in _EVENT_REQUIRED_FIELDS:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be empty")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class ProfileUpdate(_Payload):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    batch: Optional[str] = Field(default=None, max_length=20)
    roll_number: Optional[str] = Field(default=None, alias="rollNumber", max_length=50)
    branch: Optional[str] = Field(default=None, max_length=120)

    @field_validator("batch", "roll_number", "branch", mode="before")
    @classmethod
    def _blank(cls, value):
        return _blank_to_none(value)

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)
