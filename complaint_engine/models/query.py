"""
Declarative filter and sort specifications for complaint tables.
Field names mirror the dashboard query parameters (dateFrom, sortBy, ...).
"""

from datetime import date, datetime
from typing import Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator

from complaint_engine.utils.timestamps import ensure_utc, parse_timestamp


class FilterSpec(BaseModel):
    """
    Conjunctive filter set. Every field is optional; empty strings
    (as sent by cleared form controls) mean "not set".

    Date bounds are inclusive. A bare date (``2024-01-05``) covers the
    whole day; a full timestamp is compared exactly.
    """
    severity: Optional[str] = None
    status: Optional[str] = None
    region: Optional[str] = Field(None, validation_alias=AliasChoices("region", "zone"))
    category: Optional[str] = None
    date_from: Optional[Union[datetime, date]] = Field(None, validation_alias=AliasChoices("dateFrom", "date_from"))
    date_to: Optional[Union[datetime, date]] = Field(None, validation_alias=AliasChoices("dateTo", "date_to"))
    search: Optional[str] = None

    class Config:
        frozen = True
        extra = "ignore"

    @field_validator("severity", "status", "category", mode="before")
    @classmethod
    def _normalize_label(cls, value):
        if value is None:
            return None
        value = str(getattr(value, "value", value)).strip().lower()
        return value or None

    @field_validator("region", "search", mode="before")
    @classmethod
    def _blank_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _parse_bound(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        if isinstance(value, datetime):
            return ensure_utc(value)
        if isinstance(value, date):
            return value
        if isinstance(value, str) and len(value.strip()) == 10:
            try:
                return date.fromisoformat(value.strip())
            except ValueError:
                raise ValueError(f"Invalid date bound: {value!r}")
        parsed = parse_timestamp(value)
        if parsed is None:
            raise ValueError(f"Invalid date bound: {value!r}")
        return parsed


class SortSpec(BaseModel):
    """Sort key and direction; ``sort_by`` may name any complaint field."""
    sort_by: str = Field("date", validation_alias=AliasChoices("sortBy", "sort_by"))
    sort_dir: Literal["asc", "desc"] = Field("desc", validation_alias=AliasChoices("sortDir", "sort_dir"))

    class Config:
        frozen = True
        extra = "ignore"

    @field_validator("sort_dir", mode="before")
    @classmethod
    def _lower_direction(cls, value):
        return value.strip().lower() if isinstance(value, str) else value
