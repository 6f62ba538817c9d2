"""
Pydantic models for complaint records.

Records arrive from the storage layer with camelCase field names
(``createdAt``, ``escalationStatus``); snake_case names are accepted too.

DESIGN PRINCIPLE:
- Records are immutable snapshots; services return new records
- Unknown enum strings are kept verbatim so breakdowns can count them
- Unparsable timestamps become None and are noted in ``parse_issues``
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Type

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from complaint_engine.utils.timestamps import parse_timestamp

UNKNOWN = "unknown"


class Category(str, Enum):
    SANITATION = "sanitation"
    ROADS = "roads"
    WATER = "water"
    ELECTRICITY = "electricity"
    PARKS = "parks"
    TRAFFIC = "traffic"
    OTHER = "other"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ComplaintStatus(str, Enum):
    """
    Complaint lifecycle.

    pending → in_progress → resolved → closed
    (resolved is also reachable directly from pending)
    """
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class EscalationLevel(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


def bucket_of(value: Optional[str], enum_cls: Type[Enum]) -> str:
    """Return the enum value for a known string, otherwise the unknown bucket."""
    try:
        return enum_cls(value).value
    except ValueError:
        return UNKNOWN


def _normalize_label(value: Any) -> Any:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, str):
        return value.strip().lower()
    return value


def _reference_id(value: Any) -> Any:
    # Exports may carry populated references ({"_id": ..., "name": ...}) instead of bare ids
    if isinstance(value, dict):
        ref = value.get("_id") or value.get("id")
        return str(ref) if ref is not None else None
    if value is not None and not isinstance(value, str):
        return str(value)
    return value


class _Record(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True
        extra = "ignore"


class Coordinates(_Record):
    lat: float
    lng: float


class Location(_Record):
    address: Optional[str] = None
    zone: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    @field_validator("coordinates", mode="before")
    @classmethod
    def _drop_partial_coordinates(cls, value):
        # Half-filled or non-numeric coordinate pairs are treated as absent, not as errors
        if isinstance(value, dict):
            try:
                float(value["lat"])
                float(value["lng"])
            except (KeyError, TypeError, ValueError):
                return None
        elif value is not None and not isinstance(value, Coordinates):
            return None
        return value


class TimelineEvent(_Record):
    action: str
    timestamp: Optional[datetime] = None
    performed_by: Optional[str] = None
    comment: Optional[str] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value):
        return parse_timestamp(value)

    @field_validator("performed_by", mode="before")
    @classmethod
    def _performer_id(cls, value):
        return _reference_id(value)


class EscalationStatus(_Record):
    level: str = EscalationLevel.GREEN.value
    escalated_at: Optional[datetime] = None
    notifications_sent: List[str] = Field(default_factory=list)

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value):
        if value is None:
            return EscalationLevel.GREEN.value
        return _normalize_label(value)

    @field_validator("escalated_at", mode="before")
    @classmethod
    def _parse_escalated_at(cls, value):
        return parse_timestamp(value)

    @field_validator("notifications_sent", mode="before")
    @classmethod
    def _dedupe_notifications(cls, value):
        if value is None:
            return []
        return list(dict.fromkeys(str(v) for v in value))


class AISuggestions(_Record):
    """Opaque output of the category-suggestion collaborator."""
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    confidence: Optional[float] = None


def _usable_events(events: Any, issues: List[str]) -> List[Any]:
    # Entries without an action are dropped and noted; the rest of the record still loads
    if not isinstance(events, (list, tuple)):
        if events is not None:
            issues.append(f"unparsable timeline: {events!r}")
        return []
    usable = []
    for index, event in enumerate(events):
        if isinstance(event, TimelineEvent):
            usable.append(event)
        elif isinstance(event, dict) and isinstance(event.get("action"), str) and event["action"].strip():
            usable.append(event)
        else:
            issues.append(f"dropped timeline entry #{index}: {event!r}")
    return usable


class Complaint(_Record):
    """
    A citizen complaint as tracked by officials.

    ``parse_issues`` annotates the record with input problems the engine
    tolerated (e.g. an unparsable ``createdAt``); it is empty for clean input.
    """
    id: str = Field(..., validation_alias=AliasChoices("id", "_id"))
    title: str = ""
    description: str = ""
    category: str = Category.OTHER.value
    severity: str = Severity.MEDIUM.value
    status: str = ComplaintStatus.PENDING.value
    progress: int = Field(default=0, ge=0, le=100)
    citizen_id: Optional[str] = None
    assigned_to: Optional[str] = None
    assigned_squad: Optional[str] = None
    location: Optional[Location] = None
    upvotes: List[str] = Field(default_factory=list)
    timeline: List[TimelineEvent] = Field(default_factory=list)
    ai_suggestions: Optional[AISuggestions] = None
    escalation_status: EscalationStatus = Field(default_factory=EscalationStatus)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    parse_issues: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _coerce_wire_record(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        issues = list(data.pop("parseIssues", None) or data.pop("parse_issues", None) or [])
        for wire, name in (("createdAt", "created_at"), ("updatedAt", "updated_at")):
            raw = data.pop(wire, data.pop(name, None))
            parsed = parse_timestamp(raw)
            data[wire] = parsed
            # Re-validated dumps already carry the note for this field
            noted = any(issue.startswith((f"unparsable {wire}", f"missing {wire}")) for issue in issues)
            if parsed is not None or noted:
                continue
            if raw not in (None, ""):
                issues.append(f"unparsable {wire}: {raw!r}")
            elif wire == "createdAt":
                issues.append("missing createdAt")
        # Older exports stored the bare level string instead of the object
        escalation = data.get("escalationStatus", data.get("escalation_status"))
        if isinstance(escalation, str):
            data.pop("escalation_status", None)
            data["escalationStatus"] = {"level": escalation}
        if "timeline" in data:
            data["timeline"] = _usable_events(data["timeline"], issues)
        data["parseIssues"] = issues
        return data

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value) if value is not None and not isinstance(value, str) else value

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value):
        return Category.OTHER.value if value in (None, "") else _normalize_label(value)

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value):
        return Severity.MEDIUM.value if value in (None, "") else _normalize_label(value)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        return ComplaintStatus.PENDING.value if value in (None, "") else _normalize_label(value)

    @field_validator("progress", mode="before")
    @classmethod
    def _clamp_progress(cls, value):
        if value is None:
            return 0
        try:
            return max(0, min(100, int(float(value))))
        except (TypeError, ValueError):
            return value

    @field_validator("location", mode="before")
    @classmethod
    def _address_only_location(cls, value):
        if isinstance(value, str):
            return {"address": value}
        if value is not None and not isinstance(value, (dict, Location)):
            return None
        return value

    @field_validator("citizen_id", "assigned_to", "assigned_squad", mode="before")
    @classmethod
    def _reference(cls, value):
        return _reference_id(value)

    @field_validator("upvotes", mode="before")
    @classmethod
    def _dedupe_upvotes(cls, value):
        if value is None:
            return []
        return list(dict.fromkeys(_reference_id(v) for v in value if v is not None))

    @field_validator("escalation_status", mode="before")
    @classmethod
    def _default_escalation(cls, value):
        return {} if value is None else value

    @property
    def upvote_count(self) -> int:
        return len(self.upvotes)

    @property
    def is_open(self) -> bool:
        return self.status not in (ComplaintStatus.RESOLVED.value, ComplaintStatus.CLOSED.value)

    @property
    def address(self) -> Optional[str]:
        return self.location.address if self.location else None

    @property
    def zone(self) -> Optional[str]:
        return self.location.zone if self.location else None
