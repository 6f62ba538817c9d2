"""
Derived views produced by the engine services (escalation, zones, dashboard stats).
Serialize with ``model_dump(by_alias=True)`` to get the camelCase dashboard shape.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from complaint_engine.models.complaint import Complaint, EscalationStatus


class _View(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True


class DensityClass(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class EscalationTransition(_View):
    """Level increase the notification collaborator should act on."""
    complaint_id: str
    from_level: str
    to_level: str
    at: datetime


class EscalationResult(_View):
    complaint_id: str
    escalation_status: EscalationStatus
    transition: Optional[EscalationTransition] = None


class EscalationBatch(_View):
    complaints: List[Complaint] = Field(default_factory=list)
    transitions: List[EscalationTransition] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list, description="IDs whose age could not be determined")


class ZoneStats(_View):
    zone_id: str
    name: str
    count: int = 0
    by_severity: Dict[str, int] = Field(default_factory=dict)
    by_escalation: Dict[str, int] = Field(default_factory=dict)
    density_class: DensityClass = DensityClass.NONE
    percentage: float = 0.0


class ZoneAggregation(_View):
    zones: Dict[str, ZoneStats] = Field(default_factory=dict)
    unmatched: ZoneStats
    total: int = 0

    def as_mapping(self) -> Dict[str, ZoneStats]:
        """Zone id → stats, with the unmatched bucket under its own key."""
        mapping = dict(self.zones)
        mapping[self.unmatched.zone_id] = self.unmatched
        return mapping


class AreaStat(_View):
    area: str
    total: int = 0
    upvotes: int = 0
    high_severity: int = 0
    pending: int = 0


class DashboardStats(_View):
    active: int = 0
    resolved_today: int = 0
    overdue_yellow: int = 0
    overdue_red: int = 0


class StatusOverview(_View):
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    escalated: int = 0
    by_category: Dict[str, int] = Field(default_factory=dict)
    by_severity: Dict[str, int] = Field(default_factory=dict)


class TrendPoint(_View):
    date: str
    count: int


class PublicStats(_View):
    resolved: int = 0
    pending: int = 0
    top_upvoted: List[Complaint] = Field(default_factory=list)


HeatmapPoint = Tuple[float, float, float]
