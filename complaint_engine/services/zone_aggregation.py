"""
Zone aggregation - group complaints into zones for dashboard heatmaps.

Matching rule (exclusive, one bucket per complaint):
- location.zone equal to a registered zone id wins
- only when location.zone is absent, the first registered zone whose id
  appears (case-insensitively) in location.address is used
- everything else lands in the "unmatched" bucket

Output is independent of input ordering.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from pydantic import BaseModel

from complaint_engine.core.settings import settings
from complaint_engine.models.analytics import (
    AreaStat,
    DensityClass,
    HeatmapPoint,
    ZoneAggregation,
    ZoneStats,
)
from complaint_engine.models.complaint import (
    UNKNOWN,
    Complaint,
    ComplaintStatus,
    EscalationLevel,
    Severity,
    bucket_of,
)

logger = logging.getLogger(__name__)

UNMATCHED_ZONE_ID = "unmatched"


class Zone(BaseModel):
    """A registered administrative zone."""
    id: str
    name: str
    center: Optional[Tuple[float, float]] = None
    squad: Optional[str] = None

    class Config:
        frozen = True


# Zones known to the city dashboard (Mumbai deployment)
KNOWN_ZONES: Dict[str, Zone] = {
    "downtown": Zone(id="downtown", name="Downtown Mumbai", center=(19.0760, 72.8777), squad="Alpha"),
    "residential": Zone(id="residential", name="Residential Mumbai", center=(19.2183, 72.9781), squad="Beta"),
    "commercial": Zone(id="commercial", name="Commercial Mumbai", center=(19.0170, 72.8476), squad="Gamma"),
    "industrial": Zone(id="industrial", name="Industrial Mumbai", center=(19.0760, 72.8777), squad="Alpha"),
    "suburban": Zone(id="suburban", name="Suburban Mumbai", center=(19.2183, 72.9781), squad="Beta"),
}


class ZoneRegistry:
    """Ordered, fixed set of zones; order decides address-fallback ties."""

    def __init__(self, zones: Iterable[Zone]):
        self._zones: Dict[str, Zone] = {}
        for zone in zones:
            if zone.id in self._zones:
                raise ValueError(f"Duplicate zone id: {zone.id}")
            if zone.id == UNMATCHED_ZONE_ID:
                raise ValueError(f"Zone id '{UNMATCHED_ZONE_ID}' is reserved")
            self._zones[zone.id] = zone

    @classmethod
    def from_ids(cls, zone_ids: Sequence[str]) -> "ZoneRegistry":
        return cls(KNOWN_ZONES.get(z) or Zone(id=z, name=z.replace("_", " ").title()) for z in zone_ids)

    @classmethod
    def default(cls) -> "ZoneRegistry":
        return cls.from_ids(settings.zone_ids)

    def __contains__(self, zone_id: object) -> bool:
        return zone_id in self._zones

    def __iter__(self):
        return iter(self._zones.values())

    def __len__(self) -> int:
        return len(self._zones)

    def get(self, zone_id: str) -> Optional[Zone]:
        return self._zones.get(zone_id)


def classify_density(count: int) -> DensityClass:
    """Step function: 0 none, 1-2 low, 3-5 medium, 6-10 high, >10 critical."""
    if count <= 0:
        return DensityClass.NONE
    if count <= 2:
        return DensityClass.LOW
    if count <= 5:
        return DensityClass.MEDIUM
    if count <= 10:
        return DensityClass.HIGH
    return DensityClass.CRITICAL


def _empty_breakdown(enum_cls) -> Dict[str, int]:
    breakdown = {member.value: 0 for member in enum_cls}
    breakdown[UNKNOWN] = 0
    return breakdown


class ZoneAggregator:
    """Builds per-zone complaint statistics for heatmap rendering."""

    # Heatmap intensity weight per severity
    SEVERITY_WEIGHTS = {
        Severity.LOW.value: 1,
        Severity.MEDIUM.value: 2,
        Severity.HIGH.value: 3,
        Severity.CRITICAL.value: 4,
    }
    PENDING_MULTIPLIER = 1.5

    def __init__(self, registry: Optional[ZoneRegistry] = None):
        self.registry = registry if registry is not None else ZoneRegistry.default()

    def zone_for(self, complaint: Complaint) -> Optional[str]:
        """
        Resolve the zone a complaint belongs to.

        Returns:
            Registered zone id, or None when the complaint is unmatched
        """
        location = complaint.location
        if location is None:
            return None

        if location.zone:
            return location.zone if location.zone in self.registry else None

        if location.address:
            address = location.address.lower()
            for zone in self.registry:
                if zone.id.lower() in address:
                    return zone.id
        return None

    def aggregate(self, complaints: Sequence[Complaint]) -> ZoneAggregation:
        """
        Aggregate a complaint snapshot by zone.

        Every registered zone appears in the output, including empty ones.
        Severity and escalation values outside the known sets are counted
        under "unknown", so every breakdown sums to its zone count.

        Args:
            complaints: Complaint snapshot (escalation already refreshed)

        Returns:
            ZoneAggregation with one ZoneStats per zone plus the unmatched bucket
        """
        complaints = list(complaints)
        buckets: Dict[str, dict] = {}
        for zone_id in [z.id for z in self.registry] + [UNMATCHED_ZONE_ID]:
            buckets[zone_id] = {
                "count": 0,
                "by_severity": _empty_breakdown(Severity),
                "by_escalation": _empty_breakdown(EscalationLevel),
            }

        for complaint in complaints:
            zone_id = self.zone_for(complaint) or UNMATCHED_ZONE_ID
            bucket = buckets[zone_id]
            bucket["count"] += 1
            bucket["by_severity"][bucket_of(complaint.severity, Severity)] += 1
            bucket["by_escalation"][bucket_of(complaint.escalation_status.level, EscalationLevel)] += 1

        total = len(complaints)

        def build(zone_id: str, name: str) -> ZoneStats:
            bucket = buckets[zone_id]
            count = bucket["count"]
            return ZoneStats(
                zone_id=zone_id,
                name=name,
                count=count,
                by_severity=bucket["by_severity"],
                by_escalation=bucket["by_escalation"],
                density_class=classify_density(count),
                percentage=(count / total * 100) if total else 0.0,
            )

        zones = {zone.id: build(zone.id, zone.name) for zone in self.registry}
        unmatched = build(UNMATCHED_ZONE_ID, "Unmatched")

        if unmatched.count:
            logger.debug(f"{unmatched.count} of {total} complaints did not match a registered zone")
        logger.info(f"Aggregated {total} complaints across {len(zones)} zones")

        return ZoneAggregation(zones=zones, unmatched=unmatched, total=total)

    def complaint_intensity(self, complaint: Complaint) -> float:
        """Severity weight, boosted for complaints nobody has picked up yet."""
        intensity = float(self.SEVERITY_WEIGHTS.get(complaint.severity, 1))
        if complaint.status == ComplaintStatus.PENDING.value:
            intensity *= self.PENDING_MULTIPLIER
        return intensity

    def heatmap_points(self, complaints: Iterable[Complaint]) -> List[HeatmapPoint]:
        """
        Heatmap points as (lat, lng, intensity).

        Complaints without coordinates are skipped.
        """
        points = []
        for complaint in complaints:
            coordinates = complaint.location.coordinates if complaint.location else None
            if coordinates is None:
                continue
            points.append((coordinates.lat, coordinates.lng, self.complaint_intensity(complaint)))
        return points

    def area_stats(self, complaints: Iterable[Complaint], limit: int = 5) -> List[AreaStat]:
        """
        Busiest free-text areas (by address), most complaints first.

        Ties keep first-seen order.
        """
        areas: Dict[str, dict] = {}
        for complaint in complaints:
            area = complaint.address or "Unknown Area"
            stats = areas.setdefault(area, {"total": 0, "upvotes": 0, "high_severity": 0, "pending": 0})
            stats["total"] += 1
            stats["upvotes"] += complaint.upvote_count
            if complaint.severity in (Severity.HIGH.value, Severity.CRITICAL.value):
                stats["high_severity"] += 1
            if complaint.status == ComplaintStatus.PENDING.value:
                stats["pending"] += 1

        ranked = sorted(areas.items(), key=lambda item: item[1]["total"], reverse=True)
        return [AreaStat(area=area, **stats) for area, stats in ranked[:limit]]


# Global service instance
_zone_aggregator = None


def get_zone_aggregator() -> ZoneAggregator:
    """Get or create ZoneAggregator singleton."""
    global _zone_aggregator
    if _zone_aggregator is None:
        _zone_aggregator = ZoneAggregator()
    return _zone_aggregator
