"""
Dashboard Service - runs the engine over one complaint snapshot.

Flow:
1. Validate raw records (rejects are annotated, not raised)
2. Refresh escalation levels at `now`
3. Zone aggregation, headline stats and the table query run on the
   refreshed snapshot; they are independent of each other

This is a READ-ONLY service. Persisting refreshed escalation state and
delivering notifications for the reported transitions is the caller's job.
"""

from datetime import datetime
from typing import Any, Iterable, List, Optional
import logging

from pydantic import BaseModel, Field

from complaint_engine.models.analytics import DashboardStats, EscalationTransition, ZoneAggregation
from complaint_engine.models.complaint import Complaint
from complaint_engine.services.complaint_service import RejectedRecord, load_complaints
from complaint_engine.services.escalation_engine import EscalationEngine, get_escalation_engine
from complaint_engine.services.filter_sort import FilterInput, FilterSortEngine, SortInput, get_filter_sort_engine
from complaint_engine.services.statistics_service import StatisticsService, get_statistics_service
from complaint_engine.services.zone_aggregation import ZoneAggregator, get_zone_aggregator

logger = logging.getLogger(__name__)


class DashboardViews(BaseModel):
    complaints: List[Complaint] = Field(default_factory=list)
    transitions: List[EscalationTransition] = Field(default_factory=list)
    zones: ZoneAggregation
    stats: DashboardStats
    table: List[Complaint] = Field(default_factory=list)
    rejected: List[RejectedRecord] = Field(default_factory=list)


class DashboardService:
    """Composes the engine services into the official dashboard views."""

    def __init__(
        self,
        escalation_engine: Optional[EscalationEngine] = None,
        zone_aggregator: Optional[ZoneAggregator] = None,
        statistics_service: Optional[StatisticsService] = None,
        filter_sort_engine: Optional[FilterSortEngine] = None,
    ):
        self.escalation_engine = escalation_engine or get_escalation_engine()
        self.zone_aggregator = zone_aggregator or get_zone_aggregator()
        self.statistics_service = statistics_service or get_statistics_service()
        self.filter_sort_engine = filter_sort_engine or get_filter_sort_engine()

    def build(
        self,
        records: Iterable[Any],
        now: datetime,
        filters: FilterInput = None,
        sort: SortInput = None,
    ) -> DashboardViews:
        """
        Build every dashboard view from raw records.

        Args:
            records: Raw complaint dicts (or Complaint objects)
            now: Evaluation instant used for escalation and statistics
            filters: Table filters
            sort: Table sort; None keeps snapshot order

        Returns:
            DashboardViews
        """
        loaded = load_complaints(records)
        batch = self.escalation_engine.refresh_escalations(loaded.complaints, now)
        snapshot = batch.complaints

        views = DashboardViews(
            complaints=snapshot,
            transitions=batch.transitions,
            zones=self.zone_aggregator.aggregate(snapshot),
            stats=self.statistics_service.summarize(snapshot, now),
            table=self.filter_sort_engine.query(snapshot, filters, sort),
            rejected=loaded.rejected,
        )
        logger.info(
            f"Dashboard built: {len(snapshot)} complaints, {len(views.table)} in table, "
            f"{len(views.transitions)} escalations, {len(views.rejected)} rejected"
        )
        return views
