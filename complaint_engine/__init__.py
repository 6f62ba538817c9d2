"""
Complaint Engine - lifecycle & spatial aggregation core of the municipal
complaint tracker.

Given a snapshot of complaint records it classifies escalation urgency,
aggregates zone density for heatmaps, derives dashboard statistics and
filters/sorts complaint tables. It never fetches, persists or renders.
"""

from complaint_engine.models.complaint import Complaint
from complaint_engine.models.query import FilterSpec, SortSpec
from complaint_engine.services.complaint_service import load_complaints
from complaint_engine.services.dashboard_service import DashboardService
from complaint_engine.services.escalation_engine import EscalationEngine
from complaint_engine.services.filter_sort import FilterSortEngine
from complaint_engine.services.statistics_service import StatisticsService
from complaint_engine.services.status_workflow import StatusWorkflowEngine
from complaint_engine.services.zone_aggregation import ZoneAggregator, ZoneRegistry

__version__ = "0.1.0"

__all__ = [
    "Complaint",
    "DashboardService",
    "EscalationEngine",
    "FilterSortEngine",
    "FilterSpec",
    "SortSpec",
    "StatisticsService",
    "StatusWorkflowEngine",
    "ZoneAggregator",
    "ZoneRegistry",
    "load_complaints",
]
