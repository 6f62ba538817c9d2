"""
Statistics Service - dashboard counters derived from a complaint snapshot.

All figures are computed from one snapshot at one explicit `now`, so two calls
over the same data within the same calendar day return identical results.
Complaints whose timestamps could not be parsed are left out of the
time-based counters but still count everywhere else.
"""

from collections import defaultdict
from datetime import datetime, timedelta, tzinfo
from typing import Dict, Iterable, List, Optional, Sequence, Union
from zoneinfo import ZoneInfo
import logging

from complaint_engine.core.settings import settings
from complaint_engine.models.analytics import DashboardStats, PublicStats, StatusOverview, TrendPoint
from complaint_engine.models.complaint import (
    UNKNOWN,
    Category,
    Complaint,
    ComplaintStatus,
    EscalationLevel,
    Severity,
    bucket_of,
)
from complaint_engine.utils.timestamps import days_open, ensure_utc

logger = logging.getLogger(__name__)

RESOLVED = ComplaintStatus.RESOLVED.value


def _distribution(values: Iterable[str], enum_cls) -> Dict[str, int]:
    distribution = {member.value: 0 for member in enum_cls}
    distribution[UNKNOWN] = 0
    for value in values:
        distribution[bucket_of(value, enum_cls)] += 1
    return distribution


class StatisticsService:
    """Service for official-dashboard and public statistics."""

    def __init__(
        self,
        yellow_after_days: Optional[int] = None,
        red_after_days: Optional[int] = None,
        timezone: Optional[Union[str, tzinfo]] = None,
    ):
        self.yellow_after_days = (
            settings.ESCALATION_YELLOW_AFTER_DAYS if yellow_after_days is None else yellow_after_days
        )
        self.red_after_days = settings.ESCALATION_RED_AFTER_DAYS if red_after_days is None else red_after_days
        timezone = timezone if timezone is not None else settings.STATS_TIMEZONE
        self.timezone = ZoneInfo(timezone) if isinstance(timezone, str) else timezone

    def summarize(self, complaints: Iterable[Complaint], now: datetime) -> DashboardStats:
        """
        Headline counters for the official dashboard.

        - active: every complaint whose status is not "resolved" (closed
          complaints are NOT excluded)
        - resolved_today: resolved complaints last updated on today's
          calendar date in the configured timezone
        - overdue_yellow / overdue_red: unresolved complaints in the yellow
          or red days-open band (disjoint)

        Args:
            complaints: Complaint snapshot
            now: Evaluation instant

        Returns:
            DashboardStats
        """
        now = ensure_utc(now)
        today = now.astimezone(self.timezone).date()
        active = resolved_today = overdue_yellow = overdue_red = 0
        skipped = 0

        for complaint in complaints:
            if complaint.status == RESOLVED:
                if complaint.updated_at is not None and complaint.updated_at.astimezone(self.timezone).date() == today:
                    resolved_today += 1
                continue

            active += 1
            days = days_open(complaint.created_at, now)
            if days is None:
                skipped += 1
            elif days > self.red_after_days:
                overdue_red += 1
            elif days > self.yellow_after_days:
                overdue_yellow += 1

        if skipped:
            logger.warning(f"Skipped {skipped} complaints without a usable createdAt in overdue counts")

        return DashboardStats(
            active=active,
            resolved_today=resolved_today,
            overdue_yellow=overdue_yellow,
            overdue_red=overdue_red,
        )

    def status_overview(self, complaints: Sequence[Complaint]) -> StatusOverview:
        """Status, category and severity distributions plus the escalated count."""
        complaints = list(complaints)
        escalated = sum(
            1 for c in complaints
            if bucket_of(c.escalation_status.level, EscalationLevel) != EscalationLevel.GREEN.value
        )
        return StatusOverview(
            total=len(complaints),
            by_status=_distribution((c.status for c in complaints), ComplaintStatus),
            escalated=escalated,
            by_category=_distribution((c.category for c in complaints), Category),
            by_severity=_distribution((c.severity for c in complaints), Severity),
        )

    def daily_trends(
        self,
        complaints: Iterable[Complaint],
        now: datetime,
        window_days: Optional[int] = None,
    ) -> List[TrendPoint]:
        """
        Complaints created per calendar day over the trailing window.

        Returns:
            TrendPoint list sorted by date (days without complaints omitted)
        """
        window_days = settings.TREND_WINDOW_DAYS if window_days is None else window_days
        now = ensure_utc(now)
        since = now - timedelta(days=window_days)

        daily_counts = defaultdict(int)
        for complaint in complaints:
            created = complaint.created_at
            if created is None or created < since or created > now:
                continue
            daily_counts[created.astimezone(self.timezone).strftime("%Y-%m-%d")] += 1

        return [TrendPoint(date=day, count=count) for day, count in sorted(daily_counts.items())]

    def trending(self, complaints: Iterable[Complaint], limit: Optional[int] = None) -> List[Complaint]:
        """Most-upvoted complaints with at least one upvote (ties keep input order)."""
        limit = settings.TRENDING_LIMIT if limit is None else limit
        upvoted = [c for c in complaints if c.upvote_count > 0]
        return sorted(upvoted, key=lambda c: c.upvote_count, reverse=True)[:limit]

    def public_stats(self, complaints: Sequence[Complaint], limit: Optional[int] = None) -> PublicStats:
        """Counters for the unauthenticated public page."""
        limit = settings.TOP_UPVOTED_LIMIT if limit is None else limit
        complaints = list(complaints)
        resolved = sum(1 for c in complaints if c.status == RESOLVED)
        top = sorted(complaints, key=lambda c: c.upvote_count, reverse=True)[:limit]
        return PublicStats(resolved=resolved, pending=len(complaints) - resolved, top_upvoted=top)

    def bottlenecks(
        self,
        complaints: Iterable[Complaint],
        now: datetime,
        days: Optional[int] = None,
    ) -> List[Complaint]:
        """
        Unresolved complaints that are stuck: open for `days` or more, or
        with no recorded progress. Input order is preserved.
        """
        days = settings.BOTTLENECK_DAYS if days is None else days
        stuck = []
        for complaint in complaints:
            if complaint.status == RESOLVED:
                continue
            opened = days_open(complaint.created_at, now)
            if complaint.progress == 0 or (opened is not None and opened >= days):
                stuck.append(complaint)
        return stuck


# Global service instance
_statistics_service = None


def get_statistics_service() -> StatisticsService:
    """Get or create StatisticsService singleton."""
    global _statistics_service
    if _statistics_service is None:
        _statistics_service = StatisticsService()
    return _statistics_service
