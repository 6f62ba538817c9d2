"""
Escalation Engine - age-based urgency classification.

DESIGN PRINCIPLES:
- Level is derived from status and days open, evaluated at an explicit `now`
- Open complaints never drop to a lower level (green → yellow → red only)
- Resolution or closure resets the level to green
- The engine REPORTS transitions; notification delivery belongs to the caller
- A level already in notifications_sent is never reported twice
"""

from datetime import datetime
from typing import Dict, Iterable, Optional, Tuple
import logging

from complaint_engine.core.settings import settings
from complaint_engine.models.analytics import EscalationBatch, EscalationResult, EscalationTransition
from complaint_engine.models.complaint import Complaint, EscalationLevel, EscalationStatus, bucket_of
from complaint_engine.utils.timestamps import days_open, ensure_utc

logger = logging.getLogger(__name__)


class EscalationEngine:
    """
    Classifies complaints into green / yellow / red escalation bands.

    Bands (days open, ceiling):
    - days <= yellow_after_days → green
    - yellow_after_days < days <= red_after_days → yellow
    - days > red_after_days → red
    """

    LEVEL_RANK: Dict[str, int] = {
        EscalationLevel.GREEN.value: 0,
        EscalationLevel.YELLOW.value: 1,
        EscalationLevel.RED.value: 2,
    }

    def __init__(self, yellow_after_days: Optional[int] = None, red_after_days: Optional[int] = None):
        self.yellow_after_days = (
            settings.ESCALATION_YELLOW_AFTER_DAYS if yellow_after_days is None else yellow_after_days
        )
        self.red_after_days = settings.ESCALATION_RED_AFTER_DAYS if red_after_days is None else red_after_days

        if self.yellow_after_days < 0 or self.red_after_days < self.yellow_after_days:
            raise ValueError(
                f"Invalid escalation thresholds: yellow after {self.yellow_after_days}d, "
                f"red after {self.red_after_days}d"
            )

    def level_for_days(self, days: int) -> str:
        """Map a days-open count to its escalation band."""
        if days > self.red_after_days:
            return EscalationLevel.RED.value
        if days > self.yellow_after_days:
            return EscalationLevel.YELLOW.value
        return EscalationLevel.GREEN.value

    def _rank(self, level: str) -> int:
        # Unrecognized stored levels rank as green so they can be escalated over
        return self.LEVEL_RANK.get(bucket_of(level, EscalationLevel), 0)

    def classify(self, complaint: Complaint, now: datetime) -> str:
        """
        Compute the escalation level of a complaint at `now`.

        Args:
            complaint: Complaint snapshot
            now: Evaluation instant

        Returns:
            "green", "yellow" or "red"
        """
        if not complaint.is_open:
            return EscalationLevel.GREEN.value

        recorded = complaint.escalation_status.level
        days = days_open(complaint.created_at, now)
        if days is None:
            # Age unknown: keep what was recorded rather than guess
            return bucket_of(recorded, EscalationLevel) if self._rank(recorded) else EscalationLevel.GREEN.value

        level = self.level_for_days(days)
        if self._rank(recorded) > self._rank(level):
            level = recorded
        return level

    def evaluate(self, complaint: Complaint, now: datetime) -> EscalationResult:
        """
        Evaluate a complaint and describe its refreshed escalation state.

        Returns:
            EscalationResult with the new escalation_status and, when the
            level increased to one not yet notified, the transition event
        """
        now = ensure_utc(now)
        current = complaint.escalation_status

        if not complaint.is_open:
            if current.level == EscalationLevel.GREEN.value and current.escalated_at is None:
                return EscalationResult(complaint_id=complaint.id, escalation_status=current)
            status = current.model_copy(update={"level": EscalationLevel.GREEN.value, "escalated_at": None})
            return EscalationResult(complaint_id=complaint.id, escalation_status=status)

        level = self.classify(complaint, now)
        if self._rank(level) <= self._rank(current.level):
            # No increase; normalize unknown stored levels to green
            if bucket_of(current.level, EscalationLevel) == level:
                return EscalationResult(complaint_id=complaint.id, escalation_status=current)
            return EscalationResult(
                complaint_id=complaint.id,
                escalation_status=current.model_copy(update={"level": level}),
            )

        notifications_sent = list(current.notifications_sent)
        transition = None
        if level not in notifications_sent:
            notifications_sent.append(level)
            transition = EscalationTransition(
                complaint_id=complaint.id,
                from_level=current.level,
                to_level=level,
                at=now,
            )
            logger.info(f"Complaint {complaint.id} escalated {current.level} → {level}")
        else:
            logger.debug(f"Complaint {complaint.id} back at {level}; already notified")

        status = EscalationStatus(level=level, escalated_at=now, notifications_sent=notifications_sent)
        return EscalationResult(complaint_id=complaint.id, escalation_status=status, transition=transition)

    def refresh(self, complaint: Complaint, now: datetime) -> Tuple[Complaint, Optional[EscalationTransition]]:
        """Return the complaint with refreshed escalation_status plus any transition."""
        result = self.evaluate(complaint, now)
        if result.escalation_status is complaint.escalation_status:
            return complaint, None
        return complaint.model_copy(update={"escalation_status": result.escalation_status}), result.transition

    def refresh_escalations(self, complaints: Iterable[Complaint], now: datetime) -> EscalationBatch:
        """
        Refresh every complaint in a snapshot.

        Args:
            complaints: Complaint snapshot (not mutated)
            now: Evaluation instant

        Returns:
            EscalationBatch with refreshed complaints (input order), the
            transitions to notify, and IDs whose age was unknown
        """
        refreshed = []
        transitions = []
        skipped = []

        for complaint in complaints:
            if complaint.is_open and complaint.created_at is None:
                skipped.append(complaint.id)
            updated, transition = self.refresh(complaint, now)
            refreshed.append(updated)
            if transition is not None:
                transitions.append(transition)

        if skipped:
            logger.warning(f"Escalation age unknown for {len(skipped)} complaints: {', '.join(skipped)}")
        logger.info(f"Refreshed escalation for {len(refreshed)} complaints, {len(transitions)} transitions")

        return EscalationBatch(complaints=refreshed, transitions=transitions, skipped=skipped)


# Global service instance (singleton pattern)
_escalation_engine = None


def get_escalation_engine() -> EscalationEngine:
    """
    Get or create EscalationEngine singleton instance.

    Returns:
        EscalationEngine: The global escalation engine instance
    """
    global _escalation_engine
    if _escalation_engine is None:
        _escalation_engine = EscalationEngine()
    return _escalation_engine
