"""
Status Workflow Engine - complaint lifecycle state machine.

DESIGN PRINCIPLES:
- No backward transitions; closed is terminal
- resolved is reachable from any non-closed status, closed only from resolved
- Status, progress and assignment changes append exactly one timeline event
- updated_at only moves forward
- Operations return new Complaint snapshots; inputs are never mutated
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple
import logging
import uuid

from complaint_engine.models.complaint import (
    Complaint,
    ComplaintStatus,
    EscalationLevel,
    Location,
    TimelineEvent,
)
from complaint_engine.utils.timestamps import ensure_utc

logger = logging.getLogger(__name__)

SUBMITTED_ACTION = "Complaint submitted"


class StatusWorkflowEngine:
    """
    Lifecycle rules for complaints.

    pending → in_progress → resolved → closed
    pending → resolved
    """

    # Allowed transitions map: {from_status: [to_status, ...]}
    ALLOWED_TRANSITIONS: Dict[ComplaintStatus, List[ComplaintStatus]] = {
        ComplaintStatus.PENDING: [ComplaintStatus.IN_PROGRESS, ComplaintStatus.RESOLVED],
        ComplaintStatus.IN_PROGRESS: [ComplaintStatus.RESOLVED],
        ComplaintStatus.RESOLVED: [ComplaintStatus.CLOSED],
        ComplaintStatus.CLOSED: []  # Terminal state, no transitions allowed
    }

    @classmethod
    def is_valid_transition(cls, from_status: str, to_status: str) -> bool:
        """
        Check if a status transition is valid.

        Args:
            from_status: Current status
            to_status: Desired new status

        Returns:
            True if transition is allowed, False otherwise
        """
        try:
            from_enum = ComplaintStatus(from_status)
            to_enum = ComplaintStatus(to_status)
        except ValueError:
            return False

        # Same status is a no-op update, except on a closed complaint
        if from_enum == to_enum:
            return from_enum != ComplaintStatus.CLOSED

        return to_enum in cls.ALLOWED_TRANSITIONS.get(from_enum, [])

    @classmethod
    def get_allowed_transitions(cls, current_status: str) -> List[str]:
        try:
            current_enum = ComplaintStatus(current_status)
        except ValueError:
            return []
        return [status.value for status in cls.ALLOWED_TRANSITIONS.get(current_enum, [])]

    @staticmethod
    def create_timeline_event(
        action: str,
        performed_by: Optional[str],
        now: datetime,
        comment: Optional[str] = None
    ) -> TimelineEvent:
        return TimelineEvent(action=action, timestamp=ensure_utc(now), performed_by=performed_by, comment=comment)

    @classmethod
    def _apply(cls, complaint: Complaint, event: TimelineEvent, now: datetime, **changes) -> Complaint:
        # Append-only timeline, monotonic updated_at
        now = ensure_utc(now)
        updated_at = complaint.updated_at if complaint.updated_at and complaint.updated_at > now else now
        changes["timeline"] = [*complaint.timeline, event]
        changes["updated_at"] = updated_at

        status = changes.get("status", complaint.status)
        if status in (ComplaintStatus.RESOLVED.value, ComplaintStatus.CLOSED.value):
            changes["escalation_status"] = complaint.escalation_status.model_copy(
                update={"level": EscalationLevel.GREEN.value, "escalated_at": None}
            )
        return complaint.model_copy(update=changes)

    @classmethod
    def create_complaint(
        cls,
        title: str,
        description: str,
        category: str,
        citizen_id: str,
        now: datetime,
        severity: Optional[str] = None,
        location: Optional[Location] = None,
        complaint_id: Optional[str] = None,
    ) -> Complaint:
        """
        Build a freshly submitted complaint.

        Returns:
            Complaint in "pending" with a single "Complaint submitted" event
        """
        now = ensure_utc(now)
        complaint = Complaint(
            id=complaint_id or uuid.uuid4().hex,
            title=title,
            description=description,
            category=category,
            severity=severity,
            status=ComplaintStatus.PENDING.value,
            citizen_id=citizen_id,
            location=location,
            timeline=[cls.create_timeline_event(SUBMITTED_ACTION, citizen_id, now, "Initial complaint submission")],
            created_at=now,
            updated_at=now,
        )
        logger.info(f"Created complaint {complaint.id} ({complaint.category}/{complaint.severity})")
        return complaint

    @classmethod
    def change_status(
        cls,
        complaint: Complaint,
        new_status: str,
        performed_by: str,
        now: datetime,
        comment: Optional[str] = None
    ) -> Complaint:
        """
        Validate a status change and return the updated complaint.

        Raises:
            ValueError: If transition is invalid
        """
        new_status = getattr(new_status, "value", new_status)
        if not cls.is_valid_transition(complaint.status, new_status):
            allowed = cls.get_allowed_transitions(complaint.status)
            raise ValueError(
                f"Invalid status transition: {complaint.status} → {new_status}. "
                f"Allowed transitions from {complaint.status}: {allowed}"
            )

        event = cls.create_timeline_event(f"Status changed to {new_status}", performed_by, now, comment)
        updated = cls._apply(complaint, event, now, status=new_status)
        logger.info(f"Complaint {complaint.id} status {complaint.status} → {new_status} by {performed_by}")
        return updated

    @classmethod
    def update_progress(
        cls,
        complaint: Complaint,
        progress: int,
        performed_by: str,
        now: datetime,
        notes: Optional[str] = None
    ) -> Complaint:
        """
        Record work progress (0-100).

        Progress is clamped and never lowered. Reaching 100 resolves the
        complaint; any progress on a pending complaint moves it to in_progress.

        Raises:
            ValueError: If the complaint is closed or progress is not numeric
        """
        if complaint.status == ComplaintStatus.CLOSED.value:
            raise ValueError(f"Complaint {complaint.id} is closed; progress can no longer change")
        try:
            requested = int(progress)
        except (TypeError, ValueError):
            raise ValueError(f"Progress must be an integer, got {progress!r}")

        new_progress = max(complaint.progress, min(100, max(0, requested)))
        status = complaint.status
        if new_progress >= 100:
            status = ComplaintStatus.RESOLVED.value
        elif new_progress > 0 and status == ComplaintStatus.PENDING.value:
            status = ComplaintStatus.IN_PROGRESS.value

        action = f"Progress updated to {new_progress}%"
        event = cls.create_timeline_event(action, performed_by, now, notes or action)
        return cls._apply(complaint, event, now, progress=new_progress, status=status)

    @classmethod
    def assign(
        cls,
        complaint: Complaint,
        performed_by: str,
        now: datetime,
        assigned_to: Optional[str] = None,
        assigned_squad: Optional[str] = None,
        comment: Optional[str] = None
    ) -> Complaint:
        """Assign an official and/or squad."""
        if assigned_to is None and assigned_squad is None:
            raise ValueError("Nothing to assign: provide assigned_to and/or assigned_squad")

        changes = {}
        targets = []
        if assigned_to is not None:
            changes["assigned_to"] = assigned_to
            targets.append(f"official {assigned_to}")
        if assigned_squad is not None:
            changes["assigned_squad"] = assigned_squad
            targets.append(f"squad {assigned_squad}")

        event = cls.create_timeline_event(f"Assigned to {' and '.join(targets)}", performed_by, now, comment)
        return cls._apply(complaint, event, now, **changes)

    @classmethod
    def toggle_upvote(cls, complaint: Complaint, voter_id: str) -> Tuple[Complaint, bool]:
        """
        Add the voter's upvote, or remove it if already present.

        Votes are not lifecycle changes: no timeline event, updated_at untouched.

        Returns:
            (updated complaint, True if the upvote was added)
        """
        if voter_id in complaint.upvotes:
            return complaint.model_copy(update={"upvotes": [v for v in complaint.upvotes if v != voter_id]}), False
        return complaint.model_copy(update={"upvotes": [*complaint.upvotes, voter_id]}), True
