from datetime import timedelta

import pytest

from complaint_engine.models.complaint import Location
from complaint_engine.services.status_workflow import StatusWorkflowEngine as Workflow


def test_create_complaint_starts_pending_with_submission_event(now):
    complaint = Workflow.create_complaint(
        title="Streetlight out",
        description="Dark corner since Monday",
        category="Electricity",
        citizen_id="citizen-9",
        now=now,
        location=Location(address="Linking Road", zone="commercial"),
    )

    assert complaint.status == "pending"
    assert complaint.category == "electricity"
    assert complaint.severity == "medium"
    assert complaint.progress == 0
    assert complaint.created_at == now
    assert complaint.updated_at == now
    assert complaint.escalation_status.level == "green"
    assert [e.action for e in complaint.timeline] == ["Complaint submitted"]
    assert complaint.timeline[0].comment == "Initial complaint submission"
    assert complaint.timeline[0].performed_by == "citizen-9"
    assert complaint.zone == "commercial"


def test_create_complaint_generates_ids(now):
    first = Workflow.create_complaint("a", "", "roads", "u1", now)
    second = Workflow.create_complaint("b", "", "roads", "u1", now)

    assert first.id != second.id
    assert Workflow.create_complaint("c", "", "roads", "u1", now, complaint_id="fixed").id == "fixed"


@pytest.mark.parametrize("from_status,to_status,allowed", [
    ("pending", "in_progress", True),
    ("pending", "resolved", True),
    ("in_progress", "resolved", True),
    ("resolved", "closed", True),
    ("pending", "pending", True),
    ("in_progress", "pending", False),
    ("resolved", "in_progress", False),
    ("pending", "closed", False),
    ("closed", "resolved", False),
    ("closed", "closed", False),
    ("pending", "archived", False),
])
def test_transition_table(from_status, to_status, allowed):
    assert Workflow.is_valid_transition(from_status, to_status) is allowed


def test_change_status_appends_one_event(make_complaint, now):
    complaint = make_complaint()

    updated = Workflow.change_status(complaint, "in_progress", "official-1", now, comment="Crew dispatched")

    assert updated.status == "in_progress"
    assert len(updated.timeline) == len(complaint.timeline) + 1
    event = updated.timeline[-1]
    assert event.action == "Status changed to in_progress"
    assert event.performed_by == "official-1"
    assert event.comment == "Crew dispatched"
    assert event.timestamp == now
    assert complaint.status == "pending"
    assert len(complaint.timeline) == 1


def test_change_status_rejects_backward_transition(make_complaint, now):
    complaint = make_complaint(status="in_progress")

    with pytest.raises(ValueError, match="Invalid status transition"):
        Workflow.change_status(complaint, "pending", "official-1", now)


def test_closed_is_terminal(make_complaint, now):
    complaint = make_complaint(status="resolved")
    closed = Workflow.change_status(complaint, "closed", "official-1", now)

    for target in ("pending", "in_progress", "resolved", "closed"):
        with pytest.raises(ValueError):
            Workflow.change_status(closed, target, "official-1", now)


def test_updated_at_never_moves_backwards(make_complaint, now):
    later = now + timedelta(hours=1)
    complaint = make_complaint(updatedAt=later.isoformat())

    updated = Workflow.change_status(complaint, "in_progress", "official-1", now)

    assert updated.updated_at == later


def test_resolution_resets_escalation(make_complaint, now):
    complaint = make_complaint(
        age_days=10,
        escalationStatus={"level": "red", "escalatedAt": now.isoformat(), "notificationsSent": ["yellow", "red"]},
    )

    resolved = Workflow.change_status(complaint, "resolved", "official-1", now)

    assert resolved.escalation_status.level == "green"
    assert resolved.escalation_status.escalated_at is None
    assert resolved.escalation_status.notifications_sent == ["yellow", "red"]


def test_progress_moves_pending_to_in_progress(make_complaint, now):
    updated = Workflow.update_progress(make_complaint(), 40, "official-1", now)

    assert updated.progress == 40
    assert updated.status == "in_progress"
    assert updated.timeline[-1].action == "Progress updated to 40%"


def test_progress_is_never_lowered(make_complaint, now):
    complaint = make_complaint(status="in_progress", progress=60)

    updated = Workflow.update_progress(complaint, 20, "official-1", now)

    assert updated.progress == 60
    assert len(updated.timeline) == 2


def test_full_progress_resolves(make_complaint, now):
    updated = Workflow.update_progress(make_complaint(status="in_progress"), 150, "official-1", now, notes="Done")

    assert updated.progress == 100
    assert updated.status == "resolved"
    assert updated.timeline[-1].comment == "Done"


def test_progress_rejects_closed_and_non_numeric(make_complaint, now):
    with pytest.raises(ValueError):
        Workflow.update_progress(make_complaint(status="closed"), 50, "official-1", now)
    with pytest.raises(ValueError):
        Workflow.update_progress(make_complaint(), "lots", "official-1", now)


def test_assign_official_and_squad(make_complaint, now):
    updated = Workflow.assign(make_complaint(), "admin-1", now, assigned_to="official-7", assigned_squad="Alpha")

    assert updated.assigned_to == "official-7"
    assert updated.assigned_squad == "Alpha"
    assert updated.timeline[-1].action == "Assigned to official official-7 and squad Alpha"


def test_assign_requires_a_target(make_complaint, now):
    with pytest.raises(ValueError):
        Workflow.assign(make_complaint(), "admin-1", now)


def test_toggle_upvote(make_complaint):
    complaint = make_complaint(upvotes=["u1"])

    added, was_added = Workflow.toggle_upvote(complaint, "u2")
    assert was_added is True
    assert added.upvotes == ["u1", "u2"]
    assert added.timeline == complaint.timeline
    assert added.updated_at == complaint.updated_at

    removed, was_added = Workflow.toggle_upvote(added, "u1")
    assert was_added is False
    assert removed.upvotes == ["u2"]
    assert removed.upvote_count == 1
