from datetime import timedelta

import pytest

from complaint_engine.services.escalation_engine import EscalationEngine


@pytest.fixture
def engine():
    return EscalationEngine(yellow_after_days=3, red_after_days=7)


def test_levels_rise_with_age(engine, make_complaint, now):
    complaint = make_complaint(age_days=0)

    levels = [engine.classify(complaint, now + timedelta(days=d)) for d in (2, 5, 9)]

    assert levels == ["green", "yellow", "red"]


@pytest.mark.parametrize(
    "elapsed, expected",
    [
        (timedelta(days=3), "green"),
        (timedelta(days=3, seconds=1), "yellow"),
        (timedelta(days=7), "yellow"),
        (timedelta(days=7, seconds=1), "red"),
    ],
)
def test_band_edges_use_ceiling_days(engine, make_complaint, now, elapsed, expected):
    complaint = make_complaint(age_days=0)

    assert engine.classify(complaint, now + elapsed) == expected


@pytest.mark.parametrize("status", ["resolved", "closed"])
def test_resolved_and_closed_are_green_regardless_of_age(engine, make_complaint, now, status):
    complaint = make_complaint(
        age_days=40,
        status=status,
        escalationStatus={"level": "red", "escalatedAt": now.isoformat(), "notificationsSent": ["yellow", "red"]},
    )

    result = engine.evaluate(complaint, now)

    assert engine.classify(complaint, now) == "green"
    assert result.escalation_status.level == "green"
    assert result.escalation_status.escalated_at is None
    assert result.escalation_status.notifications_sent == ["yellow", "red"]
    assert result.transition is None


def test_future_created_at_is_green(engine, make_complaint, now):
    complaint = make_complaint(age_days=-2)

    assert engine.classify(complaint, now) == "green"


def test_open_complaint_never_drops_below_recorded_level(engine, make_complaint, now):
    complaint = make_complaint(age_days=1, escalationStatus={"level": "red", "notificationsSent": ["red"]})

    result = engine.evaluate(complaint, now)

    assert result.escalation_status.level == "red"
    assert result.transition is None


def test_transition_is_reported_once(engine, make_complaint, now):
    complaint = make_complaint(age_days=5)

    refreshed, transition = engine.refresh(complaint, now)

    assert transition is not None
    assert (transition.complaint_id, transition.from_level, transition.to_level) == (complaint.id, "green", "yellow")
    assert transition.at == now
    assert refreshed.escalation_status.level == "yellow"
    assert refreshed.escalation_status.escalated_at == now
    assert refreshed.escalation_status.notifications_sent == ["yellow"]

    again, second = engine.refresh(refreshed, now + timedelta(hours=1))
    assert second is None
    assert again is refreshed


def test_already_notified_level_does_not_retrigger(engine, make_complaint, now):
    complaint = make_complaint(age_days=5, escalationStatus={"level": "green", "notificationsSent": ["yellow"]})

    result = engine.evaluate(complaint, now)

    assert result.escalation_status.level == "yellow"
    assert result.escalation_status.escalated_at == now
    assert result.transition is None


def test_unknown_stored_level_is_normalized(engine, make_complaint, now):
    complaint = make_complaint(age_days=1, escalationStatus={"level": "purple"})

    result = engine.evaluate(complaint, now)

    assert result.escalation_status.level == "green"


def test_refresh_escalations_does_not_mutate_input(engine, make_complaint, now):
    fresh = make_complaint(age_days=1)
    stale = make_complaint(age_days=10)
    undated = make_complaint(createdAt="not-a-date")

    batch = engine.refresh_escalations([fresh, stale, undated], now)

    assert [c.id for c in batch.complaints] == [fresh.id, stale.id, undated.id]
    assert batch.complaints[0] is fresh
    assert batch.complaints[1].escalation_status.level == "red"
    assert stale.escalation_status.level == "green"
    assert [t.to_level for t in batch.transitions] == ["red"]
    assert batch.skipped == [undated.id]
    assert batch.complaints[2].escalation_status.level == "green"


def test_refresh_escalations_accepts_empty_input(engine, now):
    batch = engine.refresh_escalations([], now)

    assert batch.complaints == []
    assert batch.transitions == []


def test_invalid_thresholds_are_rejected():
    with pytest.raises(ValueError):
        EscalationEngine(yellow_after_days=7, red_after_days=3)


def test_thresholds_are_configurable(make_complaint, now):
    engine = EscalationEngine(yellow_after_days=45, red_after_days=60)

    assert engine.classify(make_complaint(age_days=30), now) == "green"
    assert engine.classify(make_complaint(age_days=50), now) == "yellow"
    assert engine.classify(make_complaint(age_days=61), now) == "red"
