from datetime import datetime, timezone

from complaint_engine.models.complaint import Complaint
from complaint_engine.services.complaint_service import load_complaints
from complaint_engine.services.zone_aggregation import ZoneAggregator, ZoneRegistry


def test_malformed_record_does_not_abort_batch():
    records = [
        {"_id": "a1", "title": "Pothole", "createdAt": "2024-03-01T08:00:00Z"},
        {"title": "No identifier"},
        {"_id": "c3", "progress": "most of it"},
        {"_id": "d4", "createdAt": "2024-03-02T08:00:00Z"},
    ]

    result = load_complaints(records)

    assert [c.id for c in result.complaints] == ["a1", "d4"]
    assert [r.index for r in result.rejected] == [1, 2]
    assert result.rejected[0].complaint_id is None
    assert result.rejected[1].complaint_id == "c3"
    assert all(r.errors for r in result.rejected)


def test_complaint_instances_pass_through(make_complaint):
    complaint = make_complaint()

    result = load_complaints([complaint])

    assert result.complaints[0] is complaint
    assert result.rejected == []


def test_unparsable_timestamps_are_annotated():
    result = load_complaints([
        {"_id": "a1", "createdAt": "yesterday-ish", "updatedAt": "never"},
        {"_id": "b2"},
    ])
    bad, missing = result.complaints

    assert bad.created_at is None
    assert bad.updated_at is None
    assert "unparsable createdAt: 'yesterday-ish'" in bad.parse_issues
    assert "unparsable updatedAt: 'never'" in bad.parse_issues
    assert missing.parse_issues == ["missing createdAt"]


def test_timestamp_shapes():
    expected = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

    for raw in ("2024-03-15T12:00:00Z", "2024-03-15T17:30:00+05:30", 1710504000000, expected):
        complaint = Complaint.model_validate({"_id": "x", "createdAt": raw})
        assert complaint.created_at == expected
        assert complaint.parse_issues == []


def test_accepts_camel_and_snake_names():
    camel = Complaint.model_validate({"id": "x", "assignedSquad": "Alpha", "escalationStatus": {"level": "Yellow"}})
    snake = Complaint.model_validate({"id": "x", "assigned_squad": "Alpha", "escalation_status": {"level": "yellow"}})

    assert camel.assigned_squad == snake.assigned_squad == "Alpha"
    assert camel.escalation_status.level == snake.escalation_status.level == "yellow"


def test_defaults_and_unknown_labels():
    complaint = Complaint.model_validate({"_id": 42, "severity": "URGENT", "category": None, "progress": 140})

    assert complaint.id == "42"
    assert complaint.severity == "urgent"
    assert complaint.category == "other"
    assert complaint.status == "pending"
    assert complaint.progress == 100
    assert complaint.escalation_status.level == "green"


def test_populated_references_and_duplicate_upvotes():
    complaint = Complaint.model_validate({
        "_id": "x",
        "citizenId": {"_id": "u9", "name": "Asha"},
        "upvotes": [{"_id": "u1"}, "u1", "u2"],
        "timeline": [{"action": "Complaint submitted", "performedBy": {"_id": "u9"}, "timestamp": "2024-03-01"}],
    })

    assert complaint.citizen_id == "u9"
    assert complaint.upvotes == ["u1", "u2"]
    assert complaint.timeline[0].performed_by == "u9"


def test_legacy_shapes():
    complaint = Complaint.model_validate({
        "_id": "x",
        "location": "Near Andheri station",
        "escalationStatus": "red",
    })

    assert complaint.address == "Near Andheri station"
    assert complaint.zone is None
    assert complaint.escalation_status.level == "red"


def test_partial_coordinates_are_dropped():
    complaint = Complaint.model_validate({"_id": "x", "location": {"zone": "downtown", "coordinates": {"lat": 19.0}}})

    assert complaint.location.coordinates is None
    assert complaint.zone == "downtown"


def test_wrong_type_location_is_dropped():
    complaint = Complaint.model_validate({"_id": "x", "location": 42})

    assert complaint.location is None


def test_malformed_optional_parts_keep_the_record_counted():
    records = [
        {"_id": "a", "location": {"zone": "downtown", "coordinates": {"lat": "n/a", "lng": 72.8}}},
        {"_id": "b", "location": {"zone": "downtown"},
         "timeline": [{"performedBy": "u1"}, {"action": "Complaint submitted"}]},
        {"_id": "c", "location": {"zone": "downtown", "coordinates": {"lat": 19.07, "lng": 72.87}}},
    ]

    result = load_complaints(records)

    assert result.rejected == []
    aggregator = ZoneAggregator(ZoneRegistry.from_ids(["downtown"]))
    assert aggregator.aggregate(result.complaints).zones["downtown"].count == 3
    assert [point[:2] for point in aggregator.heatmap_points(result.complaints)] == [(19.07, 72.87)]

    coordless, partial_timeline, _ = result.complaints
    assert coordless.location.coordinates is None
    assert [e.action for e in partial_timeline.timeline] == ["Complaint submitted"]
    assert any(issue.startswith("dropped timeline entry #0") for issue in partial_timeline.parse_issues)


def test_non_list_timeline_is_noted():
    complaint = Complaint.model_validate({"_id": "x", "createdAt": "2024-03-01", "timeline": "submitted"})

    assert complaint.timeline == []
    assert complaint.parse_issues == ["unparsable timeline: 'submitted'"]


def test_revalidating_a_dump_keeps_one_note_per_field():
    first = Complaint.model_validate({"_id": "x", "createdAt": "soon"})
    missing = Complaint.model_validate({"_id": "y"})

    again = Complaint.model_validate(first.model_dump(by_alias=True))

    assert again.parse_issues == ["unparsable createdAt: 'soon'"]
    assert Complaint.model_validate(missing.model_dump()).parse_issues == ["missing createdAt"]
