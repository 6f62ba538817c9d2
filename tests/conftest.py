"""
Shared pytest fixtures: a fixed evaluation instant and a complaint factory.
"""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from complaint_engine.models.complaint import Complaint

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_complaint():
    """Build a Complaint from wire-style fields; `age_days` sets createdAt relative to NOW."""
    counter = itertools.count(1)

    def _make(age_days=1, **fields):
        record = {
            "_id": f"c{next(counter)}",
            "title": "Garbage pile near market",
            "category": "sanitation",
            "severity": "medium",
            "status": "pending",
            "citizenId": "citizen-1",
            "createdAt": (NOW - timedelta(days=age_days)).isoformat(),
            "timeline": [{"action": "Complaint submitted", "performedBy": "citizen-1"}],
        }
        record.update(fields)
        return Complaint.model_validate(record)

    return _make
