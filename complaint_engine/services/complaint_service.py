"""
Complaint service - turns raw storage records into Complaint snapshots.

DESIGN NOTE:
- The storage layer owns fetching; this module only validates what it is given
- One malformed record never aborts the batch
- Rejections are returned to the caller as annotations, not raised
"""

from typing import Any, Iterable, List, Optional
import logging

from pydantic import BaseModel, Field, ValidationError

from complaint_engine.models.complaint import Complaint

logger = logging.getLogger(__name__)


class RejectedRecord(BaseModel):
    """A raw record that could not be turned into a Complaint."""
    index: int
    complaint_id: Optional[str] = None
    errors: List[str] = Field(default_factory=list)


class LoadResult(BaseModel):
    complaints: List[Complaint] = Field(default_factory=list)
    rejected: List[RejectedRecord] = Field(default_factory=list)


def _raw_id(record: Any) -> Optional[str]:
    if isinstance(record, dict):
        raw = record.get("id", record.get("_id"))
        return str(raw) if raw is not None else None
    return None


def load_complaints(records: Iterable[Any]) -> LoadResult:
    """
    Validate a batch of raw complaint records.

    Already-built Complaint instances pass through untouched. Records with
    tolerable problems (bad timestamps, unknown enum strings) are kept and
    annotated via ``Complaint.parse_issues``.

    Args:
        records: Dicts as exported by the storage layer, or Complaint objects

    Returns:
        LoadResult with the valid complaints (input order) and the rejects
    """
    result = LoadResult()

    for index, record in enumerate(records):
        if isinstance(record, Complaint):
            result.complaints.append(record)
            continue

        try:
            complaint = Complaint.model_validate(record)
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}"
                for err in e.errors()
            ]
            rejected = RejectedRecord(index=index, complaint_id=_raw_id(record), errors=errors)
            logger.warning(f"Rejected complaint record #{index} ({rejected.complaint_id}): {'; '.join(errors)}")
            result.rejected.append(rejected)
            continue

        if complaint.parse_issues:
            logger.warning(f"Complaint {complaint.id} loaded with issues: {'; '.join(complaint.parse_issues)}")
        result.complaints.append(complaint)

    logger.info(f"Loaded {len(result.complaints)} complaints, rejected {len(result.rejected)}")
    return result
