"""
Filter/Sort engine for the officials' complaint table.

- Filters are ANDed; the free-text search ORs across id, title, category, address
- Sorting is stable: equal keys keep their input order in both directions
- Returned lists hold the input Complaint objects, never copies
"""

from datetime import date, datetime, time, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
import logging

from complaint_engine.models.complaint import Complaint, Severity
from complaint_engine.models.query import FilterSpec, SortSpec

logger = logging.getLogger(__name__)

FilterInput = Optional[Union[FilterSpec, Dict[str, Any]]]
SortInput = Optional[Union[SortSpec, Dict[str, Any]]]


class FilterSortEngine:
    """Applies FilterSpec / SortSpec to a complaint snapshot."""

    # Fixed severity ordinal (not lexical)
    SEVERITY_ORDER = {
        Severity.LOW.value: 1,
        Severity.MEDIUM.value: 2,
        Severity.HIGH.value: 3,
        Severity.CRITICAL.value: 4,
    }

    # Dashboard sort keys that map onto differently named fields
    SORT_FIELD_ALIASES = {
        "date": "created_at",
        "id": "id",
        "_id": "id",
    }

    @staticmethod
    def _lower_bound(value: Union[datetime, date]) -> datetime:
        if isinstance(value, datetime):
            return value
        return datetime.combine(value, time.min, tzinfo=timezone.utc)

    @staticmethod
    def _upper_bound(value: Union[datetime, date]) -> datetime:
        if isinstance(value, datetime):
            return value
        return datetime.combine(value, time.max, tzinfo=timezone.utc)

    def matches(self, complaint: Complaint, spec: FilterSpec) -> bool:
        """True when the complaint satisfies every filter set in `spec`."""
        if spec.severity and complaint.severity != spec.severity:
            return False
        if spec.status and complaint.status != spec.status:
            return False
        if spec.region and complaint.zone != spec.region:
            return False
        if spec.category and complaint.category != spec.category:
            return False

        if spec.date_from is not None or spec.date_to is not None:
            created = complaint.created_at
            if created is None:
                return False
            if spec.date_from is not None and created < self._lower_bound(spec.date_from):
                return False
            if spec.date_to is not None and created > self._upper_bound(spec.date_to):
                return False

        if spec.search:
            needle = spec.search.lower()
            haystack = (complaint.id, complaint.title, complaint.category, complaint.address)
            if not any(field and needle in field.lower() for field in haystack):
                return False

        return True

    def filter(self, complaints: Iterable[Complaint], filters: FilterInput = None) -> List[Complaint]:
        """
        Keep the complaints matching every provided filter, in input order.

        An empty result is valid and returned as an empty list.
        """
        spec = filters if isinstance(filters, FilterSpec) else FilterSpec.model_validate(filters or {})
        return [c for c in complaints if self.matches(c, spec)]

    def _field_name(self, sort_by: str) -> str:
        if sort_by in self.SORT_FIELD_ALIASES:
            return self.SORT_FIELD_ALIASES[sort_by]
        if sort_by in Complaint.model_fields:
            return sort_by
        for name, field in Complaint.model_fields.items():
            if field.alias == sort_by:
                return name
        return sort_by

    @staticmethod
    def _comparable(value: Any) -> Tuple[int, float, str]:
        # Rank by kind so mixed values never compare across types
        if value is None:
            return (2, 0.0, "")
        if isinstance(value, bool):
            return (0, float(value), "")
        if isinstance(value, (int, float)):
            return (0, float(value), "")
        if isinstance(value, datetime):
            return (0, value.timestamp(), "")
        if isinstance(value, str):
            return (1, 0.0, value)
        return (1, 0.0, str(value))

    def sort_key(self, sort_by: str):
        """Key function for `sort_by` ("date", "severity", "status", "upvotes" or any field)."""
        if sort_by == "severity":
            return lambda c: self.SEVERITY_ORDER.get(c.severity, 0)
        if sort_by == "upvotes":
            return lambda c: c.upvote_count
        if sort_by == "status":
            return lambda c: c.status

        name = self._field_name(sort_by)
        if name not in Complaint.model_fields:
            logger.warning(f"Sorting by unknown field '{sort_by}'; order left unchanged")
        return lambda c: self._comparable(getattr(c, name, None))

    def _has_value(self, complaint: Complaint, sort_by: str) -> bool:
        if sort_by in ("severity", "upvotes", "status"):
            return True
        return getattr(complaint, self._field_name(sort_by), None) is not None

    def sort(self, complaints: Iterable[Complaint], sort: SortInput = None) -> List[Complaint]:
        """
        Stable sort; reverse=True keeps equal-key records in input order.

        Records without a value for the sort field go last in both
        directions, in input order.
        """
        spec = sort if isinstance(sort, SortSpec) else SortSpec.model_validate(sort or {})
        complaints = list(complaints)
        present = [c for c in complaints if self._has_value(c, spec.sort_by)]
        missing = [c for c in complaints if not self._has_value(c, spec.sort_by)]
        return sorted(present, key=self.sort_key(spec.sort_by), reverse=spec.sort_dir == "desc") + missing

    def query(
        self,
        complaints: Iterable[Complaint],
        filters: FilterInput = None,
        sort: SortInput = None,
    ) -> List[Complaint]:
        """
        Filter then (optionally) sort a complaint snapshot.

        Args:
            complaints: Complaint snapshot
            filters: FilterSpec or dict of filter fields; None keeps everything
            sort: SortSpec or dict; None keeps the filtered input order

        Returns:
            New list referencing the input complaints
        """
        result = self.filter(complaints, filters)
        if sort is not None:
            result = self.sort(result, sort)
        logger.debug(f"Query returned {len(result)} complaints")
        return result


# Global service instance
_filter_sort_engine = None


def get_filter_sort_engine() -> FilterSortEngine:
    """Get or create FilterSortEngine singleton."""
    global _filter_sort_engine
    if _filter_sort_engine is None:
        _filter_sort_engine = FilterSortEngine()
    return _filter_sort_engine


def query_complaints(
    complaints: Iterable[Complaint],
    filters: FilterInput = None,
    sort: SortInput = None,
) -> List[Complaint]:
    """Filter then sort with the shared engine."""
    return get_filter_sort_engine().query(complaints, filters, sort)
