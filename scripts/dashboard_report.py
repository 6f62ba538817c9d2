"""
Dashboard report for an exported complaint snapshot.

Usage:
  - All views, evaluated now:   python scripts/dashboard_report.py complaints.json
  - Fixed evaluation instant:   python scripts/dashboard_report.py complaints.json --now 2024-03-01T09:00:00Z
  - Filtered table:             python scripts/dashboard_report.py complaints.json --severity high --region downtown --sort-by date

Behavior:
  - Loads a JSON array of complaint records (as exported by the storage layer).
  - Refreshes escalation levels, then prints zone statistics, headline stats,
    the filtered/sorted table (ids only) and any escalation transitions as JSON.
  - Nothing is written back; persisting escalation state is up to the caller.
"""

import argparse
import json
from datetime import datetime, timezone

from complaint_engine.core.logging import setup_logging
from complaint_engine.services.dashboard_service import DashboardService
from complaint_engine.utils.timestamps import parse_timestamp


def load_snapshot(path: str) -> list:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        # Accept the paginated API shape {"complaints": [...]}
        data = data.get("complaints", [])
    return data


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("snapshot", help="JSON file with complaint records")
    parser.add_argument("--now", help="Evaluation instant (ISO-8601); defaults to the current time")
    parser.add_argument("--severity")
    parser.add_argument("--status")
    parser.add_argument("--region")
    parser.add_argument("--category")
    parser.add_argument("--date-from")
    parser.add_argument("--date-to")
    parser.add_argument("--search")
    parser.add_argument("--sort-by", help="date, severity, status, upvotes or any complaint field")
    parser.add_argument("--sort-dir", choices=["asc", "desc"], default="desc")
    parser.add_argument("--log-level", default=None)
    args = parser.parse_args()

    setup_logging("dashboard_report", args.log_level)

    now = parse_timestamp(args.now) if args.now else datetime.now(timezone.utc)
    if now is None:
        parser.error(f"Invalid --now value: {args.now}")

    filters = {
        "severity": args.severity,
        "status": args.status,
        "region": args.region,
        "category": args.category,
        "dateFrom": args.date_from,
        "dateTo": args.date_to,
        "search": args.search,
    }
    sort = {"sortBy": args.sort_by, "sortDir": args.sort_dir} if args.sort_by else None

    views = DashboardService().build(load_snapshot(args.snapshot), now, filters=filters, sort=sort)

    report = {
        "evaluatedAt": now.isoformat(),
        "stats": views.stats.model_dump(by_alias=True),
        "zones": {
            zone_id: stats.model_dump(by_alias=True, mode="json")
            for zone_id, stats in views.zones.as_mapping().items()
        },
        "table": [c.id for c in views.table],
        "transitions": [t.model_dump(by_alias=True, mode="json") for t in views.transitions],
        "rejected": [r.model_dump() for r in views.rejected],
    }
    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    main()
