"""Report ledger: garbage-spot reports and the points they earn."""
from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Tuple

from ecoclean.engines.gamification import REPORT_POINTS, apply_report
from ecoclean.errors import InvalidInput

GARBAGE_SIZES = tuple(REPORT_POINTS)

REPORT_STATUSES = ("pending", "in_progress", "resolved")
ACTIVE_STATUSES = ("pending", "in_progress")

PRIORITY_BY_SIZE = {"large": "high", "medium": "medium", "small": "low"}

# Hours
CLEANUP_HOURS_BY_SIZE = {"large": 2, "medium": 1, "small": 0.5}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_report_id(now: datetime) -> str:
    return f"report-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:12]}"


def _is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate_report_payload(payload: Dict[str, Any]) -> None:
    if not isinstance(payload, dict):
        raise InvalidInput("Report payload must be an object")

    garbage_size = payload.get("garbageSize")
    if garbage_size not in GARBAGE_SIZES:
        raise InvalidInput(f"garbageSize must be one of: {', '.join(GARBAGE_SIZES)}")

    coords = payload.get("coordinates")
    if not isinstance(coords, dict):
        raise InvalidInput("coordinates with lat and lng are required")
    if not _is_finite_number(coords.get("lat")) or not _is_finite_number(coords.get("lng")):
        raise InvalidInput("coordinates.lat and coordinates.lng must be finite numbers")


def _submitted_at(report: Dict[str, Any]) -> datetime:
    raw = report.get("submittedAt") or ""
    try:
        ts = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class ReportLedger:
    def __init__(self, store, users, *, clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.users = users
        self.clock = clock

    def submit_report(self, user_id: str, payload: Dict[str, Any]) -> Tuple[Dict[str, Any], int]:
        validate_report_payload(payload)
        # Unknown users fail here, before anything is written.
        current = self.users.require(user_id)

        now = self.clock()
        size = payload["garbageSize"]
        report = {
            "id": new_report_id(now),
            "userId": user_id,
            "location": payload.get("location") or "",
            "coordinates": {"lat": float(payload["coordinates"]["lat"]), "lng": float(payload["coordinates"]["lng"])},
            "garbageSize": size,
            "description": payload.get("description"),
            "photo": payload.get("photo"),
            "status": "pending",
            "priority": PRIORITY_BY_SIZE[size],
            "submittedAt": now.isoformat(),
            "pointsEarned": REPORT_POINTS[size],
            "upvotes": 0,
            "assignedTo": None,
            "estimatedCleanupTime": CLEANUP_HOURS_BY_SIZE[size],
        }
        self.store.set(f"report:{report['id']}", report)

        # A failure past this point keeps the report; the user's totals just miss this event.
        def _mutate(user):
            updated, points, unlocked = apply_report(user, size)
            return updated, (points, unlocked)

        _, (points, _) = self.users.update(user_id, _mutate, current=current)
        return report, points

    def get_user_reports(self, user_id: str) -> List[Dict[str, Any]]:
        reports = [r for r in self.store.get_by_prefix("report:") if r.get("userId") == user_id]
        return sorted(reports, key=_submitted_at, reverse=True)

    def get_active_spots(self) -> List[Dict[str, Any]]:
        return [r for r in self.store.get_by_prefix("report:") if r.get("status") in ACTIVE_STATUSES]
