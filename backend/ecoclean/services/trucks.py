from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict

SCHEDULE_KEY = "truck_schedule"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def seed_schedule(now: datetime) -> Dict[str, Any]:
    return {
        "routes": [
            {
                "id": "route-001",
                "area": "Sector 12-15",
                "nextPickup": (now + timedelta(hours=14)).isoformat(),
                "frequency": "daily",
                "truckId": "TRK-001",
                "estimatedDuration": 2.5,
                "status": "scheduled",
            },
            {
                "id": "route-002",
                "area": "Market Area",
                "nextPickup": (now + timedelta(hours=6)).isoformat(),
                "frequency": "twice_daily",
                "truckId": "TRK-002",
                "estimatedDuration": 1.5,
                "status": "in_progress",
            },
        ],
        "lastUpdated": now.isoformat(),
    }


class TruckSchedule:
    def __init__(self, store, *, clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.clock = clock

    def get_schedule(self) -> Dict[str, Any]:
        schedule = self.store.get(SCHEDULE_KEY)
        if not schedule:
            schedule = seed_schedule(self.clock())
            self.store.set(SCHEDULE_KEY, schedule)
        return schedule
