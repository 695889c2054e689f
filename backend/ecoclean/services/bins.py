from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from ecoclean.engines.bins import SENSOR_STATUSES, normalize
from ecoclean.errors import InvalidInput, NotFound


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def bin_key(bin_id: str) -> str:
    return f"bin:{bin_id}"


def seed_bins(now: datetime) -> List[Dict[str, Any]]:
    def hours_ago(h):
        return (now - timedelta(hours=h)).isoformat()

    bins = [
        {
            "id": "bin-001",
            "location": "Sector 12, Gate 1",
            "coordinates": {"lat": 28.5355, "lng": 77.3910},
            "capacity": 85,
            "fillLevel": 15,
            "lastEmptied": hours_ago(4),
            "sensorStatus": "online",
            "batteryLevel": 95,
        },
        {
            "id": "bin-002",
            "location": "Sector 15, Block C",
            "coordinates": {"lat": 28.5375, "lng": 77.3930},
            "capacity": 100,
            "fillLevel": 95,
            "lastEmptied": hours_ago(24),
            "sensorStatus": "online",
            "batteryLevel": 78,
        },
        {
            "id": "bin-003",
            "location": "Community Center",
            "coordinates": {"lat": 28.5345, "lng": 77.3890},
            "capacity": 120,
            "fillLevel": 30,
            "lastEmptied": hours_ago(2),
            "sensorStatus": "online",
            "batteryLevel": 89,
        },
        {
            "id": "bin-004",
            "location": "Market Square",
            "coordinates": {"lat": 28.5365, "lng": 77.3870},
            "capacity": 80,
            "fillLevel": 88,
            "lastEmptied": hours_ago(18),
            "sensorStatus": "low_battery",
            "batteryLevel": 12,
        },
    ]
    for b in bins:
        b["lastUpdated"] = now.isoformat()
    return [normalize(b) for b in bins]


def _percentage(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"{name} must be a number")
    if not math.isfinite(value) or value < 0 or value > 100:
        raise InvalidInput(f"{name} must be between 0 and 100")
    return value


class BinRegistry:
    def __init__(self, store, *, clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.clock = clock

    def list_bins(self) -> List[Dict[str, Any]]:
        bins = self.store.get_by_prefix("bin:")
        if not bins:
            bins = seed_bins(self.clock())
            for b in bins:
                self.store.set(bin_key(b["id"]), b)
        return [normalize(b) for b in bins]

    def get_bin(self, bin_id: str) -> Dict[str, Any]:
        record = self.store.get(bin_key(bin_id))
        if not record:
            raise NotFound("Bin not found")
        return normalize(record)

    def apply_sensor_update(
        self,
        bin_id: str,
        fill_level: Any,
        battery_level: Optional[Any] = None,
        sensor_status: Optional[str] = None,
    ) -> Dict[str, Any]:
        record = self.store.get(bin_key(bin_id))
        if not record:
            raise NotFound("Bin not found")

        if fill_level is None:
            raise InvalidInput("fillLevel is required")
        fill_level = _percentage(fill_level, "fillLevel")
        if battery_level is not None:
            battery_level = _percentage(battery_level, "batteryLevel")
        if sensor_status is not None and sensor_status not in SENSOR_STATUSES:
            raise InvalidInput(f"sensorStatus must be one of: {', '.join(SENSOR_STATUSES)}")

        updated = dict(record)
        updated["fillLevel"] = fill_level
        if battery_level is not None:
            updated["batteryLevel"] = battery_level
        if sensor_status is not None:
            updated["sensorStatus"] = sensor_status
        updated["lastUpdated"] = self.clock().isoformat()
        updated = normalize(updated)

        self.store.set(bin_key(bin_id), updated)
        return updated
