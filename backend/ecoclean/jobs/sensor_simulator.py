from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ecoclean.errors import EcoCleanError


@dataclass(frozen=True)
class SensorReading:
    fill_level: float
    battery_level: Optional[float] = None
    sensor_status: Optional[str] = None


class SensorFeed:
    def read(self, bin_record: Dict[str, Any]) -> Optional[SensorReading]:
        raise NotImplementedError


class RandomSensorFeed(SensorFeed):
    """Simulated IoT feed: bins fill up slowly and get emptied once full."""

    def __init__(self, rng: Optional[random.Random] = None, *, max_fill_step: float = 12.0, battery_drain: float = 0.5):
        self.rng = rng or random.Random()
        self.max_fill_step = max_fill_step
        self.battery_drain = battery_drain

    def read(self, bin_record):
        if bin_record.get("sensorStatus") == "offline":
            return None

        fill = float(bin_record.get("fillLevel") or 0)
        if fill >= 100:
            fill = 0.0
        else:
            fill = min(100.0, fill + self.rng.uniform(0, self.max_fill_step))

        battery = max(0.0, float(bin_record.get("batteryLevel") or 0) - self.battery_drain)
        if battery == 0:
            status = "offline"
        elif battery < 20:
            status = "low_battery"
        else:
            status = "online"
        return SensorReading(round(fill, 1), round(battery, 1), status)


def run_sensor_simulation(registry, feed: SensorFeed) -> dict:
    processed = 0
    updated = 0
    errors = 0

    for bin_record in registry.list_bins():
        processed += 1
        reading = feed.read(bin_record)
        if reading is None:
            continue
        try:
            registry.apply_sensor_update(
                bin_record["id"],
                reading.fill_level,
                battery_level=reading.battery_level,
                sensor_status=reading.sensor_status,
            )
            updated += 1
        except EcoCleanError as e:
            errors += 1

    return {"processed": processed, "updated": updated, "errors": errors}
