from __future__ import annotations

from typing import Any, Dict

FULL_THRESHOLD = 85

SENSOR_STATUSES = ("online", "low_battery", "offline")


def bin_type_for(fill_level: float) -> str:
    return "full" if fill_level >= FULL_THRESHOLD else "empty"


def normalize(bin_record: Dict[str, Any]) -> Dict[str, Any]:
    """Rederive ``type`` from ``fillLevel``; any stored ``type`` is ignored."""
    out = dict(bin_record)
    out["type"] = bin_type_for(float(bin_record.get("fillLevel") or 0))
    return out
