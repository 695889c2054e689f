from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ecoclean.auth import json_body
from ecoclean.services import get_services

bins_bp = Blueprint("bins_bp", __name__)


@bins_bp.get("/bins")
def list_bins():
    return jsonify({"bins": get_services().bins.list_bins()}), 200


@bins_bp.put("/bins/<bin_id>")
def update_bin(bin_id):
    """IoT sensor simulation: push a new fill level (and optionally battery/status)."""
    data = json_body()
    bin_record = get_services().bins.apply_sensor_update(
        bin_id,
        data.get("fillLevel"),
        battery_level=data.get("batteryLevel"),
        sensor_status=data.get("sensorStatus"),
    )
    current_app.logger.info("Bin %s fill level %s (%s)", bin_id, bin_record["fillLevel"], bin_record["type"])
    return jsonify({"bin": bin_record}), 200
