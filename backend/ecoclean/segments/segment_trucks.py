from __future__ import annotations

from flask import Blueprint, jsonify

from ecoclean.services import get_services

trucks_bp = Blueprint("trucks_bp", __name__)


@trucks_bp.get("/trucks/schedule")
def truck_schedule():
    return jsonify(get_services().trucks.get_schedule()), 200
