from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from ecoclean.auth import json_body
from ecoclean.errors import Forbidden
from ecoclean.services import get_services

reports_bp = Blueprint("reports_bp", __name__)


@reports_bp.post("/reports")
@login_required
def submit_report():
    report, points = get_services().reports.submit_report(current_user.id, json_body())
    current_app.logger.info("Report %s by %s: +%d points", report["id"], current_user.id, points)
    return jsonify({"report": report, "pointsEarned": points}), 200


@reports_bp.get("/reports/<user_id>")
@login_required
def user_reports(user_id):
    if current_user.id != user_id:
        raise Forbidden()
    return jsonify({"reports": get_services().reports.get_user_reports(user_id)}), 200


@reports_bp.get("/spots")
def active_spots():
    # Public: the map shows every open spot.
    return jsonify({"spots": get_services().reports.get_active_spots()}), 200
