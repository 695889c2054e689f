from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from ecoclean.services import get_services

profile_bp = Blueprint("profile_bp", __name__)


@profile_bp.get("/profile")
@login_required
def profile():
    return jsonify({"profile": get_services().users.get_profile(current_user.id)}), 200
