from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from ecoclean.auth import json_body
from ecoclean.services import get_services

quiz_bp = Blueprint("quiz_bp", __name__)


@quiz_bp.get("/quiz/questions")
def quiz_questions():
    return jsonify({"questions": get_services().quiz.get_questions()}), 200


@quiz_bp.post("/quiz/submit")
@login_required
def submit_quiz():
    data = json_body()
    result = get_services().quiz.submit_quiz_result(current_user.id, data.get("score"), data.get("totalQuestions"))
    current_app.logger.info(
        "Quiz by %s: +%d points, badges unlocked %s", current_user.id, result.points_earned, result.badges_unlocked or "none"
    )
    return jsonify(result.to_dict()), 200
