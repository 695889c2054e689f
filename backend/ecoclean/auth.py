from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import UserMixin

from ecoclean.errors import InvalidInput
from ecoclean.extensions import login_manager
from ecoclean.services import get_services
from ecoclean.utils.jwt_utils import get_bearer_token

auth_bp = Blueprint("auth_bp", __name__)


class AuthUser(UserMixin):
    """The caller behind a verified bearer token."""

    def __init__(self, identity):
        self.id = identity.id
        self.email = identity.email
        self.name = identity.name


@login_manager.request_loader
def load_user_from_request(req):
    """Bearer tokens only; ``@login_required`` checks them through the identity provider."""
    token = get_bearer_token(req.headers.get("Authorization", ""))
    if not token:
        return None
    identity = get_services().identity.verify_token(token)
    if identity is None:
        return None
    return AuthUser(identity)


@login_manager.unauthorized_handler
def unauthorized():
    if not get_bearer_token(request.headers.get("Authorization", "")):
        return jsonify({"error": "Authorization required"}), 401
    return jsonify({"error": "Invalid token"}), 401


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data


@auth_bp.post("/auth/signup")
def signup():
    data = json_body()
    user = get_services().users.signup(data.get("email"), data.get("password"), data.get("name"))
    current_app.logger.info("User %s signed up", user["id"])
    return jsonify({"user": user}), 200


@auth_bp.post("/auth/login")
def login():
    """Email + password login; returns a bearer token for the other endpoints."""
    data = json_body()
    return jsonify(get_services().users.login(data.get("email"), data.get("password"))), 200
