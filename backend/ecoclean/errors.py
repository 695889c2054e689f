"""Error taxonomy shared by the services and the HTTP layer.

Each error carries the HTTP status it maps to, so blueprints can simply let
them propagate to the handler registered by ``register_error_handlers``.
"""
from __future__ import annotations

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException


class EcoCleanError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        return {"error": self.message}


class InvalidInput(EcoCleanError):
    status_code = 400
    default_message = "Invalid input"


class Unauthenticated(EcoCleanError):
    status_code = 401
    default_message = "Authorization required"


class Forbidden(EcoCleanError):
    status_code = 403
    default_message = "Access denied"


class NotFound(EcoCleanError):
    status_code = 404
    default_message = "Not found"


class StoreUnavailable(EcoCleanError):
    status_code = 500
    default_message = "Ledger store unavailable"


class IdentityProviderError(EcoCleanError):
    status_code = 502
    default_message = "Identity provider unavailable"


def register_error_handlers(app) -> None:
    @app.errorhandler(EcoCleanError)
    def _handle_ecoclean_error(err: EcoCleanError):
        if err.status_code >= 500:
            cause = f" ({err.__cause__})" if err.__cause__ else ""
            current_app.logger.error("%s: %s%s", type(err).__name__, err.message, cause)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def _handle_http_error(err: HTTPException):
        return jsonify({"error": err.description or err.name}), err.code or 500

    @app.errorhandler(Exception)
    def _handle_unexpected(err: Exception):
        current_app.logger.exception("Unhandled error: %s", err)
        return jsonify({"error": "Internal server error"}), 500
