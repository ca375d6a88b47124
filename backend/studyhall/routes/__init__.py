# Overview: Shared JSON response helpers for the API blueprints.

from __future__ import annotations

from flask import current_app, jsonify

from ..extensions import db
from ..validation import ConflictError, NotFoundError, ValidationError


def error_response(message: str, status: int = 400, error: str | None = None):
    return jsonify({"message": message, "error": error or message}), status


def service_error_response(exc: Exception):
    """Map a service-layer error to its HTTP status."""
    if isinstance(exc, NotFoundError):
        return error_response(str(exc), 404)
    if isinstance(exc, (ValidationError, ConflictError)):
        return error_response(str(exc), 400)
    raise exc


def server_error_response(exc: Exception, what: str):
    db.session.rollback()
    current_app.logger.exception("Failed to %s", what)
    return error_response("Server error", 500, error=str(exc))


def query_int(args, name: str):
    """Optional integer query parameter; junk raises ValidationError."""
    raw = args.get(name)
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")
