# Overview: Flask API routes for shifts (schedules); parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..services import catalog_service
from ..services.concurrency import run_in_transaction
from ..validation import ConflictError, NotFoundError, ValidationError
from . import server_error_response, service_error_response


schedules_bp = Blueprint("schedules", __name__, url_prefix="/api/schedules")

SERVICE_ERRORS = (ValidationError, ConflictError, NotFoundError)


@schedules_bp.get("")
def list_schedules_route():
    try:
        shifts = catalog_service.list_shifts()
        return jsonify({"schedules": [s.to_dict() for s in shifts], "count": len(shifts)})
    except Exception as e:
        return server_error_response(e, "list schedules")


@schedules_bp.post("")
def create_schedule_route():
    data = request.get_json(silent=True) or {}
    try:
        shift = run_in_transaction(lambda: catalog_service.create_shift(data))
        return jsonify({"message": "Schedule created", "schedule": shift.to_dict()}), 201
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "create schedule")


@schedules_bp.put("/<int:shift_id>")
def update_schedule_route(shift_id: int):
    """Partial update: only title, time and description keys present in the body change."""
    data = request.get_json(silent=True) or {}
    try:
        shift = run_in_transaction(lambda: catalog_service.update_shift(shift_id, data))
        return jsonify({"message": "Schedule updated", "schedule": shift.to_dict()})
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "update schedule")


@schedules_bp.delete("/<int:shift_id>")
def delete_schedule_route(shift_id: int):
    try:
        run_in_transaction(lambda: catalog_service.delete_shift(shift_id))
        return jsonify({"message": "Schedule deleted"})
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "delete schedule")
