# Overview: Flask API routes for seats; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..services import catalog_service
from ..services.concurrency import run_in_transaction
from ..validation import ConflictError, NotFoundError, ValidationError
from . import query_int, server_error_response, service_error_response


seats_bp = Blueprint("seats", __name__, url_prefix="/api/seats")

SERVICE_ERRORS = (ValidationError, ConflictError, NotFoundError)


@seats_bp.get("")
def list_seats_route():
    """
    List seats with their occupants.

    Query parameters:
    - branch_id: seats of one branch (optional)
    - shift_id: only that shift's occupant, plus is_available (optional)
    """
    try:
        seats = catalog_service.list_seats(
            branch_id=query_int(request.args, "branch_id"),
            shift_id=query_int(request.args, "shift_id"),
        )
        return jsonify({"seats": seats, "count": len(seats)})
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "list seats")


@seats_bp.post("")
def add_seats_route():
    """
    Bulk-add seats to a branch.

    Request body:
    {
        "branch_id": 1,              // required
        "seat_numbers": "1, 2, 3"    // required, comma-separated or a list
    }

    Returns:
        201 {message, seats: Seat[], skipped: str[]}
    """
    data = request.get_json(silent=True) or {}
    try:
        result = run_in_transaction(lambda: catalog_service.add_seats(data))
        return jsonify({
            "message": result["message"],
            "seats": [s.to_dict() for s in result["created"]],
            "skipped": result["skipped"],
        }), 201
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "add seats")


@seats_bp.delete("/<int:seat_id>")
def delete_seat_route(seat_id: int):
    try:
        run_in_transaction(lambda: catalog_service.delete_seat(seat_id))
        return jsonify({"message": "Seat deleted"})
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "delete seat")


@seats_bp.get("/<int:seat_id>/available-shifts")
def available_shifts_route(seat_id: int):
    try:
        shifts = catalog_service.available_shifts(seat_id)
        return jsonify({"schedules": [s.to_dict() for s in shifts], "count": len(shifts)})
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "list available shifts")
