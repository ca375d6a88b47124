# Overview: Flask API routes for students and the membership lifecycle; parses input and returns JSON responses.

"""
Student Routes

Read endpoints derive status on every request. Write endpoints run their
service call through run_in_transaction: one commit per request, full
rollback on any error.

Errors:
- 400 {message, error} for validation problems and seat/shift conflicts
- 404 {message, error} when the student is unknown
- 500 {message: "Server error", error} for anything else
"""

from flask import Blueprint, jsonify, request

from ..services import membership_service, student_query_service
from ..services.concurrency import run_in_transaction
from ..validation import ConflictError, NotFoundError, ValidationError
from . import query_int, server_error_response, service_error_response


students_bp = Blueprint("students", __name__, url_prefix="/api/students")

SERVICE_ERRORS = (ValidationError, ConflictError, NotFoundError)


def _list_response(fetch, what: str):
    try:
        branch_id = query_int(request.args, "branch_id")
        students = fetch(branch_id=branch_id)
        return jsonify({"students": students, "count": len(students)})
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, what)


@students_bp.get("")
def list_students_route():
    """
    List every student.

    Query parameters:
    - branch_id: limit to one branch (optional)

    Returns:
        {students: Student[], count: int}, each with derived status and
        the seat number of its first assignment
    """
    return _list_response(student_query_service.list_students, "list students")


@students_bp.get("/active")
def list_active_route():
    return _list_response(student_query_service.list_active, "list active students")


@students_bp.get("/expired")
def list_expired_route():
    return _list_response(student_query_service.list_expired, "list expired students")


@students_bp.get("/expiring-soon")
def list_expiring_soon_route():
    """Memberships ending within EXPIRING_SOON_DAYS, soonest first."""
    return _list_response(student_query_service.list_expiring_soon, "list expiring students")


@students_bp.get("/deactivated")
def list_deactivated_route():
    return _list_response(student_query_service.list_deactivated, "list deactivated students")


@students_bp.get("/shift/<int:shift_id>")
def shift_roster_route(shift_id: int):
    """
    Students booked on one shift.

    Query parameters:
    - search: name or phone fragment, case-insensitive
    - status: all | active | expired | deactivated (default all)
    """
    try:
        students = student_query_service.list_shift_roster(
            shift_id,
            search=request.args.get("search"),
            status=request.args.get("status"),
        )
        return jsonify({"students": students, "count": len(students)})
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "list shift roster")


@students_bp.get("/stats/dashboard")
def dashboard_route():
    """
    Current-month totals and membership counters.

    Returns:
        {month, total_collection, total_due, total_expense, profit_loss,
         active_count, expired_count, expiring_soon_count, deactivated_count}
    """
    try:
        branch_id = query_int(request.args, "branch_id")
        return jsonify(student_query_service.dashboard_stats(branch_id=branch_id))
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "build dashboard stats")


@students_bp.get("/<int:student_id>")
def get_student_route(student_id: int):
    try:
        return jsonify(student_query_service.get_student_detail(student_id))
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "fetch student")


@students_bp.get("/<int:student_id>/history")
def student_history_route(student_id: int):
    try:
        history = student_query_service.get_student_history(student_id)
        return jsonify({"history": history, "count": len(history)})
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "fetch student history")


@students_bp.post("")
def create_student_route():
    """
    Register a student.

    Request body:
    {
        "name": "...",                  // required
        "branch_id": 1,                 // required
        "membership_start": "YYYY-MM-DD", // required
        "membership_end": "YYYY-MM-DD",   // required
        "email", "phone", "address", "profile_image_url", "remark",
        "total_fee", "cash", "online", "amount_paid", "security_money",
        "seat_id": 3,                   // optional
        "shift_ids": [1, 2]             // optional
    }

    Returns:
        201 {message, student}
    """
    data = request.get_json(silent=True) or {}
    try:
        student = run_in_transaction(lambda: membership_service.create_student(data))
        detail = student_query_service.get_student_detail(student.id)
        return jsonify({"message": "Student created successfully", "student": detail}), 201
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "create student")


@students_bp.put("/<int:student_id>")
def update_student_route(student_id: int):
    data = request.get_json(silent=True) or {}
    try:
        run_in_transaction(lambda: membership_service.update_student(student_id, data))
        detail = student_query_service.get_student_detail(student_id)
        return jsonify({"message": "Student updated successfully", "student": detail})
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "update student")


@students_bp.delete("/<int:student_id>")
def delete_student_route(student_id: int):
    try:
        snapshot = run_in_transaction(lambda: membership_service.delete_student(student_id))
        return jsonify({"message": "Student deleted", "student": snapshot})
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "delete student")


@students_bp.post("/<int:student_id>/renew")
def renew_route(student_id: int):
    """
    Start a new membership period; status becomes active.

    Request body: membership_start, membership_end (required); branch_id,
    seat_id, shift_ids, total_fee, cash, online, security_money, email,
    phone, remark (optional).
    """
    data = request.get_json(silent=True) or {}
    try:
        run_in_transaction(lambda: membership_service.renew_membership(student_id, data))
        detail = student_query_service.get_student_detail(student_id)
        return jsonify({"message": "Membership renewed", "student": detail})
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "renew membership")


@students_bp.put("/<int:student_id>/deactivate")
def deactivate_route(student_id: int):
    try:
        run_in_transaction(lambda: membership_service.deactivate_student(student_id))
        detail = student_query_service.get_student_detail(student_id)
        return jsonify({"message": "Student deactivated successfully", "student": detail})
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "deactivate student")


@students_bp.put("/<int:student_id>/activate")
def activate_route(student_id: int):
    data = request.get_json(silent=True) or {}
    try:
        run_in_transaction(lambda: membership_service.activate_student(student_id, data))
        detail = student_query_service.get_student_detail(student_id)
        return jsonify({"message": "Student activated successfully", "student": detail})
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "activate student")
