# Overview: Flask API routes for expenses; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..services import finance_service
from ..services.concurrency import run_in_transaction
from ..validation import ConflictError, NotFoundError, ValidationError
from . import query_int, server_error_response, service_error_response


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")

SERVICE_ERRORS = (ValidationError, ConflictError, NotFoundError)


@expenses_bp.get("")
def list_expenses_route():
    """
    List expenses, newest first.

    Query parameters:
    - month: YYYY-MM (optional, all months when omitted)
    - branch_id: optional
    """
    try:
        expenses = finance_service.list_expenses(
            month=request.args.get("month"),
            branch_id=query_int(request.args, "branch_id"),
        )
        return jsonify({
            "expenses": [e.to_dict() for e in expenses],
            "count": len(expenses),
            "total": float(sum((e.amount for e in expenses), 0)),
        })
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "list expenses")


@expenses_bp.post("")
def create_expense_route():
    """
    Book an expense.

    Request body:
    {
        "title": "Electricity",  // required
        "amount": 1200,          // required, > 0
        "date": "YYYY-MM-DD",    // required
        "branch_id": 1,          // optional
        "remark": "..."          // optional
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        expense = run_in_transaction(lambda: finance_service.create_expense(data))
        return jsonify({"message": "Expense added", "expense": expense.to_dict()}), 201
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "create expense")


@expenses_bp.delete("/<int:expense_id>")
def delete_expense_route(expense_id: int):
    try:
        run_in_transaction(lambda: finance_service.delete_expense(expense_id))
        return jsonify({"message": "Expense deleted"})
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "delete expense")
