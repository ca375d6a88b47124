# Overview: Flask API routes for financial reports.

from flask import Blueprint, jsonify, request

from ..services import finance_service
from ..validation import ConflictError, NotFoundError, ValidationError
from . import query_int, server_error_response, service_error_response


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/profit-loss")
def profit_loss_route():
    """
    Monthly profit/loss.

    Query parameters:
    - month: YYYY-MM (default current month)
    - branch_id: optional

    Returns:
        {month, branch_id, total_collected, total_due, total_expenses, profit_loss}
    """
    try:
        return jsonify(finance_service.profit_loss(
            month=request.args.get("month"),
            branch_id=query_int(request.args, "branch_id"),
        ))
    except (ValidationError, ConflictError, NotFoundError) as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "build profit/loss report")
