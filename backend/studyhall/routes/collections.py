# Overview: Flask API routes for monthly collections and due payments.

from flask import Blueprint, jsonify, request

from ..services import finance_service
from ..services.concurrency import run_in_transaction
from ..validation import ConflictError, NotFoundError, ValidationError
from . import query_int, server_error_response, service_error_response


collections_bp = Blueprint("collections", __name__, url_prefix="/api/collections")

SERVICE_ERRORS = (ValidationError, ConflictError, NotFoundError)


@collections_bp.get("")
def list_collections_route():
    """
    One row per membership period touched in the month.

    Query parameters:
    - month: YYYY-MM (default current month)
    - branch_id: optional

    Returns:
        {month, collections: [...], totals: {...}, count}
    """
    try:
        return jsonify(finance_service.list_collections(
            month=request.args.get("month"),
            branch_id=query_int(request.args, "branch_id"),
        ))
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "list collections")


@collections_bp.put("/<int:history_id>/pay")
def pay_due_route(history_id: int):
    """
    Pay (part of) the due on a collection row.

    Request body:
    {
        "amount": 250,            // required, > 0 and <= due
        "payment_type": "cash"    // cash | online, default cash
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        entry = run_in_transaction(lambda: finance_service.pay_due(history_id, data))
        return jsonify({"message": "Payment recorded", "collection": entry.to_dict()})
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "record due payment")
