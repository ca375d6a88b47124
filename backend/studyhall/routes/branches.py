# Overview: Flask API routes for branches; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..services import catalog_service
from ..services.concurrency import run_in_transaction
from ..validation import ConflictError, NotFoundError, ValidationError
from . import server_error_response, service_error_response


branches_bp = Blueprint("branches", __name__, url_prefix="/api/branches")

SERVICE_ERRORS = (ValidationError, ConflictError, NotFoundError)


@branches_bp.get("")
def list_branches_route():
    try:
        branches = catalog_service.list_branches()
        return jsonify({"branches": [b.to_dict() for b in branches], "count": len(branches)})
    except Exception as e:
        return server_error_response(e, "list branches")


@branches_bp.post("")
def create_branch_route():
    """
    Create a branch.

    Request body:
    {
        "name": "North Wing",   // required, unique
        "address": "...",       // optional
        "phone": "..."          // optional
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        branch = run_in_transaction(lambda: catalog_service.create_branch(data))
        return jsonify({"message": "Branch created", "branch": branch.to_dict()}), 201
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "create branch")


@branches_bp.delete("/<int:branch_id>")
def delete_branch_route(branch_id: int):
    try:
        run_in_transaction(lambda: catalog_service.delete_branch(branch_id))
        return jsonify({"message": "Branch deleted"})
    except SERVICE_ERRORS as e:
        return service_error_response(e)
    except Exception as e:
        return server_error_response(e, "delete branch")
