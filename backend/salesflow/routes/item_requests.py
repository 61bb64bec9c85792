# Overview: Flask API routes for catalog item requests; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..errors import SalesFlowError, StorageFailure
from ..models.auth import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_SUPER_ADMIN
from ..services import item_request_service
from ..validation import require_json_object


item_requests_bp = Blueprint("item_requests", __name__, url_prefix="/api/flow")


@item_requests_bp.post("/item-requests")
@require_auth
@require_role(ROLE_CUSTOMER)
def create_item_request_route():
    """
    Ask staff to add an item to the catalog.

    Request body:
        {"item_name": "Widget", "description": "...", "quantity": 5}
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        item_request = item_request_service.create_item_request(
            g.principal,
            data.get("item_name"),
            description=data.get("description"),
            quantity=data.get("quantity"),
        )

        current_app.logger.info(
            "Item request %s submitted by customer %s", item_request.id, item_request.customer_id
        )

        return jsonify({"item_request": item_request.to_dict()}), 201

    except StorageFailure as e:
        current_app.logger.exception("Failed to create item request")
        return jsonify(e.to_dict()), e.status_code
    except SalesFlowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create item request")
        return jsonify({"error": "Internal server error"}), 500


@item_requests_bp.get("/item-requests")
@require_auth
@require_role(ROLE_ADMIN, ROLE_SUPER_ADMIN)
def list_item_requests_route():
    """Staff queue. Optional ?status=Pending|Approved|Rejected|all."""
    try:
        requests_ = item_request_service.list_item_requests(request.args.get("status"))
        return jsonify({"item_requests": [r.to_dict() for r in requests_]}), 200
    except StorageFailure as e:
        current_app.logger.exception("Failed to list item requests")
        return jsonify(e.to_dict()), e.status_code
    except SalesFlowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list item requests")
        return jsonify({"error": "Internal server error"}), 500


@item_requests_bp.get("/my-item-requests")
@require_auth
@require_role(ROLE_CUSTOMER)
def my_item_requests_route():
    try:
        requests_ = item_request_service.list_customer_item_requests(g.principal)
        return jsonify({"item_requests": [r.to_dict() for r in requests_]}), 200
    except StorageFailure as e:
        current_app.logger.exception("Failed to list customer item requests")
        return jsonify(e.to_dict()), e.status_code
    except SalesFlowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list customer item requests")
        return jsonify({"error": "Internal server error"}), 500


@item_requests_bp.patch("/item-requests/<int:request_id>/status")
@require_auth
@require_role(ROLE_ADMIN, ROLE_SUPER_ADMIN)
def update_item_request_status_route(request_id: int):
    """
    Triage an item request.

    Request body:
        {"status": "Approved"}
        {"status": "Rejected", "rejection_reason": "out of stock"}

    Approval adds the item to the catalog in the same transaction.

    Error responses:
        400: Missing status (or unknown status in strict mode)
        404: Request not found
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        item_request, item = item_request_service.update_item_request_status(
            request_id,
            data.get("status"),
            rejection_reason=data.get("rejection_reason"),
        )

        current_app.logger.info(
            "Item request %s set to %s by %s",
            request_id, item_request.status, g.current_user.username,
        )

        return jsonify({
            "item_request": item_request.to_dict(),
            "item": item.to_dict() if item is not None else None,
        }), 200

    except StorageFailure as e:
        current_app.logger.exception("Failed to update item request %s", request_id)
        return jsonify(e.to_dict()), e.status_code
    except SalesFlowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update item request %s", request_id)
        return jsonify({"error": "Internal server error"}), 500
