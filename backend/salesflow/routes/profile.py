# Overview: Flask API routes for customer profiles; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..errors import SalesFlowError, StorageFailure
from ..models.auth import ROLE_CUSTOMER
from ..services import identity_service
from ..validation import require_json_object


profile_bp = Blueprint("profile", __name__, url_prefix="/api/flow")


@profile_bp.post("/profile")
@require_auth
@require_role(ROLE_CUSTOMER)
def upsert_profile_route():
    """
    Create or update the caller's customer profile.

    Request body (all optional):
        {
            "name": "...", "display_name": "...", "phone": "...",
            "address": "...", "company_name": "...", "gstin": "...",
            "place_of_supply": "...", "customer_type": "business",
            "billing_address": {...}, "shipping_address": {...}
        }

    Email and the linked user id always come from the session.
    Returns 201 on first submission, 200 afterwards.
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        customer, created = identity_service.upsert_profile(g.principal, data)

        if created:
            current_app.logger.info("Customer profile %s created for user %s", customer.id, g.principal.id)

        return jsonify({
            "customer": customer.to_dict(),
            "created": created,
        }), 201 if created else 200

    except StorageFailure as e:
        current_app.logger.exception("Failed to save customer profile")
        return jsonify(e.to_dict()), e.status_code
    except SalesFlowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to save customer profile")
        return jsonify({"error": "Internal server error"}), 500


@profile_bp.get("/profile")
@require_auth
@require_role(ROLE_CUSTOMER)
def get_profile_route():
    try:
        customer = identity_service.get_profile(g.principal)
        return jsonify({"customer": customer.to_dict()}), 200
    except StorageFailure as e:
        current_app.logger.exception("Failed to load customer profile")
        return jsonify(e.to_dict()), e.status_code
    except SalesFlowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load customer profile")
        return jsonify({"error": "Internal server error"}), 500
