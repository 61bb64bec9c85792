# Overview: Flask API routes for the quote lifecycle; parses input and returns JSON responses.

# backend/salesflow/routes/quotes.py
"""
Quote Lifecycle API Routes

- POST /api/flow/request - Customer submits line items (-> Draft quote)
- GET /api/flow/quotes - Customer lists their quotes
- POST /api/flow/quotes/:id/approve - Customer accepts (Draft -> Approved)
- POST /api/flow/quotes/:id/reject - Customer declines (Draft -> Scrapped)
- POST /api/flow/quotes/:id/scrap - Staff force Scrapped

SECURITY:
- The acting customer is resolved from the session principal, NOT from the
  request body
- Ownership failures answer 403, missing quotes 404
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..errors import SalesFlowError, StorageFailure
from ..models.auth import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_SUPER_ADMIN
from ..services import identity_service, quote_service
from ..validation import require_json_object


quotes_bp = Blueprint("quotes", __name__, url_prefix="/api/flow")


@quotes_bp.post("/request")
@require_auth
@require_role(ROLE_CUSTOMER)
def create_quote_route():
    """
    Create a Draft quote from requested line items.

    Request body:
        {
            "items": [
                {"name": "Widget", "quantity": 2, "rate": 100, "description": "", "unit": "pcs"}
            ]
        }

    Rates are integer cents. Amounts and totals are computed server-side.

    Error responses:
        400: Invalid items, or PROFILE_INCOMPLETE when no profile exists
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        quote = quote_service.create_quote(g.principal, data.get("items"))

        current_app.logger.info("Quote %s created for customer %s", quote.quote_number, quote.customer_id)

        return jsonify({
            "quote": quote.to_dict(),
            "message": f"Quote {quote.quote_number} created"
        }), 201

    except StorageFailure as e:
        current_app.logger.exception("Failed to create quote")
        return jsonify(e.to_dict()), e.status_code
    except SalesFlowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create quote")
        return jsonify({"error": "Internal server error"}), 500


@quotes_bp.get("/quotes")
@require_auth
@require_role(ROLE_CUSTOMER)
def list_quotes_route():
    try:
        quotes = quote_service.list_customer_quotes(g.principal)
        return jsonify({"quotes": [q.to_dict() for q in quotes]}), 200
    except StorageFailure as e:
        current_app.logger.exception("Failed to list quotes")
        return jsonify(e.to_dict()), e.status_code
    except SalesFlowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list quotes")
        return jsonify({"error": "Internal server error"}), 500


def _customer_transition(quote_id: int, transition, verb: str):
    try:
        customer = identity_service.require_customer(g.principal)
        quote = transition(quote_id, customer)

        current_app.logger.info(
            "Quote %s %s by customer %s", quote.quote_number, verb, customer.id
        )

        return jsonify({
            "quote": quote.to_dict(),
            "message": f"Quote {quote.quote_number} {verb}"
        }), 200

    except StorageFailure as e:
        current_app.logger.exception("Failed to update quote %s", quote_id)
        return jsonify(e.to_dict()), e.status_code
    except SalesFlowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update quote %s", quote_id)
        return jsonify({"error": "Internal server error"}), 500


@quotes_bp.post("/quotes/<int:quote_id>/approve")
@require_auth
@require_role(ROLE_CUSTOMER)
def approve_quote_route(quote_id: int):
    """
    Approve a quote (Draft -> Approved).

    Error responses:
        400: PROFILE_INCOMPLETE
        403: Quote belongs to another customer
        404: Quote not found
        409: Quote already left Draft (strict transitions only)
    """
    return _customer_transition(quote_id, quote_service.approve_quote, "approved")


@quotes_bp.post("/quotes/<int:quote_id>/reject")
@require_auth
@require_role(ROLE_CUSTOMER)
def reject_quote_route(quote_id: int):
    """Reject a quote (Draft -> Scrapped). Same error responses as approve."""
    return _customer_transition(quote_id, quote_service.reject_quote, "rejected")


@quotes_bp.post("/quotes/<int:quote_id>/scrap")
@require_auth
@require_role(ROLE_ADMIN, ROLE_SUPER_ADMIN)
def scrap_quote_route(quote_id: int):
    """Staff override: force Scrapped with no ownership or state check."""
    try:
        quote = quote_service.admin_scrap_quote(quote_id)

        current_app.logger.info(
            "Quote %s scrapped by %s", quote.quote_number, g.current_user.username
        )

        return jsonify({
            "quote": quote.to_dict(),
            "message": f"Quote {quote.quote_number} scrapped"
        }), 200

    except StorageFailure as e:
        current_app.logger.exception("Failed to scrap quote %s", quote_id)
        return jsonify(e.to_dict()), e.status_code
    except SalesFlowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to scrap quote %s", quote_id)
        return jsonify({"error": "Internal server error"}), 500
