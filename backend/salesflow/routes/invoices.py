# Overview: Flask API routes for invoices, receipts and payment recording.

# backend/salesflow/routes/invoices.py
"""
Invoice API Routes

- GET /api/flow/invoices - Customer's invoices (any linked profile)
- GET /api/flow/invoices/:id - One invoice with its activity log
- GET /api/flow/receipts - Customer's recorded payments
- POST /api/flow/invoices/:id/pay - Record a payment pending verification

PAYMENT RECORDING accepts anonymous callers: a valid token only changes the
actor written to the invoice activity log. Invoice totals are never touched
here; verification happens in the back office.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import optional_auth, require_auth, require_role
from ..errors import SalesFlowError, StorageFailure
from ..models.auth import ROLE_CUSTOMER
from ..services import invoice_service, payment_service
from ..validation import require_json_object


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/flow")


@invoices_bp.get("/invoices")
@require_auth
@require_role(ROLE_CUSTOMER)
def list_invoices_route():
    try:
        invoices = invoice_service.list_customer_invoices(g.principal)
        return jsonify({"invoices": [inv.to_dict() for inv in invoices]}), 200
    except StorageFailure as e:
        current_app.logger.exception("Failed to list invoices")
        return jsonify(e.to_dict()), e.status_code
    except SalesFlowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list invoices")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/invoices/<int:invoice_id>")
@require_auth
@require_role(ROLE_CUSTOMER)
def get_invoice_route(invoice_id: int):
    """
    Error responses:
        400: PROFILE_INCOMPLETE
        403: Invoice belongs to another customer
        404: Invoice not found
    """
    try:
        invoice = invoice_service.get_customer_invoice(g.principal, invoice_id)
        return jsonify({"invoice": invoice.to_dict()}), 200
    except StorageFailure as e:
        current_app.logger.exception("Failed to load invoice %s", invoice_id)
        return jsonify(e.to_dict()), e.status_code
    except SalesFlowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load invoice %s", invoice_id)
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/receipts")
@require_auth
@require_role(ROLE_CUSTOMER)
def list_receipts_route():
    try:
        receipts = invoice_service.list_customer_receipts(g.principal)
        return jsonify({"receipts": [r.to_dict() for r in receipts]}), 200
    except StorageFailure as e:
        current_app.logger.exception("Failed to list receipts")
        return jsonify(e.to_dict()), e.status_code
    except SalesFlowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list receipts")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/invoices/<int:invoice_id>/pay")
@optional_auth
def record_payment_route(invoice_id: int):
    """
    Record a payment against an invoice.

    Request body (optional):
        {"amount": 50000}   // cents; falls back to balance due, then total

    Error responses:
        400: No positive amount could be resolved
        404: Invoice not found
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        payment = payment_service.record_payment(
            invoice_id,
            amount=data.get("amount"),
            actor=g.principal,
        )

        current_app.logger.info(
            "Payment %s of %s cents recorded against invoice %s",
            payment.payment_number, payment.amount_cents, invoice_id,
        )

        return jsonify({
            "payment": payment.to_dict(),
            "message": "Payment recorded and awaiting verification"
        }), 201

    except StorageFailure as e:
        current_app.logger.exception("Failed to record payment for invoice %s", invoice_id)
        return jsonify(e.to_dict()), e.status_code
    except SalesFlowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record payment for invoice %s", invoice_id)
        return jsonify({"error": "Internal server error"}), 500
