"""
HTTP surface tests.

Verifies:
- Protected endpoints return 401 without a token
- Role gates return 403 before the portal logic runs
- Domain errors map to their status codes
- Customer flows work end to end through the API
"""

import pytest

from conftest import auth_headers, get_auth_token
from salesflow.models import PaymentReceived


# =============================================================================
# UNAUTHENTICATED ACCESS: 401
# =============================================================================


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/logout"),
            ("GET", "/api/flow/profile"),
            ("POST", "/api/flow/profile"),
            ("POST", "/api/flow/request"),
            ("GET", "/api/flow/quotes"),
            ("POST", "/api/flow/quotes/1/approve"),
            ("POST", "/api/flow/quotes/1/reject"),
            ("POST", "/api/flow/quotes/1/scrap"),
            ("GET", "/api/flow/invoices"),
            ("GET", "/api/flow/invoices/1"),
            ("GET", "/api/flow/receipts"),
            ("POST", "/api/flow/item-requests"),
            ("GET", "/api/flow/item-requests"),
            ("GET", "/api/flow/my-item-requests"),
            ("PATCH", "/api/flow/item-requests/1/status"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/flow/quotes", headers=auth_headers("not-a-real-token"))
        assert resp.status_code == 401


# =============================================================================
# ROLE GATES: 403
# =============================================================================


class TestRoleGates:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/flow/item-requests"),
            ("PATCH", "/api/flow/item-requests/1/status"),
            ("POST", "/api/flow/quotes/1/scrap"),
        ],
    )
    def test_customer_denied_staff_routes(self, client, headers_a, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=headers_a)
        assert resp.status_code == 403

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/flow/request"),
            ("GET", "/api/flow/quotes"),
            ("POST", "/api/flow/item-requests"),
            ("GET", "/api/flow/invoices"),
        ],
    )
    def test_staff_denied_customer_routes(self, client, admin_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=admin_headers)
        assert resp.status_code == 403

    def test_super_admin_can_triage(self, client, super_admin_user):
        headers = auth_headers(get_auth_token(client, "root"))
        resp = client.get("/api/flow/item-requests", headers=headers)
        assert resp.status_code == 200


# =============================================================================
# AUTH
# =============================================================================


class TestAuth:

    def test_login_me_logout(self, client, user_a):
        resp = client.post("/api/auth/login", json={"username": "alice", "password": "Password123!"})
        assert resp.status_code == 200
        token = resp.json["token"]

        me = client.get("/api/auth/me", headers=auth_headers(token))
        assert me.status_code == 200
        assert me.json["principal"]["id"] == user_a.id
        assert me.json["principal"]["email"] == "Alice@Example.com"

        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

    def test_login_by_email_any_case(self, client, user_a):
        resp = client.post("/api/auth/login", json={"email": "alice@EXAMPLE.com", "password": "Password123!"})
        assert resp.status_code == 200

    def test_bad_password(self, client, user_a):
        resp = client.post("/api/auth/login", json={"username": "alice", "password": "wrong"})
        assert resp.status_code == 401

    def test_missing_fields(self, client, db_session):
        assert client.post("/api/auth/login", json={}).status_code == 400

    def test_inactive_user(self, client, db_session, user_a):
        user_a.is_active = False
        db_session.commit()
        resp = client.post("/api/auth/login", json={"username": "alice", "password": "Password123!"})
        assert resp.status_code == 401


# =============================================================================
# CUSTOMER FLOWS
# =============================================================================


class TestProfileRoutes:

    def test_create_then_update(self, client, headers_a):
        missing = client.get("/api/flow/profile", headers=headers_a)
        assert missing.status_code == 404

        created = client.post("/api/flow/profile", json={"company_name": "Alice Co"}, headers=headers_a)
        assert created.status_code == 201
        assert created.json["created"] is True

        updated = client.post("/api/flow/profile", json={"company_name": "Alice Group"}, headers=headers_a)
        assert updated.status_code == 200
        assert updated.json["customer"]["id"] == created.json["customer"]["id"]

        fetched = client.get("/api/flow/profile", headers=headers_a)
        assert fetched.json["customer"]["company_name"] == "Alice Group"


class TestQuoteRoutes:

    ITEMS = [{"name": "Widget", "quantity": 2, "rate": 100}, {"name": "Gadget", "quantity": 1, "rate": 50}]

    def test_request_without_profile(self, client, headers_a):
        resp = client.post("/api/flow/request", json={"items": self.ITEMS}, headers=headers_a)
        assert resp.status_code == 400
        assert resp.json["code"] == "PROFILE_INCOMPLETE"

    def test_invalid_items(self, client, customer_a, headers_a):
        resp = client.post("/api/flow/request", json={"items": []}, headers=headers_a)
        assert resp.status_code == 400

    def test_create_list_approve(self, client, customer_a, headers_a):
        created = client.post("/api/flow/request", json={"items": self.ITEMS}, headers=headers_a)
        assert created.status_code == 201
        quote = created.json["quote"]
        assert quote["total_cents"] == 250
        assert quote["status"] == "Draft"

        listed = client.get("/api/flow/quotes", headers=headers_a)
        assert [q["id"] for q in listed.json["quotes"]] == [quote["id"]]

        approved = client.post(f"/api/flow/quotes/{quote['id']}/approve", headers=headers_a)
        assert approved.status_code == 200
        assert approved.json["quote"]["status"] == "Approved"

    def test_other_customer_forbidden_and_missing_not_found(self, client, customer_a, customer_b, headers_a, headers_b):
        quote = client.post("/api/flow/request", json={"items": self.ITEMS}, headers=headers_a).json["quote"]

        assert client.post(f"/api/flow/quotes/{quote['id']}/approve", headers=headers_b).status_code == 403
        assert client.post(f"/api/flow/quotes/{quote['id']}/reject", headers=headers_b).status_code == 403
        assert client.post("/api/flow/quotes/999999/approve", headers=headers_a).status_code == 404

    def test_strict_mode_conflict(self, client, customer_a, headers_a, strict_mode):
        quote = client.post("/api/flow/request", json={"items": self.ITEMS}, headers=headers_a).json["quote"]
        client.post(f"/api/flow/quotes/{quote['id']}/approve", headers=headers_a)

        again = client.post(f"/api/flow/quotes/{quote['id']}/approve", headers=headers_a)
        assert again.status_code == 409
        assert again.json["code"] == "INVALID_TRANSITION"

    def test_admin_scrap(self, client, customer_a, headers_a, admin_headers):
        quote = client.post("/api/flow/request", json={"items": self.ITEMS}, headers=headers_a).json["quote"]

        resp = client.post(f"/api/flow/quotes/{quote['id']}/scrap", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["quote"]["status"] == "Scrapped"


class TestInvoiceRoutes:

    def test_list_and_detail(self, client, invoice_a, headers_a, customer_b, headers_b):
        listed = client.get("/api/flow/invoices", headers=headers_a)
        assert [inv["id"] for inv in listed.json["invoices"]] == [invoice_a.id]

        assert client.get(f"/api/flow/invoices/{invoice_a.id}", headers=headers_a).status_code == 200
        assert client.get(f"/api/flow/invoices/{invoice_a.id}", headers=headers_b).status_code == 403
        assert client.get("/api/flow/invoices/999999", headers=headers_a).status_code == 404

    def test_pay_with_session(self, client, invoice_a, headers_a):
        resp = client.post(f"/api/flow/invoices/{invoice_a.id}/pay", json={"amount": 500}, headers=headers_a)
        assert resp.status_code == 201
        assert resp.json["payment"]["amount_cents"] == 500
        assert resp.json["payment"]["status"] == "Pending Verification"

        detail = client.get(f"/api/flow/invoices/{invoice_a.id}", headers=headers_a).json["invoice"]
        assert detail["activity_logs"][-1]["user"] == "Alice"

        receipts = client.get("/api/flow/receipts", headers=headers_a)
        assert len(receipts.json["receipts"]) == 1

    def test_pay_anonymously(self, client, invoice_a):
        resp = client.post(f"/api/flow/invoices/{invoice_a.id}/pay")
        assert resp.status_code == 201
        assert resp.json["payment"]["amount_cents"] == invoice_a.total_cents

    def test_pay_missing_invoice(self, client, db_session):
        assert client.post("/api/flow/invoices/999999/pay", json={"amount": 100}).status_code == 404

    def test_pay_nothing_resolvable(self, client, make_invoice, customer_a):
        invoice = make_invoice(customer_a, total_cents=0)
        resp = client.post(f"/api/flow/invoices/{invoice.id}/pay", json={"amount": -5})
        assert resp.status_code == 400


class TestItemRequestRoutes:

    def test_submit_and_triage(self, client, customer_a, headers_a, admin_headers):
        created = client.post(
            "/api/flow/item-requests",
            json={"item_name": "Widget", "description": "Steel", "quantity": 3},
            headers=headers_a,
        )
        assert created.status_code == 201
        request_id = created.json["item_request"]["id"]

        queue = client.get("/api/flow/item-requests?status=pending", headers=admin_headers)
        assert [r["id"] for r in queue.json["item_requests"]] == [request_id]

        approved = client.patch(
            f"/api/flow/item-requests/{request_id}/status",
            json={"status": "Approved"},
            headers=admin_headers,
        )
        assert approved.status_code == 200
        assert approved.json["item_request"]["status"] == "Approved"
        assert approved.json["item"]["name"] == "Widget"

        mine = client.get("/api/flow/my-item-requests", headers=headers_a)
        assert mine.json["item_requests"][0]["status"] == "Approved"

    def test_reject_with_reason(self, client, customer_a, headers_a, admin_headers):
        request_id = client.post(
            "/api/flow/item-requests", json={"item_name": "Gizmo"}, headers=headers_a
        ).json["item_request"]["id"]

        resp = client.patch(
            f"/api/flow/item-requests/{request_id}/status",
            json={"status": "Rejected", "rejection_reason": "out of stock"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["item"] is None
        assert resp.json["item_request"]["rejection_reason"] == "out of stock"

    def test_missing_status_and_request(self, client, admin_headers):
        assert client.patch("/api/flow/item-requests/1/status", json={}, headers=admin_headers).status_code == 400
        assert client.patch(
            "/api/flow/item-requests/999999/status", json={"status": "Approved"}, headers=admin_headers
        ).status_code == 404


# =============================================================================
# REQUEST BODIES: non-object JSON is a 400
# =============================================================================

NON_OBJECT_BODIES = [[{"name": "Widget", "quantity": 1, "rate": 100}], "Widget", 42]


class TestNonObjectBodies:

    @pytest.mark.parametrize("body", NON_OBJECT_BODIES)
    def test_quote_request(self, client, customer_a, headers_a, body):
        resp = client.post("/api/flow/request", json=body, headers=headers_a)
        assert resp.status_code == 400
        assert resp.json["error"] == "Request body must be a JSON object"
        assert resp.json["code"] == "VALIDATION_ERROR"

    @pytest.mark.parametrize("body", NON_OBJECT_BODIES)
    def test_login(self, client, user_a, body):
        resp = client.post("/api/auth/login", json=body)
        assert resp.status_code == 400
        assert resp.json["error"] == "Request body must be a JSON object"

    @pytest.mark.parametrize("body", NON_OBJECT_BODIES)
    def test_profile(self, client, headers_a, body):
        assert client.post("/api/flow/profile", json=body, headers=headers_a).status_code == 400

    @pytest.mark.parametrize("body", NON_OBJECT_BODIES)
    def test_anonymous_payment_writes_nothing(self, client, invoice_a, db_session, body):
        resp = client.post(f"/api/flow/invoices/{invoice_a.id}/pay", json=body)
        assert resp.status_code == 400
        assert db_session.query(PaymentReceived).count() == 0

    @pytest.mark.parametrize("body", NON_OBJECT_BODIES)
    def test_item_request_submit_and_status(self, client, customer_a, headers_a, admin_headers, body):
        assert client.post("/api/flow/item-requests", json=body, headers=headers_a).status_code == 400
        assert client.patch(
            "/api/flow/item-requests/1/status", json=body, headers=admin_headers
        ).status_code == 400

    def test_unstorable_payment_amount(self, client, invoice_a):
        resp = client.post(f"/api/flow/invoices/{invoice_a.id}/pay", json={"amount": 1_000_000_000})
        assert resp.status_code == 400


def test_health(client, db_session):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json["checks"]["database"]["status"] == "healthy"
