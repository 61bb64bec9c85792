"""
Pytest fixtures for SalesFlow backend tests.

Provides a file-backed test database (so worker threads get their own
connections), login helpers, and customer/invoice fixtures.
"""

import pytest
from salesflow import create_app
from salesflow.extensions import db
from salesflow.models import Customer, Invoice
from salesflow.models.auth import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_SUPER_ADMIN
from salesflow.services import document_service
from salesflow.services.auth_service import create_user, principal_for


DEFAULT_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    db_path = tmp_path_factory.mktemp("data") / "salesflow-test.sqlite3"
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'STRICT_QUOTE_TRANSITIONS': False,
        'STRICT_ITEM_REQUEST_STATUS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        document_service.ensure_sequences()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def strict_mode(app):
    """Turn on both strict lifecycle settings for one test."""
    app.config.update({'STRICT_QUOTE_TRANSITIONS': True, 'STRICT_ITEM_REQUEST_STATUS': True})
    yield app
    app.config.update({'STRICT_QUOTE_TRANSITIONS': False, 'STRICT_ITEM_REQUEST_STATUS': False})


@pytest.fixture(scope='function')
def user_a(db_session):
    """Customer login A."""
    return create_user("alice", "Alice@Example.com", DEFAULT_PASSWORD, role=ROLE_CUSTOMER, name="Alice")


@pytest.fixture(scope='function')
def user_b(db_session):
    """Customer login B."""
    return create_user("bob", "bob@example.com", DEFAULT_PASSWORD, role=ROLE_CUSTOMER, name="Bob")


@pytest.fixture(scope='function')
def admin_user(db_session):
    return create_user("admin", "admin@salesflow.local", DEFAULT_PASSWORD, role=ROLE_ADMIN, name="Admin")


@pytest.fixture(scope='function')
def super_admin_user(db_session):
    return create_user("root", "root@salesflow.local", DEFAULT_PASSWORD, role=ROLE_SUPER_ADMIN)


@pytest.fixture(scope='function')
def principal_a(user_a):
    return principal_for(user_a)


@pytest.fixture(scope='function')
def principal_b(user_b):
    return principal_for(user_b)


@pytest.fixture(scope='function')
def make_customer(db_session):
    """Factory: insert a customer profile directly, bypassing upsert."""
    def _make(user=None, email=None, name="Customer", customer_id=None, **fields):
        customer = Customer(
            id=customer_id if customer_id is not None else document_service.allocate_id("customer"),
            user_id=user.id if user is not None else None,
            email=email if email is not None else (user.email if user is not None else None),
            name=name,
            phone=fields.pop("phone", "9999999999"),
            company_name=fields.pop("company_name", f"{name} Ltd"),
            billing_address=fields.pop("billing_address", {
                "street": "1 Main St", "city": "Pune", "state": "MH", "country": "India", "pincode": "411001",
            }),
            **fields,
        )
        db_session.add(customer)
        db_session.commit()
        return customer
    return _make


@pytest.fixture(scope='function')
def customer_a(make_customer, user_a):
    return make_customer(user=user_a, name="Alice Traders")


@pytest.fixture(scope='function')
def customer_b(make_customer, user_b):
    return make_customer(user=user_b, name="Bob Supplies")


@pytest.fixture(scope='function')
def make_invoice(db_session):
    """Factory: billing owns invoice creation, so tests insert them directly."""
    counter = {"n": 0}

    def _make(customer, total_cents=100000, balance_due_cents=None, **fields):
        counter["n"] += 1
        invoice = Invoice(
            invoice_number=fields.pop("invoice_number", f"INV-{counter['n']:06d}"),
            customer_id=customer.id,
            customer_name=customer.name,
            customer_email=customer.email or "",
            total_cents=total_cents,
            balance_due_cents=balance_due_cents,
            place_of_supply=fields.pop("place_of_supply", "MH"),
            **fields,
        )
        db_session.add(invoice)
        db_session.commit()
        return invoice
    return _make


@pytest.fixture(scope='function')
def invoice_a(make_invoice, customer_a):
    return make_invoice(customer_a, total_cents=100000)


def get_auth_token(client, username: str, password: str = DEFAULT_PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers_a(client, user_a):
    return auth_headers(get_auth_token(client, "alice"))


@pytest.fixture(scope='function')
def headers_b(client, user_b):
    return auth_headers(get_auth_token(client, "bob"))


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, "admin"))
