"""
Pytest fixtures for ERP backend tests.

Provides an in-memory database, two tenants (Org A / Org B) with their
system roles, warehouses, products, customers, users of every system role,
and bearer-token headers for the test client.
"""

import pytest

from erp import create_app
from erp.config import TestingConfig
from erp.extensions import db
from erp.models import Customer, Organization, Product, Warehouse
from erp.permissions import SystemRole
from erp.services.auth_service import create_user
from erp.services.inventory_service import record_transaction
from erp.services.role_service import initialize_system_roles
from erp.services.session_service import create_session


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh app context and empty tables for each test."""
    with app.app_context():
        # Clear all data but keep schema
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


def _make_org(session, name):
    org = Organization(name=name, is_active=True)
    session.add(org)
    session.flush()
    initialize_system_roles(org.id)
    session.commit()
    return org


@pytest.fixture(scope='function')
def org_a(db_session):
    """Organization A (first tenant) with its system roles."""
    return _make_org(db_session, "Org A - Acme Corp")


@pytest.fixture(scope='function')
def org_b(db_session):
    """Organization B (second tenant) with its system roles."""
    return _make_org(db_session, "Org B - Beta Inc")


def _make_warehouse(session, org, name):
    warehouse = Warehouse(org_id=org.id, name=name, location="Dock 1")
    session.add(warehouse)
    session.commit()
    return warehouse


@pytest.fixture(scope='function')
def warehouse_a(db_session, org_a):
    return _make_warehouse(db_session, org_a, "Main A")


@pytest.fixture(scope='function')
def warehouse_a2(db_session, org_a):
    return _make_warehouse(db_session, org_a, "Overflow A")


@pytest.fixture(scope='function')
def warehouse_b(db_session, org_b):
    return _make_warehouse(db_session, org_b, "Main B")


def _make_product(session, org, sku, name, **overrides):
    fields = {
        "category": "Hardware",
        "cost_price_cents": 600,
        "selling_price_cents": 1000,
        "reorder_level": 5,
    }
    fields.update(overrides)
    product = Product(org_id=org.id, sku=sku, name=name, **fields)
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def product_a(db_session, org_a):
    """Product in Org A: cost 6.00, price 10.00, reorder level 5."""
    return _make_product(db_session, org_a, "PROD-A-001", "Widget A")


@pytest.fixture(scope='function')
def product_a2(db_session, org_a):
    return _make_product(
        db_session, org_a, "PROD-A-002", "Gadget A",
        category="Electronics", cost_price_cents=2000, selling_price_cents=3500, reorder_level=2,
    )


@pytest.fixture(scope='function')
def product_b(db_session, org_b):
    """Product in Org B; same SKU as Org A's to prove SKUs are per tenant."""
    return _make_product(db_session, org_b, "PROD-A-001", "Widget B")


def _make_customer(session, org, name, email):
    customer = Customer(org_id=org.id, name=name, email=email, payment_terms_days=14)
    session.add(customer)
    session.commit()
    return customer


@pytest.fixture(scope='function')
def customer_a(db_session, org_a):
    return _make_customer(db_session, org_a, "Alice Buyer", "alice@example.com")


@pytest.fixture(scope='function')
def customer_b(db_session, org_b):
    return _make_customer(db_session, org_b, "Bob Buyer", "bob@example.com")


@pytest.fixture(scope='function')
def admin_a(db_session, org_a):
    return create_user(org_a.id, "Admin A", "admin_a@acme.com", PASSWORD, SystemRole.ADMIN)


@pytest.fixture(scope='function')
def manager_a(db_session, org_a):
    return create_user(org_a.id, "Manager A", "manager_a@acme.com", PASSWORD, SystemRole.MANAGER)


@pytest.fixture(scope='function')
def employee_a(db_session, org_a):
    return create_user(org_a.id, "Employee A", "employee_a@acme.com", PASSWORD, SystemRole.EMPLOYEE)


@pytest.fixture(scope='function')
def user_a(db_session, org_a):
    return create_user(org_a.id, "User A", "user_a@acme.com", PASSWORD, SystemRole.USER)


@pytest.fixture(scope='function')
def admin_b(db_session, org_b):
    return create_user(org_b.id, "Admin B", "admin_b@beta.com", PASSWORD, SystemRole.ADMIN)


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user) -> dict:
    """Issue a session for `user` and return its Authorization headers."""
    _, token = create_session(user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def admin_headers(admin_a):
    return headers_for(admin_a)


@pytest.fixture(scope='function')
def manager_headers(manager_a):
    return headers_for(manager_a)


@pytest.fixture(scope='function')
def employee_headers(employee_a):
    return headers_for(employee_a)


@pytest.fixture(scope='function')
def user_headers(user_a):
    return headers_for(user_a)


@pytest.fixture(scope='function')
def admin_b_headers(admin_b):
    return headers_for(admin_b)


def stock(org, product, warehouse, quantity):
    """Receive `quantity` units into a warehouse through the ledger."""
    return record_transaction(
        org.id,
        product_id=product.id,
        warehouse_id=warehouse.id,
        tx_type="in",
        quantity=quantity,
        reference_type="purchase",
        reference_id="SEED",
    )
