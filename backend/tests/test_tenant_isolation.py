# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that cross-tenant access is denied for core resources.

These tests create two organizations with separate warehouses, products and
users, then verify that:
1. User A cannot read/write data in Organization B
2. Passing a foreign id is reported exactly like a missing one (404)
3. List endpoints only ever return the caller's rows
4. Security events are logged for cross-tenant access attempts
"""

import pytest

from erp.errors import NotFoundError
from erp.models import Product, SecurityEvent, StockLevel, Warehouse
from erp.services import products_service
from erp.services.concurrency import run_in_transaction
from erp.services.tenant_service import require_in_org, require_many_in_org

from conftest import stock


class TestTenantServiceHelpers:
    """Test tenant_service helper functions."""

    def test_require_in_org_valid(self, db_session, org_a, warehouse_a):
        result = require_in_org(Warehouse, warehouse_a.id, org_a.id)
        assert result.id == warehouse_a.id

    def test_require_in_org_cross_tenant(self, db_session, org_a, warehouse_b):
        with pytest.raises(NotFoundError) as exc:
            require_in_org(Warehouse, warehouse_b.id, org_a.id, "Warehouse")
        assert exc.value.message == "Warehouse not found"

    def test_require_in_org_nonexistent(self, db_session, org_a):
        with pytest.raises(NotFoundError) as exc:
            require_in_org(Warehouse, 99999, org_a.id, "Warehouse")
        assert exc.value.message == "Warehouse not found"

    def test_require_in_org_garbage_id(self, db_session, org_a):
        with pytest.raises(NotFoundError):
            require_in_org(Warehouse, "abc", org_a.id)

    def test_require_many_in_org(self, db_session, org_a, product_a, product_a2, product_b):
        found = require_many_in_org(Product, [product_a.id, product_a2.id, product_a.id], org_a.id)
        assert set(found) == {product_a.id, product_a2.id}

        with pytest.raises(NotFoundError):
            require_many_in_org(Product, [product_a.id, product_b.id], org_a.id)

    def test_cross_tenant_access_logs_security_event(self, db_session, app, org_a, warehouse_b):
        with app.test_request_context():
            with pytest.raises(NotFoundError):
                require_in_org(Warehouse, warehouse_b.id, org_a.id)

        event = db_session.query(SecurityEvent).filter_by(event_type="CROSS_TENANT_ACCESS_DENIED").one()
        assert event.org_id == org_a.id
        assert event.resource == "warehouses"

    def test_missing_entity_is_not_logged(self, db_session, org_a):
        with pytest.raises(NotFoundError):
            require_in_org(Warehouse, 99999, org_a.id)
        assert db_session.query(SecurityEvent).count() == 0

    def test_cross_tenant_lookup_inside_unit_of_work_commits_nothing(
        self, db_session, app, org_a, product_a, warehouse_b
    ):
        def _op():
            product_a.name = "Renamed mid-unit"
            db_session.flush()
            require_in_org(Warehouse, warehouse_b.id, org_a.id)

        with app.test_request_context():
            with pytest.raises(NotFoundError):
                run_in_transaction(_op)

        db_session.expire_all()
        assert db_session.get(Product, product_a.id).name == "Widget A"
        event = db_session.query(SecurityEvent).filter_by(event_type="CROSS_TENANT_ACCESS_DENIED").one()
        assert event.org_id == org_a.id
        assert event.resource == "warehouses"


class TestSkuScope:

    def test_same_sku_in_two_orgs(self, db_session, org_a, org_b):
        payload = {
            "sku": "A-100", "name": "Bolt", "category": "Hardware",
            "cost_price_cents": 10, "selling_price_cents": 25,
        }
        first = products_service.create_product(org_a.id, payload)
        second = products_service.create_product(org_b.id, payload)

        assert first["sku"] == second["sku"] == "A-100"
        assert first["org_id"] != second["org_id"]


class TestCrossTenantHttp:

    def test_cannot_read_foreign_product(self, client, admin_headers, product_b):
        resp = client.get(f"/api/products/{product_b.id}", headers=admin_headers)
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Product not found"

    def test_foreign_and_missing_look_identical(self, client, admin_headers, product_b):
        foreign = client.get(f"/api/products/{product_b.id}", headers=admin_headers)
        missing = client.get("/api/products/99999", headers=admin_headers)
        assert foreign.status_code == missing.status_code == 404
        assert foreign.get_json() == missing.get_json()

    def test_cannot_update_foreign_product(self, client, db_session, admin_headers, product_b):
        resp = client.put(f"/api/products/{product_b.id}", json={"name": "pwned"}, headers=admin_headers)
        assert resp.status_code == 404
        db_session.expire_all()
        assert db_session.get(Product, product_b.id).name == "Widget B"

    def test_cannot_post_ledger_entry_into_foreign_warehouse(
        self, client, db_session, admin_headers, product_a, warehouse_b
    ):
        resp = client.post(
            "/api/inventory/transactions",
            json={
                "product_id": product_a.id,
                "warehouse_id": warehouse_b.id,
                "type": "in",
                "quantity": 5,
                "reference_type": "purchase",
            },
            headers=admin_headers,
        )
        assert resp.status_code == 404
        assert db_session.query(StockLevel).count() == 0

    def test_cannot_read_foreign_stock_levels(self, client, org_b, admin_headers, product_b, warehouse_b):
        stock(org_b, product_b, warehouse_b, 7)
        resp = client.get(f"/api/inventory/stock-levels?product_id={product_b.id}", headers=admin_headers)
        assert resp.status_code == 404

    def test_lists_only_return_own_rows(self, client, admin_headers, admin_b_headers, product_a, product_b):
        items_a = client.get("/api/products", headers=admin_headers).get_json()["items"]
        items_b = client.get("/api/products", headers=admin_b_headers).get_json()["items"]

        assert [p["id"] for p in items_a] == [product_a.id]
        assert [p["id"] for p in items_b] == [product_b.id]

    def test_cannot_assign_role_to_foreign_user(self, client, admin_headers, admin_b):
        roles = client.get("/api/roles", headers=admin_headers).get_json()["items"]
        resp = client.post(
            "/api/roles/assign",
            json={"user_id": admin_b.id, "role_id": roles[0]["id"]},
            headers=admin_headers,
        )
        assert resp.status_code == 404

    def test_cannot_order_for_foreign_customer(self, client, admin_headers, customer_b, product_a):
        resp = client.post(
            "/api/sales-orders",
            json={
                "customer_id": customer_b.id,
                "items": [{"product_id": product_a.id, "quantity": 1, "unit_price_cents": 1000}],
            },
            headers=admin_headers,
        )
        assert resp.status_code == 404

    def test_audit_log_is_org_scoped(self, client, admin_headers, admin_b_headers):
        client.post(
            "/api/products",
            json={"sku": "AUD-1", "name": "Audited", "category": "Misc",
                  "cost_price_cents": 1, "selling_price_cents": 2},
            headers=admin_headers,
        )
        assert client.get("/api/audit", headers=admin_headers).get_json()["count"] == 1
        assert client.get("/api/audit", headers=admin_b_headers).get_json()["count"] == 0
