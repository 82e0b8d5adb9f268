# Overview: Pytest coverage for product and customer master data.

import pytest

from erp.errors import ConflictError, NotFoundError, ValidationError
from erp.models import Product
from erp.services import customers_service, products_service

from conftest import stock


def _product_payload(**overrides):
    payload = {
        "sku": "NEW-001",
        "name": "New Thing",
        "category": "Misc",
        "cost_price_cents": 100,
        "selling_price_cents": 250,
    }
    payload.update(overrides)
    return payload


class TestProducts:

    def test_create_and_get_with_stock(self, db_session, org_a, warehouse_a, warehouse_a2):
        created = products_service.create_product(org_a.id, _product_payload(reorder_level=3))
        assert created["sku"] == "NEW-001"
        assert created["is_active"] is True

        product = db_session.get(Product, created["id"])
        stock(org_a, product, warehouse_a, 4)
        stock(org_a, product, warehouse_a2, 6)

        fetched = products_service.get_product(org_a.id, created["id"])
        assert fetched["total_stock"] == 10
        assert len(fetched["stock_levels"]) == 2

    def test_duplicate_sku_in_same_org(self, db_session, org_a, product_a):
        with pytest.raises(ConflictError):
            products_service.create_product(org_a.id, _product_payload(sku=product_a.sku))

    def test_update_to_taken_sku(self, db_session, org_a, product_a, product_a2):
        with pytest.raises(ConflictError):
            products_service.update_product(org_a.id, product_a2.id, {"sku": product_a.sku})

    @pytest.mark.parametrize(
        "overrides",
        [
            {"cost_price_cents": -1},
            {"selling_price_cents": 1_000_000_000},
            {"selling_price_cents": 9.99},
            {"reorder_level": -5},
            {"images": "not-a-list"},
            {"stock": 10},
        ],
    )
    def test_invalid_payloads(self, db_session, org_a, overrides):
        with pytest.raises(ValidationError):
            products_service.create_product(org_a.id, _product_payload(**overrides))

    def test_missing_required_field(self, db_session, org_a):
        payload = _product_payload()
        del payload["category"]
        with pytest.raises(ValidationError):
            products_service.create_product(org_a.id, payload)

    def test_list_filters(self, db_session, org_a, product_a, product_a2):
        result = products_service.list_products(org_a.id, category="Electronics")
        assert [p["id"] for p in result["items"]] == [product_a2.id]

        result = products_service.list_products(org_a.id, search="widget")
        assert [p["id"] for p in result["items"]] == [product_a.id]

        result = products_service.list_products(org_a.id, page=2, limit=1)
        assert result["count"] == 1
        assert result["pagination"]["total"] == 2
        assert result["pagination"]["has_prev"] is True

    def test_soft_delete_and_categories(self, db_session, org_a, product_a, product_a2):
        assert products_service.get_categories(org_a.id) == ["Electronics", "Hardware"]

        products_service.delete_product(org_a.id, product_a2.id)

        fetched = products_service.get_product(org_a.id, product_a2.id)
        assert fetched["is_active"] is False
        assert products_service.get_categories(org_a.id) == ["Hardware"]
        assert products_service.list_products(org_a.id, is_active=True)["count"] == 1

    def test_foreign_product(self, db_session, org_a, product_b):
        with pytest.raises(NotFoundError):
            products_service.get_product(org_a.id, product_b.id)
        with pytest.raises(NotFoundError):
            products_service.delete_product(org_a.id, product_b.id)


class TestCustomers:

    def test_create_lowercases_email(self, db_session, org_a):
        customer = customers_service.create_customer(org_a.id, {
            "name": "Carol Corp", "type": "company", "email": "Sales@Carol.COM",
            "tags": [" wholesale ", "vip", ""],
        })
        assert customer.email == "sales@carol.com"
        assert customer.tags == ["wholesale", "vip"]
        assert customer.payment_terms_days == 30

    def test_email_unique_per_org(self, db_session, org_a, org_b, customer_a):
        with pytest.raises(ConflictError):
            customers_service.create_customer(org_a.id, {"name": "Dup", "email": "ALICE@example.com"})

        other = customers_service.create_customer(org_b.id, {"name": "Alice Elsewhere", "email": customer_a.email})
        assert other.org_id == org_b.id

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"name": "X", "type": "robot"},
            {"name": "X", "email": "not-an-email"},
            {"name": "X", "payment_terms_days": -1},
            {"name": "X", "address": {"street": "1 Main"}},
        ],
    )
    def test_invalid_payloads(self, db_session, org_a, payload):
        with pytest.raises(ValidationError):
            customers_service.create_customer(org_a.id, payload)

    def test_tags_and_filters(self, db_session, org_a):
        customers_service.create_customer(org_a.id, {"name": "Tagged", "tags": ["vip", "north"]})
        customers_service.create_customer(org_a.id, {"name": "Plain", "type": "company", "tags": ["south"]})

        assert customers_service.get_tags(org_a.id) == ["north", "south", "vip"]

        result = customers_service.list_customers(org_a.id, tags=["vip"])
        assert [c["name"] for c in result["items"]] == ["Tagged"]

        result = customers_service.list_customers(org_a.id, customer_type="company")
        assert [c["name"] for c in result["items"]] == ["Plain"]

    def test_update_and_soft_delete(self, db_session, org_a, customer_a):
        updated = customers_service.update_customer(org_a.id, customer_a.id, {"phone": "555-0100"})
        assert updated.phone == "555-0100"

        result = customers_service.delete_customer(org_a.id, customer_a.id)
        assert result == {"message": "Customer deleted successfully"}
        assert customers_service.get_customer(org_a.id, customer_a.id).is_active is False

        stats = customers_service.get_customer_stats(org_a.id)
        assert stats == {"total": 1, "active": 0, "individual": 1, "company": 0}


class TestCatalogHttp:

    def test_product_crud(self, client, admin_headers):
        created = client.post("/api/products", json=_product_payload(), headers=admin_headers)
        assert created.status_code == 201
        product_id = created.get_json()["id"]

        dup = client.post("/api/products", json=_product_payload(), headers=admin_headers)
        assert dup.status_code == 409

        resp = client.put(f"/api/products/{product_id}", json={"name": "Renamed"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["name"] == "Renamed"

        assert client.get("/api/products/categories", headers=admin_headers).get_json()["categories"] == ["Misc"]
        assert client.delete(f"/api/products/{product_id}", headers=admin_headers).status_code == 200

    def test_customer_routes(self, client, admin_headers, customer_a):
        assert client.get("/api/customers/stats", headers=admin_headers).get_json()["total"] == 1
        resp = client.get("/api/customers?search=alice", headers=admin_headers)
        assert resp.get_json()["count"] == 1
        assert client.get(f"/api/customers/{customer_a.id}", headers=admin_headers).status_code == 200
