# Overview: Pytest coverage for low-stock analysis, reorder suggestions and the notifier.

import logging

from erp.services import low_stock_service
from erp.services.low_stock_service import ReorderPolicy

from conftest import stock


class TestLowStockProducts:

    def test_never_stocked_product_is_critical(self, db_session, org_a, product_a):
        rows = low_stock_service.get_low_stock_products(org_a.id)

        assert [r["id"] for r in rows] == [product_a.id]
        assert rows[0]["total_stock"] == 0
        assert rows[0]["stock_status"] == "critical"
        assert rows[0]["stock_levels"] == []

    def test_total_is_summed_across_warehouses(self, db_session, org_a, product_a, warehouse_a, warehouse_a2):
        # reorder level 5: 3 + 2 is still low, 3 + 3 is not
        stock(org_a, product_a, warehouse_a, 3)
        stock(org_a, product_a, warehouse_a2, 2)

        rows = low_stock_service.get_low_stock_products(org_a.id)
        assert rows[0]["total_stock"] == 5
        assert rows[0]["stock_status"] == "low"
        assert {lvl["warehouse_name"] for lvl in rows[0]["stock_levels"]} == {"Main A", "Overflow A"}

        stock(org_a, product_a, warehouse_a2, 1)
        assert low_stock_service.get_low_stock_products(org_a.id) == []

    def test_inactive_products_are_ignored(self, db_session, org_a, product_a):
        product_a.is_active = False
        db_session.commit()
        assert low_stock_service.get_low_stock_products(org_a.id) == []

    def test_sorted_most_urgent_first(self, db_session, org_a, product_a, product_a2, warehouse_a):
        stock(org_a, product_a, warehouse_a, 4)
        rows = low_stock_service.get_low_stock_products(org_a.id)
        assert [r["id"] for r in rows] == [product_a2.id, product_a.id]

    def test_scoped_to_org(self, db_session, org_a, org_b, product_a, product_b):
        rows = low_stock_service.get_low_stock_products(org_b.id)
        assert [r["id"] for r in rows] == [product_b.id]

    def test_stats(self, db_session, org_a, product_a, product_a2, warehouse_a):
        stock(org_a, product_a, warehouse_a, 1)

        stats = low_stock_service.get_low_stock_stats(org_a.id)
        assert stats["total"] == 2
        assert stats["critical"] == 1
        assert stats["low"] == 1


class TestReorderSuggestions:

    def test_default_policy(self, db_session, org_a, product_a, product_a2):
        # product_a reorder level 5 -> max(10, 10); product_a2 level 2 -> max(4, 10)
        suggestions = {s["product_id"]: s for s in low_stock_service.get_reorder_suggestions(org_a.id)}
        assert suggestions[product_a.id]["suggested_quantity"] == 10
        assert suggestions[product_a2.id]["suggested_quantity"] == 10
        assert suggestions[product_a.id]["sku"] == "PROD-A-001"

    def test_high_reorder_level_doubles(self, db_session, org_a, product_a):
        product_a.reorder_level = 40
        db_session.commit()
        [suggestion] = low_stock_service.get_reorder_suggestions(org_a.id)
        assert suggestion["suggested_quantity"] == 80

    def test_custom_policy(self, db_session, org_a, product_a):
        class TopUpPolicy(ReorderPolicy):
            def suggest(self, *, reorder_level, current_stock):
                return reorder_level * 3 - current_stock

        [suggestion] = low_stock_service.get_reorder_suggestions(org_a.id, TopUpPolicy())
        assert suggestion["suggested_quantity"] == 15


class TestNotifier:

    def test_logs_one_alert_per_product(self, db_session, org_a, product_a, product_a2, caplog):
        with caplog.at_level(logging.WARNING, logger="erp.services.low_stock_service"):
            result = low_stock_service.check_and_notify(org_a.id)

        assert result["count"] == 2
        assert {n["product_id"] for n in result["notifications"]} == {product_a.id, product_a2.id}
        assert all(n["type"] == "low_stock" for n in result["notifications"])
        assert sum("Low stock:" in r.getMessage() for r in caplog.records) == 2

    def test_nothing_to_report(self, db_session, org_a):
        assert low_stock_service.check_and_notify(org_a.id) == {"count": 0, "notifications": []}
