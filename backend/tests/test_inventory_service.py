# Overview: Pytest coverage for the inventory ledger: record, transfer, adjust, history.

"""
Inventory ledger tests.

Verifies:
- StockLevel always equals the sum of ledger deltas and never goes negative
- A rejected write has zero effect (no ledger row, no stock change)
- Transfers move both legs atomically and round-trip cleanly
- Adjusting to the current quantity writes nothing
- Ledger rows cannot be updated or deleted through the ORM
"""

import pytest
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from erp.errors import (
    ConcurrencyConflictError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from erp.models import InventoryTransaction, StockLevel
from erp.services import inventory_service
from erp.services.concurrency import run_with_retry

from conftest import stock


def _on_hand(session, product, warehouse) -> int:
    level = session.query(StockLevel).filter_by(product_id=product.id, warehouse_id=warehouse.id).first()
    return level.quantity if level else 0


def _ledger_count(session, product) -> int:
    return session.query(InventoryTransaction).filter_by(product_id=product.id).count()


def _record(org, product, warehouse, tx_type, quantity, reference_type="adjustment"):
    return inventory_service.record_transaction(
        org.id,
        product_id=product.id,
        warehouse_id=warehouse.id,
        tx_type=tx_type,
        quantity=quantity,
        reference_type=reference_type,
    )


class TestRecordTransaction:

    def test_signed_deltas(self):
        assert inventory_service.signed_delta("in", 5) == 5
        assert inventory_service.signed_delta("out", 5) == -5
        assert inventory_service.signed_delta("adjustment", -3) == -3

    def test_first_entry_creates_stock_level(self, db_session, org_a, product_a, warehouse_a):
        tx = stock(org_a, product_a, warehouse_a, 12)

        assert tx.quantity_delta == 12
        assert tx.reference_type == "purchase"
        assert _on_hand(db_session, product_a, warehouse_a) == 12

    def test_stock_equals_sum_of_deltas(self, db_session, org_a, product_a, warehouse_a):
        _record(org_a, product_a, warehouse_a, "in", 10, "purchase")
        _record(org_a, product_a, warehouse_a, "out", 4, "sale")
        _record(org_a, product_a, warehouse_a, "adjustment", -2)
        _record(org_a, product_a, warehouse_a, "adjustment", 7)

        total = db_session.query(func.sum(InventoryTransaction.quantity_delta)).filter_by(
            product_id=product_a.id, warehouse_id=warehouse_a.id
        ).scalar()
        assert total == 11
        assert _on_hand(db_session, product_a, warehouse_a) == 11

    def test_out_beyond_stock_is_rejected_without_effect(self, db_session, org_a, product_a, warehouse_a):
        stock(org_a, product_a, warehouse_a, 5)
        before = _ledger_count(db_session, product_a)

        with pytest.raises(InsufficientStockError) as exc:
            _record(org_a, product_a, warehouse_a, "out", 10, "sale")

        assert exc.value.available == 5
        assert exc.value.requested == 10
        assert _on_hand(db_session, product_a, warehouse_a) == 5
        assert _ledger_count(db_session, product_a) == before

    def test_negative_adjustment_beyond_stock_is_rejected(self, db_session, org_a, product_a, warehouse_a):
        stock(org_a, product_a, warehouse_a, 3)
        with pytest.raises(InsufficientStockError):
            _record(org_a, product_a, warehouse_a, "adjustment", -4)
        assert _on_hand(db_session, product_a, warehouse_a) == 3

    def test_out_on_never_stocked_key(self, db_session, org_a, product_a, warehouse_a):
        with pytest.raises(InsufficientStockError):
            _record(org_a, product_a, warehouse_a, "out", 1, "sale")
        assert _ledger_count(db_session, product_a) == 0

    @pytest.mark.parametrize(
        "tx_type,quantity,reference_type",
        [
            ("in", 0, "purchase"),
            ("out", -1, "sale"),
            ("adjustment", 0, "adjustment"),
            ("restock", 5, "purchase"),
            ("in", 5, "gift"),
            ("in", "five", "purchase"),
        ],
    )
    def test_invalid_entries(self, db_session, org_a, product_a, warehouse_a, tx_type, quantity, reference_type):
        with pytest.raises(ValidationError):
            _record(org_a, product_a, warehouse_a, tx_type, quantity, reference_type)

    def test_unknown_product_or_warehouse(self, db_session, org_a, product_a, warehouse_a):
        with pytest.raises(NotFoundError):
            inventory_service.record_transaction(
                org_a.id, product_id=99999, warehouse_id=warehouse_a.id,
                tx_type="in", quantity=1, reference_type="purchase",
            )
        with pytest.raises(NotFoundError):
            inventory_service.record_transaction(
                org_a.id, product_id=product_a.id, warehouse_id=99999,
                tx_type="in", quantity=1, reference_type="purchase",
            )

    def test_inactive_warehouse_rejects_writes(self, db_session, org_a, product_a, warehouse_a):
        warehouse_a.is_active = False
        db_session.commit()
        with pytest.raises(ValidationError):
            stock(org_a, product_a, warehouse_a, 1)


class TestTransfer:

    def test_moves_stock_atomically(self, db_session, org_a, product_a, warehouse_a, warehouse_a2):
        stock(org_a, product_a, warehouse_a, 10)

        result = inventory_service.transfer_stock(
            org_a.id,
            product_id=product_a.id,
            from_warehouse_id=warehouse_a.id,
            to_warehouse_id=warehouse_a2.id,
            quantity=4,
        )

        assert _on_hand(db_session, product_a, warehouse_a) == 6
        assert _on_hand(db_session, product_a, warehouse_a2) == 4
        assert result["out"].reference_id == result["in"].reference_id == result["reference_id"]
        assert result["out"].reference_type == "transfer"

    def test_round_trip_restores_levels(self, db_session, org_a, product_a, warehouse_a, warehouse_a2):
        stock(org_a, product_a, warehouse_a, 10)
        stock(org_a, product_a, warehouse_a2, 2)

        kwargs = dict(product_id=product_a.id, quantity=5)
        inventory_service.transfer_stock(
            org_a.id, from_warehouse_id=warehouse_a.id, to_warehouse_id=warehouse_a2.id, **kwargs
        )
        inventory_service.transfer_stock(
            org_a.id, from_warehouse_id=warehouse_a2.id, to_warehouse_id=warehouse_a.id, **kwargs
        )

        assert _on_hand(db_session, product_a, warehouse_a) == 10
        assert _on_hand(db_session, product_a, warehouse_a2) == 2
        assert _ledger_count(db_session, product_a) == 6

    def test_same_warehouse_is_validation_error(self, db_session, org_a, product_a, warehouse_a):
        stock(org_a, product_a, warehouse_a, 10)
        with pytest.raises(ValidationError):
            inventory_service.transfer_stock(
                org_a.id,
                product_id=product_a.id,
                from_warehouse_id=warehouse_a.id,
                to_warehouse_id=warehouse_a.id,
                quantity=1,
            )

    def test_insufficient_source_leaves_both_sides_untouched(
        self, db_session, org_a, product_a, warehouse_a, warehouse_a2
    ):
        stock(org_a, product_a, warehouse_a, 3)
        with pytest.raises(InsufficientStockError):
            inventory_service.transfer_stock(
                org_a.id,
                product_id=product_a.id,
                from_warehouse_id=warehouse_a.id,
                to_warehouse_id=warehouse_a2.id,
                quantity=5,
            )
        assert _on_hand(db_session, product_a, warehouse_a) == 3
        assert _on_hand(db_session, product_a, warehouse_a2) == 0
        assert _ledger_count(db_session, product_a) == 1

    def test_destination_in_other_org(self, db_session, org_a, product_a, warehouse_a, warehouse_b):
        stock(org_a, product_a, warehouse_a, 3)
        with pytest.raises(NotFoundError):
            inventory_service.transfer_stock(
                org_a.id,
                product_id=product_a.id,
                from_warehouse_id=warehouse_a.id,
                to_warehouse_id=warehouse_b.id,
                quantity=1,
            )
        assert _on_hand(db_session, product_a, warehouse_a) == 3


class TestAdjust:

    def test_adjust_records_signed_difference(self, db_session, org_a, product_a, warehouse_a):
        stock(org_a, product_a, warehouse_a, 10)

        tx = inventory_service.adjust_stock(
            org_a.id, product_id=product_a.id, warehouse_id=warehouse_a.id, new_quantity=7
        )

        assert tx.type == "adjustment"
        assert tx.quantity_delta == -3
        assert _on_hand(db_session, product_a, warehouse_a) == 7

    def test_adjust_to_same_value_is_noop(self, db_session, org_a, product_a, warehouse_a):
        stock(org_a, product_a, warehouse_a, 10)
        before = _ledger_count(db_session, product_a)

        tx = inventory_service.adjust_stock(
            org_a.id, product_id=product_a.id, warehouse_id=warehouse_a.id, new_quantity=10
        )

        assert tx is None
        assert _ledger_count(db_session, product_a) == before

    def test_adjust_unstocked_key_to_zero_writes_nothing(self, db_session, org_a, product_a, warehouse_a):
        tx = inventory_service.adjust_stock(
            org_a.id, product_id=product_a.id, warehouse_id=warehouse_a.id, new_quantity=0
        )

        assert tx is None
        assert db_session.query(StockLevel).filter_by(product_id=product_a.id).count() == 0
        assert _ledger_count(db_session, product_a) == 0

    def test_adjust_to_negative_rejected(self, db_session, org_a, product_a, warehouse_a):
        with pytest.raises(ValidationError):
            inventory_service.adjust_stock(
                org_a.id, product_id=product_a.id, warehouse_id=warehouse_a.id, new_quantity=-1
            )


class TestQueries:

    def test_stock_levels_per_warehouse(self, db_session, org_a, product_a, warehouse_a, warehouse_a2):
        stock(org_a, product_a, warehouse_a, 4)
        stock(org_a, product_a, warehouse_a2, 6)

        levels = inventory_service.get_stock_levels(org_a.id, product_a.id)
        assert [(lvl.warehouse_id, lvl.quantity) for lvl in levels] == [
            (warehouse_a.id, 4),
            (warehouse_a2.id, 6),
        ]

    def test_history_newest_first_and_filtered(self, db_session, org_a, product_a, warehouse_a):
        stock(org_a, product_a, warehouse_a, 10)
        _record(org_a, product_a, warehouse_a, "out", 2, "sale")
        _record(org_a, product_a, warehouse_a, "out", 3, "sale")

        history = inventory_service.get_transaction_history(org_a.id, product_id=product_a.id)
        assert [tx.quantity_delta for tx in history] == [-3, -2, 10]

        outs = inventory_service.get_transaction_history(org_a.id, product_id=product_a.id, tx_type="out")
        assert len(outs) == 2

        capped = inventory_service.get_transaction_history(org_a.id, product_id=product_a.id, limit=1)
        assert len(capped) == 1

    def test_history_limit_is_capped(self, app, db_session, org_a, product_a, warehouse_a):
        stock(org_a, product_a, warehouse_a, 1)
        app.config["TRANSACTION_HISTORY_MAX_LIMIT"] = 2
        try:
            for _ in range(3):
                _record(org_a, product_a, warehouse_a, "in", 1, "purchase")
            history = inventory_service.get_transaction_history(org_a.id, limit=1000)
            assert len(history) == 2
        finally:
            app.config["TRANSACTION_HISTORY_MAX_LIMIT"] = 500

    def test_history_rejects_bad_inputs(self, db_session, org_a):
        with pytest.raises(ValidationError):
            inventory_service.get_transaction_history(org_a.id, tx_type="gift")
        with pytest.raises(ValidationError):
            inventory_service.get_transaction_history(org_a.id, start="yesterday")
        with pytest.raises(ValidationError):
            inventory_service.get_transaction_history(org_a.id, limit=0)

    def test_valuation(self, db_session, org_a, product_a, product_a2, warehouse_a):
        stock(org_a, product_a, warehouse_a, 10)   # cost 600, price 1000
        stock(org_a, product_a2, warehouse_a, 2)   # cost 2000, price 3500

        valuation = inventory_service.get_inventory_valuation(org_a.id)
        assert valuation == {
            "total_cost_value_cents": 10 * 600 + 2 * 2000,
            "total_selling_value_cents": 10 * 1000 + 2 * 3500,
            "potential_profit_cents": (10 * 1000 + 2 * 3500) - (10 * 600 + 2 * 2000),
            "total_items": 12,
        }


class TestLedgerImmutability:

    def test_update_refused(self, db_session, org_a, product_a, warehouse_a):
        tx = stock(org_a, product_a, warehouse_a, 5)
        tx.notes = "rewritten"
        with pytest.raises(RuntimeError):
            db_session.flush()
        db_session.rollback()

    def test_delete_refused(self, db_session, org_a, product_a, warehouse_a):
        tx = stock(org_a, product_a, warehouse_a, 5)
        db_session.delete(tx)
        with pytest.raises(RuntimeError):
            db_session.flush()
        db_session.rollback()


class TestRetry:

    def test_retries_once_then_succeeds(self, db_session):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise StaleDataError("row changed")
            return "ok"

        assert run_with_retry(flaky, backoff_base=0) == "ok"
        assert len(calls) == 2

    def test_persistent_conflict_is_retryable_error(self, db_session):
        def always_stale():
            raise StaleDataError("row changed")

        with pytest.raises(ConcurrencyConflictError) as exc:
            run_with_retry(always_stale, backoff_base=0)
        assert exc.value.retryable is True

    def test_unrelated_integrity_error_is_not_retried(self, db_session):
        calls = []

        def broken():
            calls.append(1)
            raise IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed: products.name"))

        with pytest.raises(IntegrityError):
            run_with_retry(broken, backoff_base=0)
        assert len(calls) == 1

    @pytest.mark.parametrize(
        "message",
        [
            "UNIQUE constraint failed: stock_levels.org_id, stock_levels.product_id, stock_levels.warehouse_id",
            'duplicate key value violates unique constraint "uq_doc_sequences_org_type"',
        ],
    )
    def test_racing_insert_is_retried(self, db_session, message):
        calls = []

        def racing():
            calls.append(1)
            if len(calls) == 1:
                raise IntegrityError("INSERT", {}, Exception(message))
            return "ok"

        assert run_with_retry(racing, backoff_base=0) == "ok"
        assert len(calls) == 2
