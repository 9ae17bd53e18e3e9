"""Inventory ledger: conditional debits, credits, lookups and low-stock listing."""

import pytest

from tillbook.errors import InsufficientStockError, NoInventoryRecordError, ValidationError
from tillbook.models import InventoryRecord
from tillbook.services import inventory_service


class TestDebit:
    def test_debit_reduces_quantity(self, db_session, product_a, stock_a, store_location):
        record = inventory_service.debit(product_a.id, store_location, 2)
        db_session.commit()

        assert record.quantity == 3
        assert inventory_service.get_available(product_a.id, store_location) == 3

    def test_debit_to_exactly_zero(self, db_session, product_a, stock_a, store_location):
        inventory_service.debit(product_a.id, store_location, 5)
        db_session.commit()

        assert inventory_service.get_available(product_a.id, store_location) == 0

    def test_insufficient_stock_leaves_record_untouched(self, db_session, product_a, stock_a, store_location):
        with pytest.raises(InsufficientStockError) as exc:
            inventory_service.debit(product_a.id, store_location, 6)
        db_session.rollback()

        err = exc.value
        assert err.requested == 6
        assert err.available == 5
        assert err.shortfall == 1
        assert err.details["product_id"] == product_a.id
        assert db_session.get(InventoryRecord, stock_a.id).quantity == 5

    def test_missing_record(self, db_session, product_a, store_location):
        with pytest.raises(NoInventoryRecordError):
            inventory_service.debit(product_a.id, store_location, 1)

    def test_record_at_other_location_is_not_used(self, db_session, product_a, stock_a, dc_location):
        with pytest.raises(NoInventoryRecordError):
            inventory_service.debit(product_a.id, dc_location, 1)

    def test_record_id_must_belong_to_product(self, db_session, product_a, product_b, stock_a, stock_b, store_location):
        with pytest.raises(NoInventoryRecordError):
            inventory_service.debit(product_a.id, store_location, 1, record_id=stock_b.id)

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True, "2"])
    def test_quantity_must_be_positive_integer(self, db_session, product_a, stock_a, store_location, quantity):
        with pytest.raises(ValidationError):
            inventory_service.debit(product_a.id, store_location, quantity)


class TestCredit:
    def test_quantity_above_line_limit(self, db_session, product_a, stock_a, store_location):
        with pytest.raises(ValidationError):
            inventory_service.debit(product_a.id, store_location, inventory_service.MAX_LINE_QUANTITY + 1)
        assert inventory_service.get_available(product_a.id, store_location) == 5

    def test_credit_restores_quantity(self, db_session, product_a, stock_a, store_location):
        inventory_service.debit(product_a.id, store_location, 4)
        inventory_service.credit(product_a.id, store_location, 4, record_id=stock_a.id)
        db_session.commit()

        assert inventory_service.get_available(product_a.id, store_location) == 5


class TestQueries:
    def test_get_available_without_record_is_zero(self, db_session, product_a, dc_location):
        assert inventory_service.get_available(product_a.id, dc_location) == 0

    def test_dc_stock_is_separate(self, db_session, product_a, stock_a, store_location, dc_location, new_stock):
        new_stock(product_a, dc_location, 40)

        assert inventory_service.get_available(product_a.id, store_location) == 5
        assert inventory_service.get_available(product_a.id, dc_location) == 40

    def test_low_stock(self, db_session, new_product, new_stock, store_location, dc_location):
        low = new_product("LOW-1", "Leash", 1500, min_stock=5)
        ok = new_product("OK-1", "Bowl", 800, min_stock=5)
        inactive = new_product("OLD-1", "Discontinued", 100, min_stock=5)
        inactive.is_active = False
        db_session.commit()

        new_stock(low, store_location, 2)
        new_stock(ok, store_location, 20)
        new_stock(inactive, store_location, 0)
        new_stock(low, dc_location, 50)

        records = inventory_service.list_low_stock(store_location)
        assert [r.product_id for r in records] == [low.id]

        everywhere = inventory_service.list_low_stock()
        assert [r.product_id for r in everywhere] == [low.id]
