"""Cancel restores stock; refund is monetary only."""

import pytest

from tillbook.errors import InvalidRefundAmountError, InvalidStateTransitionError, NotFoundError, ValidationError
from tillbook.services import inventory_service, reversal_service, sales_service
from tillbook.services.sales_service import CartItem


@pytest.fixture
def sale(db_session, store, cashier, product_a, product_b, stock_a, stock_b):
    """2 x A (10.00) + 1 x B (5.00): subtotal 25.00, tax 2.50, total 27.50."""
    return sales_service.checkout(
        [CartItem(product_a.id, 2), CartItem(product_b.id, 1)],
        "cash",
        cashier.id,
        store_id=store.id,
    )


class TestCancel:
    def test_cancel_round_trip(self, db_session, sale, manager, product_a, product_b, store_location):
        assert inventory_service.get_available(product_a.id, store_location) == 3
        assert inventory_service.get_available(product_b.id, store_location) == 2

        txn = reversal_service.cancel(sale.id, "Customer changed mind", manager.id)

        assert txn.status == "cancelled"
        assert inventory_service.get_available(product_a.id, store_location) == 5
        assert inventory_service.get_available(product_b.id, store_location) == 3

        action = txn.actions[-1]
        assert action.action_type == "cancelled"
        assert action.action_data["reason"] == "Customer changed mind"
        assert action.performed_by_user_id == manager.id
        assert len(action.action_data["restocked"]) == 2

    def test_cancel_dc_sale_round_trip(self, db_session, cashier, manager, product_a, new_stock, dc_location):
        record = new_stock(product_a, dc_location, 5)
        sale = sales_service.checkout(
            [CartItem(product_a.id, 2)], "cash", cashier.id, transaction_type="DC_SALE",
        )
        assert inventory_service.get_available(product_a.id, dc_location) == 3

        txn = reversal_service.cancel(sale.id, "Wrong pallet", manager.id)

        assert txn.status == "cancelled"
        assert inventory_service.get_available(product_a.id, dc_location) == 5
        assert txn.actions[-1].action_data["restocked"] == [
            {"product_id": product_a.id, "inventory_id": record.id, "quantity": 2},
        ]

    def test_cancel_twice(self, db_session, sale, manager, product_a, store_location):
        reversal_service.cancel(sale.id, "wrong item", manager.id)

        with pytest.raises(InvalidStateTransitionError) as exc:
            reversal_service.cancel(sale.id, "again", manager.id)

        assert exc.value.details == {"from": "cancelled", "to": "cancelled"}
        assert inventory_service.get_available(product_a.id, store_location) == 5

    def test_cancel_requires_reason(self, db_session, sale, manager):
        with pytest.raises(ValidationError):
            reversal_service.cancel(sale.id, "  ", manager.id)

    def test_cancel_unknown(self, db_session, manager):
        with pytest.raises(NotFoundError):
            reversal_service.cancel(424242, "x", manager.id)

    def test_cannot_cancel_refunded(self, db_session, sale, manager):
        reversal_service.refund(sale.id, manager.id)
        with pytest.raises(InvalidStateTransitionError):
            reversal_service.cancel(sale.id, "late", manager.id)


class TestRefund:
    def test_full_refund_keeps_stock(self, db_session, sale, manager, product_a, store_location):
        txn = reversal_service.refund(sale.id, manager.id, reason="damaged")

        assert txn.status == "refunded"
        assert txn.refunded_amount_cents == 2750
        assert inventory_service.get_available(product_a.id, store_location) == 3

        action = txn.actions[-1]
        assert action.action_type == "refunded"
        assert action.action_data["full_refund"] is True

    def test_partial_refund(self, db_session, sale, manager):
        txn = reversal_service.refund(sale.id, manager.id, refund_amount_cents=1000)

        assert txn.refunded_amount_cents == 1000
        assert txn.actions[-1].action_data["full_refund"] is False

    @pytest.mark.parametrize("amount", [0, -100, 2751])
    def test_amount_out_of_range(self, db_session, sale, manager, amount):
        with pytest.raises(InvalidRefundAmountError):
            reversal_service.refund(sale.id, manager.id, refund_amount_cents=amount)

        assert sales_service.get_transaction(sale.id).status == "completed"

    def test_amount_must_be_integer_cents(self, db_session, sale, manager):
        with pytest.raises(InvalidRefundAmountError):
            reversal_service.refund(sale.id, manager.id, refund_amount_cents=10.5)

    def test_cannot_refund_cancelled(self, db_session, sale, manager):
        reversal_service.cancel(sale.id, "void", manager.id)

        with pytest.raises(InvalidStateTransitionError) as exc:
            reversal_service.refund(sale.id, manager.id)
        assert exc.value.details == {"from": "cancelled", "to": "refunded"}

    def test_cannot_refund_twice(self, db_session, sale, manager):
        reversal_service.refund(sale.id, manager.id, refund_amount_cents=100)
        with pytest.raises(InvalidStateTransitionError):
            reversal_service.refund(sale.id, manager.id, refund_amount_cents=100)
