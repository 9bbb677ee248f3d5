# Overview: Pytest coverage for the approval gate; side effects run exactly once.

"""
Approval Gate Tests

- Sale approval spawns one Pending deposit per non-zero payment method
- Inventory-purchase approval books one Purchase per line
- Production approval deducts stock, refusing insufficient stock unless an
  Owner overrides
- Re-approving is a no-op; Approved and Rejected are terminal
"""

import pytest

from bakeoffice.errors import ForbiddenError, InsufficientStockError, InvalidTransitionError, ValidationError
from bakeoffice.models import BankTransaction, InventoryItem, ProductionLog, Sale, StockMovement
from bakeoffice.models.states import BankTransactionStatus, MovementType, SubmissionStatus
from bakeoffice.services import approval_service, expense_service, production_service, sales_service
from bakeoffice.services.approval_service import KIND_EXPENSE, KIND_PRODUCTION, KIND_SALE


@pytest.fixture
def sale(cashier_ctx):
    return sales_service.submit_sale(cashier_ctx, {
        "date": "2026-03-14",
        "cashGNF": 1_500_000,
        "orangeMoneyGNF": 250_000,
        "cardGNF": 0,
    })


class TestSaleApproval:

    def test_deposits_per_nonzero_method(self, db_session, owner_ctx, sale):
        approved = approval_service.approve(owner_ctx, KIND_SALE, sale.id)

        assert approved.status == SubmissionStatus.APPROVED
        deposits = db_session.query(BankTransaction).filter_by(linked_sale_id=sale.id).all()
        assert sorted((d.method, d.amount) for d in deposits) == [
            ("Cash", 1_500_000),
            ("OrangeMoney", 250_000),
        ]
        assert all(d.status == BankTransactionStatus.PENDING for d in deposits)
        assert all(d.reason == "SalesDeposit" for d in deposits)

    def test_second_approval_is_noop(self, db_session, owner_ctx, sale):
        approval_service.approve(owner_ctx, KIND_SALE, sale.id)
        approval_service.approve(owner_ctx, KIND_SALE, sale.id)

        assert db_session.query(BankTransaction).filter_by(linked_sale_id=sale.id).count() == 2

    def test_rejection_has_no_side_effect(self, db_session, owner_ctx, sale):
        rejected = approval_service.reject(owner_ctx, KIND_SALE, sale.id, "Wrong totals")

        assert rejected.status == SubmissionStatus.REJECTED
        assert rejected.rejection_reason == "Wrong totals"
        assert db_session.query(BankTransaction).count() == 0

    def test_rejected_cannot_be_approved(self, db_session, owner_ctx, sale):
        approval_service.reject(owner_ctx, KIND_SALE, sale.id)
        with pytest.raises(InvalidTransitionError):
            approval_service.approve(owner_ctx, KIND_SALE, sale.id)

    def test_approved_cannot_be_rejected(self, db_session, owner_ctx, sale):
        approval_service.approve(owner_ctx, KIND_SALE, sale.id)
        with pytest.raises(InvalidTransitionError):
            approval_service.reject(owner_ctx, KIND_SALE, sale.id)

    def test_cashier_cannot_approve(self, db_session, cashier_ctx, sale):
        with pytest.raises(ForbiddenError):
            approval_service.approve(cashier_ctx, KIND_SALE, sale.id)
        assert db_session.get(Sale, sale.id).status == SubmissionStatus.PENDING

    def test_restaurant_manager_cannot_approve(self, db_session, manager_ctx, sale):
        with pytest.raises(ForbiddenError):
            approval_service.approve(manager_ctx, KIND_SALE, sale.id)


class TestExpenseApproval:

    def test_inventory_purchase_books_movements_once(self, db_session, owner_ctx, cashier_ctx, category, make_item):
        flour = make_item("Flour", stock=2)
        expense = expense_service.submit_expense(cashier_ctx, {
            "date": "2026-03-14",
            "categoryId": category.id,
            "amountGNF": 450_000,
            "isInventoryPurchase": True,
            "expenseItems": [{"inventoryItemId": flour.id, "quantity": 50, "unitCostGNF": 9000}],
        })
        assert db_session.get(InventoryItem, flour.id).current_stock == 2

        approval_service.approve(owner_ctx, KIND_EXPENSE, expense.id)
        approval_service.approve(owner_ctx, KIND_EXPENSE, expense.id)

        purchases = db_session.query(StockMovement).filter_by(
            item_id=flour.id, type=MovementType.PURCHASE
        ).all()
        assert len(purchases) == 1
        item = db_session.get(InventoryItem, flour.id)
        assert item.current_stock == 52
        assert item.unit_cost_gnf == 9000

    def test_plain_expense_touches_no_stock(self, db_session, owner_ctx, cashier_ctx, category):
        expense = expense_service.submit_expense(cashier_ctx, {
            "date": "2026-03-14",
            "categoryId": category.id,
            "amountGNF": 120_000,
            "description": "Electricity",
        })
        approval_service.approve(owner_ctx, KIND_EXPENSE, expense.id)
        assert db_session.query(StockMovement).count() == 0


class TestProductionApproval:

    def _submit(self, ctx, flour, quantity=8):
        return production_service.submit_production(ctx, {
            "date": "2026-03-14",
            "productName": "Baguette",
            "quantity": 120,
            "ingredients": [{"itemId": flour.id, "quantity": quantity}],
        })

    def test_deducts_stock(self, db_session, owner_ctx, baker_ctx, make_item):
        flour = make_item("Flour", stock=10)
        production = self._submit(baker_ctx, flour)

        approval_service.approve(owner_ctx, KIND_PRODUCTION, production.id)

        production = db_session.get(ProductionLog, production.id)
        assert production.stock_deducted is True
        assert production.stock_deducted_at is not None
        assert db_session.get(InventoryItem, flour.id).current_stock == 2

    def test_insufficient_stock_refused(self, db_session, owner_ctx, baker_ctx, make_item):
        flour = make_item("Flour", stock=5)
        production = self._submit(baker_ctx, flour)

        with pytest.raises(InsufficientStockError) as exc_info:
            approval_service.approve(owner_ctx, KIND_PRODUCTION, production.id)

        assert exc_info.value.details["items"][0]["afterProduction"] == -3
        assert db_session.get(ProductionLog, production.id).status == SubmissionStatus.PENDING
        assert db_session.query(StockMovement).filter_by(type=MovementType.USAGE).count() == 0
        assert db_session.get(InventoryItem, flour.id).current_stock == 5

    def test_owner_override_drives_negative(self, db_session, owner_ctx, baker_ctx, make_item):
        flour = make_item("Flour", stock=5)
        production = self._submit(baker_ctx, flour)

        approval_service.approve(owner_ctx, KIND_PRODUCTION, production.id, allow_insufficient_stock=True)

        usage = db_session.query(StockMovement).filter_by(type=MovementType.USAGE).one()
        assert usage.quantity == -8
        assert usage.drives_negative is True
        assert db_session.get(InventoryItem, flour.id).current_stock == -3

    def test_no_deduction_when_disabled(self, db_session, owner_ctx, baker_ctx, make_item):
        flour = make_item("Flour", stock=1)
        production = production_service.submit_production(baker_ctx, {
            "date": "2026-03-14",
            "productName": "Pain de mie",
            "quantity": 10,
            "deductStock": False,
            "ingredients": [{"itemId": flour.id, "quantity": 8}],
        })

        approval_service.approve(owner_ctx, KIND_PRODUCTION, production.id)

        assert db_session.get(ProductionLog, production.id).stock_deducted is False
        assert db_session.get(InventoryItem, flour.id).current_stock == 1

    def test_second_approval_does_not_deduct_again(self, db_session, owner_ctx, baker_ctx, make_item):
        flour = make_item("Flour", stock=20)
        production = self._submit(baker_ctx, flour)

        approval_service.approve(owner_ctx, KIND_PRODUCTION, production.id)
        approval_service.approve(owner_ctx, KIND_PRODUCTION, production.id)

        assert db_session.get(InventoryItem, flour.id).current_stock == 12


class TestDecide:

    def test_unknown_action(self, db_session, owner_ctx, sale):
        with pytest.raises(ValidationError):
            approval_service.decide(owner_ctx, KIND_SALE, sale.id, {"action": "maybe"})
