# Overview: Pytest coverage for the tenant data reset; confirmation, scoping and atomicity.

import pytest
from sqlalchemy.exc import IntegrityError

from bakeoffice.errors import ForbiddenError, PersistenceError, ValidationError
from bakeoffice.models import BankTransaction, Customer, Debt, InventoryItem, Sale, SecurityEvent, StockMovement
from bakeoffice.services import approval_service, bank_service, customer_service, reset_service, sales_service
from bakeoffice.services.approval_service import KIND_SALE


@pytest.fixture
def ledger(owner_ctx, cashier_ctx, rival_ctx, make_item):
    """Some data in both restaurants."""
    customer = customer_service.create_customer(owner_ctx, {"name": "Hotel Camayenne"})
    sale = sales_service.submit_sale(cashier_ctx, {
        "date": "2026-03-14",
        "cashGNF": 500_000,
        "saleItems": [{"productName": "Baguette", "quantity": 100, "unitPriceGNF": 3_000}],
        "debts": [{"customerId": customer.id, "amountGNF": 200_000}],
    })
    approval_service.approve(owner_ctx, KIND_SALE, sale.id)
    flour = make_item("Flour", stock=25, min_stock=10, unit_cost=8000)

    rival_sale = sales_service.submit_sale(rival_ctx, {"date": "2026-03-14", "cashGNF": 100_000})
    bank_service.create_transaction(rival_ctx, {
        "date": "2026-03-14", "amount": 100_000, "type": "Deposit", "method": "Cash", "reason": "Other",
    })
    return {"customer": customer, "sale": sale, "flour": flour, "rival_sale": rival_sale}


class TestConfirmationPhrase:

    def test_phrase_is_case_insensitive(self, db_session, owner_ctx, ledger):
        deleted = reset_service.execute_reset(owner_ctx, ["bank"], "chez fatou")
        assert deleted == {"bank": {"count": 1, "relatedCount": 0}}

    @pytest.mark.parametrize("phrase", ["Chez Fatou ", "Chez Fatu", "", None])
    def test_wrong_phrase_refused(self, db_session, owner_ctx, ledger, phrase):
        with pytest.raises(ForbiddenError):
            reset_service.execute_reset(owner_ctx, ["bank", "sales"], phrase)
        assert db_session.query(Sale).count() == 2

    def test_only_owner(self, db_session, manager_ctx, ledger):
        with pytest.raises(ForbiddenError):
            reset_service.execute_reset(manager_ctx, ["sales"], "Chez Fatou")

    def test_unknown_type(self, db_session, owner_ctx):
        with pytest.raises(ValidationError):
            reset_service.execute_reset(owner_ctx, ["sales", "customers"], "Chez Fatou")


class TestExecute:

    def test_preview_counts(self, db_session, owner_ctx, ledger):
        preview = reset_service.preview_reset(owner_ctx)

        assert preview["sales"]["count"] == 1
        assert preview["sales"]["relatedCount"] == 1
        assert preview["debts"]["count"] == 1
        assert preview["inventory"] == {
            "count": 1,
            "relatedCount": 1,
            "description": "Stock movements and stock counts (items preserved, stock set to 0)",
        }
        assert preview["bank"]["count"] == 1

    def test_reset_is_scoped_to_restaurant(self, db_session, owner_ctx, restaurant_b, ledger):
        reset_service.execute_reset(owner_ctx, ["sales", "bank"], "Chez Fatou")

        remaining = db_session.query(Sale).all()
        assert [s.restaurant_id for s in remaining] == [restaurant_b.id]
        assert db_session.query(BankTransaction).filter_by(restaurant_id=restaurant_b.id).count() == 1

    def test_sales_reset_keeps_debts(self, db_session, owner_ctx, ledger):
        reset_service.execute_reset(owner_ctx, ["sales"], "Chez Fatou")

        debt = db_session.query(Debt).one()
        assert debt.sale_id is None
        assert db_session.query(BankTransaction).filter(BankTransaction.linked_sale_id.isnot(None)).count() == 0

    def test_inventory_reset_zeroes_stock(self, db_session, owner_ctx, ledger):
        reset_service.execute_reset(owner_ctx, ["inventory"], "Chez Fatou")

        flour = db_session.get(InventoryItem, ledger["flour"].id)
        assert flour.current_stock == 0
        assert flour.min_stock == 10
        assert flour.unit_cost_gnf == 8000
        assert db_session.query(StockMovement).count() == 0

    def test_debts_reset_clears_outstanding(self, db_session, owner_ctx, ledger):
        reset_service.execute_reset(owner_ctx, ["debts"], "Chez Fatou")

        assert db_session.query(Debt).count() == 0
        assert db_session.get(Customer, ledger["customer"].id).outstanding_debt_gnf == 0

    def test_reset_logs_security_event(self, db_session, owner_ctx, ledger):
        reset_service.execute_reset(owner_ctx, ["bank"], "Chez Fatou")
        event = db_session.query(SecurityEvent).filter_by(event_type="DATA_RESET").one()
        assert event.restaurant_id == owner_ctx.restaurant_id
        assert event.success is True

    def test_failure_rolls_back_every_category(self, db_session, owner_ctx, ledger, monkeypatch):
        def failing_bank_reset(restaurant_id):
            raise IntegrityError("DELETE FROM bank_transactions", {}, Exception("constraint failed"))

        monkeypatch.setitem(reset_service._RESET_HANDLERS, "bank", failing_bank_reset)

        with pytest.raises(PersistenceError):
            reset_service.execute_reset(owner_ctx, ["sales", "inventory", "bank"], "Chez Fatou")

        assert db_session.query(Sale).filter_by(restaurant_id=owner_ctx.restaurant_id).count() == 1
        assert db_session.query(StockMovement).count() == 1
        assert db_session.get(InventoryItem, ledger["flour"].id).current_stock == 25
        assert db_session.query(SecurityEvent).filter_by(event_type="DATA_RESET").count() == 0
