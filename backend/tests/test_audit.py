# Overview: Pytest coverage for ledger cache audits; drift detection and repair.

from bakeoffice.models import Customer, Debt, Expense, InventoryItem
from bakeoffice.models.states import PaymentStatus
from bakeoffice.services import (
    approval_service,
    audit_service,
    customer_service,
    expense_service,
    payment_service,
    stock_service,
)
from bakeoffice.services.approval_service import KIND_EXPENSE


def _busy_day(owner_ctx, cashier_ctx, category, make_item):
    flour = make_item("Flour", stock=50)
    stock_service.adjust_stock(owner_ctx, flour.id, "Waste", 2.5)
    stock_service.adjust_stock(owner_ctx, flour.id, "Purchase", 10)

    expense = expense_service.submit_expense(cashier_ctx, {
        "date": "2026-03-01", "categoryId": category.id, "amountGNF": 300_000,
    })
    approval_service.approve(owner_ctx, KIND_EXPENSE, expense.id)
    payment_service.record_expense_payment(owner_ctx, expense.id, {"amount": 100_000, "paymentMethod": "Cash"})

    customer = customer_service.create_customer(owner_ctx, {"name": "Hotel Camayenne"})
    debt = customer_service.create_debt(owner_ctx, {"customerId": customer.id, "principalAmount": 80_000})
    payment_service.record_debt_payment(owner_ctx, debt.id, {"amount": 30_000, "paymentMethod": "Cash"})
    return flour, expense, customer, debt


def test_no_drift_after_normal_operations(db_session, owner_ctx, cashier_ctx, category, make_item):
    _busy_day(owner_ctx, cashier_ctx, category, make_item)
    assert audit_service.find_drift(owner_ctx.restaurant_id) == []


def test_repair_rewrites_tampered_caches(db_session, owner_ctx, cashier_ctx, category, make_item):
    flour, expense, customer, debt = _busy_day(owner_ctx, cashier_ctx, category, make_item)

    db_session.get(InventoryItem, flour.id).current_stock = 999
    db_session.get(Expense, expense.id).total_paid_amount = 0
    db_session.get(Customer, customer.id).outstanding_debt_gnf = 1
    db_session.commit()

    drift = audit_service.find_drift(owner_ctx.restaurant_id)
    assert {(d["entity"], d["field"]) for d in drift} == {
        ("InventoryItem", "currentStock"),
        ("Expense", "totalPaidAmount"),
        ("Customer", "outstandingDebt"),
    }
    stock_drift = next(d for d in drift if d["entity"] == "InventoryItem")
    assert stock_drift["actual"] == 57.5

    repaired = audit_service.repair_drift(owner_ctx.restaurant_id)

    assert len(repaired) == 3
    assert db_session.get(InventoryItem, flour.id).current_stock == 57.5
    assert db_session.get(Expense, expense.id).total_paid_amount == 100_000
    assert db_session.get(Expense, expense.id).payment_status == PaymentStatus.PARTIALLY_PAID
    assert db_session.get(Customer, customer.id).outstanding_debt_gnf == 50_000
    assert db_session.get(Debt, debt.id).remaining_amount == 50_000
    assert audit_service.find_drift(owner_ctx.restaurant_id) == []


def test_drift_is_scoped_to_restaurant(db_session, owner_ctx, rival_ctx, make_item):
    theirs = make_item("Sugar", stock=5, ctx=rival_ctx)
    db_session.get(InventoryItem, theirs.id).current_stock = 0
    db_session.commit()

    assert audit_service.find_drift(owner_ctx.restaurant_id) == []
    assert len(audit_service.find_drift(rival_ctx.restaurant_id)) == 1


def test_drift_endpoint_is_owner_only(client, db_session, manager, owner, restaurant_a, login):
    url = f"/api/admin/drift?restaurantId={restaurant_a.id}"
    assert client.get(url, headers=login(manager)).status_code == 403

    resp = client.get(url, headers=login(owner))
    assert resp.status_code == 200
    assert resp.json == {"drift": [], "count": 0}
