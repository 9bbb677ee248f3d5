# Overview: Service-layer operations for ledger audits; recomputes cached aggregates and reports drift.

"""
Ledger Audit

Every cached aggregate has a source of truth:

    InventoryItem.current_stock       <- SUM(stock_movements.quantity)
    Expense.total_paid_amount         <- SUM(expense_payments.amount)
    Expense.payment_status            <- payment_status_for(paid, amount)
    Debt.paid_amount / remaining      <- SUM(debt_payments.amount)
    Customer.outstanding_debt_gnf     <- SUM(remaining) over Active debts

The recompute functions are pure reads. find_drift() compares them with the
stored caches; repair_drift() rewrites the caches in one transaction.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Debt, DebtPayment, Expense, ExpensePayment, InventoryItem, StockMovement
from ..models.states import DebtStatus
from .concurrency import run_with_retry
from .payment_service import payment_status_for
from .stock_service import STOCK_PRECISION
from .tenant_service import lock_restaurant


def _sum(column, *criteria):
    return db.session.query(func.coalesce(func.sum(column), 0)).filter(*criteria).scalar() or 0


def replay_stock(item: InventoryItem) -> float:
    return round(float(_sum(StockMovement.quantity, StockMovement.item_id == item.id)), STOCK_PRECISION)


def recompute_expense_paid(expense: Expense) -> int:
    return int(_sum(ExpensePayment.amount, ExpensePayment.expense_id == expense.id))


def recompute_debt_paid(debt: Debt) -> int:
    return int(_sum(DebtPayment.amount, DebtPayment.debt_id == debt.id))


def recompute_outstanding_debt(customer: Customer) -> int:
    """Active debts only; each debt's remaining is re-derived from its payments."""
    debts = db.session.query(Debt).filter(
        Debt.customer_id == customer.id,
        Debt.status == DebtStatus.ACTIVE,
    )
    return sum(debt.principal_amount - recompute_debt_paid(debt) for debt in debts)


def _drift(entity: str, entity_id: int, field: str, cached, actual) -> dict:
    return {"entity": entity, "id": entity_id, "field": field, "cached": cached, "actual": actual}


def find_drift(restaurant_id: int) -> list[dict]:
    """Every cache that disagrees with its source of truth."""
    drift = []

    for item in db.session.query(InventoryItem).filter(InventoryItem.restaurant_id == restaurant_id):
        actual = replay_stock(item)
        if round(item.current_stock, STOCK_PRECISION) != actual:
            drift.append(_drift("InventoryItem", item.id, "currentStock", item.current_stock, actual))

    for expense in db.session.query(Expense).filter(Expense.restaurant_id == restaurant_id):
        paid = recompute_expense_paid(expense)
        if expense.total_paid_amount != paid:
            drift.append(_drift("Expense", expense.id, "totalPaidAmount", expense.total_paid_amount, paid))
        status = payment_status_for(paid, expense.amount_gnf)
        if expense.payment_status != status:
            drift.append(_drift("Expense", expense.id, "paymentStatus", expense.payment_status, status))

    for debt in db.session.query(Debt).filter(Debt.restaurant_id == restaurant_id):
        paid = recompute_debt_paid(debt)
        if debt.paid_amount != paid:
            drift.append(_drift("Debt", debt.id, "paidAmount", debt.paid_amount, paid))
        if debt.status == DebtStatus.ACTIVE and paid >= debt.principal_amount:
            drift.append(_drift("Debt", debt.id, "status", debt.status, DebtStatus.PAID_OFF))

    for customer in db.session.query(Customer).filter(Customer.restaurant_id == restaurant_id):
        outstanding = recompute_outstanding_debt(customer)
        if customer.outstanding_debt_gnf != outstanding:
            drift.append(_drift(
                "Customer", customer.id, "outstandingDebt", customer.outstanding_debt_gnf, outstanding
            ))

    return drift


def repair_drift(restaurant_id: int) -> list[dict]:
    """Rewrite drifted caches from their sources. Returns what was repaired."""

    def _op():
        lock_restaurant(restaurant_id, exclusive=True)
        drift = find_drift(restaurant_id)
        if not drift:
            return drift

        for item in db.session.query(InventoryItem).filter(InventoryItem.restaurant_id == restaurant_id):
            item.current_stock = replay_stock(item)

        for expense in db.session.query(Expense).filter(Expense.restaurant_id == restaurant_id):
            expense.total_paid_amount = recompute_expense_paid(expense)
            expense.payment_status = payment_status_for(expense.total_paid_amount, expense.amount_gnf)

        for debt in db.session.query(Debt).filter(Debt.restaurant_id == restaurant_id):
            debt.paid_amount = recompute_debt_paid(debt)
            debt.remaining_amount = debt.principal_amount - debt.paid_amount
            if debt.status == DebtStatus.ACTIVE and debt.remaining_amount <= 0:
                debt.status = DebtStatus.PAID_OFF

        db.session.flush()
        for customer in db.session.query(Customer).filter(Customer.restaurant_id == restaurant_id):
            customer.outstanding_debt_gnf = recompute_outstanding_debt(customer)

        db.session.commit()
        current_app.logger.warning("Repaired %d drifted caches for restaurant %s", len(drift), restaurant_id)
        return drift

    return run_with_retry(_op)
