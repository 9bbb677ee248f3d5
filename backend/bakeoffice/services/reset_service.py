# Overview: Service-layer operations for tenant data reset; previews and executes category deletes.

"""
Tenant Data Reset

WHY: Owners clear test or seasonal data per category without touching other
restaurants. The operation is irreversible, so it is gated by the Owner role
and a typed confirmation (the restaurant's name, compared case-insensitively
with no trimming).

GUARANTEES:
- All selected categories run in ONE transaction; any failure rolls back
  every category (no partial reset).
- Categories run in a fixed order: sales, expenses, debts, production,
  inventory, bank. Children are deleted before parents, and links into a
  deleted parent from a category that is kept are nulled first.
- Inventory items survive an inventory reset; movements and stock counts
  are deleted and current_stock becomes 0. min_stock and unit cost are
  untouched.
- The restaurant row is locked exclusively for the duration, so concurrent
  submissions (which hold a shared lock) either finish before the reset or
  start after it.
"""

from __future__ import annotations

from flask import current_app

from ..errors import ForbiddenError, ValidationError
from ..extensions import db
from ..models import (
    BankTransaction,
    Customer,
    Debt,
    DebtPayment,
    Expense,
    ExpenseItem,
    ExpensePayment,
    InventoryItem,
    ProductionItem,
    ProductionLog,
    ReconciliationItem,
    Sale,
    SaleItem,
    StockMovement,
    StockReconciliation,
)
from ..permissions.roles import can_reset_data
from .concurrency import run_with_retry
from .permission_service import log_security_event, require_role
from .tenant_service import lock_restaurant

RESET_ORDER = ("sales", "expenses", "debts", "production", "inventory", "bank")

RESET_DESCRIPTIONS = {
    "sales": "Sales and sale items",
    "expenses": "Expenses, expense items and expense payments",
    "debts": "Debts and debt payments",
    "production": "Production logs and production items",
    "inventory": "Stock movements and stock counts (items preserved, stock set to 0)",
    "bank": "Bank transactions",
}


def _ids(model, restaurant_id):
    return db.select(model.id).where(model.restaurant_id == restaurant_id)


def _delete(query) -> int:
    return query.delete(synchronize_session=False)


def _update(query, values: dict) -> None:
    query.update(values, synchronize_session=False)


# =============================================================================
# CATEGORY HANDLERS
# Each returns (count, related_count) and never commits.
# =============================================================================

def _reset_sales(restaurant_id: int) -> tuple[int, int]:
    sale_ids = _ids(Sale, restaurant_id)
    _update(db.session.query(BankTransaction).filter(BankTransaction.linked_sale_id.in_(sale_ids)),
            {BankTransaction.linked_sale_id: None})
    _update(db.session.query(Debt).filter(Debt.sale_id.in_(sale_ids)), {Debt.sale_id: None})
    related = _delete(db.session.query(SaleItem).filter(SaleItem.sale_id.in_(sale_ids)))
    count = _delete(db.session.query(Sale).filter(Sale.restaurant_id == restaurant_id))
    return count, related


def _reset_expenses(restaurant_id: int) -> tuple[int, int]:
    expense_ids = _ids(Expense, restaurant_id)
    payment_ids = db.select(ExpensePayment.id).where(ExpensePayment.expense_id.in_(expense_ids))
    item_ids = db.select(ExpenseItem.id).where(ExpenseItem.expense_id.in_(expense_ids))

    _update(db.session.query(BankTransaction).filter(BankTransaction.linked_expense_payment_id.in_(payment_ids)),
            {BankTransaction.linked_expense_payment_id: None})
    _update(db.session.query(StockMovement).filter(StockMovement.expense_item_id.in_(item_ids)),
            {StockMovement.expense_item_id: None})

    related = _delete(db.session.query(ExpensePayment).filter(ExpensePayment.expense_id.in_(expense_ids)))
    related += _delete(db.session.query(ExpenseItem).filter(ExpenseItem.expense_id.in_(expense_ids)))
    count = _delete(db.session.query(Expense).filter(Expense.restaurant_id == restaurant_id))
    return count, related


def _reset_debts(restaurant_id: int) -> tuple[int, int]:
    payment_ids = _ids(DebtPayment, restaurant_id)
    _update(db.session.query(BankTransaction).filter(BankTransaction.linked_debt_payment_id.in_(payment_ids)),
            {BankTransaction.linked_debt_payment_id: None})
    related = _delete(db.session.query(DebtPayment).filter(DebtPayment.restaurant_id == restaurant_id))
    count = _delete(db.session.query(Debt).filter(Debt.restaurant_id == restaurant_id))
    # Outstanding debt is derived from the debts just removed
    _update(db.session.query(Customer).filter(Customer.restaurant_id == restaurant_id),
            {Customer.outstanding_debt_gnf: 0})
    return count, related


def _reset_production(restaurant_id: int) -> tuple[int, int]:
    log_ids = _ids(ProductionLog, restaurant_id)
    item_ids = db.select(ProductionItem.id).where(ProductionItem.production_log_id.in_(log_ids))
    _update(db.session.query(StockMovement).filter(StockMovement.production_item_id.in_(item_ids)),
            {StockMovement.production_item_id: None})
    related = _delete(db.session.query(ProductionItem).filter(ProductionItem.production_log_id.in_(log_ids)))
    count = _delete(db.session.query(ProductionLog).filter(ProductionLog.restaurant_id == restaurant_id))
    return count, related


def _reset_inventory(restaurant_id: int) -> tuple[int, int]:
    count = _delete(db.session.query(StockMovement).filter(StockMovement.restaurant_id == restaurant_id))
    related = db.session.query(InventoryItem).filter(InventoryItem.restaurant_id == restaurant_id).update(
        {InventoryItem.current_stock: 0.0}, synchronize_session=False
    )
    reconciliation_ids = _ids(StockReconciliation, restaurant_id)
    _delete(db.session.query(ReconciliationItem).filter(ReconciliationItem.reconciliation_id.in_(reconciliation_ids)))
    related += _delete(
        db.session.query(StockReconciliation).filter(StockReconciliation.restaurant_id == restaurant_id)
    )
    return count, related


def _reset_bank(restaurant_id: int) -> tuple[int, int]:
    count = _delete(db.session.query(BankTransaction).filter(BankTransaction.restaurant_id == restaurant_id))
    return count, 0


_RESET_HANDLERS = {
    "sales": _reset_sales,
    "expenses": _reset_expenses,
    "debts": _reset_debts,
    "production": _reset_production,
    "inventory": _reset_inventory,
    "bank": _reset_bank,
}


# =============================================================================
# PUBLIC API
# =============================================================================

def _count(model, *criteria) -> int:
    return db.session.query(model).filter(*criteria).count()


def preview_reset(ctx) -> dict:
    """Counts per category of what an executed reset would remove."""
    require_role(ctx, can_reset_data, "reset data")
    rid = ctx.restaurant_id
    expense_ids = _ids(Expense, rid)
    log_ids = _ids(ProductionLog, rid)
    counts = {
        "sales": (
            _count(Sale, Sale.restaurant_id == rid),
            _count(SaleItem, SaleItem.sale_id.in_(_ids(Sale, rid))),
        ),
        "expenses": (
            _count(Expense, Expense.restaurant_id == rid),
            _count(ExpensePayment, ExpensePayment.expense_id.in_(expense_ids))
            + _count(ExpenseItem, ExpenseItem.expense_id.in_(expense_ids)),
        ),
        "debts": (
            _count(Debt, Debt.restaurant_id == rid),
            _count(DebtPayment, DebtPayment.restaurant_id == rid),
        ),
        "production": (
            _count(ProductionLog, ProductionLog.restaurant_id == rid),
            _count(ProductionItem, ProductionItem.production_log_id.in_(log_ids)),
        ),
        "inventory": (
            _count(StockMovement, StockMovement.restaurant_id == rid),
            _count(InventoryItem, InventoryItem.restaurant_id == rid)
            + _count(StockReconciliation, StockReconciliation.restaurant_id == rid),
        ),
        "bank": (_count(BankTransaction, BankTransaction.restaurant_id == rid), 0),
    }
    return {
        category: {"count": count, "relatedCount": related, "description": RESET_DESCRIPTIONS[category]}
        for category, (count, related) in counts.items()
    }


def _validate_types(types) -> list[str]:
    if not isinstance(types, (list, tuple)) or not types:
        raise ValidationError("At least one reset type is required")
    invalid = [t for t in types if t not in _RESET_HANDLERS]
    if invalid:
        raise ValidationError(
            f"Invalid reset types: {', '.join(str(t) for t in invalid)}",
            validTypes=list(RESET_ORDER),
        )
    return [category for category in RESET_ORDER if category in types]


def execute_reset(ctx, types, confirmation_phrase) -> dict:
    """
    Delete the selected categories of the caller's restaurant.

    Returns {category: {count, relatedCount}} for the selected categories.
    """
    require_role(ctx, can_reset_data, "reset data")
    categories = _validate_types(types)

    def _op():
        restaurant = lock_restaurant(ctx.restaurant_id, exclusive=True)
        if not isinstance(confirmation_phrase, str) or confirmation_phrase.upper() != restaurant.name.upper():
            raise ForbiddenError("Confirmation phrase does not match restaurant name")

        deleted = {}
        for category in categories:
            count, related = _RESET_HANDLERS[category](ctx.restaurant_id)
            deleted[category] = {"count": count, "relatedCount": related}
        db.session.commit()
        return deleted

    deleted = run_with_retry(_op)
    db.session.expire_all()

    current_app.logger.warning(
        "Data reset executed for restaurant %s by user %s: %s",
        ctx.restaurant_id, ctx.user_id, deleted,
    )
    log_security_event(
        user_id=ctx.user_id,
        event_type="DATA_RESET",
        success=True,
        action="RESET",
        reason=", ".join(f"{k}={v['count']}/{v['relatedCount']}" for k, v in deleted.items()),
        restaurant_id=ctx.restaurant_id,
    )
    return deleted
