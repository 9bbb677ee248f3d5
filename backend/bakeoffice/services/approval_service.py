# Overview: Service-layer operations for approvals; Pending -> Approved/Rejected with side effects.

"""
Submission Approval Gate

Sales, expenses, production logs and stock counts enter Pending. Only an
Owner-equivalent role moves them to Approved or Rejected, and neither state
is left again.

Side effects on approval run in the same transaction as the status flip:
- Sale: one Pending SalesDeposit per non-zero payment method.
- Inventory-purchase expense: one Purchase movement per expense item.
- Production with deduct_stock: availability check, then one Usage
  movement per ingredient and stock_deducted=True.
- Stock count: one Adjustment movement per counted item with a non-zero
  variance, booked with the variance stored at submission.

Exactly once: the submission row is locked and version-checked, a repeated
approve is a no-op returning the stored record, and the unique link columns
(sale+method, production_item_id, expense_item_id, reconciliation_item_id)
reject any duplicate that slipped through.

Rejection only has a side effect for sales: the credit sale's Active debts
move to Cancelled and their remaining amount leaves the customers'
outstanding debt, in the same transaction. Those debts accept no payment
while the sale is Pending, so nothing else needs undoing.
"""

from __future__ import annotations

from flask import current_app

from ..errors import InsufficientStockError, InvalidTransitionError, ValidationError
from ..extensions import db
from ..models import (
    BankTransaction,
    Customer,
    Debt,
    Expense,
    InventoryItem,
    ProductionLog,
    Sale,
    StockMovement,
    StockReconciliation,
)
from ..models.states import (
    BankTransactionType,
    DebtStatus,
    MovementType,
    SubmissionStatus,
    TransactionReason,
)
from ..permissions.roles import can_approve, is_owner
from ..time_utils import utcnow
from ..validation import clean_text
from .bank_service import spawn_transaction
from .concurrency import lock_for_update, run_with_retry
from .permission_service import require_role
from .stock_service import _record_movement_locked, check_availability
from .tenant_service import get_scoped, lock_restaurant

KIND_SALE = "sale"
KIND_EXPENSE = "expense"
KIND_PRODUCTION = "production"
KIND_RECONCILIATION = "reconciliation"

SUBMISSION_MODELS = {
    KIND_SALE: Sale,
    KIND_EXPENSE: Expense,
    KIND_PRODUCTION: ProductionLog,
    KIND_RECONCILIATION: StockReconciliation,
}


def _submission_model(kind: str):
    model = SUBMISSION_MODELS.get(kind)
    if model is None:
        raise ValidationError(f"Unknown submission kind: {kind}")
    return model


def _check_transition(submission, target: str) -> None:
    if target not in SubmissionStatus.TRANSITIONS[submission.status]:
        raise InvalidTransitionError(
            f"Cannot move a {submission.status} submission to {target}",
            status=submission.status,
        )


def _lock_items(restaurant_id: int, item_ids) -> dict[int, InventoryItem]:
    ids = sorted(set(item_ids))
    if not ids:
        return {}
    items = lock_for_update(
        db.session.query(InventoryItem)
        .filter(InventoryItem.restaurant_id == restaurant_id, InventoryItem.id.in_(ids))
        .order_by(InventoryItem.id)
    ).all()
    return {item.id: item for item in items}


# =============================================================================
# SIDE EFFECTS
# =============================================================================

def _apply_sale(ctx, sale: Sale, options: dict) -> None:
    existing = {
        method for (method,) in db.session.query(BankTransaction.method).filter(
            BankTransaction.linked_sale_id == sale.id
        )
    }
    for method, amount in sale.payment_amounts().items():
        if amount <= 0 or method in existing:
            continue
        spawn_transaction(
            restaurant_id=sale.restaurant_id,
            user_id=ctx.user_id,
            amount=amount,
            tx_type=BankTransactionType.DEPOSIT,
            method=method,
            reason=TransactionReason.SALES_DEPOSIT,
            tx_date=sale.date,
            description=f"Sales deposit {sale.date.isoformat()}",
            linked_sale_id=sale.id,
        )


def _apply_expense(ctx, expense: Expense, options: dict) -> None:
    if not expense.is_inventory_purchase:
        return
    booked = {
        expense_item_id for (expense_item_id,) in db.session.query(StockMovement.expense_item_id).filter(
            StockMovement.expense_item_id.in_([line.id for line in expense.items])
        )
    }
    items = _lock_items(expense.restaurant_id, [line.inventory_item_id for line in expense.items])
    for line in expense.items:
        if line.id in booked:
            continue
        item = items[line.inventory_item_id]
        _record_movement_locked(
            item, MovementType.PURCHASE, line.quantity,
            user_id=ctx.user_id,
            reason=f"Expense #{expense.id}",
            unit_cost=line.unit_cost_gnf,
            expense_item_id=line.id,
        )
        if line.unit_cost_gnf > 0:
            item.unit_cost_gnf = line.unit_cost_gnf


def _apply_production(ctx, production: ProductionLog, options: dict) -> None:
    if not production.deduct_stock or production.stock_deducted:
        return

    items = _lock_items(production.restaurant_id, [line.inventory_item_id for line in production.items])
    availability = check_availability(ctx, [
        {"itemId": line.inventory_item_id, "quantity": line.quantity} for line in production.items
    ])
    if not availability["available"]:
        override = options.get("allow_insufficient_stock") and is_owner(ctx.role)
        if not override:
            raise InsufficientStockError(
                "Insufficient stock for one or more ingredients",
                items=[row for row in availability["items"] if row["status"] == "insufficient"],
            )
        current_app.logger.warning(
            "Production %s approved with insufficient stock by user %s", production.id, ctx.user_id
        )

    for line in production.items:
        _record_movement_locked(
            items[line.inventory_item_id], MovementType.USAGE, line.quantity,
            user_id=ctx.user_id,
            reason=f"Production #{production.id}: {production.product_name}",
            unit_cost=line.unit_cost_gnf,
            production_item_id=line.id,
        )
    production.stock_deducted = True
    production.stock_deducted_at = utcnow()


def _apply_reconciliation(ctx, reconciliation: StockReconciliation, options: dict) -> None:
    booked = {
        line_id for (line_id,) in db.session.query(StockMovement.reconciliation_item_id).filter(
            StockMovement.reconciliation_item_id.in_([line.id for line in reconciliation.items])
        )
    }
    lines = [line for line in reconciliation.items if line.variance != 0 and line.id not in booked]
    items = _lock_items(reconciliation.restaurant_id, [line.inventory_item_id for line in lines])
    for line in lines:
        _record_movement_locked(
            items[line.inventory_item_id], MovementType.ADJUSTMENT, line.variance,
            user_id=ctx.user_id,
            reason=(
                f"Reconciliation #{reconciliation.id}: physical count {line.physical_count:g}, "
                f"system had {line.system_stock:g}"
            ),
            reconciliation_item_id=line.id,
        )
    for line in reconciliation.items:
        line.adjustment_applied = True
    current_app.logger.info(
        "Reconciliation %s approved: %s adjustment(s) booked", reconciliation.id, len(lines)
    )


SIDE_EFFECTS = {
    KIND_SALE: _apply_sale,
    KIND_EXPENSE: _apply_expense,
    KIND_PRODUCTION: _apply_production,
    KIND_RECONCILIATION: _apply_reconciliation,
}


def _release_sale_debts(ctx, sale: Sale, options: dict) -> None:
    debts = [debt for debt in sale.debts if debt.status == DebtStatus.ACTIVE]
    if not debts:
        return
    customers = {
        customer.id: customer
        for customer in lock_for_update(
            db.session.query(Customer)
            .filter(Customer.id.in_(sorted({debt.customer_id for debt in debts})))
            .order_by(Customer.id)
        )
    }
    debt_ids = [debt.id for debt in debts]
    for debt in lock_for_update(db.session.query(Debt).filter(Debt.id.in_(debt_ids)).order_by(Debt.id)):
        customer = customers[debt.customer_id]
        customer.outstanding_debt_gnf = max(0, customer.outstanding_debt_gnf - debt.remaining_amount)
        debt.status = DebtStatus.CANCELLED
    current_app.logger.info("Sale %s rejected: %s credit debt(s) cancelled", sale.id, len(debt_ids))


REJECT_EFFECTS = {
    KIND_SALE: _release_sale_debts,
}


# =============================================================================
# TRANSITIONS
# =============================================================================

def approve(ctx, kind: str, submission_id: int, **options):
    """
    Pending -> Approved with the kind's side effects.

    options: allow_insufficient_stock (production only; honoured for Owners).
    Approving an Approved submission returns it unchanged.
    """
    model = _submission_model(kind)
    require_role(ctx, can_approve, "approve submissions")

    def _op():
        lock_restaurant(ctx.restaurant_id)
        submission = get_scoped(model, submission_id, ctx, lock=True)
        if submission.status == SubmissionStatus.APPROVED:
            return submission
        _check_transition(submission, SubmissionStatus.APPROVED)

        SIDE_EFFECTS[kind](ctx, submission, options)

        submission.status = SubmissionStatus.APPROVED
        submission.approved_by_user_id = ctx.user_id
        submission.approved_at = utcnow()
        db.session.commit()
        current_app.logger.info("%s %s approved by user %s", kind, submission.id, ctx.user_id)
        return submission

    return run_with_retry(_op)


def reject(ctx, kind: str, submission_id: int, reason: str | None = None):
    """Pending -> Rejected. Rejecting a Rejected submission returns it unchanged."""
    model = _submission_model(kind)
    require_role(ctx, can_approve, "reject submissions")
    reason = clean_text(reason)

    def _op():
        lock_restaurant(ctx.restaurant_id)
        submission = get_scoped(model, submission_id, ctx, lock=True)
        if submission.status == SubmissionStatus.REJECTED:
            return submission
        _check_transition(submission, SubmissionStatus.REJECTED)

        effect = REJECT_EFFECTS.get(kind)
        if effect is not None:
            effect(ctx, submission, {})

        submission.status = SubmissionStatus.REJECTED
        submission.approved_by_user_id = ctx.user_id
        submission.approved_at = utcnow()
        submission.rejection_reason = reason
        db.session.commit()
        current_app.logger.info("%s %s rejected by user %s", kind, submission.id, ctx.user_id)
        return submission

    return run_with_retry(_op)


def decide(ctx, kind: str, submission_id: int, payload: dict):
    """Route helper for {action: approve|reject, reason?, allowInsufficientStock?}."""
    action = payload.get("action")
    if action == "approve":
        return approve(
            ctx, kind, submission_id,
            allow_insufficient_stock=payload.get("allowInsufficientStock") is True,
        )
    if action == "reject":
        return reject(ctx, kind, submission_id, payload.get("reason"))
    raise ValidationError("action must be 'approve' or 'reject'")
