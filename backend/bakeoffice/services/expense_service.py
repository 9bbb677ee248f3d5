# Overview: Service-layer operations for expenses; categories, suppliers and expense submission.

from __future__ import annotations

from sqlalchemy import func

from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import Expense, ExpenseCategory, ExpenseItem, InventoryItem, Supplier
from ..models.states import PaymentStatus, SubmissionStatus
from ..permissions.roles import can_record_expenses, is_manager_role
from ..validation import (
    clean_text,
    parse_amount,
    parse_bool,
    parse_choice,
    parse_date_field,
    parse_int,
    parse_optional_int,
    parse_quantity,
    require_fields,
)
from .concurrency import run_with_retry
from .permission_service import require_role
from .tenant_service import get_scoped, lock_restaurant


# =============================================================================
# CATALOGUES
# =============================================================================

def _check_unique_name(model, ctx, name: str) -> None:
    exists = db.session.query(model.id).filter(
        model.restaurant_id == ctx.restaurant_id,
        func.lower(model.name) == name.lower(),
    ).first()
    if exists:
        raise ConflictError(f"{name} already exists", id=exists[0])


def create_category(ctx, payload: dict) -> ExpenseCategory:
    require_role(ctx, is_manager_role, "manage expense categories")
    require_fields(payload, "name")
    name = clean_text(payload.get("name"), max_length=128)

    def _op():
        lock_restaurant(ctx.restaurant_id)
        _check_unique_name(ExpenseCategory, ctx, name)
        category = ExpenseCategory(restaurant_id=ctx.restaurant_id, name=name, is_active=True)
        db.session.add(category)
        db.session.commit()
        return category

    return run_with_retry(_op)


def list_categories(ctx) -> list[ExpenseCategory]:
    return (
        db.session.query(ExpenseCategory)
        .filter(ExpenseCategory.restaurant_id == ctx.restaurant_id, ExpenseCategory.is_active.is_(True))
        .order_by(ExpenseCategory.name)
        .all()
    )


def create_supplier(ctx, payload: dict) -> Supplier:
    require_role(ctx, can_record_expenses, "manage suppliers")
    require_fields(payload, "name")
    name = clean_text(payload.get("name"))

    def _op():
        lock_restaurant(ctx.restaurant_id)
        _check_unique_name(Supplier, ctx, name)
        supplier = Supplier(
            restaurant_id=ctx.restaurant_id,
            name=name,
            phone=clean_text(payload.get("phone"), max_length=32),
            email=clean_text(payload.get("email")),
            is_active=True,
        )
        db.session.add(supplier)
        db.session.commit()
        return supplier

    return run_with_retry(_op)


def list_suppliers(ctx) -> list[Supplier]:
    return (
        db.session.query(Supplier)
        .filter(Supplier.restaurant_id == ctx.restaurant_id, Supplier.is_active.is_(True))
        .order_by(Supplier.name)
        .all()
    )


# =============================================================================
# EXPENSES
# =============================================================================

def _parse_expense_items(raw_items) -> list[dict]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("expenseItems are required for an inventory purchase")
    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"expenseItems[{index}] must be an object")
        items.append({
            "inventory_item_id": parse_int(raw.get("inventoryItemId"), f"expenseItems[{index}].inventoryItemId"),
            "quantity": parse_quantity(raw.get("quantity"), f"expenseItems[{index}].quantity"),
            "unit_cost_gnf": parse_amount(raw.get("unitCostGNF"), f"expenseItems[{index}].unitCostGNF", allow_zero=True),
        })
    return items


def submit_expense(ctx, payload: dict) -> Expense:
    """
    Record a Pending expense.

    An inventory purchase carries its lines now; the Purchase movements
    are only booked when the expense is approved.
    """
    require_role(ctx, can_record_expenses, "record expenses")
    require_fields(payload, "categoryId")
    expense_date = parse_date_field(payload.get("date"), "date")
    category_id = parse_int(payload.get("categoryId"), "categoryId")
    supplier_id = parse_optional_int(payload.get("supplierId"), "supplierId")
    amount = parse_amount(payload.get("amountGNF"), "amountGNF")
    is_inventory_purchase = parse_bool(payload.get("isInventoryPurchase"), "isInventoryPurchase")
    items = _parse_expense_items(payload.get("expenseItems")) if is_inventory_purchase else []

    def _op():
        lock_restaurant(ctx.restaurant_id)
        category = get_scoped(ExpenseCategory, category_id, ctx)
        if not category.is_active:
            raise ValidationError("Expense category is inactive")
        if supplier_id is not None:
            get_scoped(Supplier, supplier_id, ctx)
        for item in items:
            get_scoped(InventoryItem, item["inventory_item_id"], ctx)

        expense = Expense(
            restaurant_id=ctx.restaurant_id,
            date=expense_date,
            category_id=category.id,
            supplier_id=supplier_id,
            amount_gnf=amount,
            description=clean_text(payload.get("description")),
            billing_ref=clean_text(payload.get("billingRef"), max_length=64),
            is_inventory_purchase=is_inventory_purchase,
            payment_status=PaymentStatus.UNPAID,
            total_paid_amount=0,
            status=SubmissionStatus.PENDING,
            created_by_user_id=ctx.user_id,
        )
        db.session.add(expense)
        db.session.flush()
        for item in items:
            db.session.add(ExpenseItem(expense_id=expense.id, **item))
        db.session.commit()
        return expense

    return run_with_retry(_op)


def list_expenses(
    ctx,
    *,
    status: str | None = None,
    payment_status: str | None = None,
    start_date=None,
    end_date=None,
) -> list[Expense]:
    query = db.session.query(Expense).filter(Expense.restaurant_id == ctx.restaurant_id)
    if status:
        query = query.filter(Expense.status == parse_choice(status, "status", SubmissionStatus.ALL))
    if payment_status:
        query = query.filter(
            Expense.payment_status == parse_choice(payment_status, "paymentStatus", PaymentStatus.ALL)
        )
    start = parse_date_field(start_date, "startDate", required=False)
    end = parse_date_field(end_date, "endDate", required=False)
    if start:
        query = query.filter(Expense.date >= start)
    if end:
        query = query.filter(Expense.date <= end)
    return query.order_by(Expense.date.desc(), Expense.id.desc()).all()


def get_expense(ctx, expense_id: int) -> Expense:
    return get_scoped(Expense, expense_id, ctx)
