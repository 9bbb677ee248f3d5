# Overview: Service-layer operations for customers and debts; credit limits, write-offs, deactivation.

"""
Customers and Debts

Customer.outstanding_debt_gnf is a cache maintained with every debt
creation, payment, write-off and cancellation. Correctness checks (credit limit,
deactivation) recompute it from the debts under the customer row lock
instead of trusting the cache.

Credit limit: a new debt must satisfy outstanding + amount <= credit limit
when a limit is set. Only an Owner may bypass the check, explicitly, and the
debt then records credit_limit_overridden=True.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..errors import ConflictError, CreditLimitExceededError, ForbiddenError, InvalidTransitionError, ValidationError
from ..extensions import db
from ..models import Customer, Debt, Sale
from ..models.states import CustomerType, DebtStatus, SubmissionStatus
from ..permissions.roles import can_approve, can_manage_customers, can_record_sales, is_owner
from ..time_utils import utcnow
from ..validation import (
    clean_text,
    parse_amount,
    parse_choice,
    parse_date_field,
    parse_int,
    parse_optional_int,
    require_fields,
)
from .concurrency import run_with_retry
from .permission_service import require_role
from .tenant_service import get_scoped, lock_restaurant


def outstanding_from_debts(customer_id: int) -> int:
    """Authoritative outstanding debt: remaining amount of Active debts."""
    total = db.session.query(func.coalesce(func.sum(Debt.remaining_amount), 0)).filter(
        Debt.customer_id == customer_id,
        Debt.status == DebtStatus.ACTIVE,
    ).scalar()
    return int(total or 0)


def check_credit_limit(customer: Customer, amount: int, *, override: bool = False) -> bool:
    """
    Raise CreditLimitExceededError when the new debt would pass the limit.

    Returns True when the limit was exceeded but overridden.
    """
    if customer.credit_limit_gnf is None:
        return False
    outstanding = outstanding_from_debts(customer.id)
    if outstanding + amount <= customer.credit_limit_gnf:
        return False
    if override:
        current_app.logger.warning(
            "Credit limit overridden for customer %s: %s + %s > %s",
            customer.id, outstanding, amount, customer.credit_limit_gnf,
        )
        return True
    raise CreditLimitExceededError(
        f"Credit limit exceeded for {customer.name}",
        customerId=customer.id,
        creditLimit=customer.credit_limit_gnf,
        outstandingDebt=outstanding,
        requestedAmount=amount,
        availableCredit=max(0, customer.credit_limit_gnf - outstanding),
    )


def resolve_override(ctx, requested) -> bool:
    if requested is not True:
        return False
    if not is_owner(ctx.role):
        raise ForbiddenError("Only owners can override a customer's credit limit")
    return True


def lock_customers(ctx, customer_ids) -> dict[int, Customer]:
    """Lock active customers of the tenant, in id order."""
    customers = {}
    for customer_id in sorted(set(customer_ids)):
        customer = get_scoped(Customer, customer_id, ctx, lock=True)
        if not customer.is_active:
            raise ConflictError(f"Customer {customer.name} is inactive", customerId=customer.id)
        customers[customer_id] = customer
    return customers


def _create_debt_locked(
    ctx,
    customer: Customer,
    amount: int,
    *,
    sale_id: int | None = None,
    due_date=None,
    description: str | None = None,
    overridden: bool = False,
) -> Debt:
    """Insert an Active debt and bump the customer cache (no commit)."""
    debt = Debt(
        restaurant_id=customer.restaurant_id,
        customer_id=customer.id,
        sale_id=sale_id,
        principal_amount=amount,
        paid_amount=0,
        remaining_amount=amount,
        status=DebtStatus.ACTIVE,
        due_date=due_date,
        description=description,
        credit_limit_overridden=overridden,
        created_by_user_id=ctx.user_id,
    )
    db.session.add(debt)
    customer.outstanding_debt_gnf += amount
    return debt


# =============================================================================
# CUSTOMERS
# =============================================================================

def _parse_credit_limit(value) -> int | None:
    if value is None or value == "":
        return None
    return parse_amount(value, "creditLimit", allow_zero=True)


def create_customer(ctx, payload: dict) -> Customer:
    require_role(ctx, can_manage_customers, "create customers")
    require_fields(payload, "name")

    customer = Customer(
        restaurant_id=ctx.restaurant_id,
        name=clean_text(payload.get("name")),
        phone=clean_text(payload.get("phone"), max_length=32),
        email=clean_text(payload.get("email")),
        address=clean_text(payload.get("address")),
        customer_type=parse_choice(
            payload.get("customerType") or CustomerType.INDIVIDUAL, "customerType", CustomerType.ALL
        ),
        notes=clean_text(payload.get("notes"), max_length=2000),
        credit_limit_gnf=_parse_credit_limit(payload.get("creditLimit")),
        outstanding_debt_gnf=0,
        is_active=True,
    )

    def _op():
        lock_restaurant(ctx.restaurant_id)
        db.session.add(customer)
        db.session.commit()
        return customer

    return run_with_retry(_op)


def update_customer(ctx, customer_id: int, payload: dict) -> Customer:
    require_role(ctx, can_manage_customers, "update customers")

    def _op():
        lock_restaurant(ctx.restaurant_id)
        customer = get_scoped(Customer, customer_id, ctx, lock=True)
        if "name" in payload:
            name = clean_text(payload.get("name"))
            if not name:
                raise ValidationError("name cannot be empty")
            customer.name = name
        for field, attr, max_length in (
            ("phone", "phone", 32),
            ("email", "email", 255),
            ("address", "address", 255),
            ("notes", "notes", 2000),
        ):
            if field in payload:
                setattr(customer, attr, clean_text(payload.get(field), max_length=max_length))
        if "customerType" in payload:
            customer.customer_type = parse_choice(payload.get("customerType"), "customerType", CustomerType.ALL)
        if "creditLimit" in payload:
            customer.credit_limit_gnf = _parse_credit_limit(payload.get("creditLimit"))
        db.session.commit()
        return customer

    return run_with_retry(_op)


def set_customer_active(ctx, customer_id: int, active: bool) -> Customer:
    """Deactivation is refused while the customer still owes money."""
    require_role(ctx, can_manage_customers, "change customer status")

    def _op():
        lock_restaurant(ctx.restaurant_id)
        customer = get_scoped(Customer, customer_id, ctx, lock=True)
        if not active and customer.is_active:
            outstanding = outstanding_from_debts(customer.id)
            if outstanding > 0:
                raise ConflictError(
                    "Cannot deactivate a customer with outstanding debt",
                    customerId=customer.id,
                    outstandingDebt=outstanding,
                )
        customer.is_active = active
        db.session.commit()
        return customer

    return run_with_retry(_op)


def list_customers(ctx, *, include_inactive: bool = False, search: str | None = None) -> list[Customer]:
    query = db.session.query(Customer).filter(Customer.restaurant_id == ctx.restaurant_id)
    if not include_inactive:
        query = query.filter(Customer.is_active.is_(True))
    if search:
        query = query.filter(Customer.name.ilike(f"%{search.strip()}%"))
    return query.order_by(Customer.name).all()


def get_customer(ctx, customer_id: int) -> Customer:
    return get_scoped(Customer, customer_id, ctx)


# =============================================================================
# DEBTS
# =============================================================================

def create_debt(ctx, payload: dict) -> Debt:
    """Standalone debt (not from a sale submission), same credit-limit rule."""
    require_role(ctx, can_record_sales, "create debts")
    require_fields(payload, "customerId")
    customer_id = parse_int(payload.get("customerId"), "customerId")
    amount = parse_amount(payload.get("principalAmount", payload.get("amountGNF")), "principalAmount")
    due_date = parse_date_field(payload.get("dueDate"), "dueDate", required=False)
    sale_id = parse_optional_int(payload.get("saleId"), "saleId")
    override = resolve_override(ctx, payload.get("allowCreditOverride"))

    def _op():
        lock_restaurant(ctx.restaurant_id)
        if sale_id is not None:
            sale = get_scoped(Sale, sale_id, ctx)
            if sale.status == SubmissionStatus.REJECTED:
                raise ConflictError("Cannot attach a debt to a rejected sale", saleId=sale.id)
        customer = lock_customers(ctx, [customer_id])[customer_id]
        overridden = check_credit_limit(customer, amount, override=override)
        debt = _create_debt_locked(
            ctx, customer, amount,
            sale_id=sale_id,
            due_date=due_date,
            description=clean_text(payload.get("description")),
            overridden=overridden,
        )
        db.session.commit()
        return debt

    return run_with_retry(_op)


def write_off_debt(ctx, debt_id: int, reason: str | None = None) -> Debt:
    """
    Active -> WrittenOff. The remaining amount leaves the customer's
    outstanding debt; a written-off debt accepts no further payments.
    """
    require_role(ctx, can_approve, "write off debts")

    def _op():
        lock_restaurant(ctx.restaurant_id)
        customer_id = get_scoped(Debt, debt_id, ctx).customer_id
        customer = get_scoped(Customer, customer_id, ctx, lock=True)
        debt = get_scoped(Debt, debt_id, ctx, lock=True)
        if debt.status == DebtStatus.WRITTEN_OFF:
            return debt
        if DebtStatus.WRITTEN_OFF not in DebtStatus.TRANSITIONS[debt.status]:
            raise InvalidTransitionError(f"Cannot write off a {debt.status} debt")
        if debt.awaiting_sale_approval:
            raise ConflictError(
                "Review the credit sale instead of writing off its debt",
                debtId=debt.id,
                saleId=debt.sale_id,
            )

        debt.status = DebtStatus.WRITTEN_OFF
        debt.written_off_at = utcnow()
        debt.written_off_by_user_id = ctx.user_id
        debt.write_off_reason = clean_text(reason)
        customer.outstanding_debt_gnf = max(0, customer.outstanding_debt_gnf - debt.remaining_amount)
        db.session.commit()
        return debt

    return run_with_retry(_op)


def list_debts(ctx, *, status: str | None = None, customer_id: int | None = None) -> list[Debt]:
    query = db.session.query(Debt).filter(Debt.restaurant_id == ctx.restaurant_id)
    if status:
        query = query.filter(Debt.status == parse_choice(status, "status", DebtStatus.ALL))
    if customer_id is not None:
        query = query.filter(Debt.customer_id == customer_id)
    return query.order_by(Debt.created_at.desc(), Debt.id.desc()).all()


def get_debt(ctx, debt_id: int) -> Debt:
    return get_scoped(Debt, debt_id, ctx)
