# Overview: Service-layer operations for payments; allocates expense and debt payments.

"""
Payment Allocator

WHY: Expenses and debts are obligations paid in instalments. Every payment
re-derives the obligation's paid / remaining / status fields in the same
transaction as the payment insert.

INVARIANTS:
- Sum of payments never exceeds the amount due. Checked per allocation,
  under a row lock on the obligation, so two concurrent payments cannot
  both pass against a stale paid amount.
- Status is a pure function of paid vs due (see payment_status_for).
- Each payment spawns exactly one Pending bank transaction:
  Withdrawal/ExpensePayment for expenses, Deposit/DebtCollection for debts.
- Not idempotent: each call creates a new payment row.
- Debts born from a credit sale accept payments only once the sale is
  Approved; a rejected sale leaves them Cancelled.
"""

from __future__ import annotations

from ..errors import ConflictError, OverpaymentError, ValidationError
from ..extensions import db
from ..models import Customer, Debt, DebtPayment, Expense, ExpensePayment
from ..models.states import (
    BankTransactionType,
    DebtStatus,
    PaymentMethod,
    PaymentStatus,
    SubmissionStatus,
    TransactionReason,
)
from ..permissions.roles import (
    can_collect_debt_payments,
    can_record_expense_payments,
)
from ..time_utils import utcnow
from ..validation import clean_text, parse_amount, parse_choice, parse_date_field
from .bank_service import spawn_transaction
from .concurrency import lock_for_update, run_with_retry
from .permission_service import require_role
from .tenant_service import get_scoped, lock_restaurant

QUICK_AMOUNT_PERCENTAGES = (25, 50, 75, 100)

OBLIGATION_EXPENSE = "expense"
OBLIGATION_DEBT = "debt"


def payment_status_for(paid: int, due: int) -> str:
    if paid <= 0:
        return PaymentStatus.UNPAID
    if paid < due:
        return PaymentStatus.PARTIALLY_PAID
    return PaymentStatus.PAID


def quick_amounts(remaining: int) -> list[dict]:
    """25/50/75/100 % shortcuts of the remaining amount (100 % is exact)."""
    if remaining <= 0:
        return []
    return [
        {"percentage": pct, "amount": remaining if pct == 100 else remaining * pct // 100}
        for pct in QUICK_AMOUNT_PERCENTAGES
    ]


def _check_overpayment(paid_so_far: int, amount: int, due: int, **details) -> None:
    if paid_so_far + amount > due:
        raise OverpaymentError(
            f"Amount exceeds remaining balance of {due - paid_so_far} GNF",
            remainingAmount=due - paid_so_far,
            **details,
        )


# =============================================================================
# EXPENSES
# =============================================================================

def _allocate_expense_locked(ctx, expense: Expense, amount: int, method: str, payload: dict) -> ExpensePayment:
    if expense.status != SubmissionStatus.APPROVED:
        raise ConflictError("Payment can only be recorded for approved expenses")
    _check_overpayment(expense.total_paid_amount, amount, expense.amount_gnf, expenseId=expense.id)

    now = utcnow()
    payment = ExpensePayment(
        expense_id=expense.id,
        amount=amount,
        payment_method=method,
        paid_at=now,
        paid_by_user_id=ctx.user_id,
        notes=clean_text(payload.get("notes"), max_length=2000),
        receipt_url=clean_text(payload.get("receiptUrl"), max_length=512),
    )
    db.session.add(payment)
    db.session.flush()

    expense.total_paid_amount += amount
    expense.payment_status = payment_status_for(expense.total_paid_amount, expense.amount_gnf)
    if expense.payment_status == PaymentStatus.PAID:
        expense.fully_paid_at = now

    description = f"Payment for expense: {expense.category.name if expense.category else expense.id}"
    if expense.description:
        description = f"{description} - {expense.description}"
    spawn_transaction(
        restaurant_id=expense.restaurant_id,
        user_id=ctx.user_id,
        amount=amount,
        tx_type=BankTransactionType.WITHDRAWAL,
        method=method,
        reason=TransactionReason.EXPENSE_PAYMENT,
        description=description[:255],
        linked_expense_payment_id=payment.id,
    )
    return payment


def record_expense_payment(ctx, expense_id: int, payload: dict) -> ExpensePayment:
    require_role(ctx, can_record_expense_payments, "record expense payments")
    amount = parse_amount(payload.get("amount"), "amount")
    method = parse_choice(payload.get("paymentMethod"), "paymentMethod", PaymentMethod.ALL)

    def _op():
        lock_restaurant(ctx.restaurant_id)
        expense = get_scoped(Expense, expense_id, ctx, lock=True)
        payment = _allocate_expense_locked(ctx, expense, amount, method, payload)
        db.session.commit()
        return payment

    return run_with_retry(_op)


def expense_payment_summary(ctx, expense_id: int) -> dict:
    expense = get_scoped(Expense, expense_id, ctx)
    remaining = expense.remaining_amount
    return {
        "payments": [payment.to_dict() for payment in reversed(expense.payments)],
        "summary": {
            "totalAmount": expense.amount_gnf,
            "totalPaid": expense.total_paid_amount,
            "remainingAmount": remaining,
            "paymentCount": len(expense.payments),
            "paymentStatus": expense.payment_status,
            "quickAmounts": quick_amounts(remaining),
        },
    }


# =============================================================================
# DEBTS
# =============================================================================

def _allocate_debt_locked(ctx, customer: Customer, debt: Debt, amount: int, method: str, payload: dict) -> DebtPayment:
    if debt.status == DebtStatus.WRITTEN_OFF:
        raise ConflictError("Cannot record payment for a written-off debt")
    if debt.status == DebtStatus.CANCELLED:
        raise ConflictError("Cannot record payment for a cancelled debt", debtId=debt.id)
    if debt.awaiting_sale_approval:
        raise ConflictError(
            "Payment can only be recorded once the credit sale is approved",
            debtId=debt.id,
            saleId=debt.sale_id,
            saleStatus=debt.sale.status,
        )
    _check_overpayment(debt.paid_amount, amount, debt.principal_amount, debtId=debt.id)

    transaction_ref = clean_text(payload.get("transactionId"), max_length=128)
    if method in PaymentMethod.REQUIRES_REFERENCE and not transaction_ref:
        raise ValidationError(f"transactionId is required for {method} payments")

    payment_date = parse_date_field(payload.get("paymentDate"), "paymentDate", required=False) or utcnow().date()

    payment = DebtPayment(
        restaurant_id=debt.restaurant_id,
        debt_id=debt.id,
        customer_id=debt.customer_id,
        amount=amount,
        payment_method=method,
        payment_date=payment_date,
        receipt_number=clean_text(payload.get("receiptNumber"), max_length=64),
        transaction_id=transaction_ref,
        notes=clean_text(payload.get("notes"), max_length=2000),
        received_by_user_id=ctx.user_id,
    )
    db.session.add(payment)
    db.session.flush()

    debt.paid_amount += amount
    debt.remaining_amount = debt.principal_amount - debt.paid_amount
    if debt.remaining_amount == 0:
        debt.status = DebtStatus.PAID_OFF
    customer.outstanding_debt_gnf = max(0, customer.outstanding_debt_gnf - amount)

    spawn_transaction(
        restaurant_id=debt.restaurant_id,
        user_id=ctx.user_id,
        amount=amount,
        tx_type=BankTransactionType.DEPOSIT,
        method=method,
        reason=TransactionReason.DEBT_COLLECTION,
        tx_date=payment_date,
        description=f"Debt payment from {customer.name}"[:255],
        linked_debt_payment_id=payment.id,
    )
    return payment


def record_debt_payment(ctx, debt_id: int, payload: dict) -> DebtPayment:
    require_role(ctx, can_collect_debt_payments, "collect debt payments")
    amount = parse_amount(payload.get("amount"), "amount")
    method = parse_choice(payload.get("paymentMethod"), "paymentMethod", PaymentMethod.ALL)

    def _op():
        lock_restaurant(ctx.restaurant_id)
        # Lock order is customer, then debt (same as debt creation)
        customer_id = get_scoped(Debt, debt_id, ctx).customer_id
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).one()
        debt = get_scoped(Debt, debt_id, ctx, lock=True)
        payment = _allocate_debt_locked(ctx, customer, debt, amount, method, payload)
        db.session.commit()
        return payment

    return run_with_retry(_op)


def debt_payment_summary(ctx, debt_id: int) -> dict:
    debt = get_scoped(Debt, debt_id, ctx)
    payable = debt.status == DebtStatus.ACTIVE and not debt.awaiting_sale_approval
    return {
        "payments": [payment.to_dict() for payment in reversed(debt.payments)],
        "summary": {
            "principalAmount": debt.principal_amount,
            "paidAmount": debt.paid_amount,
            "remainingAmount": debt.remaining_amount,
            "paymentCount": len(debt.payments),
            "status": debt.status,
            "awaitingSaleApproval": debt.awaiting_sale_approval,
            "quickAmounts": quick_amounts(debt.remaining_amount) if payable else [],
        },
    }


# =============================================================================
# GENERIC ENTRY POINT
# =============================================================================

def allocate_payment(ctx, obligation_kind: str, obligation_id: int, amount, method: str, **meta):
    """
    Record a payment against an expense or a debt.

    meta carries the obligation-specific fields (notes, receiptUrl for
    expenses; paymentDate, receiptNumber, transactionId for debts).
    """
    payload = dict(meta, amount=amount, paymentMethod=method)
    if obligation_kind == OBLIGATION_EXPENSE:
        return record_expense_payment(ctx, obligation_id, payload)
    if obligation_kind == OBLIGATION_DEBT:
        return record_debt_payment(ctx, obligation_id, payload)
    raise ValidationError(f"Unknown obligation kind: {obligation_kind}")
