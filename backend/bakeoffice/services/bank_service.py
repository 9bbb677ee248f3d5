# Overview: Service-layer operations for bank transactions; Pending -> Confirmed lifecycle and balances.

"""
Bank Transaction Reconciler

INVARIANTS:
- Every transaction is created Pending, manual or spawned.
- Pending -> Confirmed happens once. Re-confirming is a no-op that returns
  the stored record; editing a Confirmed transaction is AlreadyConfirmedError.
- Balances sum Confirmed rows only, per method, Deposit minus Withdrawal.
  Pending rows feed the pending aggregates only, so a row is always in
  exactly one bucket.
- Links point from the transaction to its origin (sale, debt payment,
  expense payment) and each origin is linked at most once.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import case, func

from ..errors import (
    AlreadyConfirmedError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from ..extensions import db
from ..models import BankTransaction, DebtPayment, ExpensePayment, Sale
from ..models.states import (
    BankTransactionStatus,
    BankTransactionType,
    PaymentMethod,
    TransactionReason,
)
from ..permissions.roles import can_access_bank
from ..time_utils import utcnow
from ..validation import (
    clean_text,
    parse_amount,
    parse_choice,
    parse_date_field,
    parse_optional_int,
)
from .concurrency import run_with_retry
from .permission_service import require_role
from .tenant_service import get_scoped, lock_restaurant

# Reasons that fix the transaction type
REASON_TYPES = {
    TransactionReason.SALES_DEPOSIT: BankTransactionType.DEPOSIT,
    TransactionReason.DEBT_COLLECTION: BankTransactionType.DEPOSIT,
    TransactionReason.CAPITAL_INJECTION: BankTransactionType.DEPOSIT,
    TransactionReason.EXPENSE_PAYMENT: BankTransactionType.WITHDRAWAL,
    TransactionReason.OWNER_WITHDRAWAL: BankTransactionType.WITHDRAWAL,
}

METHOD_KEYS = {
    PaymentMethod.CASH: "cash",
    PaymentMethod.ORANGE_MONEY: "orangeMoney",
    PaymentMethod.CARD: "card",
}

EDITABLE_FIELDS = ("date", "amount", "method", "reason", "description", "comments", "bankRef", "receiptUrl")
# Fields a spawned (linked) transaction inherits from its origin
ORIGIN_FIELDS = ("amount", "method", "reason")


def _check_reason_type(reason: str, tx_type: str) -> None:
    expected = REASON_TYPES.get(reason)
    if expected and expected != tx_type:
        raise ValidationError(f"reason {reason} requires type {expected}")


def spawn_transaction(
    *,
    restaurant_id: int,
    user_id: int | None,
    amount: int,
    tx_type: str,
    method: str,
    reason: str,
    tx_date: date | None = None,
    description: str | None = None,
    linked_sale_id: int | None = None,
    linked_debt_payment_id: int | None = None,
    linked_expense_payment_id: int | None = None,
) -> BankTransaction:
    """
    Insert a Pending transaction inside the caller's transaction (no commit).

    Used by sale approval and the payment allocator.
    """
    _check_reason_type(reason, tx_type)
    transaction = BankTransaction(
        restaurant_id=restaurant_id,
        date=tx_date or utcnow().date(),
        amount=amount,
        type=tx_type,
        method=method,
        reason=reason,
        status=BankTransactionStatus.PENDING,
        description=description,
        linked_sale_id=linked_sale_id,
        linked_debt_payment_id=linked_debt_payment_id,
        linked_expense_payment_id=linked_expense_payment_id,
        created_by_user_id=user_id,
    )
    db.session.add(transaction)
    return transaction


def _validate_links(ctx, payload: dict, method: str) -> dict:
    links = {
        "linked_sale_id": parse_optional_int(payload.get("linkedSaleId"), "linkedSaleId"),
        "linked_debt_payment_id": parse_optional_int(payload.get("linkedDebtPaymentId"), "linkedDebtPaymentId"),
        "linked_expense_payment_id": parse_optional_int(
            payload.get("linkedExpensePaymentId"), "linkedExpensePaymentId"
        ),
    }
    if sum(1 for value in links.values() if value is not None) > 1:
        raise ValidationError("A transaction links to at most one origin")

    if links["linked_sale_id"] is not None:
        get_scoped(Sale, links["linked_sale_id"], ctx)
        taken = db.session.query(BankTransaction.id).filter_by(
            linked_sale_id=links["linked_sale_id"], method=method
        ).first()
        if taken:
            raise ConflictError("Sale already has a bank transaction for this method")

    if links["linked_debt_payment_id"] is not None:
        get_scoped(DebtPayment, links["linked_debt_payment_id"], ctx)
        if db.session.query(BankTransaction.id).filter_by(
            linked_debt_payment_id=links["linked_debt_payment_id"]
        ).first():
            raise ConflictError("Debt payment already has a bank transaction")

    if links["linked_expense_payment_id"] is not None:
        payment = db.session.get(ExpensePayment, links["linked_expense_payment_id"])
        if payment is None or payment.expense.restaurant_id != ctx.restaurant_id:
            raise NotFoundError("ExpensePayment not found")
        if db.session.query(BankTransaction.id).filter_by(
            linked_expense_payment_id=links["linked_expense_payment_id"]
        ).first():
            raise ConflictError("Expense payment already has a bank transaction")

    return links


def create_transaction(ctx, payload: dict) -> BankTransaction:
    """
    Manual entry (capital injection, owner withdrawal, deposits).

    Always created Pending, whatever status the payload carries.
    """
    require_role(ctx, can_access_bank, "access bank transactions")

    tx_date = parse_date_field(payload.get("date"), "date")
    amount = parse_amount(payload.get("amount"), "amount")
    tx_type = parse_choice(payload.get("type"), "type", BankTransactionType.ALL)
    method = parse_choice(payload.get("method"), "method", PaymentMethod.ALL)
    reason = parse_choice(payload.get("reason"), "reason", TransactionReason.ALL)
    _check_reason_type(reason, tx_type)

    def _op():
        lock_restaurant(ctx.restaurant_id)
        links = _validate_links(ctx, payload, method)
        transaction = spawn_transaction(
            restaurant_id=ctx.restaurant_id,
            user_id=ctx.user_id,
            amount=amount,
            tx_type=tx_type,
            method=method,
            reason=reason,
            tx_date=tx_date,
            description=clean_text(payload.get("description")),
            **links,
        )
        transaction.comments = clean_text(payload.get("comments"), max_length=2000)
        transaction.bank_ref = clean_text(payload.get("bankRef"), max_length=128)
        transaction.receipt_url = clean_text(payload.get("receiptUrl"), max_length=512)
        db.session.commit()
        return transaction

    return run_with_retry(_op)


def _confirm_locked(ctx, transaction: BankTransaction, bank_ref=None, comments=None) -> BankTransaction:
    if transaction.status == BankTransactionStatus.CONFIRMED:
        return transaction
    if BankTransactionStatus.CONFIRMED not in BankTransactionStatus.TRANSITIONS[transaction.status]:
        raise InvalidTransitionError(f"Cannot confirm a {transaction.status} transaction")

    transaction.status = BankTransactionStatus.CONFIRMED
    transaction.confirmed_at = utcnow()
    transaction.confirmed_by_user_id = ctx.user_id
    if bank_ref is not None:
        transaction.bank_ref = clean_text(bank_ref, max_length=128)
    if comments is not None:
        transaction.comments = clean_text(comments, max_length=2000)
    return transaction


def confirm_transaction(ctx, transaction_id: int, bank_ref: str | None = None, comments: str | None = None) -> BankTransaction:
    """
    Pending -> Confirmed.

    Confirming an already Confirmed transaction returns it unchanged; the
    row lock plus version_id make concurrent confirmations collapse into one.
    """
    require_role(ctx, can_access_bank, "confirm bank transactions")

    def _op():
        lock_restaurant(ctx.restaurant_id)
        transaction = get_scoped(BankTransaction, transaction_id, ctx, lock=True)
        already_confirmed = transaction.status == BankTransactionStatus.CONFIRMED
        _confirm_locked(ctx, transaction, bank_ref, comments)
        if not already_confirmed:
            db.session.commit()
        return transaction

    return run_with_retry(_op)


def update_transaction(ctx, transaction_id: int, payload: dict) -> BankTransaction:
    """
    Edit a Pending transaction and optionally confirm it.

    status=Confirmed routes through the confirmation path. Any field edit of
    a Confirmed transaction fails; so does moving it back to Pending.
    """
    require_role(ctx, can_access_bank, "update bank transactions")

    status = payload.get("status")
    if status is not None:
        status = parse_choice(status, "status", BankTransactionStatus.ALL)
    edits = {key: payload[key] for key in EDITABLE_FIELDS if key in payload}

    def _op():
        lock_restaurant(ctx.restaurant_id)
        transaction = get_scoped(BankTransaction, transaction_id, ctx, lock=True)

        if transaction.status == BankTransactionStatus.CONFIRMED:
            if status == BankTransactionStatus.PENDING:
                raise InvalidTransitionError("A confirmed transaction cannot return to Pending")
            field_edits = {k: v for k, v in edits.items() if k not in ("bankRef", "comments")}
            if field_edits or (status is None and edits):
                raise AlreadyConfirmedError(
                    "Confirmed transactions cannot be edited",
                    transactionId=transaction.id,
                )
            return transaction

        _apply_edits(transaction, edits)
        if status == BankTransactionStatus.CONFIRMED:
            _confirm_locked(ctx, transaction)
        db.session.commit()
        return transaction

    return run_with_retry(_op)


def _apply_edits(transaction: BankTransaction, edits: dict) -> None:
    is_linked = any((
        transaction.linked_sale_id,
        transaction.linked_debt_payment_id,
        transaction.linked_expense_payment_id,
    ))
    if is_linked and any(field in edits for field in ORIGIN_FIELDS):
        raise ValidationError("Amount, method and reason of a linked transaction follow its origin")

    if "date" in edits:
        transaction.date = parse_date_field(edits["date"], "date")
    if "amount" in edits:
        transaction.amount = parse_amount(edits["amount"], "amount")
    if "method" in edits:
        transaction.method = parse_choice(edits["method"], "method", PaymentMethod.ALL)
    if "reason" in edits:
        reason = parse_choice(edits["reason"], "reason", TransactionReason.ALL)
        _check_reason_type(reason, transaction.type)
        transaction.reason = reason
    if "description" in edits:
        transaction.description = clean_text(edits["description"])
    if "comments" in edits:
        transaction.comments = clean_text(edits["comments"], max_length=2000)
    if "bankRef" in edits:
        transaction.bank_ref = clean_text(edits["bankRef"], max_length=128)
    if "receiptUrl" in edits:
        transaction.receipt_url = clean_text(edits["receiptUrl"], max_length=512)


# =============================================================================
# AGGREGATES
# =============================================================================

def _signed_amount():
    return case(
        (BankTransaction.type == BankTransactionType.DEPOSIT, BankTransaction.amount),
        else_=-BankTransaction.amount,
    )


def get_balances(restaurant_id: int) -> dict:
    """Confirmed-only balance per method plus the total."""
    rows = (
        db.session.query(BankTransaction.method, func.coalesce(func.sum(_signed_amount()), 0))
        .filter(
            BankTransaction.restaurant_id == restaurant_id,
            BankTransaction.status == BankTransactionStatus.CONFIRMED,
        )
        .group_by(BankTransaction.method)
        .all()
    )
    balances = {key: 0 for key in METHOD_KEYS.values()}
    for method, total in rows:
        balances[METHOD_KEYS[method]] = int(total or 0)
    balances["total"] = sum(balances.values())
    return balances


def get_pending(restaurant_id: int) -> dict:
    """Pending-only aggregates; never part of any balance."""
    deposits, withdrawals, count = (
        db.session.query(
            func.coalesce(func.sum(case(
                (BankTransaction.type == BankTransactionType.DEPOSIT, BankTransaction.amount), else_=0
            )), 0),
            func.coalesce(func.sum(case(
                (BankTransaction.type == BankTransactionType.WITHDRAWAL, BankTransaction.amount), else_=0
            )), 0),
            func.count(BankTransaction.id),
        )
        .filter(
            BankTransaction.restaurant_id == restaurant_id,
            BankTransaction.status == BankTransactionStatus.PENDING,
        )
        .one()
    )
    return {
        "totalPendingDeposits": int(deposits or 0),
        "totalPendingWithdrawals": int(withdrawals or 0),
        "pendingCount": int(count or 0),
    }


def balances_for(ctx) -> dict:
    require_role(ctx, can_access_bank, "view bank balances")
    return {"balances": get_balances(ctx.restaurant_id), "pending": get_pending(ctx.restaurant_id)}


def list_transactions(ctx, filters: dict | None = None) -> dict:
    """Transactions newest first, with a per-method summary of the listed rows."""
    require_role(ctx, can_access_bank, "view bank transactions")
    filters = filters or {}

    query = db.session.query(BankTransaction).filter(BankTransaction.restaurant_id == ctx.restaurant_id)
    if filters.get("status"):
        query = query.filter(BankTransaction.status == parse_choice(filters["status"], "status", BankTransactionStatus.ALL))
    if filters.get("type"):
        query = query.filter(BankTransaction.type == parse_choice(filters["type"], "type", BankTransactionType.ALL))
    if filters.get("method"):
        query = query.filter(BankTransaction.method == parse_choice(filters["method"], "method", PaymentMethod.ALL))
    if filters.get("reason"):
        query = query.filter(BankTransaction.reason == parse_choice(filters["reason"], "reason", TransactionReason.ALL))
    start = parse_date_field(filters.get("startDate"), "startDate", required=False)
    end = parse_date_field(filters.get("endDate"), "endDate", required=False)
    if start:
        query = query.filter(BankTransaction.date >= start)
    if end:
        query = query.filter(BankTransaction.date <= end)

    transactions = query.order_by(BankTransaction.date.desc(), BankTransaction.id.desc()).all()

    summary = {
        key: {"deposits": 0, "withdrawals": 0, "pending": 0}
        for key in METHOD_KEYS.values()
    }
    for transaction in transactions:
        bucket = summary[METHOD_KEYS[transaction.method]]
        if transaction.status == BankTransactionStatus.PENDING:
            bucket["pending"] += transaction.signed_amount
        elif transaction.type == BankTransactionType.DEPOSIT:
            bucket["deposits"] += transaction.amount
        else:
            bucket["withdrawals"] += transaction.amount

    return {
        "transactions": [transaction.to_dict() for transaction in transactions],
        "summary": summary,
    }
