# Overview: Closed state sets and transition tables for every persisted state machine.

"""
Each state machine is a constant class with an ALL frozenset and, where the
state moves, an explicit TRANSITIONS table. The same sets feed the schema's
CheckConstraints, so a value outside the set can never be stored.
"""

from __future__ import annotations

from ..extensions import db


class SubmissionStatus:
    """Approval workflow shared by Sale, Expense, ProductionLog and StockReconciliation."""
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"

    ALL = frozenset({PENDING, APPROVED, REJECTED})
    TRANSITIONS = {
        PENDING: frozenset({APPROVED, REJECTED}),
        APPROVED: frozenset(),
        REJECTED: frozenset(),
    }


class PreparationStatus:
    """Kitchen workflow of a production log; independent of approval."""
    PLANNING = "Planning"
    READY = "Ready"
    IN_PROGRESS = "InProgress"
    COMPLETE = "Complete"

    ORDER = (PLANNING, READY, IN_PROGRESS, COMPLETE)
    ALL = frozenset(ORDER)
    # Forward-only; skipping ahead is allowed
    TRANSITIONS = {
        PLANNING: frozenset({READY, IN_PROGRESS, COMPLETE}),
        READY: frozenset({IN_PROGRESS, COMPLETE}),
        IN_PROGRESS: frozenset({COMPLETE}),
        COMPLETE: frozenset(),
    }


class PaymentStatus:
    UNPAID = "Unpaid"
    PARTIALLY_PAID = "PartiallyPaid"
    PAID = "Paid"

    ALL = frozenset({UNPAID, PARTIALLY_PAID, PAID})


class DebtStatus:
    ACTIVE = "Active"
    PAID_OFF = "PaidOff"
    WRITTEN_OFF = "WrittenOff"
    # Credit sale rejected before any payment could be taken
    CANCELLED = "Cancelled"

    ALL = frozenset({ACTIVE, PAID_OFF, WRITTEN_OFF, CANCELLED})
    TRANSITIONS = {
        ACTIVE: frozenset({PAID_OFF, WRITTEN_OFF, CANCELLED}),
        PAID_OFF: frozenset(),
        WRITTEN_OFF: frozenset(),
        CANCELLED: frozenset(),
    }


class BankTransactionStatus:
    PENDING = "Pending"
    CONFIRMED = "Confirmed"

    ALL = frozenset({PENDING, CONFIRMED})
    TRANSITIONS = {
        PENDING: frozenset({CONFIRMED}),
        CONFIRMED: frozenset(),
    }


class BankTransactionType:
    DEPOSIT = "Deposit"
    WITHDRAWAL = "Withdrawal"

    ALL = frozenset({DEPOSIT, WITHDRAWAL})


class PaymentMethod:
    CASH = "Cash"
    ORANGE_MONEY = "OrangeMoney"
    CARD = "Card"

    ALL = frozenset({CASH, ORANGE_MONEY, CARD})
    # Electronic methods carry an external transaction reference
    REQUIRES_REFERENCE = frozenset({ORANGE_MONEY, CARD})


class TransactionReason:
    SALES_DEPOSIT = "SalesDeposit"
    DEBT_COLLECTION = "DebtCollection"
    EXPENSE_PAYMENT = "ExpensePayment"
    OWNER_WITHDRAWAL = "OwnerWithdrawal"
    CAPITAL_INJECTION = "CapitalInjection"
    OTHER = "Other"

    ALL = frozenset({
        SALES_DEPOSIT, DEBT_COLLECTION, EXPENSE_PAYMENT,
        OWNER_WITHDRAWAL, CAPITAL_INJECTION, OTHER,
    })
    MANUAL = frozenset({OWNER_WITHDRAWAL, CAPITAL_INJECTION, OTHER})


class MovementType:
    PURCHASE = "Purchase"
    USAGE = "Usage"
    WASTE = "Waste"
    ADJUSTMENT = "Adjustment"
    TRANSFER_OUT = "TransferOut"
    TRANSFER_IN = "TransferIn"

    ALL = frozenset({PURCHASE, USAGE, WASTE, ADJUSTMENT, TRANSFER_OUT, TRANSFER_IN})
    INCREASING = frozenset({PURCHASE, TRANSFER_IN})
    DECREASING = frozenset({USAGE, WASTE, TRANSFER_OUT})
    # Adjustment keeps the caller's sign
    MANUAL = frozenset({PURCHASE, USAGE, WASTE, ADJUSTMENT})


class CustomerType:
    INDIVIDUAL = "Individual"
    CORPORATE = "Corporate"
    WHOLESALE = "Wholesale"

    ALL = frozenset({INDIVIDUAL, CORPORATE, WHOLESALE})


def check_in(column: str, values, name: str) -> db.CheckConstraint:
    """CheckConstraint restricting a string column to a closed set."""
    quoted = ", ".join(f"'{v}'" for v in sorted(values))
    return db.CheckConstraint(f"{column} IN ({quoted})", name=name)
