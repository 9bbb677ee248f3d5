from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z
from .states import (
    BankTransactionStatus,
    BankTransactionType,
    PaymentMethod,
    TransactionReason,
    check_in,
)


class BankTransaction(db.Model):
    """
    Money moving in or out of the restaurant's accounts.

    Only Confirmed rows count toward balances. A row is created Pending and
    confirmed exactly once; version_id turns a racing second confirmation
    into a StaleDataError.

    Links point from the transaction to its origin. Each origin can be
    linked at most once (one deposit per sale and method, one per debt
    payment, one per expense payment).
    """
    __tablename__ = "bank_transactions"
    __table_args__ = (
        db.Index("ix_bank_transactions_restaurant_status", "restaurant_id", "status"),
        db.Index("ix_bank_transactions_restaurant_date", "restaurant_id", "date"),
        db.UniqueConstraint("linked_sale_id", "method", name="uq_bank_transactions_sale_method"),
        db.UniqueConstraint("linked_debt_payment_id", name="uq_bank_transactions_debt_payment"),
        db.UniqueConstraint("linked_expense_payment_id", name="uq_bank_transactions_expense_payment"),
        db.CheckConstraint("amount > 0", name="ck_bank_transactions_amount_positive"),
        check_in("type", BankTransactionType.ALL, "ck_bank_transactions_type"),
        check_in("method", PaymentMethod.ALL, "ck_bank_transactions_method"),
        check_in("reason", TransactionReason.ALL, "ck_bank_transactions_reason"),
        check_in("status", BankTransactionStatus.ALL, "ck_bank_transactions_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)

    date = db.Column(db.Date, nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    type = db.Column(db.String(16), nullable=False)
    method = db.Column(db.String(16), nullable=False)
    reason = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=BankTransactionStatus.PENDING)

    description = db.Column(db.String(255), nullable=True)
    comments = db.Column(db.Text, nullable=True)
    bank_ref = db.Column(db.String(128), nullable=True)
    receipt_url = db.Column(db.String(512), nullable=True)
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    confirmed_by_user_id = db.Column(db.Integer, nullable=True)

    linked_sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    linked_debt_payment_id = db.Column(db.Integer, db.ForeignKey("debt_payments.id"), nullable=True)
    linked_expense_payment_id = db.Column(db.Integer, db.ForeignKey("expense_payments.id"), nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    linked_sale = db.relationship("Sale", backref=db.backref("bank_transactions", lazy=True))
    linked_debt_payment = db.relationship(
        "DebtPayment", backref=db.backref("bank_transaction", uselist=False)
    )
    linked_expense_payment = db.relationship(
        "ExpensePayment", backref=db.backref("bank_transaction", uselist=False)
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<BankTransaction id={self.id} {self.type} {self.method} "
            f"amount={self.amount} status={self.status}>"
        )

    @property
    def signed_amount(self) -> int:
        return self.amount if self.type == BankTransactionType.DEPOSIT else -self.amount

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "restaurantId": self.restaurant_id,
            "date": to_iso_date(self.date),
            "amount": self.amount,
            "type": self.type,
            "method": self.method,
            "reason": self.reason,
            "status": self.status,
            "description": self.description,
            "comments": self.comments,
            "bankRef": self.bank_ref,
            "receiptUrl": self.receipt_url,
            "confirmedAt": to_utc_z(self.confirmed_at),
            "confirmedByUserId": self.confirmed_by_user_id,
            "linkedSaleId": self.linked_sale_id,
            "linkedDebtPaymentId": self.linked_debt_payment_id,
            "linkedExpensePaymentId": self.linked_expense_payment_id,
            "createdByUserId": self.created_by_user_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
