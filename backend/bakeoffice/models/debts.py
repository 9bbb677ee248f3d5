from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z
from .states import CustomerType, DebtStatus, PaymentMethod, SubmissionStatus, check_in


class Customer(db.Model):
    """
    Customer buying on credit.

    outstanding_debt_gnf is a CACHE of SUM(remaining_amount) over the
    customer's Active debts. It is updated in the same transaction as every
    debt creation, payment and write-off; customer_service never trusts it
    without the row lock on the customer.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_restaurant_name", "restaurant_id", "name"),
        check_in("customer_type", CustomerType.ALL, "ck_customers_type"),
        db.CheckConstraint("outstanding_debt_gnf >= 0", name="ck_customers_outstanding_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    customer_type = db.Column(db.String(16), nullable=False, default=CustomerType.INDIVIDUAL)
    notes = db.Column(db.Text, nullable=True)

    credit_limit_gnf = db.Column(db.Integer, nullable=True)
    outstanding_debt_gnf = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r} outstanding={self.outstanding_debt_gnf}>"

    @property
    def available_credit(self) -> int | None:
        if self.credit_limit_gnf is None:
            return None
        return self.credit_limit_gnf - self.outstanding_debt_gnf

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "restaurantId": self.restaurant_id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "customerType": self.customer_type,
            "notes": self.notes,
            "creditLimit": self.credit_limit_gnf,
            "outstandingDebt": self.outstanding_debt_gnf,
            "availableCredit": self.available_credit,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Debt(db.Model):
    """
    Amount a customer owes, usually from a credit sale.

    A debt born from a sale stays unpayable until the sale is approved and
    moves to Cancelled if the sale is rejected.

    paid_amount / remaining_amount / status are caches over debt_payments,
    written only by payment_service under a row lock on the debt.
    """
    __tablename__ = "debts"
    __table_args__ = (
        db.Index("ix_debts_restaurant_status", "restaurant_id", "status"),
        db.CheckConstraint("principal_amount > 0", name="ck_debts_principal_positive"),
        db.CheckConstraint(
            "paid_amount >= 0 AND paid_amount <= principal_amount",
            name="ck_debts_paid_within_principal",
        ),
        db.CheckConstraint(
            "remaining_amount = principal_amount - paid_amount",
            name="ck_debts_remaining_consistent",
        ),
        check_in("status", DebtStatus.ALL, "ck_debts_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    principal_amount = db.Column(db.Integer, nullable=False)
    paid_amount = db.Column(db.Integer, nullable=False, default=0)
    remaining_amount = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=DebtStatus.ACTIVE)

    due_date = db.Column(db.Date, nullable=True)
    description = db.Column(db.String(255), nullable=True)
    credit_limit_overridden = db.Column(db.Boolean, nullable=False, default=False)

    written_off_at = db.Column(db.DateTime(timezone=True), nullable=True)
    written_off_by_user_id = db.Column(db.Integer, nullable=True)
    write_off_reason = db.Column(db.String(255), nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    customer = db.relationship("Customer", backref=db.backref("debts", lazy=True))
    sale = db.relationship("Sale", backref=db.backref("debts", lazy=True, order_by="Debt.id"))
    payments = db.relationship("DebtPayment", backref="debt", lazy=True, order_by="DebtPayment.id")

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Debt id={self.id} principal={self.principal_amount} remaining={self.remaining_amount}>"

    @property
    def awaiting_sale_approval(self) -> bool:
        """True while the credit sale behind this debt is not yet approved."""
        return self.sale is not None and self.sale.status != SubmissionStatus.APPROVED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "restaurantId": self.restaurant_id,
            "customerId": self.customer_id,
            "customerName": self.customer.name if self.customer else None,
            "saleId": self.sale_id,
            "principalAmount": self.principal_amount,
            "paidAmount": self.paid_amount,
            "remainingAmount": self.remaining_amount,
            "status": self.status,
            "awaitingSaleApproval": self.awaiting_sale_approval,
            "dueDate": to_iso_date(self.due_date),
            "description": self.description,
            "creditLimitOverridden": self.credit_limit_overridden,
            "writtenOffAt": to_utc_z(self.written_off_at),
            "writeOffReason": self.write_off_reason,
            "createdByUserId": self.created_by_user_id,
            "createdAt": to_utc_z(self.created_at),
        }


class DebtPayment(db.Model):
    __tablename__ = "debt_payments"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_debt_payments_amount_positive"),
        check_in("payment_method", PaymentMethod.ALL, "ck_debt_payments_method"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)
    debt_id = db.Column(db.Integer, db.ForeignKey("debts.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    amount = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)
    payment_date = db.Column(db.Date, nullable=False)
    receipt_number = db.Column(db.String(64), nullable=True)
    transaction_id = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    received_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        bank_transaction = self.bank_transaction
        return {
            "id": self.id,
            "restaurantId": self.restaurant_id,
            "debtId": self.debt_id,
            "customerId": self.customer_id,
            "amount": self.amount,
            "paymentMethod": self.payment_method,
            "paymentDate": to_iso_date(self.payment_date),
            "receiptNumber": self.receipt_number,
            "transactionId": self.transaction_id,
            "notes": self.notes,
            "receivedByUserId": self.received_by_user_id,
            "bankTransactionId": bank_transaction.id if bank_transaction else None,
            "createdAt": to_utc_z(self.created_at),
        }
