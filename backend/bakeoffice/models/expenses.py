from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z
from .states import PaymentMethod, PaymentStatus, SubmissionStatus, check_in
from .submission import SubmissionMixin


class ExpenseCategory(db.Model):
    __tablename__ = "expense_categories"
    __table_args__ = (
        db.UniqueConstraint("restaurant_id", "name", name="uq_expense_categories_restaurant_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "restaurantId": self.restaurant_id,
            "name": self.name,
            "isActive": self.is_active,
        }


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("restaurant_id", "name", name="uq_suppliers_restaurant_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "restaurantId": self.restaurant_id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "isActive": self.is_active,
        }


class Expense(SubmissionMixin, db.Model):
    """
    Obligation to a supplier or for an operating cost.

    total_paid_amount and payment_status are caches over expense_payments.
    They only change inside payment_service, under a row lock on the expense.
    """
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_restaurant_date", "restaurant_id", "date"),
        db.CheckConstraint("amount_gnf > 0", name="ck_expenses_amount_positive"),
        db.CheckConstraint(
            "total_paid_amount >= 0 AND total_paid_amount <= amount_gnf",
            name="ck_expenses_paid_within_amount",
        ),
        check_in("status", SubmissionStatus.ALL, "ck_expenses_status"),
        check_in("payment_status", PaymentStatus.ALL, "ck_expenses_payment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)

    category_id = db.Column(db.Integer, db.ForeignKey("expense_categories.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    amount_gnf = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)
    billing_ref = db.Column(db.String(64), nullable=True)
    is_inventory_purchase = db.Column(db.Boolean, nullable=False, default=False)

    payment_status = db.Column(db.String(16), nullable=False, default=PaymentStatus.UNPAID)
    total_paid_amount = db.Column(db.Integer, nullable=False, default=0)
    fully_paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    category = db.relationship("ExpenseCategory")
    supplier = db.relationship("Supplier")
    items = db.relationship("ExpenseItem", backref="expense", lazy=True, order_by="ExpenseItem.id")
    payments = db.relationship(
        "ExpensePayment", backref="expense", lazy=True, order_by="ExpensePayment.id"
    )

    def __repr__(self) -> str:
        return f"<Expense id={self.id} amount={self.amount_gnf} status={self.status}>"

    @property
    def remaining_amount(self) -> int:
        return self.amount_gnf - self.total_paid_amount

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "restaurantId": self.restaurant_id,
            "date": to_iso_date(self.date),
            "categoryId": self.category_id,
            "categoryName": self.category.name if self.category else None,
            "supplierId": self.supplier_id,
            "amountGNF": self.amount_gnf,
            "description": self.description,
            "billingRef": self.billing_ref,
            "isInventoryPurchase": self.is_inventory_purchase,
            "paymentStatus": self.payment_status,
            "totalPaidAmount": self.total_paid_amount,
            "remainingAmount": self.remaining_amount,
            "fullyPaidAt": to_utc_z(self.fully_paid_at),
        }
        data.update(self.submission_dict())
        if include_items:
            data["expenseItems"] = [item.to_dict() for item in self.items]
        return data


class ExpenseItem(db.Model):
    """Inventory line of an inventory-purchase expense."""
    __tablename__ = "expense_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_expense_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    expense_id = db.Column(db.Integer, db.ForeignKey("expenses.id"), nullable=False, index=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    quantity = db.Column(db.Float, nullable=False)
    unit_cost_gnf = db.Column(db.Integer, nullable=False, default=0)

    inventory_item = db.relationship("InventoryItem")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "expenseId": self.expense_id,
            "inventoryItemId": self.inventory_item_id,
            "itemName": self.inventory_item.name if self.inventory_item else None,
            "quantity": self.quantity,
            "unitCostGNF": self.unit_cost_gnf,
        }


class ExpensePayment(db.Model):
    __tablename__ = "expense_payments"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_expense_payments_amount_positive"),
        check_in("payment_method", PaymentMethod.ALL, "ck_expense_payments_method"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    expense_id = db.Column(db.Integer, db.ForeignKey("expenses.id"), nullable=False, index=True)

    amount = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=False)
    paid_by_user_id = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    receipt_url = db.Column(db.String(512), nullable=True)

    def to_dict(self) -> dict:
        # The bank side owns the link column
        bank_transaction = self.bank_transaction
        return {
            "id": self.id,
            "expenseId": self.expense_id,
            "amount": self.amount,
            "paymentMethod": self.payment_method,
            "paidAt": to_utc_z(self.paid_at),
            "paidByUserId": self.paid_by_user_id,
            "notes": self.notes,
            "receiptUrl": self.receipt_url,
            "bankTransactionId": bank_transaction.id if bank_transaction else None,
        }
