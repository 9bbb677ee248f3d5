from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date
from .states import SubmissionStatus, check_in
from .submission import SubmissionMixin


class Sale(SubmissionMixin, db.Model):
    """
    One day of takings for a restaurant.

    One sale per restaurant per calendar date. total_gnf is the immediate
    payments (cash, Orange Money, card) plus everything sold on credit.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("restaurant_id", "date", name="uq_sales_restaurant_date"),
        db.CheckConstraint("total_gnf > 0", name="ck_sales_total_positive"),
        check_in("status", SubmissionStatus.ALL, "ck_sales_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)

    cash_gnf = db.Column(db.Integer, nullable=False, default=0)
    orange_money_gnf = db.Column(db.Integer, nullable=False, default=0)
    card_gnf = db.Column(db.Integer, nullable=False, default=0)
    credit_total_gnf = db.Column(db.Integer, nullable=False, default=0)
    total_gnf = db.Column(db.Integer, nullable=False)

    items_count = db.Column(db.Integer, nullable=True)
    customers_count = db.Column(db.Integer, nullable=True)
    comments = db.Column(db.Text, nullable=True)

    restaurant = db.relationship("Restaurant", backref=db.backref("sales", lazy=True))
    items = db.relationship("SaleItem", backref="sale", lazy=True, order_by="SaleItem.id")

    def __repr__(self) -> str:
        return f"<Sale id={self.id} date={self.date} total={self.total_gnf} status={self.status}>"

    def payment_amounts(self) -> dict[str, int]:
        """Immediate-payment portion keyed by payment method."""
        return {
            "Cash": self.cash_gnf,
            "OrangeMoney": self.orange_money_gnf,
            "Card": self.card_gnf,
        }

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "restaurantId": self.restaurant_id,
            "date": to_iso_date(self.date),
            "cashGNF": self.cash_gnf,
            "orangeMoneyGNF": self.orange_money_gnf,
            "cardGNF": self.card_gnf,
            "creditTotalGNF": self.credit_total_gnf,
            "totalGNF": self.total_gnf,
            "itemsCount": self.items_count,
            "customersCount": self.customers_count,
            "comments": self.comments,
        }
        data.update(self.submission_dict())
        if include_items:
            data["saleItems"] = [item.to_dict() for item in self.items]
            data["debts"] = [debt.to_dict() for debt in self.debts]
        return data


class SaleItem(db.Model):
    """Product-level breakdown of a sale (informational)."""
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    unit_price_gnf = db.Column(db.Integer, nullable=False, default=0)
    total_gnf = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "saleId": self.sale_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "unitPriceGNF": self.unit_price_gnf,
            "totalGNF": self.total_gnf,
        }
