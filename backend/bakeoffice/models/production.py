from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z
from .states import PreparationStatus, SubmissionStatus, check_in
from .submission import SubmissionMixin


class ProductionLog(SubmissionMixin, db.Model):
    """
    A batch produced in the kitchen.

    Two independent state machines: status is the approval workflow,
    preparation_status is the kitchen workflow. stock_deducted flips
    false -> true exactly once, together with the Usage movements.
    """
    __tablename__ = "production_logs"
    __table_args__ = (
        db.Index("ix_production_logs_restaurant_date", "restaurant_id", "date"),
        db.CheckConstraint("quantity > 0", name="ck_production_logs_quantity_positive"),
        check_in("status", SubmissionStatus.ALL, "ck_production_logs_status"),
        check_in("preparation_status", PreparationStatus.ALL, "ck_production_logs_preparation_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    preparation_status = db.Column(db.String(16), nullable=False, default=PreparationStatus.PLANNING)
    deduct_stock = db.Column(db.Boolean, nullable=False, default=True)
    stock_deducted = db.Column(db.Boolean, nullable=False, default=False)
    stock_deducted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    estimated_cost_gnf = db.Column(db.Integer, nullable=False, default=0)

    items = db.relationship("ProductionItem", backref="production_log", lazy=True, order_by="ProductionItem.id")

    def __repr__(self) -> str:
        return f"<ProductionLog id={self.id} product={self.product_name!r} status={self.status}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "restaurantId": self.restaurant_id,
            "date": to_iso_date(self.date),
            "productName": self.product_name,
            "quantity": self.quantity,
            "notes": self.notes,
            "preparationStatus": self.preparation_status,
            "deductStock": self.deduct_stock,
            "stockDeducted": self.stock_deducted,
            "stockDeductedAt": to_utc_z(self.stock_deducted_at),
            "estimatedCostGNF": self.estimated_cost_gnf,
        }
        data.update(self.submission_dict())
        if include_items:
            data["ingredientDetails"] = [item.to_dict() for item in self.items]
        return data


class ProductionItem(db.Model):
    """Ingredient consumed by a production log, with its cost at submission time."""
    __tablename__ = "production_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_production_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    production_log_id = db.Column(db.Integer, db.ForeignKey("production_logs.id"), nullable=False, index=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    quantity = db.Column(db.Float, nullable=False)
    unit_cost_gnf = db.Column(db.Integer, nullable=False, default=0)

    inventory_item = db.relationship("InventoryItem")

    def to_dict(self) -> dict:
        item = self.inventory_item
        return {
            "id": self.id,
            "itemId": self.inventory_item_id,
            "itemName": item.name if item else None,
            "unit": item.unit if item else None,
            "quantity": self.quantity,
            "unitCostGNF": self.unit_cost_gnf,
        }
