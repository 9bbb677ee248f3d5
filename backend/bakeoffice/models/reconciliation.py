from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date
from .states import SubmissionStatus, check_in
from .submission import SubmissionMixin


class StockReconciliation(SubmissionMixin, db.Model):
    """
    Physical stock count awaiting a manager's decision.

    Each line snapshots the system stock at submission time and the
    variance (physical - system). Approval books one Adjustment movement
    per non-zero variance; nothing touches stock while Pending.
    """
    __tablename__ = "stock_reconciliations"
    __table_args__ = (
        db.Index("ix_stock_reconciliations_restaurant_date", "restaurant_id", "date"),
        check_in("status", SubmissionStatus.ALL, "ck_stock_reconciliations_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    items = db.relationship(
        "ReconciliationItem", backref="reconciliation", lazy=True, order_by="ReconciliationItem.id"
    )

    def __repr__(self) -> str:
        return f"<StockReconciliation id={self.id} date={self.date} status={self.status}>"

    @property
    def variance_count(self) -> int:
        return sum(1 for line in self.items if line.variance != 0)

    @property
    def adjustments_applied(self) -> int:
        return sum(1 for line in self.items if line.adjustment_applied and line.variance != 0)

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "restaurantId": self.restaurant_id,
            "date": to_iso_date(self.date),
            "notes": self.notes,
            "itemCount": len(self.items),
            "varianceCount": self.variance_count,
            "adjustmentsApplied": self.adjustments_applied,
        }
        data.update(self.submission_dict())
        if include_items:
            data["items"] = [line.to_dict() for line in self.items]
        return data


class ReconciliationItem(db.Model):
    __tablename__ = "reconciliation_items"
    __table_args__ = (
        db.UniqueConstraint("reconciliation_id", "inventory_item_id", name="uq_reconciliation_items_item"),
        db.CheckConstraint("physical_count >= 0", name="ck_reconciliation_items_count_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    reconciliation_id = db.Column(
        db.Integer, db.ForeignKey("stock_reconciliations.id"), nullable=False, index=True
    )
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    system_stock = db.Column(db.Float, nullable=False)
    physical_count = db.Column(db.Float, nullable=False)
    variance = db.Column(db.Float, nullable=False)
    adjustment_applied = db.Column(db.Boolean, nullable=False, default=False)

    inventory_item = db.relationship("InventoryItem")

    def to_dict(self) -> dict:
        item = self.inventory_item
        return {
            "id": self.id,
            "itemId": self.inventory_item_id,
            "itemName": item.name if item else None,
            "unit": item.unit if item else None,
            "currentStock": item.current_stock if item else None,
            "systemStock": self.system_stock,
            "physicalCount": self.physical_count,
            "variance": self.variance,
            "adjustmentApplied": self.adjustment_applied,
        }
