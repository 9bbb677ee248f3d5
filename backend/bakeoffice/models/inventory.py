from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .states import MovementType, check_in


class InventoryItem(db.Model):
    """
    Ingredient or supply held by a restaurant.

    current_stock is a CACHE of SUM(stock_movements.quantity) for the item.
    It is only ever changed by stock_service in the same transaction that
    inserts the movement; audit_service.replay_stock() is the source of truth.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.Index("ix_inventory_items_restaurant_name", "restaurant_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=True)
    unit = db.Column(db.String(16), nullable=False)

    current_stock = db.Column(db.Float, nullable=False, default=0.0)
    min_stock = db.Column(db.Float, nullable=False, default=0.0)
    unit_cost_gnf = db.Column(db.Integer, nullable=False, default=0)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    restaurant = db.relationship("Restaurant", backref=db.backref("inventory_items", lazy=True))
    supplier = db.relationship("Supplier")

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} name={self.name!r} stock={self.current_stock}>"

    @property
    def stock_status(self) -> str:
        if self.current_stock <= 0 or (self.min_stock > 0 and self.current_stock <= self.min_stock * 0.1):
            return "critical"
        if self.current_stock < self.min_stock:
            return "low"
        return "ok"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "restaurantId": self.restaurant_id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "currentStock": self.current_stock,
            "minStock": self.min_stock,
            "unitCostGNF": self.unit_cost_gnf,
            "supplierId": self.supplier_id,
            "isActive": self.is_active,
            "stockStatus": self.stock_status,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only, signed change to an item's quantity.

    quantity is stored signed: Purchase/TransferIn positive, Usage/Waste/
    TransferOut negative, Adjustment either way. Rows are never updated or
    deleted outside the tenant data reset.

    production_item_id, expense_item_id and reconciliation_item_id are unique
    so an approval replayed twice cannot book the same line twice.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_item_created", "item_id", "created_at"),
        db.Index("ix_stock_movements_restaurant_type", "restaurant_id", "type"),
        db.UniqueConstraint("production_item_id", name="uq_stock_movements_production_item"),
        db.UniqueConstraint("expense_item_id", name="uq_stock_movements_expense_item"),
        db.UniqueConstraint("reconciliation_item_id", name="uq_stock_movements_reconciliation_item"),
        check_in("type", MovementType.ALL, "ck_stock_movements_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    unit_cost = db.Column(db.Integer, nullable=True)
    reason = db.Column(db.String(255), nullable=True)

    # Set when the movement left the item below zero (forced Usage/Waste)
    drives_negative = db.Column(db.Boolean, nullable=False, default=False)

    production_item_id = db.Column(db.Integer, db.ForeignKey("production_items.id"), nullable=True)
    expense_item_id = db.Column(db.Integer, db.ForeignKey("expense_items.id"), nullable=True)
    reconciliation_item_id = db.Column(db.Integer, db.ForeignKey("reconciliation_items.id"), nullable=True)
    transfer_ref = db.Column(db.String(64), nullable=True, index=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("InventoryItem", backref=db.backref("movements", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "restaurantId": self.restaurant_id,
            "itemId": self.item_id,
            "type": self.type,
            "quantity": self.quantity,
            "unitCost": self.unit_cost,
            "reason": self.reason,
            "drivesNegative": self.drives_negative,
            "productionItemId": self.production_item_id,
            "expenseItemId": self.expense_item_id,
            "reconciliationItemId": self.reconciliation_item_id,
            "transferRef": self.transfer_ref,
            "createdByUserId": self.created_by_user_id,
            "createdAt": to_utc_z(self.created_at),
        }
