# Overview: Service-layer operations for the stock ledger; movements, availability and transfers.

"""
Stock Ledger Invariants (authoritative)

- StockMovement rows are append-only. Nothing here updates or deletes one.
- quantity is signed: Purchase/TransferIn > 0, Usage/Waste/TransferOut < 0,
  Adjustment keeps the caller's sign.
- InventoryItem.current_stock is a cache of SUM(quantity). It is written
  only by _record_movement_locked, in the same transaction as the insert,
  with the item row locked. audit_service.replay_stock() is the source of
  truth.
- The ledger is permissive: a movement that leaves stock below zero is
  stored and flagged drives_negative. Refusing the triggering operation is
  the caller's policy (check_availability first).
"""

from __future__ import annotations

import uuid

from flask import current_app
from sqlalchemy import func

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import InventoryItem, StockMovement, Supplier
from ..models.states import MovementType
from ..permissions.roles import can_adjust_stock, can_view_inventory
from ..validation import clean_text, parse_amount, parse_choice, parse_int, parse_optional_int, parse_quantity, require_fields
from .concurrency import lock_for_update, run_with_retry
from .permission_service import require_role
from .tenant_service import context_for, get_scoped, lock_restaurant

# Floats are rounded to this many decimals when cached or compared
STOCK_PRECISION = 6


def signed_quantity(movement_type: str, quantity: float) -> float:
    """Apply the sign convention of a movement type to a caller quantity."""
    if movement_type not in MovementType.ALL:
        raise ValidationError(f"type must be one of: {', '.join(sorted(MovementType.ALL))}")
    if quantity == 0:
        raise ValidationError("quantity must not be zero")
    if movement_type in MovementType.INCREASING:
        if quantity < 0:
            raise ValidationError(f"{movement_type} quantity must be positive")
        return quantity
    if movement_type in MovementType.DECREASING:
        return -abs(quantity)
    return quantity


def _record_movement_locked(
    item: InventoryItem,
    movement_type: str,
    quantity: float,
    *,
    user_id: int | None,
    reason: str | None = None,
    unit_cost: int | None = None,
    production_item_id: int | None = None,
    expense_item_id: int | None = None,
    reconciliation_item_id: int | None = None,
    transfer_ref: str | None = None,
) -> StockMovement:
    """
    Insert a movement and update the cached stock. Caller holds the item lock
    and owns the transaction (no commit here).
    """
    signed = signed_quantity(movement_type, quantity)
    new_stock = round(item.current_stock + signed, STOCK_PRECISION)
    drives_negative = signed < 0 and new_stock < 0

    movement = StockMovement(
        restaurant_id=item.restaurant_id,
        item_id=item.id,
        type=movement_type,
        quantity=signed,
        unit_cost=unit_cost,
        reason=reason,
        drives_negative=drives_negative,
        production_item_id=production_item_id,
        expense_item_id=expense_item_id,
        reconciliation_item_id=reconciliation_item_id,
        transfer_ref=transfer_ref,
        created_by_user_id=user_id,
    )
    db.session.add(movement)
    item.current_stock = new_stock

    if drives_negative:
        current_app.logger.warning(
            "Stock movement drives item %s (%s) negative: %s -> %s",
            item.id, item.name, round(new_stock - signed, STOCK_PRECISION), new_stock,
        )
    return movement


def _lock_item(ctx, item_id) -> InventoryItem:
    return get_scoped(InventoryItem, item_id, ctx, lock=True)


def record_movement(ctx, item_id: int, movement_type: str, quantity: float, **meta) -> StockMovement:
    """
    Record one movement against an item of the caller's restaurant.

    meta: reason, unit_cost, production_item_id, expense_item_id,
    reconciliation_item_id, transfer_ref.
    """
    def _op():
        lock_restaurant(ctx.restaurant_id)
        item = _lock_item(ctx, item_id)
        movement = _record_movement_locked(item, movement_type, quantity, user_id=ctx.user_id, **meta)
        db.session.commit()
        return movement

    return run_with_retry(_op)


def current_stock(ctx, item_id: int) -> float:
    """Cached running total; see audit_service.replay_stock for the replay."""
    return get_scoped(InventoryItem, item_id, ctx).current_stock


# =============================================================================
# AVAILABILITY
# =============================================================================

def _aggregate_requirements(ingredients) -> dict[int, float]:
    """Sum required quantities per item, keeping first-seen order."""
    required: dict[int, float] = {}
    for index, ingredient in enumerate(ingredients or []):
        if not isinstance(ingredient, dict):
            raise ValidationError(f"ingredients[{index}] must be an object")
        item_id = parse_int(ingredient.get("itemId"), f"ingredients[{index}].itemId")
        quantity = parse_quantity(ingredient.get("quantity"), f"ingredients[{index}].quantity")
        required[item_id] = required.get(item_id, 0.0) + quantity
    return required


def check_availability(ctx, ingredients) -> dict:
    """
    Compare required quantities with current stock.

    Per item: insufficient when current - required < 0, low when
    0 <= after < min_stock, else ok. estimatedCostGNF uses each item's
    current unit cost. available is false iff any item is insufficient.
    """
    required = _aggregate_requirements(ingredients)
    if not required:
        raise ValidationError("At least one ingredient is required")

    items = {
        item.id: item
        for item in db.session.query(InventoryItem).filter(
            InventoryItem.restaurant_id == ctx.restaurant_id,
            InventoryItem.id.in_(list(required)),
        )
    }
    missing = [item_id for item_id in required if item_id not in items]
    if missing:
        raise NotFoundError("Inventory item not found", itemIds=missing)

    results = []
    estimated_cost = 0.0
    available = True
    for item_id, quantity in required.items():
        item = items[item_id]
        after = round(item.current_stock - quantity, STOCK_PRECISION)
        if after < 0:
            status = "insufficient"
            available = False
        elif after < item.min_stock:
            status = "low"
        else:
            status = "ok"
        estimated_cost += quantity * item.unit_cost_gnf
        results.append({
            "itemId": item.id,
            "itemName": item.name,
            "unit": item.unit,
            "required": quantity,
            "currentStock": item.current_stock,
            "afterProduction": after,
            "unitCostGNF": item.unit_cost_gnf,
            "status": status,
        })

    return {
        "available": available,
        "estimatedCostGNF": int(round(estimated_cost)),
        "items": results,
    }


# =============================================================================
# CATALOGUE
# =============================================================================

def create_item(ctx, payload: dict) -> InventoryItem:
    """Create an item; a non-zero initialStock is booked as an Adjustment."""
    require_role(ctx, can_adjust_stock, "manage inventory items")
    require_fields(payload, "name", "unit")

    name = clean_text(payload.get("name"))
    unit = clean_text(payload.get("unit"), max_length=16)
    min_stock = payload.get("minStock") or 0
    if isinstance(min_stock, bool) or not isinstance(min_stock, (int, float)) or min_stock < 0:
        raise ValidationError("minStock must be a non-negative number")
    unit_cost = parse_amount(payload.get("unitCostGNF"), "unitCostGNF", allow_zero=True)
    initial_stock = payload.get("initialStock")
    supplier_id = parse_optional_int(payload.get("supplierId"), "supplierId")

    def _op():
        lock_restaurant(ctx.restaurant_id)
        if supplier_id is not None:
            get_scoped(Supplier, supplier_id, ctx)
        item = InventoryItem(
            restaurant_id=ctx.restaurant_id,
            name=name,
            category=clean_text(payload.get("category"), max_length=64),
            unit=unit,
            current_stock=0.0,
            min_stock=float(min_stock),
            unit_cost_gnf=unit_cost,
            supplier_id=supplier_id,
        )
        db.session.add(item)
        db.session.flush()
        if initial_stock not in (None, 0, "0"):
            quantity = parse_quantity(initial_stock, "initialStock")
            _record_movement_locked(
                item, MovementType.ADJUSTMENT, quantity,
                user_id=ctx.user_id, reason="Initial stock", unit_cost=unit_cost or None,
            )
        db.session.commit()
        return item

    return run_with_retry(_op)


def list_items(ctx, *, low_stock_only: bool = False, include_inactive: bool = False) -> list[InventoryItem]:
    require_role(ctx, can_view_inventory, "view inventory")
    query = db.session.query(InventoryItem).filter(InventoryItem.restaurant_id == ctx.restaurant_id)
    if not include_inactive:
        query = query.filter(InventoryItem.is_active.is_(True))
    items = query.order_by(InventoryItem.name).all()
    if low_stock_only:
        items = [item for item in items if item.stock_status != "ok"]
    return items


def get_item(ctx, item_id: int) -> InventoryItem:
    require_role(ctx, can_view_inventory, "view inventory")
    return get_scoped(InventoryItem, item_id, ctx)


def list_movements(ctx, *, item_id: int | None = None, movement_type: str | None = None, limit: int = 200):
    require_role(ctx, can_view_inventory, "view inventory")
    query = db.session.query(StockMovement).filter(StockMovement.restaurant_id == ctx.restaurant_id)
    if item_id is not None:
        query = query.filter(StockMovement.item_id == item_id)
    if movement_type:
        query = query.filter(StockMovement.type == parse_choice(movement_type, "type", MovementType.ALL))
    return query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).limit(limit).all()


def movement_summary(ctx, item_id: int) -> dict:
    """Signed totals per movement type for one item."""
    get_scoped(InventoryItem, item_id, ctx)
    rows = (
        db.session.query(StockMovement.type, func.sum(StockMovement.quantity), func.count(StockMovement.id))
        .filter(StockMovement.item_id == item_id)
        .group_by(StockMovement.type)
        .all()
    )
    return {
        movement_type: {"quantity": round(total or 0.0, STOCK_PRECISION), "count": count}
        for movement_type, total, count in rows
    }


# =============================================================================
# MANUAL ADJUSTMENTS AND TRANSFERS
# =============================================================================

def adjust_stock(
    ctx,
    item_id: int,
    movement_type: str,
    quantity,
    reason: str | None = None,
    unit_cost=None,
) -> StockMovement:
    """
    Manual Purchase/Usage/Waste/Adjustment through the ledger.

    A Purchase with a unit cost also becomes the item's current unit cost.
    """
    require_role(ctx, can_adjust_stock, "adjust stock")
    movement_type = parse_choice(movement_type, "type", MovementType.MANUAL)
    quantity = parse_quantity(
        quantity, "quantity", allow_negative=movement_type == MovementType.ADJUSTMENT
    )
    cost = parse_amount(unit_cost, "unitCost", allow_zero=True) if unit_cost is not None else None
    reason = clean_text(reason)

    def _op():
        lock_restaurant(ctx.restaurant_id)
        item = _lock_item(ctx, item_id)
        movement = _record_movement_locked(
            item, movement_type, quantity,
            user_id=ctx.user_id, reason=reason, unit_cost=cost,
        )
        if movement_type == MovementType.PURCHASE and cost:
            item.unit_cost_gnf = cost
        db.session.commit()
        return movement

    return run_with_retry(_op)


def transfer_stock(ctx, source_item_id: int, target_restaurant_id, quantity, reason: str | None = None) -> dict:
    """
    Move stock to another restaurant of the same user.

    TransferOut in the source, TransferIn in the target item with the same
    name and unit (created when missing). Both movements share a transfer_ref.
    """
    require_role(ctx, can_adjust_stock, "transfer stock")
    target_ctx = context_for(ctx.user_id, target_restaurant_id)
    require_role(target_ctx, can_adjust_stock, "transfer stock")
    if target_ctx.restaurant_id == ctx.restaurant_id:
        raise ValidationError("Source and target restaurant must differ")
    quantity = parse_quantity(quantity, "quantity")
    reason = clean_text(reason)

    def _op():
        # Lock tenants in id order
        for restaurant_id in sorted((ctx.restaurant_id, target_ctx.restaurant_id)):
            lock_restaurant(restaurant_id)

        source = _lock_item(ctx, source_item_id)
        if round(source.current_stock - quantity, STOCK_PRECISION) < 0:
            raise InsufficientStockError(
                "Not enough stock to transfer",
                itemId=source.id,
                currentStock=source.current_stock,
                required=quantity,
            )

        target = lock_for_update(
            db.session.query(InventoryItem).filter(
                InventoryItem.restaurant_id == target_ctx.restaurant_id,
                func.lower(InventoryItem.name) == source.name.lower(),
                InventoryItem.unit == source.unit,
            )
        ).first()
        if target is None:
            target = InventoryItem(
                restaurant_id=target_ctx.restaurant_id,
                name=source.name,
                category=source.category,
                unit=source.unit,
                current_stock=0.0,
                min_stock=source.min_stock,
                unit_cost_gnf=source.unit_cost_gnf,
            )
            db.session.add(target)
            db.session.flush()

        transfer_ref = uuid.uuid4().hex
        out_movement = _record_movement_locked(
            source, MovementType.TRANSFER_OUT, quantity,
            user_id=ctx.user_id, reason=reason, unit_cost=source.unit_cost_gnf,
            transfer_ref=transfer_ref,
        )
        in_movement = _record_movement_locked(
            target, MovementType.TRANSFER_IN, quantity,
            user_id=ctx.user_id, reason=reason, unit_cost=source.unit_cost_gnf,
            transfer_ref=transfer_ref,
        )
        db.session.commit()
        return {
            "transferRef": transfer_ref,
            "sourceItem": source.to_dict(),
            "targetItem": target.to_dict(),
            "movements": [out_movement.to_dict(), in_movement.to_dict()],
        }

    return run_with_retry(_op)
