# Overview: Service-layer operations for production logs; submission, kitchen workflow and listings.

"""
Production Logs

A production log records a batch and its ingredients. Ingredient unit costs
are snapshotted at submission so estimated_cost_gnf stays stable when
purchase prices move later. Stock is only deducted on approval (see
approval_service).

preparation_status is the kitchen workflow and is independent of approval:
Planning -> Ready -> InProgress -> Complete, forward only, skipping allowed.
"""

from __future__ import annotations

from ..errors import InvalidTransitionError, ValidationError
from ..extensions import db
from ..models import InventoryItem, ProductionItem, ProductionLog
from ..models.states import PreparationStatus, SubmissionStatus
from ..permissions.roles import can_record_production
from ..validation import clean_text, parse_bool, parse_choice, parse_date_field, parse_quantity, require_fields
from .concurrency import run_with_retry
from .permission_service import require_role
from .stock_service import _aggregate_requirements
from .tenant_service import get_scoped, lock_restaurant


def submit_production(ctx, payload: dict) -> ProductionLog:
    require_role(ctx, can_record_production, "record production")
    require_fields(payload, "productName")
    production_date = parse_date_field(payload.get("date"), "date")
    quantity = parse_quantity(payload.get("quantity"), "quantity")
    deduct_stock = parse_bool(payload.get("deductStock"), "deductStock", default=True)
    preparation_status = parse_choice(
        payload.get("preparationStatus") or PreparationStatus.PLANNING,
        "preparationStatus",
        PreparationStatus.ALL,
    )
    ingredients = payload.get("ingredients") or []
    if not isinstance(ingredients, list):
        raise ValidationError("ingredients must be a list")
    required = _aggregate_requirements(ingredients)
    if deduct_stock and not required:
        raise ValidationError("At least one ingredient is required when deducting stock")

    def _op():
        lock_restaurant(ctx.restaurant_id)
        items = {item_id: get_scoped(InventoryItem, item_id, ctx) for item_id in required}

        production = ProductionLog(
            restaurant_id=ctx.restaurant_id,
            date=production_date,
            product_name=clean_text(payload.get("productName")),
            quantity=quantity,
            notes=clean_text(payload.get("notes"), max_length=2000),
            preparation_status=preparation_status,
            deduct_stock=deduct_stock,
            stock_deducted=False,
            estimated_cost_gnf=int(round(sum(
                qty * items[item_id].unit_cost_gnf for item_id, qty in required.items()
            ))),
            status=SubmissionStatus.PENDING,
            created_by_user_id=ctx.user_id,
        )
        db.session.add(production)
        db.session.flush()
        for item_id, qty in required.items():
            db.session.add(ProductionItem(
                production_log_id=production.id,
                inventory_item_id=item_id,
                quantity=qty,
                unit_cost_gnf=items[item_id].unit_cost_gnf,
            ))
        db.session.commit()
        return production

    return run_with_retry(_op)


def update_preparation_status(ctx, production_id: int, status) -> ProductionLog:
    """Move the kitchen workflow forward. Setting the current status is a no-op."""
    require_role(ctx, can_record_production, "update production status")
    target = parse_choice(status, "preparationStatus", PreparationStatus.ALL)

    def _op():
        lock_restaurant(ctx.restaurant_id)
        production = get_scoped(ProductionLog, production_id, ctx, lock=True)
        if production.preparation_status == target:
            return production
        if target not in PreparationStatus.TRANSITIONS[production.preparation_status]:
            raise InvalidTransitionError(
                f"Cannot move preparation from {production.preparation_status} to {target}",
                preparationStatus=production.preparation_status,
            )
        production.preparation_status = target
        db.session.commit()
        return production

    return run_with_retry(_op)


def list_production(ctx, *, status: str | None = None, start_date=None, end_date=None) -> list[ProductionLog]:
    query = db.session.query(ProductionLog).filter(ProductionLog.restaurant_id == ctx.restaurant_id)
    if status:
        query = query.filter(ProductionLog.status == parse_choice(status, "status", SubmissionStatus.ALL))
    start = parse_date_field(start_date, "startDate", required=False)
    end = parse_date_field(end_date, "endDate", required=False)
    if start:
        query = query.filter(ProductionLog.date >= start)
    if end:
        query = query.filter(ProductionLog.date <= end)
    return query.order_by(ProductionLog.date.desc(), ProductionLog.id.desc()).all()


def get_production(ctx, production_id: int) -> ProductionLog:
    return get_scoped(ProductionLog, production_id, ctx)
