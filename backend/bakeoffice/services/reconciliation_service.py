# Overview: Service-layer operations for stock counts; snapshot system stock and variances for review.

"""
Stock Reconciliation

Staff count what is physically on the shelves. Each counted item stores the
system stock at submission time, the physical count and the variance
(physical - system). The count is submitted Pending and changes nothing;
approval (approval_service) books the stored variances as Adjustment
movements, so movements recorded after the count are kept.
"""

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import InventoryItem, ReconciliationItem, StockReconciliation
from ..models.states import SubmissionStatus
from ..permissions.roles import can_count_stock, can_view_inventory
from ..time_utils import utcnow
from ..validation import clean_text, parse_choice, parse_date_field, parse_int, parse_quantity
from .concurrency import run_with_retry
from .permission_service import require_role
from .stock_service import STOCK_PRECISION
from .tenant_service import get_scoped, lock_restaurant


def _parse_count(value, field: str) -> float:
    """Physical count: zero or a positive number."""
    if not isinstance(value, bool) and value in (0, "0"):
        return 0.0
    return parse_quantity(value, field)


def _parse_lines(lines) -> dict[int, float]:
    if not isinstance(lines, list) or not lines:
        raise ValidationError("At least one item is required")
    counts: dict[int, float] = {}
    for index, line in enumerate(lines):
        if not isinstance(line, dict):
            raise ValidationError(f"items[{index}] must be an object")
        item_id = parse_int(line.get("itemId", line.get("inventoryItemId")), f"items[{index}].itemId")
        if item_id in counts:
            raise ValidationError(f"Item {item_id} is counted twice")
        counts[item_id] = _parse_count(line.get("physicalCount"), f"items[{index}].physicalCount")
    return counts


def submit_reconciliation(ctx, payload: dict) -> StockReconciliation:
    """
    Record a physical count as a Pending reconciliation.

    payload: {date?, notes?, items: [{itemId, physicalCount}]}
    Every counted item must be an active item of the caller's restaurant.
    """
    require_role(ctx, can_count_stock, "submit stock counts")
    counts = _parse_lines(payload.get("items"))
    count_date = parse_date_field(payload.get("date"), "date", required=False) or utcnow().date()

    def _op():
        lock_restaurant(ctx.restaurant_id)
        items = {}
        missing = []
        for item_id in counts:
            try:
                item = get_scoped(InventoryItem, item_id, ctx)
            except NotFoundError:
                missing.append(item_id)
                continue
            if not item.is_active:
                missing.append(item_id)
                continue
            items[item_id] = item
        if missing:
            raise ValidationError("Some inventory items not found", missingItems=missing)

        reconciliation = StockReconciliation(
            restaurant_id=ctx.restaurant_id,
            date=count_date,
            notes=clean_text(payload.get("notes"), max_length=2000),
            status=SubmissionStatus.PENDING,
            created_by_user_id=ctx.user_id,
        )
        db.session.add(reconciliation)
        db.session.flush()
        for item_id, physical in counts.items():
            system = items[item_id].current_stock
            db.session.add(ReconciliationItem(
                reconciliation_id=reconciliation.id,
                inventory_item_id=item_id,
                system_stock=system,
                physical_count=physical,
                variance=round(physical - system, STOCK_PRECISION),
                adjustment_applied=False,
            ))
        db.session.commit()
        return reconciliation

    return run_with_retry(_op)


def list_reconciliations(ctx, *, status: str | None = None) -> list[StockReconciliation]:
    require_role(ctx, can_view_inventory, "view stock counts")
    query = db.session.query(StockReconciliation).filter(StockReconciliation.restaurant_id == ctx.restaurant_id)
    if status:
        query = query.filter(StockReconciliation.status == parse_choice(status, "status", SubmissionStatus.ALL))
    return query.order_by(StockReconciliation.date.desc(), StockReconciliation.id.desc()).all()


def get_reconciliation(ctx, reconciliation_id: int) -> StockReconciliation:
    require_role(ctx, can_view_inventory, "view stock counts")
    return get_scoped(StockReconciliation, reconciliation_id, ctx)
