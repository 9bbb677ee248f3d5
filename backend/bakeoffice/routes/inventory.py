# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

# backend/bakeoffice/routes/inventory.py
"""
Inventory API Routes

Every quantity change goes through the stock ledger (an appended
StockMovement plus the cached current stock, in one transaction).
Manual adjustments and transfers need can_adjust_stock. Physical counts
are submitted Pending and only move stock once a manager approves them.
"""

from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..errors import DomainError
from ..models import InventoryItem, StockReconciliation
from ..services import approval_service, reconciliation_service, stock_service
from ..validation import parse_optional_int
from .responses import entity_context, error_response, json_body, server_error, tenant_context


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/items")
@require_auth
def list_items_route():
    """Query params: restaurantId, lowStock, includeInactive."""
    try:
        ctx = tenant_context()
        items = stock_service.list_items(
            ctx,
            low_stock_only=request.args.get("lowStock", "false").lower() == "true",
            include_inactive=request.args.get("includeInactive", "false").lower() == "true",
        )
        return jsonify({"items": [item.to_dict() for item in items]}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to list inventory items")


@inventory_bp.post("/items")
@require_auth
def create_item_route():
    """
    Request body:
    {
        "restaurantId": 1,
        "name": "Flour",
        "unit": "kg",
        "minStock": 10,
        "unitCostGNF": 8000,
        "initialStock": 25
    }
    """
    try:
        ctx = tenant_context()
        item = stock_service.create_item(ctx, json_body())
        return jsonify({"item": item.to_dict()}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to create inventory item")


@inventory_bp.get("/items/<int:item_id>")
@require_auth
def get_item_route(item_id: int):
    try:
        ctx = entity_context(InventoryItem, item_id)
        item = stock_service.get_item(ctx, item_id)
        movements = stock_service.list_movements(ctx, item_id=item_id, limit=50)
        return jsonify({
            "item": item.to_dict(),
            "movements": [m.to_dict() for m in movements],
            "summary": stock_service.movement_summary(ctx, item_id),
        }), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to load inventory item")


@inventory_bp.post("/items/<int:item_id>/adjust")
@require_auth
def adjust_stock_route(item_id: int):
    """
    Request body:
    {"type": "Purchase" | "Usage" | "Waste" | "Adjustment", "quantity": 5, "reason": "...", "unitCost": 8000}

    Adjustment quantities keep their sign.
    """
    try:
        ctx = entity_context(InventoryItem, item_id)
        data = json_body()
        movement = stock_service.adjust_stock(
            ctx, item_id, data.get("type"), data.get("quantity"),
            reason=data.get("reason"),
            unit_cost=data.get("unitCost"),
        )
        return jsonify({"movement": movement.to_dict(), "item": movement.item.to_dict()}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to adjust stock")


@inventory_bp.post("/items/<int:item_id>/transfer")
@require_auth
def transfer_stock_route(item_id: int):
    """Request body: {"targetRestaurantId": 2, "quantity": 5, "reason": "..."}"""
    try:
        ctx = entity_context(InventoryItem, item_id)
        data = json_body()
        result = stock_service.transfer_stock(
            ctx, item_id, data.get("targetRestaurantId"), data.get("quantity"), data.get("reason")
        )
        return jsonify(result), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to transfer stock")


@inventory_bp.get("/movements")
@require_auth
def list_movements_route():
    """Query params: restaurantId, itemId, type, limit."""
    try:
        ctx = tenant_context()
        movements = stock_service.list_movements(
            ctx,
            item_id=parse_optional_int(request.args.get("itemId"), "itemId"),
            movement_type=request.args.get("type"),
            limit=min(parse_optional_int(request.args.get("limit"), "limit") or 200, 1000),
        )
        return jsonify({"movements": [m.to_dict() for m in movements]}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to list stock movements")


@inventory_bp.post("/reconciliations")
@require_auth
def submit_reconciliation_route():
    """
    Request body:
    {
        "restaurantId": 1,
        "date": "2026-03-14",
        "notes": "Monthly count",
        "items": [{"itemId": 7, "physicalCount": 18.5}]
    }
    """
    try:
        ctx = tenant_context()
        reconciliation = reconciliation_service.submit_reconciliation(ctx, json_body())
        return jsonify({"reconciliation": reconciliation.to_dict()}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to submit stock count")


@inventory_bp.get("/reconciliations")
@require_auth
def list_reconciliations_route():
    """Query params: restaurantId, status."""
    try:
        ctx = tenant_context()
        reconciliations = reconciliation_service.list_reconciliations(ctx, status=request.args.get("status"))
        return jsonify({"reconciliations": [r.to_dict() for r in reconciliations]}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to list stock counts")


@inventory_bp.get("/reconciliations/<int:reconciliation_id>")
@require_auth
def get_reconciliation_route(reconciliation_id: int):
    try:
        ctx = entity_context(StockReconciliation, reconciliation_id)
        reconciliation = reconciliation_service.get_reconciliation(ctx, reconciliation_id)
        return jsonify({"reconciliation": reconciliation.to_dict()}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to load stock count")


@inventory_bp.post("/reconciliations/<int:reconciliation_id>/review")
@require_auth
def review_reconciliation_route(reconciliation_id: int):
    """Request body: {"action": "approve" | "reject", "reason": "..."}"""
    try:
        ctx = entity_context(StockReconciliation, reconciliation_id)
        reconciliation = approval_service.decide(
            ctx, approval_service.KIND_RECONCILIATION, reconciliation_id, json_body()
        )
        return jsonify({
            "reconciliation": reconciliation.to_dict(),
            "adjustmentsApplied": reconciliation.adjustments_applied,
        }), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to review stock count")
