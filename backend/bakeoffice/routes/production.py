# Overview: Flask API routes for production operations; parses input and returns JSON responses.

# backend/bakeoffice/routes/production.py
"""
Production API Routes

- check-availability compares ingredient needs with current stock
- Logs are submitted Pending; approval deducts stock exactly once
- preparationStatus moves forward only (Planning -> Ready -> InProgress -> Complete)
"""

from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..errors import DomainError
from ..models import ProductionLog
from ..services import approval_service, production_service, stock_service
from .responses import entity_context, error_response, json_body, server_error, tenant_context


production_bp = Blueprint("production", __name__, url_prefix="/api/production")


@production_bp.post("/check-availability")
@require_auth
def check_availability_route():
    """
    Request body: {"restaurantId": 1, "ingredients": [{"itemId": 7, "quantity": 8}]}

    Returns:
    {
        "available": false,
        "estimatedCostGNF": 64000,
        "items": [{"itemId": 7, "itemName": "Flour", "required": 8, "currentStock": 5,
                   "afterProduction": -3, "status": "insufficient", ...}]
    }
    """
    try:
        ctx = tenant_context()
        result = stock_service.check_availability(ctx, json_body().get("ingredients"))
        return jsonify(result), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to check availability")


@production_bp.post("")
@require_auth
def submit_production_route():
    """
    Request body:
    {
        "restaurantId": 1,
        "date": "2026-03-14",
        "productName": "Baguette",
        "quantity": 120,
        "ingredients": [{"itemId": 7, "quantity": 8}],
        "deductStock": true,
        "notes": "..."
    }
    """
    try:
        ctx = tenant_context()
        production = production_service.submit_production(ctx, json_body())
        return jsonify({"production": production.to_dict()}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to submit production")


@production_bp.get("")
@require_auth
def list_production_route():
    """Query params: restaurantId, status, startDate, endDate."""
    try:
        ctx = tenant_context()
        logs = production_service.list_production(
            ctx,
            status=request.args.get("status"),
            start_date=request.args.get("startDate"),
            end_date=request.args.get("endDate"),
        )
        return jsonify({"production": [log.to_dict() for log in logs]}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to list production")


@production_bp.get("/<int:production_id>")
@require_auth
def get_production_route(production_id: int):
    try:
        ctx = entity_context(ProductionLog, production_id)
        production = production_service.get_production(ctx, production_id)
        return jsonify({"production": production.to_dict()}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to load production")


@production_bp.patch("/<int:production_id>")
@require_auth
def update_preparation_status_route(production_id: int):
    """Request body: {"preparationStatus": "Ready"}"""
    try:
        ctx = entity_context(ProductionLog, production_id)
        production = production_service.update_preparation_status(
            ctx, production_id, json_body().get("preparationStatus")
        )
        return jsonify({"production": production.to_dict()}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to update production status")


@production_bp.post("/<int:production_id>/review")
@require_auth
def review_production_route(production_id: int):
    """
    Request body:
    {"action": "approve" | "reject", "reason": "...", "allowInsufficientStock": false}

    allowInsufficientStock is honoured for Owners only.
    """
    try:
        ctx = entity_context(ProductionLog, production_id)
        production = approval_service.decide(
            ctx, approval_service.KIND_PRODUCTION, production_id, json_body()
        )
        return jsonify({"production": production.to_dict()}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to review production")
