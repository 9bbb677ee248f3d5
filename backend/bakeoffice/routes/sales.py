# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/bakeoffice/routes/sales.py
"""
Sales API Routes

- POST /api/sales submits a day of takings (Pending), credit sales included
- POST /api/sales/<id>/review approves or rejects it
- Approval spawns one Pending SalesDeposit per non-zero payment method
"""

from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..errors import DomainError
from ..models import Sale
from ..services import approval_service, sales_service
from .responses import entity_context, error_response, json_body, server_error, tenant_context


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
def submit_sale_route():
    """
    Request body:
    {
        "restaurantId": 1,
        "date": "2026-03-14",
        "cashGNF": 1500000,
        "orangeMoneyGNF": 250000,
        "cardGNF": 0,
        "saleItems": [{"productName": "Croissant", "quantity": 40, "unitPriceGNF": 5000}],
        "debts": [{"customerId": 3, "amountGNF": 150000, "dueDate": "2026-04-01"}],
        "allowCreditOverride": false
    }

    Returns:
        201: Sale created
        400: Invalid input
        403: Role cannot record sales / override credit limits
        409: Duplicate date, credit limit exceeded
    """
    try:
        ctx = tenant_context()
        sale = sales_service.submit_sale(ctx, json_body())
        return jsonify({"sale": sale.to_dict(include_items=True)}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to submit sale")


@sales_bp.get("")
@require_auth
def list_sales_route():
    """Query params: restaurantId, status, startDate, endDate."""
    try:
        ctx = tenant_context()
        result = sales_service.list_sales(
            ctx,
            status=request.args.get("status"),
            start_date=request.args.get("startDate"),
            end_date=request.args.get("endDate"),
        )
        return jsonify(result), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to list sales")


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        ctx = entity_context(Sale, sale_id)
        sale = sales_service.get_sale(ctx, sale_id)
        return jsonify({"sale": sale.to_dict(include_items=True)}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to load sale")


@sales_bp.post("/<int:sale_id>/review")
@require_auth
def review_sale_route(sale_id: int):
    """
    Request body: {"action": "approve" | "reject", "reason": "..."}

    Approving twice returns the stored sale without new deposits.
    """
    try:
        ctx = entity_context(Sale, sale_id)
        sale = approval_service.decide(ctx, approval_service.KIND_SALE, sale_id, json_body())
        return jsonify({"sale": sale.to_dict(include_items=True)}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to review sale")
