# Overview: Flask API routes for debts operations; parses input and returns JSON responses.

# backend/bakeoffice/routes/debts.py
"""
Debts API Routes

- Debts come from credit sales or are created standalone
- Payments reduce the remaining amount; card and Orange Money payments
  need the external transactionId
- Write-off is terminal and removes the remaining amount from the
  customer's outstanding debt
"""

from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..errors import DomainError
from ..models import Debt
from ..services import customer_service, payment_service
from ..validation import parse_optional_int
from .responses import entity_context, error_response, json_body, server_error, tenant_context


debts_bp = Blueprint("debts", __name__, url_prefix="/api/debts")


@debts_bp.get("")
@require_auth
def list_debts_route():
    """Query params: restaurantId, status, customerId."""
    try:
        ctx = tenant_context()
        debts = customer_service.list_debts(
            ctx,
            status=request.args.get("status"),
            customer_id=parse_optional_int(request.args.get("customerId"), "customerId"),
        )
        return jsonify({"debts": [d.to_dict() for d in debts]}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to list debts")


@debts_bp.post("")
@require_auth
def create_debt_route():
    """
    Request body:
    {
        "restaurantId": 1,
        "customerId": 3,
        "principalAmount": 300000,
        "dueDate": "2026-04-01",
        "allowCreditOverride": false
    }
    """
    try:
        ctx = tenant_context()
        debt = customer_service.create_debt(ctx, json_body())
        return jsonify({"debt": debt.to_dict()}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to create debt")


@debts_bp.get("/<int:debt_id>")
@require_auth
def get_debt_route(debt_id: int):
    try:
        ctx = entity_context(Debt, debt_id)
        debt = customer_service.get_debt(ctx, debt_id)
        return jsonify({"debt": debt.to_dict()}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to load debt")


@debts_bp.post("/<int:debt_id>/payments")
@require_auth
def record_debt_payment_route(debt_id: int):
    """
    Request body:
    {
        "amount": 100000,
        "paymentMethod": "Cash" | "OrangeMoney" | "Card",
        "paymentDate": "2026-03-20",
        "receiptNumber": "R-0042",
        "transactionId": "OM-88213"
    }
    """
    try:
        ctx = entity_context(Debt, debt_id)
        payment = payment_service.record_debt_payment(ctx, debt_id, json_body())
        summary = payment_service.debt_payment_summary(ctx, debt_id)
        return jsonify({"payment": payment.to_dict(), "summary": summary["summary"]}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to record debt payment")


@debts_bp.get("/<int:debt_id>/payments")
@require_auth
def list_debt_payments_route(debt_id: int):
    try:
        ctx = entity_context(Debt, debt_id)
        return jsonify(payment_service.debt_payment_summary(ctx, debt_id)), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to load debt payments")


@debts_bp.post("/<int:debt_id>/write-off")
@require_auth
def write_off_debt_route(debt_id: int):
    """Request body: {"reason": "..."}"""
    try:
        ctx = entity_context(Debt, debt_id)
        debt = customer_service.write_off_debt(ctx, debt_id, json_body().get("reason"))
        return jsonify({"debt": debt.to_dict()}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to write off debt")
