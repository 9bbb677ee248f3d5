# Overview: Flask API routes for bank operations; parses input and returns JSON responses.

# backend/bakeoffice/routes/bank.py
"""
Bank API Routes

SECURITY:
- Owner only (can_access_bank)
- Balances count Confirmed transactions only; Pending ones are reported
  separately
"""

from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..errors import DomainError
from ..models import BankTransaction
from ..services import bank_service
from .responses import entity_context, error_response, json_body, server_error, tenant_context


bank_bp = Blueprint("bank", __name__, url_prefix="/api/bank")


@bank_bp.get("/balances")
@require_auth
def balances_route():
    """
    Returns:
    {
        "balances": {"cash": 0, "orangeMoney": 0, "card": 0, "total": 0},
        "pending": {"totalPendingDeposits": 0, "totalPendingWithdrawals": 0, "pendingCount": 0}
    }
    """
    try:
        ctx = tenant_context()
        return jsonify(bank_service.balances_for(ctx)), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to compute bank balances")


@bank_bp.get("/transactions")
@require_auth
def list_transactions_route():
    """Query params: restaurantId, status, type, method, reason, startDate, endDate."""
    try:
        ctx = tenant_context()
        filters = {
            key: request.args.get(key)
            for key in ("status", "type", "method", "reason", "startDate", "endDate")
        }
        return jsonify(bank_service.list_transactions(ctx, filters)), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to list bank transactions")


@bank_bp.post("/transactions")
@require_auth
def create_transaction_route():
    """
    Request body:
    {
        "restaurantId": 1,
        "date": "2026-03-14",
        "amount": 2000000,
        "type": "Deposit" | "Withdrawal",
        "method": "Cash" | "OrangeMoney" | "Card",
        "reason": "CapitalInjection",
        "description": "...",
        "linkedSaleId": null
    }

    The transaction is always created Pending.
    """
    try:
        ctx = tenant_context()
        transaction = bank_service.create_transaction(ctx, json_body())
        return jsonify({"transaction": transaction.to_dict()}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to create bank transaction")


@bank_bp.put("/transactions/<int:transaction_id>")
@require_auth
def update_transaction_route(transaction_id: int):
    """
    Request body: {"status": "Confirmed", "bankRef": "...", "comments": "..."}
    or any editable field of a Pending transaction.

    Returns:
        200: Updated transaction
        409: Edit of a Confirmed transaction
    """
    try:
        ctx = entity_context(BankTransaction, transaction_id)
        transaction = bank_service.update_transaction(ctx, transaction_id, json_body())
        return jsonify({"transaction": transaction.to_dict()}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to update bank transaction")


@bank_bp.post("/transactions/<int:transaction_id>/confirm")
@require_auth
def confirm_transaction_route(transaction_id: int):
    """Confirming twice returns the stored transaction."""
    try:
        ctx = entity_context(BankTransaction, transaction_id)
        data = json_body()
        transaction = bank_service.confirm_transaction(
            ctx, transaction_id, data.get("bankRef"), data.get("comments")
        )
        return jsonify({"transaction": transaction.to_dict()}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to confirm bank transaction")
