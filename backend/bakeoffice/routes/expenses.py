# Overview: Flask API routes for expenses operations; parses input and returns JSON responses.

# backend/bakeoffice/routes/expenses.py
"""
Expenses API Routes

- Categories and suppliers are per-restaurant catalogues
- Expenses are submitted Pending and reviewed by an Owner-equivalent role
- Payments are only accepted on Approved expenses and never exceed the
  amount due; each one spawns a Pending Withdrawal in the bank ledger
"""

from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..errors import DomainError
from ..models import Expense
from ..services import approval_service, expense_service, payment_service
from .responses import entity_context, error_response, json_body, server_error, tenant_context


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


# =============================================================================
# CATALOGUES
# =============================================================================

@expenses_bp.get("/categories")
@require_auth
def list_categories_route():
    try:
        ctx = tenant_context()
        categories = expense_service.list_categories(ctx)
        return jsonify({"categories": [c.to_dict() for c in categories]}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to list expense categories")


@expenses_bp.post("/categories")
@require_auth
def create_category_route():
    try:
        ctx = tenant_context()
        category = expense_service.create_category(ctx, json_body())
        return jsonify({"category": category.to_dict()}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to create expense category")


@expenses_bp.get("/suppliers")
@require_auth
def list_suppliers_route():
    try:
        ctx = tenant_context()
        suppliers = expense_service.list_suppliers(ctx)
        return jsonify({"suppliers": [s.to_dict() for s in suppliers]}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to list suppliers")


@expenses_bp.post("/suppliers")
@require_auth
def create_supplier_route():
    try:
        ctx = tenant_context()
        supplier = expense_service.create_supplier(ctx, json_body())
        return jsonify({"supplier": supplier.to_dict()}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to create supplier")


# =============================================================================
# EXPENSES
# =============================================================================

@expenses_bp.post("")
@require_auth
def submit_expense_route():
    """
    Request body:
    {
        "restaurantId": 1,
        "date": "2026-03-14",
        "categoryId": 2,
        "amountGNF": 500000,
        "supplierId": 4,
        "isInventoryPurchase": true,
        "expenseItems": [{"inventoryItemId": 7, "quantity": 25, "unitCostGNF": 20000}]
    }
    """
    try:
        ctx = tenant_context()
        expense = expense_service.submit_expense(ctx, json_body())
        return jsonify({"expense": expense.to_dict(include_items=True)}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to submit expense")


@expenses_bp.get("")
@require_auth
def list_expenses_route():
    """Query params: restaurantId, status, paymentStatus, startDate, endDate."""
    try:
        ctx = tenant_context()
        expenses = expense_service.list_expenses(
            ctx,
            status=request.args.get("status"),
            payment_status=request.args.get("paymentStatus"),
            start_date=request.args.get("startDate"),
            end_date=request.args.get("endDate"),
        )
        return jsonify({"expenses": [e.to_dict() for e in expenses]}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to list expenses")


@expenses_bp.get("/<int:expense_id>")
@require_auth
def get_expense_route(expense_id: int):
    try:
        ctx = entity_context(Expense, expense_id)
        expense = expense_service.get_expense(ctx, expense_id)
        return jsonify({"expense": expense.to_dict(include_items=True)}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to load expense")


@expenses_bp.post("/<int:expense_id>/review")
@require_auth
def review_expense_route(expense_id: int):
    """Request body: {"action": "approve" | "reject", "reason": "..."}"""
    try:
        ctx = entity_context(Expense, expense_id)
        expense = approval_service.decide(ctx, approval_service.KIND_EXPENSE, expense_id, json_body())
        return jsonify({"expense": expense.to_dict(include_items=True)}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to review expense")


# =============================================================================
# PAYMENTS
# =============================================================================

@expenses_bp.post("/<int:expense_id>/payments")
@require_auth
def record_expense_payment_route(expense_id: int):
    """
    Request body:
    {
        "amount": 200000,
        "paymentMethod": "Cash" | "OrangeMoney" | "Card",
        "notes": "...",
        "receiptUrl": "..."
    }

    Returns:
        201: {payment, summary}
        400: Invalid amount or method
        409: Expense not approved, or amount exceeds the remaining balance
    """
    try:
        ctx = entity_context(Expense, expense_id)
        payment = payment_service.record_expense_payment(ctx, expense_id, json_body())
        summary = payment_service.expense_payment_summary(ctx, expense_id)
        return jsonify({"payment": payment.to_dict(), "summary": summary["summary"]}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to record expense payment")


@expenses_bp.get("/<int:expense_id>/payments")
@require_auth
def list_expense_payments_route(expense_id: int):
    try:
        ctx = entity_context(Expense, expense_id)
        return jsonify(payment_service.expense_payment_summary(ctx, expense_id)), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to load expense payments")
