# Overview: Flask API routes for customers operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..errors import DomainError
from ..models import Customer
from ..services import customer_service
from .responses import entity_context, error_response, json_body, server_error, tenant_context


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers_route():
    """Query params: restaurantId, includeInactive, search."""
    try:
        ctx = tenant_context()
        customers = customer_service.list_customers(
            ctx,
            include_inactive=request.args.get("includeInactive", "false").lower() == "true",
            search=request.args.get("search"),
        )
        return jsonify({"customers": [c.to_dict() for c in customers]}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to list customers")


@customers_bp.post("")
@require_auth
def create_customer_route():
    """
    Request body:
    {
        "restaurantId": 1,
        "name": "Hotel Kaloum",
        "customerType": "Corporate",
        "creditLimit": 1000000
    }
    """
    try:
        ctx = tenant_context()
        customer = customer_service.create_customer(ctx, json_body())
        return jsonify({"customer": customer.to_dict()}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to create customer")


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer_route(customer_id: int):
    try:
        ctx = entity_context(Customer, customer_id)
        customer = customer_service.get_customer(ctx, customer_id)
        debts = customer_service.list_debts(ctx, customer_id=customer_id)
        return jsonify({"customer": customer.to_dict(), "debts": [d.to_dict() for d in debts]}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to load customer")


@customers_bp.put("/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    """creditLimit: null removes the limit."""
    try:
        ctx = entity_context(Customer, customer_id)
        customer = customer_service.update_customer(ctx, customer_id, json_body())
        return jsonify({"customer": customer.to_dict()}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to update customer")


@customers_bp.post("/<int:customer_id>/deactivate")
@require_auth
def deactivate_customer_route(customer_id: int):
    """409 while the customer has outstanding debt."""
    try:
        ctx = entity_context(Customer, customer_id)
        customer = customer_service.set_customer_active(ctx, customer_id, False)
        return jsonify({"customer": customer.to_dict()}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to deactivate customer")


@customers_bp.post("/<int:customer_id>/reactivate")
@require_auth
def reactivate_customer_route(customer_id: int):
    try:
        ctx = entity_context(Customer, customer_id)
        customer = customer_service.set_customer_active(ctx, customer_id, True)
        return jsonify({"customer": customer.to_dict()}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to reactivate customer")
