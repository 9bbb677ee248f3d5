# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

# backend/bakeoffice/routes/admin.py
"""
Admin API Routes (Owner only)

- Tenant data reset: preview counts, then execute with the restaurant name
  typed as confirmation
- Security event trail
- Ledger drift report and repair
"""

from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..errors import DomainError
from ..permissions.roles import can_reset_data
from ..services import audit_service, permission_service, reset_service
from ..services.permission_service import require_role
from ..validation import parse_optional_int
from .responses import error_response, json_body, server_error, tenant_context


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/reset")
@require_auth
def preview_reset_route():
    """
    Query params: restaurantId

    Returns {"preview": {"sales": {"count", "relatedCount", "description"}, ...}}
    """
    try:
        ctx = tenant_context()
        return jsonify({"preview": reset_service.preview_reset(ctx)}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to preview reset")


@admin_bp.post("/reset")
@require_auth
def execute_reset_route():
    """
    Request body:
    {
        "restaurantId": 1,
        "types": ["sales", "expenses", "debts", "production", "inventory", "bank"],
        "confirmationPhrase": "Chez Fatou"
    }

    Returns:
        200: {"success": true, "deleted": {...}}
        400: Unknown or missing types
        403: Not an Owner, or the phrase does not match the restaurant name
    """
    try:
        data = json_body()
        ctx = tenant_context(data.get("restaurantId"))
        deleted = reset_service.execute_reset(ctx, data.get("types"), data.get("confirmationPhrase"))
        return jsonify({"success": True, "deleted": deleted}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to reset data")


@admin_bp.get("/security-events")
@require_auth
def security_events_route():
    """Query params: restaurantId, eventType, limit."""
    try:
        ctx = tenant_context()
        require_role(ctx, can_reset_data, "view security events")
        events = permission_service.get_security_events(
            ctx.restaurant_id,
            event_type=request.args.get("eventType"),
            limit=min(parse_optional_int(request.args.get("limit"), "limit") or 100, 1000),
        )
        return jsonify({"events": [event.to_dict() for event in events]}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to list security events")


@admin_bp.get("/drift")
@require_auth
def drift_route():
    """Cached aggregates that disagree with their source of truth."""
    try:
        ctx = tenant_context()
        require_role(ctx, can_reset_data, "audit ledger caches")
        drift = audit_service.find_drift(ctx.restaurant_id)
        return jsonify({"drift": drift, "count": len(drift)}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to compute drift")


@admin_bp.post("/drift/repair")
@require_auth
def repair_drift_route():
    try:
        ctx = tenant_context()
        require_role(ctx, can_reset_data, "repair ledger caches")
        repaired = audit_service.repair_drift(ctx.restaurant_id)
        return jsonify({"repaired": repaired, "count": len(repaired)}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("Failed to repair drift")
