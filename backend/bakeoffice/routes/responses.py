# Overview: Shared helpers for API routes; tenant resolution and domain error responses.

from flask import current_app, g, jsonify, request

from ..errors import DomainError, ForbiddenError, NotFoundError
from ..services import permission_service, tenant_service


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def requested_restaurant_id():
    """restaurantId from the query string, else from the JSON body."""
    value = request.args.get("restaurantId")
    if value is None:
        value = json_body().get("restaurantId")
    return value


def tenant_context(restaurant_id=None) -> tenant_service.TenantContext:
    """
    Build the caller's TenantContext.

    A failed lookup is logged as a cross-tenant access attempt and surfaces as 404.
    """
    if restaurant_id is None:
        restaurant_id = requested_restaurant_id()
    try:
        g.tenant = tenant_service.context_for(g.current_user.id, restaurant_id)
        return g.tenant
    except NotFoundError:
        permission_service.log_security_event(
            user_id=g.current_user.id,
            event_type="CROSS_TENANT_ACCESS_DENIED",
            success=False,
            reason=f"No membership for restaurant {restaurant_id}",
        )
        raise


def entity_context(model, entity_id: int) -> tenant_service.TenantContext:
    """TenantContext of the restaurant that owns an entity."""
    g.tenant = tenant_service.context_for_entity(g.current_user.id, model, entity_id)
    return g.tenant


def error_response(exc: DomainError):
    if isinstance(exc, ForbiddenError):
        ctx = g.get("tenant")
        permission_service.log_security_event(
            user_id=g.current_user.id if hasattr(g, "current_user") else None,
            event_type="PERMISSION_DENIED",
            success=False,
            reason=exc.message,
            restaurant_id=ctx.restaurant_id if ctx else None,
        )
    return jsonify(exc.to_dict()), exc.status_code


def server_error(message: str):
    current_app.logger.exception(message)
    return jsonify({"error": "Internal server error"}), 500
