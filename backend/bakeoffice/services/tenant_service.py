"""
Multi-Tenant Service: Tenant Context and Scoping Helpers

WHY: Every core operation receives an explicit TenantContext
{user_id, role, restaurant_id} instead of reading ambient request state.
This module builds that context from a membership and provides the scoped
lookups every service uses.

SECURITY INVARIANTS:
1. A context only exists for an actual (user, restaurant) membership
2. Entity lookups always filter by ctx.restaurant_id
3. Missing and cross-tenant entities are both NotFoundError (no existence leak)

LOCKING:
Writers take a shared lock on the restaurant row (lock_restaurant), the data
reset takes an exclusive one, so a reset never interleaves with submissions.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import NotFoundError
from ..extensions import db
from ..models import Restaurant, UserRestaurant
from .concurrency import lock_for_share, lock_for_update


@dataclass(frozen=True)
class TenantContext:
    user_id: int
    role: str
    restaurant_id: int


def context_for(user_id: int, restaurant_id) -> TenantContext:
    """
    Resolve the caller's role in a restaurant.

    Raises NotFoundError when the restaurant does not exist, is inactive, or
    the user holds no membership there.
    """
    if restaurant_id is None or restaurant_id == "":
        raise NotFoundError("Restaurant not found")
    try:
        restaurant_id = int(restaurant_id)
    except (TypeError, ValueError):
        raise NotFoundError("Restaurant not found")

    membership = (
        db.session.query(UserRestaurant)
        .join(Restaurant, Restaurant.id == UserRestaurant.restaurant_id)
        .filter(
            UserRestaurant.user_id == user_id,
            UserRestaurant.restaurant_id == restaurant_id,
            Restaurant.is_active.is_(True),
        )
        .first()
    )
    if not membership:
        raise NotFoundError("Restaurant not found")
    return TenantContext(user_id=user_id, role=membership.role, restaurant_id=restaurant_id)


def context_for_entity(user_id: int, model, entity_id: int) -> TenantContext:
    """Build the context from the restaurant that owns an entity."""
    entity = db.session.get(model, entity_id)
    if entity is None:
        raise NotFoundError(f"{model.__name__} not found")
    try:
        return context_for(user_id, entity.restaurant_id)
    except NotFoundError:
        raise NotFoundError(f"{model.__name__} not found")


def get_scoped(model, entity_id, ctx: TenantContext, *, lock: bool = False):
    """Load an entity of the caller's tenant, optionally FOR UPDATE."""
    query = db.session.query(model).filter(
        model.id == entity_id,
        model.restaurant_id == ctx.restaurant_id,
    )
    if lock:
        query = lock_for_update(query)
    entity = query.first()
    if entity is None:
        raise NotFoundError(f"{model.__name__} not found")
    return entity


def lock_restaurant(restaurant_id: int, *, exclusive: bool = False) -> Restaurant:
    """Take the tenant lock: shared for writers, exclusive for a data reset."""
    query = db.session.query(Restaurant).filter(Restaurant.id == restaurant_id)
    query = lock_for_update(query) if exclusive else lock_for_share(query)
    restaurant = query.first()
    if restaurant is None:
        raise NotFoundError("Restaurant not found")
    return restaurant


def get_user_restaurants(user_id: int) -> list[UserRestaurant]:
    return (
        db.session.query(UserRestaurant)
        .join(Restaurant, Restaurant.id == UserRestaurant.restaurant_id)
        .filter(UserRestaurant.user_id == user_id, Restaurant.is_active.is_(True))
        .order_by(Restaurant.name)
        .all()
    )
