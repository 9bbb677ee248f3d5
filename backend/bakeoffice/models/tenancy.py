from __future__ import annotations

from ..extensions import db
from ..permissions.roles import ALL_ROLES
from ..time_utils import to_utc_z
from .states import check_in


class Restaurant(db.Model):
    """
    Multi-tenant root: every tenant is a Restaurant.

    WHY: Shared-database multi-tenancy with strict isolation. Sales, expenses,
    debts, stock and bank records all carry restaurant_id and every query
    filters on it. Nothing cascades from here automatically; the data reset
    service is the only bulk removal path and it is explicit.

    The row doubles as the tenant lock: write paths take a shared lock on it,
    a data reset takes an exclusive one.
    """
    __tablename__ = "restaurants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)
    location = db.Column(db.String(255), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Restaurant id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "location": self.location,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class UserRestaurant(db.Model):
    """
    Membership of a user in a restaurant, with the role held there.

    A user may own one restaurant and be a cashier in another; the role is
    always resolved per (user_id, restaurant_id).
    """
    __tablename__ = "user_restaurants"
    __table_args__ = (
        db.UniqueConstraint("user_id", "restaurant_id", name="uq_user_restaurants_user_restaurant"),
        check_in("role", ALL_ROLES, "ck_user_restaurants_role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey("restaurants.id"), nullable=False, index=True)
    role = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("memberships", lazy=True))
    restaurant = db.relationship("Restaurant", backref=db.backref("memberships", lazy=True))

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "restaurantId": self.restaurant_id,
            "restaurantName": self.restaurant.name if self.restaurant else None,
            "role": self.role,
        }
