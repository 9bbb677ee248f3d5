# Overview: Service-layer operations for auth; users, passwords and memberships.

"""
Authentication Service

WHY: Every ledger write records who made it (created_by_user_id,
approved_by_user_id, paid_by_user_id). Users are global; their role is held
per restaurant through UserRestaurant.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, 12 by default)
- Minimum 8 characters with upper, lower and digit
- Session tokens managed separately (see session_service.py)
"""

from __future__ import annotations

import re

import bcrypt
from flask import current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Restaurant, User, UserRestaurant
from ..permissions.roles import ALL_ROLES
from ..time_utils import utcnow


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit

    Raises ValidationError if requirements not met.
    """
    if not password or len(password) < 8:
        raise ValidationError("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", password):
        raise ValidationError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        raise ValidationError("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        raise ValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_user(email: str, password: str, name: str | None = None, phone: str | None = None) -> User:
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")

    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("A user with this email already exists")

    user = User(
        email=email,
        name=name,
        phone=phone,
        password_hash=hash_password(password),
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Return the active user matching the credentials, else None.

    Updates last_login_at on success.
    """
    email = (email or "").strip().lower()
    user = db.session.query(User).filter(User.email == email, User.is_active.is_(True)).first()
    if not user or not verify_password(password or "", user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def add_membership(user_id: int, restaurant_id: int, role: str) -> UserRestaurant:
    """Grant (or change) a user's role in a restaurant."""
    if role not in ALL_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(sorted(ALL_ROLES))}")
    if db.session.get(User, user_id) is None:
        raise NotFoundError("User not found")
    if db.session.get(Restaurant, restaurant_id) is None:
        raise NotFoundError("Restaurant not found")

    membership = db.session.query(UserRestaurant).filter_by(
        user_id=user_id, restaurant_id=restaurant_id
    ).first()
    if membership:
        membership.role = role
    else:
        membership = UserRestaurant(user_id=user_id, restaurant_id=restaurant_id, role=role)
        db.session.add(membership)
    db.session.commit()
    return membership
