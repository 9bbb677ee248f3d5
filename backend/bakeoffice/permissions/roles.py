# Overview: Role constants and the pure role predicates used for authorization.

"""
Role Predicates

WHY: A user's role is held per restaurant (UserRestaurant.role). Every
authorization decision is a pure function of that role string, so routes,
services and tests share one definition.

Legacy roles:
- Manager maps to Owner for approvals, settings and customer management.
- Editor is treated as a general employee (sales, expenses, production).
"""

from __future__ import annotations


class Role:
    OWNER = "Owner"
    RESTAURANT_MANAGER = "RestaurantManager"
    BAKER = "Baker"
    PASTRY_CHEF = "PastryChef"
    CASHIER = "Cashier"
    # Legacy
    MANAGER = "Manager"
    EDITOR = "Editor"


ALL_ROLES = frozenset({
    Role.OWNER,
    Role.RESTAURANT_MANAGER,
    Role.BAKER,
    Role.PASTRY_CHEF,
    Role.CASHIER,
    Role.MANAGER,
    Role.EDITOR,
})

EMPLOYEE_ROLES = frozenset({
    Role.RESTAURANT_MANAGER,
    Role.BAKER,
    Role.PASTRY_CHEF,
    Role.CASHIER,
    Role.EDITOR,
})

PRODUCTION_ROLES = frozenset({
    Role.OWNER,
    Role.RESTAURANT_MANAGER,
    Role.BAKER,
    Role.PASTRY_CHEF,
    Role.MANAGER,
    Role.EDITOR,
})

CASHIER_ROLES = frozenset({
    Role.OWNER,
    Role.RESTAURANT_MANAGER,
    Role.CASHIER,
    Role.MANAGER,
    Role.EDITOR,
})


def is_owner(role: str | None) -> bool:
    return role == Role.OWNER


def is_manager_role(role: str | None) -> bool:
    """Owner or the legacy Manager role."""
    return role in (Role.OWNER, Role.MANAGER)


def is_employee_role(role: str | None) -> bool:
    return role in EMPLOYEE_ROLES


def can_record_sales(role: str | None) -> bool:
    return role in CASHIER_ROLES


def can_record_expenses(role: str | None) -> bool:
    return role in CASHIER_ROLES


def can_record_production(role: str | None) -> bool:
    return role in PRODUCTION_ROLES


def can_approve(role: str | None) -> bool:
    """Approve or reject sales, expenses, production logs and stock counts."""
    return is_manager_role(role)


def can_access_bank(role: str | None) -> bool:
    return is_owner(role)


def can_collect_debt_payments(role: str | None) -> bool:
    # Spawns a bank deposit, so restricted to roles that handle money
    return role in CASHIER_ROLES


def can_record_expense_payments(role: str | None) -> bool:
    return is_manager_role(role)


def can_adjust_stock(role: str | None) -> bool:
    return role in (Role.OWNER, Role.RESTAURANT_MANAGER, Role.MANAGER)


def can_count_stock(role: str | None) -> bool:
    return role in PRODUCTION_ROLES


def can_view_inventory(role: str | None) -> bool:
    return role in ALL_ROLES


def can_manage_customers(role: str | None) -> bool:
    return is_manager_role(role)


def can_reset_data(role: str | None) -> bool:
    return is_owner(role)
