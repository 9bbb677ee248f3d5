from .roles import (
    ALL_ROLES,
    Role,
    can_access_bank,
    can_adjust_stock,
    can_approve,
    can_collect_debt_payments,
    can_manage_customers,
    can_record_expense_payments,
    can_record_expenses,
    can_record_production,
    can_record_sales,
    can_reset_data,
    can_view_inventory,
    is_employee_role,
    is_manager_role,
    is_owner,
)

__all__ = [
    "ALL_ROLES",
    "Role",
    "can_access_bank",
    "can_adjust_stock",
    "can_approve",
    "can_collect_debt_payments",
    "can_manage_customers",
    "can_record_expense_payments",
    "can_record_expenses",
    "can_record_production",
    "can_record_sales",
    "can_reset_data",
    "can_view_inventory",
    "is_employee_role",
    "is_manager_role",
    "is_owner",
]
