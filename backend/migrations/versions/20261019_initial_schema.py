"""Initial schema: tenants, auth, stock ledger, sales, expenses, debts, bank, production

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration creates:
1. Restaurants (tenants), users, memberships, sessions, security events
2. Suppliers, expense categories, inventory items
3. Customers, sales (+ lines), expenses (+ lines, payments), debts (+ payments)
4. Production logs (+ ingredient lines)
5. Stock movements (append-only ledger)
6. Bank transactions (with at-most-once origin links)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def _now():
    return sa.text('(CURRENT_TIMESTAMP)')


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=_now(), nullable=False)


def _updated_at():
    return sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_now(), nullable=False)


def _submission_columns():
    """Approval workflow columns shared by sales, expenses and production logs."""
    return [
        sa.Column('status', sa.String(length=16), nullable=False, server_default='Pending'),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('approved_by_user_id', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.String(length=255), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _created_at(),
        _updated_at(),
    ]


SUBMISSION_STATUS_CHECK = "status IN ('Approved', 'Pending', 'Rejected')"
PAYMENT_METHOD_CHECK = "payment_method IN ('Card', 'Cash', 'OrangeMoney')"


def upgrade():
    # ==========================================================================
    # 1. TENANCY AND AUTH
    # ==========================================================================
    op.create_table('restaurants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('restaurants', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_restaurants_code'), ['code'], unique=True)
        batch_op.create_index(batch_op.f('ix_restaurants_is_active'), ['is_active'], unique=False)

    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_users_email'), ['email'], unique=True)

    op.create_table('user_restaurants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        _created_at(),
        sa.CheckConstraint(
            "role IN ('Baker', 'Cashier', 'Editor', 'Manager', 'Owner', 'PastryChef', 'RestaurantManager')",
            name='ck_user_restaurants_role'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'restaurant_id', name='uq_user_restaurants_user_restaurant'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('user_restaurants', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_user_restaurants_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_user_restaurants_restaurant_id'), ['restaurant_id'], unique=False)

    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('session_tokens', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_session_tokens_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_session_tokens_token_hash'), ['token_hash'], unique=True)

    op.create_table('security_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('restaurant_id', sa.Integer(), nullable=True),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('resource', sa.String(length=255), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=True),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('security_events', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_security_events_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_security_events_restaurant_id'), ['restaurant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_security_events_event_type'), ['event_type'], unique=False)
        batch_op.create_index(batch_op.f('ix_security_events_occurred_at'), ['occurred_at'], unique=False)
        batch_op.create_index('ix_security_events_restaurant_occurred', ['restaurant_id', 'occurred_at'], unique=False)

    # ==========================================================================
    # 2. REFERENCE DATA: SUPPLIERS, CATEGORIES, INVENTORY ITEMS
    # ==========================================================================
    op.create_table('suppliers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _created_at(),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('restaurant_id', 'name', name='uq_suppliers_restaurant_name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('suppliers', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_suppliers_restaurant_id'), ['restaurant_id'], unique=False)

    op.create_table('expense_categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _created_at(),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('restaurant_id', 'name', name='uq_expense_categories_restaurant_name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('expense_categories', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_expense_categories_restaurant_id'), ['restaurant_id'], unique=False)

    op.create_table('inventory_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=True),
        sa.Column('unit', sa.String(length=16), nullable=False),
        sa.Column('current_stock', sa.Float(), nullable=False, server_default='0'),
        sa.Column('min_stock', sa.Float(), nullable=False, server_default='0'),
        sa.Column('unit_cost_gnf', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('inventory_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_inventory_items_restaurant_id'), ['restaurant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_items_supplier_id'), ['supplier_id'], unique=False)
        batch_op.create_index('ix_inventory_items_restaurant_name', ['restaurant_id', 'name'], unique=False)

    # ==========================================================================
    # 3. CUSTOMERS, SALES, EXPENSES, DEBTS
    # ==========================================================================
    op.create_table('customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('customer_type', sa.String(length=16), nullable=False, server_default='Individual'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('credit_limit_gnf', sa.Integer(), nullable=True),
        sa.Column('outstanding_debt_gnf', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint("customer_type IN ('Corporate', 'Individual', 'Wholesale')", name='ck_customers_type'),
        sa.CheckConstraint('outstanding_debt_gnf >= 0', name='ck_customers_outstanding_nonnegative'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('customers', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_customers_restaurant_id'), ['restaurant_id'], unique=False)
        batch_op.create_index('ix_customers_restaurant_name', ['restaurant_id', 'name'], unique=False)

    op.create_table('sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('cash_gnf', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('orange_money_gnf', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('card_gnf', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('credit_total_gnf', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_gnf', sa.Integer(), nullable=False),
        sa.Column('items_count', sa.Integer(), nullable=True),
        sa.Column('customers_count', sa.Integer(), nullable=True),
        sa.Column('comments', sa.Text(), nullable=True),
        *_submission_columns(),
        sa.CheckConstraint('total_gnf > 0', name='ck_sales_total_positive'),
        sa.CheckConstraint(SUBMISSION_STATUS_CHECK, name='ck_sales_status'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('restaurant_id', 'date', name='uq_sales_restaurant_date'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sales_restaurant_id'), ['restaurant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_date'), ['date'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_status'), ['status'], unique=False)

    op.create_table('sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit_price_gnf', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_gnf', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sale_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sale_items_sale_id'), ['sale_id'], unique=False)

    op.create_table('expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('amount_gnf', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('billing_ref', sa.String(length=64), nullable=True),
        sa.Column('is_inventory_purchase', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='Unpaid'),
        sa.Column('total_paid_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('fully_paid_at', sa.DateTime(timezone=True), nullable=True),
        *_submission_columns(),
        sa.CheckConstraint('amount_gnf > 0', name='ck_expenses_amount_positive'),
        sa.CheckConstraint(
            'total_paid_amount >= 0 AND total_paid_amount <= amount_gnf',
            name='ck_expenses_paid_within_amount'),
        sa.CheckConstraint(SUBMISSION_STATUS_CHECK, name='ck_expenses_status'),
        sa.CheckConstraint(
            "payment_status IN ('PartiallyPaid', 'Paid', 'Unpaid')",
            name='ck_expenses_payment_status'),
        sa.ForeignKeyConstraint(['category_id'], ['expense_categories.id'], ),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('expenses', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_expenses_restaurant_id'), ['restaurant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_expenses_category_id'), ['category_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_expenses_supplier_id'), ['supplier_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_expenses_status'), ['status'], unique=False)
        batch_op.create_index('ix_expenses_restaurant_date', ['restaurant_id', 'date'], unique=False)

    op.create_table('expense_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('expense_id', sa.Integer(), nullable=False),
        sa.Column('inventory_item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit_cost_gnf', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint('quantity > 0', name='ck_expense_items_quantity_positive'),
        sa.ForeignKeyConstraint(['expense_id'], ['expenses.id'], ),
        sa.ForeignKeyConstraint(['inventory_item_id'], ['inventory_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('expense_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_expense_items_expense_id'), ['expense_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_expense_items_inventory_item_id'), ['inventory_item_id'], unique=False)

    op.create_table('expense_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('expense_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('paid_by_user_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('receipt_url', sa.String(length=512), nullable=True),
        sa.CheckConstraint('amount > 0', name='ck_expense_payments_amount_positive'),
        sa.CheckConstraint(PAYMENT_METHOD_CHECK, name='ck_expense_payments_method'),
        sa.ForeignKeyConstraint(['expense_id'], ['expenses.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('expense_payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_expense_payments_expense_id'), ['expense_id'], unique=False)

    op.create_table('debts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('principal_amount', sa.Integer(), nullable=False),
        sa.Column('paid_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('remaining_amount', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='Active'),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('credit_limit_overridden', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('written_off_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('written_off_by_user_id', sa.Integer(), nullable=True),
        sa.Column('write_off_reason', sa.String(length=255), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint('principal_amount > 0', name='ck_debts_principal_positive'),
        sa.CheckConstraint(
            'paid_amount >= 0 AND paid_amount <= principal_amount',
            name='ck_debts_paid_within_principal'),
        sa.CheckConstraint(
            'remaining_amount = principal_amount - paid_amount',
            name='ck_debts_remaining_consistent'),
        sa.CheckConstraint("status IN ('Active', 'PaidOff', 'WrittenOff')", name='ck_debts_status'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('debts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_debts_restaurant_id'), ['restaurant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_debts_customer_id'), ['customer_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_debts_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index('ix_debts_restaurant_status', ['restaurant_id', 'status'], unique=False)

    op.create_table('debt_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('debt_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('receipt_number', sa.String(length=64), nullable=True),
        sa.Column('transaction_id', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('received_by_user_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.CheckConstraint('amount > 0', name='ck_debt_payments_amount_positive'),
        sa.CheckConstraint(PAYMENT_METHOD_CHECK, name='ck_debt_payments_method'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['debt_id'], ['debts.id'], ),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('debt_payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_debt_payments_restaurant_id'), ['restaurant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_debt_payments_debt_id'), ['debt_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_debt_payments_customer_id'), ['customer_id'], unique=False)

    # ==========================================================================
    # 4. PRODUCTION
    # ==========================================================================
    op.create_table('production_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('preparation_status', sa.String(length=16), nullable=False, server_default='Planning'),
        sa.Column('deduct_stock', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('stock_deducted', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('stock_deducted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('estimated_cost_gnf', sa.Integer(), nullable=False, server_default='0'),
        *_submission_columns(),
        sa.CheckConstraint('quantity > 0', name='ck_production_logs_quantity_positive'),
        sa.CheckConstraint(SUBMISSION_STATUS_CHECK, name='ck_production_logs_status'),
        sa.CheckConstraint(
            "preparation_status IN ('Complete', 'InProgress', 'Planning', 'Ready')",
            name='ck_production_logs_preparation_status'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('production_logs', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_production_logs_restaurant_id'), ['restaurant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_production_logs_status'), ['status'], unique=False)
        batch_op.create_index('ix_production_logs_restaurant_date', ['restaurant_id', 'date'], unique=False)

    op.create_table('production_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('production_log_id', sa.Integer(), nullable=False),
        sa.Column('inventory_item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit_cost_gnf', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint('quantity > 0', name='ck_production_items_quantity_positive'),
        sa.ForeignKeyConstraint(['inventory_item_id'], ['inventory_items.id'], ),
        sa.ForeignKeyConstraint(['production_log_id'], ['production_logs.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('production_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_production_items_production_log_id'), ['production_log_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_production_items_inventory_item_id'), ['inventory_item_id'], unique=False)

    # ==========================================================================
    # 5. STOCK LEDGER
    # ==========================================================================
    op.create_table('stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit_cost', sa.Integer(), nullable=True),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('drives_negative', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('production_item_id', sa.Integer(), nullable=True),
        sa.Column('expense_item_id', sa.Integer(), nullable=True),
        sa.Column('transfer_ref', sa.String(length=64), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.CheckConstraint(
            "type IN ('Adjustment', 'Purchase', 'TransferIn', 'TransferOut', 'Usage', 'Waste')",
            name='ck_stock_movements_type'),
        sa.ForeignKeyConstraint(['expense_item_id'], ['expense_items.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['inventory_items.id'], ),
        sa.ForeignKeyConstraint(['production_item_id'], ['production_items.id'], ),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('production_item_id', name='uq_stock_movements_production_item'),
        sa.UniqueConstraint('expense_item_id', name='uq_stock_movements_expense_item'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_movements', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stock_movements_restaurant_id'), ['restaurant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_movements_item_id'), ['item_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_movements_transfer_ref'), ['transfer_ref'], unique=False)
        batch_op.create_index('ix_stock_movements_item_created', ['item_id', 'created_at'], unique=False)
        batch_op.create_index('ix_stock_movements_restaurant_type', ['restaurant_id', 'type'], unique=False)

    # ==========================================================================
    # 6. BANK
    # ==========================================================================
    op.create_table('bank_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('method', sa.String(length=16), nullable=False),
        sa.Column('reason', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='Pending'),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('bank_ref', sa.String(length=128), nullable=True),
        sa.Column('receipt_url', sa.String(length=512), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('confirmed_by_user_id', sa.Integer(), nullable=True),
        sa.Column('linked_sale_id', sa.Integer(), nullable=True),
        sa.Column('linked_debt_payment_id', sa.Integer(), nullable=True),
        sa.Column('linked_expense_payment_id', sa.Integer(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint('amount > 0', name='ck_bank_transactions_amount_positive'),
        sa.CheckConstraint("type IN ('Deposit', 'Withdrawal')", name='ck_bank_transactions_type'),
        sa.CheckConstraint("method IN ('Card', 'Cash', 'OrangeMoney')", name='ck_bank_transactions_method'),
        sa.CheckConstraint(
            "reason IN ('CapitalInjection', 'DebtCollection', 'ExpensePayment', "
            "'Other', 'OwnerWithdrawal', 'SalesDeposit')",
            name='ck_bank_transactions_reason'),
        sa.CheckConstraint("status IN ('Confirmed', 'Pending')", name='ck_bank_transactions_status'),
        sa.ForeignKeyConstraint(['linked_debt_payment_id'], ['debt_payments.id'], ),
        sa.ForeignKeyConstraint(['linked_expense_payment_id'], ['expense_payments.id'], ),
        sa.ForeignKeyConstraint(['linked_sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('linked_sale_id', 'method', name='uq_bank_transactions_sale_method'),
        sa.UniqueConstraint('linked_debt_payment_id', name='uq_bank_transactions_debt_payment'),
        sa.UniqueConstraint('linked_expense_payment_id', name='uq_bank_transactions_expense_payment'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('bank_transactions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_bank_transactions_restaurant_id'), ['restaurant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_bank_transactions_linked_sale_id'), ['linked_sale_id'], unique=False)
        batch_op.create_index('ix_bank_transactions_restaurant_status', ['restaurant_id', 'status'], unique=False)
        batch_op.create_index('ix_bank_transactions_restaurant_date', ['restaurant_id', 'date'], unique=False)


def downgrade():
    # Reverse dependency order; indexes go with their tables
    for table in (
        'bank_transactions',
        'stock_movements',
        'production_items',
        'production_logs',
        'debt_payments',
        'debts',
        'expense_payments',
        'expense_items',
        'expenses',
        'sale_items',
        'sales',
        'customers',
        'inventory_items',
        'expense_categories',
        'suppliers',
        'security_events',
        'session_tokens',
        'user_restaurants',
        'users',
        'restaurants',
    ):
        op.drop_table(table)
