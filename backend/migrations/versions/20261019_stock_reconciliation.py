"""Stock counts (reconciliations) and cancelled credit-sale debts

Revision ID: 20261019_reconciliation
Revises: 20261019_initial
Create Date: 2026-10-19 16:00:00.000000

This migration:
1. Adds 'Cancelled' to the debt status set (debts of a rejected credit sale)
2. Creates stock_reconciliations and reconciliation_items
3. Links stock_movements to the reconciliation line that booked them (unique)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_reconciliation'
down_revision = '20261019_initial'
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table('debts', schema=None) as batch_op:
        batch_op.drop_constraint('ck_debts_status', type_='check')
        batch_op.create_check_constraint(
            'ck_debts_status', "status IN ('Active', 'Cancelled', 'PaidOff', 'WrittenOff')"
        )

    op.create_table('stock_reconciliations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='Pending'),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('approved_by_user_id', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.String(length=255), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint(
            "status IN ('Approved', 'Pending', 'Rejected')", name='ck_stock_reconciliations_status'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_reconciliations', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stock_reconciliations_restaurant_id'), ['restaurant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_reconciliations_status'), ['status'], unique=False)
        batch_op.create_index('ix_stock_reconciliations_restaurant_date', ['restaurant_id', 'date'], unique=False)

    op.create_table('reconciliation_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('reconciliation_id', sa.Integer(), nullable=False),
        sa.Column('inventory_item_id', sa.Integer(), nullable=False),
        sa.Column('system_stock', sa.Float(), nullable=False),
        sa.Column('physical_count', sa.Float(), nullable=False),
        sa.Column('variance', sa.Float(), nullable=False),
        sa.Column('adjustment_applied', sa.Boolean(), nullable=False, server_default='0'),
        sa.CheckConstraint('physical_count >= 0', name='ck_reconciliation_items_count_nonnegative'),
        sa.ForeignKeyConstraint(['inventory_item_id'], ['inventory_items.id'], ),
        sa.ForeignKeyConstraint(['reconciliation_id'], ['stock_reconciliations.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('reconciliation_id', 'inventory_item_id', name='uq_reconciliation_items_item'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('reconciliation_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_reconciliation_items_reconciliation_id'), ['reconciliation_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_reconciliation_items_inventory_item_id'), ['inventory_item_id'], unique=False)

    with op.batch_alter_table('stock_movements', schema=None) as batch_op:
        batch_op.add_column(sa.Column('reconciliation_item_id', sa.Integer(), nullable=True))
        batch_op.create_foreign_key(
            'fk_stock_movements_reconciliation_item',
            'reconciliation_items',
            ['reconciliation_item_id'],
            ['id'],
        )
        batch_op.create_unique_constraint(
            'uq_stock_movements_reconciliation_item',
            ['reconciliation_item_id'],
        )


def downgrade():
    with op.batch_alter_table('stock_movements', schema=None) as batch_op:
        batch_op.drop_constraint('uq_stock_movements_reconciliation_item', type_='unique')
        batch_op.drop_constraint('fk_stock_movements_reconciliation_item', type_='foreignkey')
        batch_op.drop_column('reconciliation_item_id')

    op.drop_table('reconciliation_items')
    op.drop_table('stock_reconciliations')

    op.execute("UPDATE debts SET status = 'WrittenOff' WHERE status = 'Cancelled'")
    with op.batch_alter_table('debts', schema=None) as batch_op:
        batch_op.drop_constraint('ck_debts_status', type_='check')
        batch_op.create_check_constraint(
            'ck_debts_status', "status IN ('Active', 'PaidOff', 'WrittenOff')"
        )
