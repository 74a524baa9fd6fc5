"""Initial schema: POS sync, recipes, shifts, counts, dispatches, ledger, reconciliation

Revision ID: 001
Revises:
Create Date: 2026-10-18

Creates:
- ingredients, recipes, recipe_ingredients
- synced_transactions, calculated_consumption, sync_status
- shifts (single open shift partial unique index), expenses
- stock_counts, stock_count_items
- dispatches, dispatch_items, inventory_movements
- daily_reconciliations, reconciliation_items
- reorder_requests, app_settings, daily_summaries
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    # Catalog
    op.create_table(
        'ingredients',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False, index=True),
        sa.Column('unit', sa.String(20), nullable=False),
        sa.Column('pos_ingredient_id', sa.String(100), nullable=True, unique=True),
        sa.Column('avg_cost', sa.Numeric(12, 4), nullable=False),
        sa.Column('last_cost', sa.Numeric(12, 4), nullable=True),
        sa.Column('par_level', sa.Numeric(12, 3), nullable=True),
        sa.Column('safety_stock', sa.Numeric(12, 3), nullable=True),
        sa.Column('max_stock', sa.Numeric(12, 3), nullable=True),
        sa.Column('lead_time_days', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'recipes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pos_product_id', sa.String(100), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=False, index=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'recipe_ingredients',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('recipe_id', sa.Integer(),
                  sa.ForeignKey('recipes.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('ingredient_id', sa.Integer(),
                  sa.ForeignKey('ingredients.id'),
                  nullable=False, index=True),
        sa.Column('quantity', sa.Numeric(12, 4), nullable=False),
        sa.Column('unit', sa.String(20), nullable=False),
        sa.Column('is_modifier', sa.Boolean(), nullable=False),
        sa.Column('pos_modification_id', sa.String(100), nullable=True),
        sa.Column('modifier_group', sa.String(255), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.UniqueConstraint('recipe_id', 'ingredient_id', 'pos_modification_id',
                            name='uq_recipe_ingredient_modification'),
    )

    # POS sync
    op.create_table(
        'synced_transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pos_transaction_id', sa.String(100), nullable=False, unique=True),
        sa.Column('transaction_date', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('pay_type', sa.String(20), nullable=False),
        sa.Column('payed_cash', sa.Numeric(12, 2), nullable=False),
        sa.Column('payed_card', sa.Numeric(12, 2), nullable=False),
        sa.Column('products', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(20), nullable=True),
        sa.Column('synced_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'calculated_consumption',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('transaction_id', sa.Integer(),
                  sa.ForeignKey('synced_transactions.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('ingredient_id', sa.Integer(),
                  sa.ForeignKey('ingredients.id'),
                  nullable=False, index=True),
        sa.Column('ingredient_name', sa.String(255), nullable=False),
        sa.Column('recipe_id', sa.Integer(),
                  sa.ForeignKey('recipes.id', ondelete='SET NULL'),
                  nullable=True),
        sa.Column('recipe_name', sa.String(255), nullable=True),
        sa.Column('quantity_consumed', sa.Numeric(12, 4), nullable=False),
        sa.Column('unit', sa.String(20), nullable=False),
        sa.Column('is_modifier', sa.Boolean(), nullable=False),
        sa.Column('cost_at_time', sa.Numeric(12, 4), nullable=True),
        sa.Column('calculated_at', sa.DateTime(timezone=True), nullable=False, index=True),
    )

    op.create_table(
        'sync_status',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('sync_type', sa.String(50), nullable=False, unique=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('last_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_sync_timestamp', sa.Integer(), nullable=True),
        sa.Column('records_synced', sa.Integer(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    # Counts and shifts reference each other; the count -> shift FK is added afterwards
    op.create_table(
        'stock_counts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('location', sa.String(20), nullable=False, index=True),
        sa.Column('count_type', sa.String(20), nullable=False),
        sa.Column('counted_by', sa.String(100), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('count_date', sa.Date(), nullable=False, index=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('item_count', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
    )

    op.create_table(
        'stock_count_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('stock_count_id', sa.Integer(),
                  sa.ForeignKey('stock_counts.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('ingredient_id', sa.Integer(),
                  sa.ForeignKey('ingredients.id'),
                  nullable=True),
        sa.Column('item_name', sa.String(255), nullable=True),
        sa.Column('counted_quantity', sa.Numeric(12, 3), nullable=False),
        sa.Column('unit', sa.String(20), nullable=True),
        sa.Column('notes', sa.String(500), nullable=True),
    )

    op.create_table(
        'shifts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('opened_by', sa.String(100), nullable=False),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('opening_float', sa.Numeric(12, 2), nullable=False),
        sa.Column('staff_on_duty', sa.JSON(), nullable=False),
        sa.Column('opening_stock_count_id', sa.Integer(),
                  sa.ForeignKey('stock_counts.id', ondelete='SET NULL'),
                  nullable=True),
        sa.Column('closed_by', sa.String(100), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('closing_cash', sa.Numeric(12, 2), nullable=True),
        sa.Column('cash_declared', sa.Numeric(12, 2), nullable=True),
        sa.Column('closing_stock_count_id', sa.Integer(),
                  sa.ForeignKey('stock_counts.id', ondelete='SET NULL'),
                  nullable=True),
        sa.Column('pos_cash_total', sa.Numeric(12, 2), nullable=True),
        sa.Column('pos_card_total', sa.Numeric(12, 2), nullable=True),
        sa.Column('expenses_total', sa.Numeric(12, 2), nullable=True),
        sa.Column('expected_cash', sa.Numeric(12, 2), nullable=True),
        sa.Column('cash_variance', sa.Numeric(12, 2), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
    )
    op.create_index(
        'uq_shifts_single_open', 'shifts', ['status'], unique=True,
        sqlite_where=sa.text("status = 'open'"),
        postgresql_where=sa.text("status = 'open'"),
    )

    with op.batch_alter_table('stock_counts', schema=None) as batch_op:
        batch_op.create_foreign_key(
            'fk_stock_counts_shift_id', 'shifts', ['shift_id'], ['id'], ondelete='SET NULL'
        )

    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('shift_id', sa.Integer(),
                  sa.ForeignKey('shifts.id', ondelete='SET NULL'),
                  nullable=True, index=True),
        sa.Column('expense_type', sa.String(20), nullable=False),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('paid_by', sa.String(100), nullable=True),
        sa.Column('paid_to', sa.String(255), nullable=True),
        sa.Column('receipt_number', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, index=True),
    )

    # Dispatches and ledger
    op.create_table(
        'dispatches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('from_location', sa.String(20), nullable=False),
        sa.Column('to_location', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, index=True),
        sa.Column('dispatched_by', sa.String(100), nullable=False),
        sa.Column('dispatched_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('received_by', sa.String(100), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=True, index=True),
        sa.Column('notes', sa.Text(), nullable=True),
    )

    op.create_table(
        'dispatch_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('dispatch_id', sa.Integer(),
                  sa.ForeignKey('dispatches.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('ingredient_id', sa.Integer(),
                  sa.ForeignKey('ingredients.id'),
                  nullable=True),
        sa.Column('item_name', sa.String(255), nullable=False),
        sa.Column('unit', sa.String(20), nullable=True),
        sa.Column('quantity_sent', sa.Numeric(12, 3), nullable=False),
        sa.Column('quantity_received', sa.Numeric(12, 3), nullable=True),
        sa.Column('notes', sa.String(500), nullable=True),
    )

    op.create_table(
        'inventory_movements',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ingredient_id', sa.Integer(),
                  sa.ForeignKey('ingredients.id'),
                  nullable=True, index=True),
        sa.Column('item_name', sa.String(255), nullable=False),
        sa.Column('location', sa.String(20), nullable=False, index=True),
        sa.Column('movement_type', sa.String(20), nullable=False),
        sa.Column('quantity', sa.Numeric(12, 3), nullable=False),
        sa.Column('unit', sa.String(20), nullable=True),
        sa.Column('reference_type', sa.String(50), nullable=True),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.String(500), nullable=True),
        sa.Column('performed_by', sa.String(100), nullable=True),
        sa.Column('cost_per_unit', sa.Numeric(12, 4), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, index=True),
    )

    # Reconciliation
    op.create_table(
        'daily_reconciliations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('reconciliation_date', sa.Date(), nullable=False, index=True),
        sa.Column('location', sa.String(20), nullable=False),
        sa.Column('opening_count_id', sa.Integer(),
                  sa.ForeignKey('stock_counts.id', ondelete='SET NULL'),
                  nullable=True),
        sa.Column('closing_count_id', sa.Integer(),
                  sa.ForeignKey('stock_counts.id', ondelete='SET NULL'),
                  nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('item_count', sa.Integer(), nullable=False),
        sa.Column('matched_count', sa.Integer(), nullable=False),
        sa.Column('over_count', sa.Integer(), nullable=False),
        sa.Column('under_count', sa.Integer(), nullable=False),
        sa.Column('total_variance_value', sa.Numeric(12, 2), nullable=False),
        sa.Column('calculated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('acknowledged_by', sa.String(100), nullable=True),
        sa.Column('acknowledged_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('reconciliation_date', 'location',
                            name='uq_daily_reconciliation_date_location'),
    )

    op.create_table(
        'reconciliation_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('reconciliation_id', sa.Integer(),
                  sa.ForeignKey('daily_reconciliations.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('ingredient_id', sa.Integer(),
                  sa.ForeignKey('ingredients.id'),
                  nullable=False),
        sa.Column('ingredient_name', sa.String(255), nullable=False),
        sa.Column('unit', sa.String(20), nullable=True),
        sa.Column('opening_qty', sa.Numeric(12, 3), nullable=False),
        sa.Column('received_qty', sa.Numeric(12, 3), nullable=False),
        sa.Column('theoretical_usage', sa.Numeric(12, 4), nullable=False),
        sa.Column('expected_closing', sa.Numeric(12, 4), nullable=False),
        sa.Column('actual_closing', sa.Numeric(12, 3), nullable=False),
        sa.Column('variance', sa.Numeric(12, 4), nullable=False),
        sa.Column('variance_value', sa.Numeric(12, 2), nullable=False),
        sa.Column('variance_status', sa.String(20), nullable=False),
    )

    # Operations
    op.create_table(
        'reorder_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ingredient_id', sa.Integer(),
                  sa.ForeignKey('ingredients.id'),
                  nullable=False, index=True),
        sa.Column('location', sa.String(20), nullable=False),
        sa.Column('quantity', sa.Numeric(12, 3), nullable=False),
        sa.Column('unit', sa.String(20), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('requested_by', sa.String(100), nullable=False),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('notes', sa.Text(), nullable=True),
    )

    op.create_table(
        'app_settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('key', sa.String(100), nullable=False, unique=True),
        sa.Column('value', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'daily_summaries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('summary_date', sa.Date(), nullable=False, unique=True),
        sa.Column('total_sales', sa.Numeric(12, 2), nullable=False),
        sa.Column('cash_sales', sa.Numeric(12, 2), nullable=False),
        sa.Column('card_sales', sa.Numeric(12, 2), nullable=False),
        sa.Column('transaction_count', sa.Integer(), nullable=False),
        sa.Column('total_consumption_cost', sa.Numeric(12, 2), nullable=False),
        sa.Column('items_consumed', sa.Integer(), nullable=False),
        sa.Column('gross_margin', sa.Numeric(12, 2), nullable=False),
        sa.Column('stock_variance_count', sa.Integer(), nullable=False),
        sa.Column('stock_variance_value', sa.Numeric(12, 2), nullable=False),
        sa.Column('cash_variance', sa.Numeric(12, 2), nullable=False),
        sa.Column('shifts_opened', sa.Integer(), nullable=False),
        sa.Column('dispatches_sent', sa.Integer(), nullable=False),
        sa.Column('dispatches_received', sa.Integer(), nullable=False),
        sa.Column('reorders_created', sa.Integer(), nullable=False),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table('daily_summaries')
    op.drop_table('app_settings')
    op.drop_table('reorder_requests')
    op.drop_table('reconciliation_items')
    op.drop_table('daily_reconciliations')
    op.drop_table('inventory_movements')
    op.drop_table('dispatch_items')
    op.drop_table('dispatches')
    op.drop_table('expenses')
    with op.batch_alter_table('stock_counts', schema=None) as batch_op:
        batch_op.drop_constraint('fk_stock_counts_shift_id', type_='foreignkey')
    op.drop_index('uq_shifts_single_open', table_name='shifts')
    op.drop_table('shifts')
    op.drop_table('stock_count_items')
    op.drop_table('stock_counts')
    op.drop_table('sync_status')
    op.drop_table('calculated_consumption')
    op.drop_table('synced_transactions')
    op.drop_table('recipe_ingredients')
    op.drop_table('recipes')
    op.drop_table('ingredients')
