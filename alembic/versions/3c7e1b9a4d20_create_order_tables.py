"""Create order tables

Revision ID: 3c7e1b9a4d20
Revises: 
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c7e1b9a4d20'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create orders, order lines, status history and audit log tables"""

    op.create_table('orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('shipping_address', sa.JSON(), nullable=False),
        sa.Column('tracking_number', sa.String(), nullable=True),
        sa.Column('delivery_agency', sa.String(), nullable=True),
        sa.Column('currency', sa.String(), nullable=False, server_default='DZD'),
        sa.Column('total_order_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('shipping_price', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('tax_price', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('cod_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('payment_method_type', sa.String(32), nullable=False),
        sa.Column('payment_status', sa.String(32), nullable=False, server_default='pending'),
        sa.Column('delivery_status', sa.String(32), nullable=False, server_default='pending'),
        sa.Column('is_paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('is_delivered', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.Column('gateway_session_id', sa.String(), nullable=True),
        sa.Column('inventory_adjusted_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('gateway_session_id')
    )
    op.create_index('ix_orders_id', 'orders', ['id'])
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_tracking_number', 'orders', ['tracking_number'])
    op.create_index('ix_orders_payment_status', 'orders', ['payment_status'])
    op.create_index('ix_orders_delivery_status', 'orders', ['delivery_status'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])

    op.create_table('order_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('color', sa.String(), nullable=True),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    # Insert-only; rows are never updated or deleted
    op.create_table('order_status_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('updated_by', sa.String(32), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_order_status_history_order_id', 'order_status_history', ['order_id'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('actor', sa.String(), nullable=True),
        sa.Column('resource_type', sa.String(), nullable=True),
        sa.Column('resource_id', sa.String(), nullable=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_logs_id', 'audit_logs', ['id'])


def downgrade() -> None:
    """Drop order tables"""
    op.drop_index('ix_audit_logs_id', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_index('ix_order_status_history_order_id', table_name='order_status_history')
    op.drop_table('order_status_history')
    op.drop_index('ix_order_items_order_id', table_name='order_items')
    op.drop_table('order_items')
    for column in ('created_at', 'delivery_status', 'payment_status', 'tracking_number', 'user_id', 'id'):
        op.drop_index(f'ix_orders_{column}', table_name='orders')
    op.drop_table('orders')
