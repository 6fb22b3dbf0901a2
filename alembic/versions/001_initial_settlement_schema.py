# alembic/versions/001_initial_settlement_schema.py

"""Initial settlement schema

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


seller_status = sa.Enum('ACTIVE', 'INACTIVE', 'SUSPENDED', name='sellerstatus')
order_status = sa.Enum('PENDING', 'CONFIRMED', 'SHIPPED', 'DELIVERED', 'CANCELLED', name='orderstatus')
refund_type = sa.Enum('FULL', 'PARTIAL_AMOUNT', 'PARTIAL_QUANTITY', name='refundtype')
refund_status = sa.Enum('PENDING', 'APPROVED', 'REJECTED', 'COMPLETED', name='refundstatus')
cycle_type = sa.Enum('DAILY', 'WEEKLY', name='cycletype')
settlement_status = sa.Enum('PENDING', 'CONFIRMED', 'PAID', 'CANCELLED', name='settlementstatus')
settlement_item_type = sa.Enum('SALE', 'REFUND', 'ADJUSTMENT', name='settlementitemtype')
settlement_source = sa.Enum('ORDER_ITEM', 'REFUND', 'MANUAL', name='settlementsource')
job_execution_status = sa.Enum('STARTED', 'COMPLETED', 'FAILED', 'PARTIALLY_FAILED', name='jobexecutionstatus')

MONEY = sa.Numeric(precision=15, scale=2)
RATE = sa.Numeric(precision=5, scale=4)


def upgrade():
    # Source data
    op.create_table('sellers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('seller_code', sa.String(length=50), nullable=False),
        sa.Column('seller_name', sa.String(length=100), nullable=False),
        sa.Column('commission_rate', RATE, nullable=False),
        sa.Column('status', seller_status, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sellers_seller_code', 'sellers', ['seller_code'], unique=True)
    op.create_index('ix_sellers_status', 'sellers', ['status'])

    op.create_table('orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_no', sa.String(length=100), nullable=False),
        sa.Column('seller_id', sa.Integer(), nullable=False),
        sa.Column('order_status', order_status, nullable=False),
        sa.Column('order_date', sa.DateTime(), nullable=False),
        sa.Column('total_amount', MONEY, nullable=False),
        sa.Column('shipping_fee', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['seller_id'], ['sellers.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_no'),
    )
    op.create_index('ix_orders_seller_id', 'orders', ['seller_id'])
    op.create_index('ix_orders_order_status', 'orders', ['order_status'])
    op.create_index('ix_orders_order_date', 'orders', ['order_date'])

    op.create_table('order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=200), nullable=False),
        sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('total_amount', MONEY, nullable=False),
        sa.Column('is_refunded', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_is_refunded', 'order_items', ['is_refunded'])

    op.create_table('refunds',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_item_id', sa.Integer(), nullable=False),
        sa.Column('refund_type', refund_type, nullable=False),
        sa.Column('refund_amount', MONEY, nullable=False),
        sa.Column('refund_quantity', sa.Integer(), nullable=False),
        sa.Column('refund_reason', sa.String(length=500), nullable=True),
        sa.Column('refund_status', refund_status, nullable=False),
        sa.Column('refunded_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['order_item_id'], ['order_items.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_refunds_order_item_id', 'refunds', ['order_item_id'])
    op.create_index('ix_refunds_refund_status', 'refunds', ['refund_status'])
    op.create_index('ix_refunds_refunded_at', 'refunds', ['refunded_at'])

    # Settlement output
    op.create_table('settlements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('seller_id', sa.Integer(), nullable=False),
        sa.Column('cycle_type', cycle_type, nullable=False),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('gross_sales_amount', MONEY, nullable=False),
        sa.Column('refund_amount', MONEY, nullable=False),
        sa.Column('commission_rate', RATE, nullable=False),
        sa.Column('commission_amount', MONEY, nullable=False),
        sa.Column('tax_amount', MONEY, nullable=False),
        sa.Column('adjustment_amount', MONEY, nullable=False),
        sa.Column('payout_amount', MONEY, nullable=False),
        sa.Column('status', settlement_status, nullable=False),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('cancel_reason', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['seller_id'], ['sellers.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_settlements_seller_id', 'settlements', ['seller_id'])
    op.create_index('ix_settlements_status', 'settlements', ['status'])
    op.create_index('ix_settlements_period', 'settlements', ['period_start', 'period_end'])
    # At most one non-cancelled settlement per seller and period
    op.create_index(
        'uk_settlement_active_period',
        'settlements',
        ['seller_id', 'cycle_type', 'period_start', 'period_end'],
        unique=True,
        postgresql_where=sa.text("status <> 'CANCELLED'"),
    )

    op.create_table('settlement_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('settlement_id', sa.Integer(), nullable=False),
        sa.Column('item_type', settlement_item_type, nullable=False),
        sa.Column('source_type', settlement_source, nullable=False),
        sa.Column('source_id', sa.Integer(), nullable=True),
        sa.Column('gross_amount', MONEY, nullable=False),
        sa.Column('commission_rate', RATE, nullable=False),
        sa.Column('commission_amount', MONEY, nullable=False),
        sa.Column('net_amount', MONEY, nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.ForeignKeyConstraint(['settlement_id'], ['settlements.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_settlement_items_settlement_id', 'settlement_items', ['settlement_id'])
    op.create_index('ix_settlement_items_item_type', 'settlement_items', ['item_type'])
    op.create_index('ix_settlement_items_source', 'settlement_items', ['source_type', 'source_id'])

    op.create_table('settlement_job_executions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('job_name', sa.String(length=100), nullable=False),
        sa.Column('execution_date', sa.Date(), nullable=False),
        sa.Column('execution_status', job_execution_status, nullable=False),
        sa.Column('total_sellers', sa.Integer(), nullable=False),
        sa.Column('success_count', sa.Integer(), nullable=False),
        sa.Column('failure_count', sa.Integer(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('job_name', 'execution_date', name='uk_job_execution'),
    )
    op.create_index('ix_settlement_job_executions_execution_date', 'settlement_job_executions', ['execution_date'])
    op.create_index('ix_settlement_job_executions_execution_status', 'settlement_job_executions', ['execution_status'])


def downgrade():
    op.drop_table('settlement_job_executions')
    op.drop_table('settlement_items')
    op.drop_index('uk_settlement_active_period', table_name='settlements')
    op.drop_table('settlements')
    op.drop_table('refunds')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('sellers')

    bind = op.get_bind()
    for enum in (
        job_execution_status, settlement_source, settlement_item_type,
        settlement_status, cycle_type, refund_status, refund_type,
        order_status, seller_status,
    ):
        enum.drop(bind, checkfirst=True)
