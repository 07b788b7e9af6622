"""create affiliate ledger tables

Revision ID: 001_create_affiliate_ledger_tables
Revises:
Create Date: 2026-10-19 12:00:00.000000

affiliates, orders and affiliate_clicks. Stats columns on affiliates are
NOT NULL with zero defaults so the single-statement increments never see NULL.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_create_affiliate_ledger_tables'
down_revision = None
branch_labels = None
depends_on = None


def _has_table(name: str) -> bool:
    """Check if a table exists"""
    bind = op.get_bind()
    insp = sa.inspect(bind)
    return name in insp.get_table_names()


def upgrade():
    if not _has_table('affiliates'):
        op.create_table(
            'affiliates',
            sa.Column('id', sa.String(36), primary_key=True),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('email', sa.String(255), nullable=True),
            sa.Column('affiliate_code', sa.String(32), nullable=False),
            sa.Column('discount_code', sa.String(64), nullable=True),
            sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
            sa.Column('commission_rate', sa.Numeric(5, 2), nullable=False, server_default='15'),
            sa.Column('checkout_discount', sa.Numeric(5, 2), nullable=False, server_default='10'),
            sa.Column('clicks', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('conversions', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('total_earnings', sa.Numeric(12, 2), nullable=False, server_default='0'),
            sa.Column('balance', sa.Numeric(12, 2), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.UniqueConstraint('discount_code', name='uq_affiliates_discount_code'),
            sa.CheckConstraint('clicks >= 0', name='ck_affiliate_clicks_non_negative'),
            sa.CheckConstraint('conversions >= 0', name='ck_affiliate_conversions_non_negative'),
        )
        op.create_index('ix_affiliates_affiliate_code', 'affiliates', ['affiliate_code'], unique=True)
        op.create_index('ix_affiliates_code_status', 'affiliates', ['affiliate_code', 'status'])

    if not _has_table('orders'):
        op.create_table(
            'orders',
            sa.Column('id', sa.String(36), primary_key=True),
            sa.Column('order_number', sa.String(64), nullable=True),
            sa.Column('status', sa.String(32), nullable=False, server_default='pending'),
            sa.Column('source', sa.String(16), nullable=False, server_default='b2c'),
            sa.Column('subtotal', sa.Numeric(12, 2), nullable=True),
            sa.Column('total', sa.Numeric(12, 2), nullable=True),
            sa.Column('total_amount', sa.Numeric(12, 2), nullable=True),
            sa.Column('shipping', sa.Numeric(12, 2), nullable=True),
            sa.Column('discount_amount', sa.Numeric(12, 2), nullable=True),
            sa.Column('affiliate_code', sa.String(32), nullable=True),
            sa.Column('affiliate_click_id', sa.String(36), nullable=True),
            sa.Column('discount_code', sa.String(64), nullable=True),
            sa.Column('affiliate', sa.JSON(), nullable=True),
            sa.Column('payment_intent_id', sa.String(255), nullable=True),
            sa.Column('customer_email', sa.String(255), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.Column('affiliate_commission', sa.Numeric(12, 2), nullable=True),
            sa.Column('affiliate_id', sa.String(36), nullable=True),
            sa.Column('conversion_processed', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('conversion_processed_at', sa.DateTime(), nullable=True),
            sa.Column('attribution_method', sa.String(16), nullable=True),
            sa.UniqueConstraint('payment_intent_id', name='uq_orders_payment_intent_id'),
        )
        op.create_index('ix_orders_order_number', 'orders', ['order_number'])
        op.create_index('ix_orders_affiliate_code', 'orders', ['affiliate_code'])
        op.create_index('ix_orders_affiliate_id', 'orders', ['affiliate_id'])
        op.create_index('ix_orders_affiliate_code_processed', 'orders', ['affiliate_code', 'conversion_processed'])

    if not _has_table('affiliate_clicks'):
        op.create_table(
            'affiliate_clicks',
            sa.Column('id', sa.String(36), primary_key=True),
            sa.Column('affiliate_code', sa.String(32), nullable=False),
            sa.Column('affiliate_id', sa.String(36), sa.ForeignKey('affiliates.id'), nullable=False),
            sa.Column('clicked_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column('ip_address', sa.String(64), nullable=False, server_default='unknown'),
            sa.Column('user_agent', sa.Text(), nullable=False),
            sa.Column('landing_page', sa.Text(), nullable=False),
            sa.Column('converted', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('order_id', sa.String(36), sa.ForeignKey('orders.id'), nullable=True),
            sa.Column('commission_amount', sa.Numeric(12, 2), nullable=True),
            sa.Column('converted_at', sa.DateTime(), nullable=True),
        )
        op.create_index('ix_affiliate_clicks_affiliate_id', 'affiliate_clicks', ['affiliate_id'])
        op.create_index(
            'ix_affiliate_clicks_code_converted_clicked',
            'affiliate_clicks',
            ['affiliate_code', 'converted', 'clicked_at'],
        )


def downgrade():
    for table in ('affiliate_clicks', 'orders', 'affiliates'):
        if _has_table(table):
            op.drop_table(table)
