"""create users, products, variants, orders, order_items

Revision ID: 0001_create_core_tables
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

revision = '0001_create_core_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=128), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='customer'),
        sa.Column('loyalty_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('loyalty_points >= 0', name='ck_users_loyalty_points_nonneg'),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'products',
        sa.Column('id', sa.String(length=128), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('image_url', sa.String(length=255), nullable=True),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.CheckConstraint('price >= 0', name='ck_products_price_nonneg'),
    )
    op.create_index('ix_products_category_name', 'products', ['category', 'name'])

    op.create_table(
        'product_variants',
        sa.Column('id', sa.String(length=128), primary_key=True),
        sa.Column('product_id', sa.String(length=128), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('color', sa.String(length=50), nullable=True),
        sa.Column('size', sa.String(length=50), nullable=True),
        sa.Column('inventory', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint('inventory >= 0', name='ck_variants_inventory_nonneg'),
    )
    op.create_index('ix_product_variants_product', 'product_variants', ['product_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.String(length=128), primary_key=True),
        sa.Column('user_id', sa.String(length=128), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('risk_assessment', sa.Float(), nullable=True),
        sa.CheckConstraint(
            "status IN ('pending', 'processing', 'shipped', 'delivered', 'cancelled')",
            name='ck_orders_status',
        ),
    )
    op.create_index('ix_orders_user_created', 'orders', ['user_id', 'created_at'])
    op.create_index('ix_orders_status', 'orders', ['status'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('order_id', sa.String(length=128), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('product_id', sa.String(length=128), nullable=False),
        sa.Column('variant_id', sa.String(length=128), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('price_at_purchase', sa.Numeric(10, 2), nullable=False),
        sa.Column('currency', sa.String(length=10), nullable=False, server_default='USD'),
        sa.CheckConstraint('quantity > 0', name='ck_orderitem_quantity_pos'),
        sa.CheckConstraint('price_at_purchase >= 0', name='ck_orderitem_price_nonneg'),
    )


def downgrade():
    op.drop_table('order_items')
    op.drop_index('ix_orders_status', table_name='orders')
    op.drop_index('ix_orders_user_created', table_name='orders')
    op.drop_table('orders')
    op.drop_index('ix_product_variants_product', table_name='product_variants')
    op.drop_table('product_variants')
    op.drop_index('ix_products_category_name', table_name='products')
    op.drop_table('products')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
