"""add settlements (idempotency markers), settlement_audit and subscribers

Revision ID: 0002_settlements_and_subscribers
Revises: 0001_create_core_tables
Create Date: 2026-10-19 00:00:00.000001
"""
from alembic import op
import sqlalchemy as sa

revision = '0002_settlements_and_subscribers'
down_revision = '0001_create_core_tables'
branch_labels = None
depends_on = None


def upgrade():
    # primary key on order_id: one marker per order, second insert fails
    op.create_table(
        'settlements',
        sa.Column('order_id', sa.String(length=128), primary_key=True),
        sa.Column('user_id', sa.String(length=128), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('award', sa.Integer(), nullable=False),
        sa.Column('settled_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('award >= 0', name='ck_settlements_award_nonneg'),
    )
    op.create_index('ix_settlements_user', 'settlements', ['user_id'])

    op.create_table(
        'settlement_audit',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('order_id', sa.String(length=128), nullable=True),
        sa.Column('user_id', sa.String(length=128), nullable=True),
        sa.Column('error', sa.String(length=50), nullable=False),
        sa.Column('detail', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_settlement_audit_order_id', 'settlement_audit', ['order_id'])

    op.create_table(
        'subscribers',
        sa.Column('user_id', sa.String(length=128), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('subscribed_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )


def downgrade():
    op.drop_table('subscribers')
    op.drop_index('ix_settlement_audit_order_id', table_name='settlement_audit')
    op.drop_table('settlement_audit')
    op.drop_index('ix_settlements_user', table_name='settlements')
    op.drop_table('settlements')
