"""Initial schema: suppliers, offers, audit trail, history, subscriptions

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create suppliers table
    op.create_table(
        'suppliers',
        sa.Column('name', sa.String(length=255), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )

    # Create product_offers table
    op.create_table(
        'product_offers',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('supplier_name', sa.String(length=255), nullable=False),
        sa.Column('item_code', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=500), nullable=True),
        sa.Column('price_with_tax', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['supplier_name'], ['suppliers.name'], ondelete='CASCADE'),
        sa.UniqueConstraint('supplier_name', 'item_code', name='uq_offer_supplier_item'),
    )
    op.create_index('ix_product_offers_supplier_name', 'product_offers', ['supplier_name'])
    op.create_index('idx_product_offers_item_price', 'product_offers', ['item_code', 'price_with_tax'])

    # Create audit_records table
    op.create_table(
        'audit_records',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('subject', sa.String(length=255), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('detail', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_audit_records_subject', 'audit_records', ['subject'])
    op.create_index('ix_audit_records_action', 'audit_records', ['action'])
    op.create_index('ix_audit_records_created_at', 'audit_records', ['created_at'])

    # Create history_entries table
    op.create_table(
        'history_entries',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('account', sa.String(length=255), nullable=False),
        sa.Column('history_type', sa.String(length=50), nullable=False),
        sa.Column('request_details', sa.Text(), nullable=False),
        sa.Column('response_details', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('file_content', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_history_entries_account', 'history_entries', ['account'])
    op.create_index('ix_history_entries_history_type', 'history_entries', ['history_type'])
    op.create_index('ix_history_entries_created_at', 'history_entries', ['created_at'])

    # Create subscriptions table (written by the billing service)
    op.create_table(
        'subscriptions',
        sa.Column('account', sa.String(length=255), primary_key=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('subscriptions')

    op.drop_index('ix_history_entries_created_at', table_name='history_entries')
    op.drop_index('ix_history_entries_history_type', table_name='history_entries')
    op.drop_index('ix_history_entries_account', table_name='history_entries')
    op.drop_table('history_entries')

    op.drop_index('ix_audit_records_created_at', table_name='audit_records')
    op.drop_index('ix_audit_records_action', table_name='audit_records')
    op.drop_index('ix_audit_records_subject', table_name='audit_records')
    op.drop_table('audit_records')

    op.drop_index('idx_product_offers_item_price', table_name='product_offers')
    op.drop_index('ix_product_offers_supplier_name', table_name='product_offers')
    op.drop_table('product_offers')

    op.drop_table('suppliers')
