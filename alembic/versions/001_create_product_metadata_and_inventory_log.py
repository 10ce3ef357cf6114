"""create product_metadata and inventory_log tables

Revision ID: 001
Revises:
Create Date: 2025-04-12 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Lookup cache and running quantity, one row per barcode
    op.create_table(
        'product_metadata',
        sa.Column('barcode', sa.Text(), primary_key=True),
        sa.Column('name', sa.Text()),
        sa.Column('image_url', sa.Text()),
        sa.Column('brands', sa.Text()),
        sa.Column('lookup_status', sa.String(20)),
        sa.Column('last_checked', sa.DateTime(timezone=True)),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "lookup_status IS NULL OR lookup_status IN "
            "('found', 'not_found', 'no_data', 'lookup_failed', 'was_offline')",
            name='lookup_status_valid'
        ),
    )
    op.create_index('idx_product_metadata_status', 'product_metadata', ['lookup_status'])

    # Append-only quantity adjustments
    op.create_table(
        'inventory_log',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('barcode', sa.Text(), nullable=False),
        sa.Column('delta', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_inventory_log_barcode', 'inventory_log', ['barcode'])


def downgrade() -> None:
    op.drop_index('idx_inventory_log_barcode', table_name='inventory_log')
    op.drop_table('inventory_log')
    op.drop_index('idx_product_metadata_status', table_name='product_metadata')
    op.drop_table('product_metadata')
