"""add_component_suppliers_and_product_costs

Revision ID: 8b47d0c2e5a3
Revises: 3f1c2a9d7e10
Create Date: 2026-10-23 14:05:17.538102

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8b47d0c2e5a3'
down_revision: Union[str, None] = '3f1c2a9d7e10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def audit_columns():
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by', sa.String(length=100), nullable=True),
        sa.Column('updated_by', sa.String(length=100), nullable=True),
    ]


def upgrade():
    op.create_table(
        'component_suppliers',
        *audit_columns(),
        sa.Column('component_id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('supplier_part_number', sa.String(length=100), nullable=True),
        sa.Column('unit_price', sa.Numeric(12, 4), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='USD'),
        sa.Column('min_order_qty', sa.Integer(), nullable=True),
        sa.Column('lead_time_days', sa.Integer(), nullable=True),
        sa.Column('url', sa.String(length=500), nullable=True),
        sa.Column('in_stock', sa.Boolean(), nullable=True),
        sa.Column('is_preferred', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_price_check', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['component_id'], ['components.id']),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('component_id', 'supplier_id', name='uq_component_supplier_pair'),
    )
    op.create_index('ix_component_suppliers_id', 'component_suppliers', ['id'])
    op.create_index('ix_component_suppliers_component_id', 'component_suppliers', ['component_id'])
    op.create_index('ix_component_suppliers_supplier_id', 'component_suppliers', ['supplier_id'])

    op.create_table(
        'product_costs',
        *audit_columns(),
        sa.Column('product_name', sa.String(length=200), nullable=False),
        sa.Column('build_order_id', sa.Integer(), nullable=True),
        sa.Column('cost_type', sa.Enum('ESTIMATE', 'ACTUAL', name='costtype'), nullable=False),
        sa.Column('bom_version', sa.String(length=50), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('material_cost', sa.Numeric(14, 4), nullable=False),
        sa.Column('labor_cost', sa.Numeric(14, 4), nullable=True),
        sa.Column('overhead_cost', sa.Numeric(14, 4), nullable=True),
        sa.Column('total_cost', sa.Numeric(14, 4), nullable=False),
        sa.Column('cost_per_unit', sa.Numeric(14, 4), nullable=False),
        sa.Column('line_items', sa.JSON(), nullable=False),
        sa.Column('calculated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['build_order_id'], ['build_orders.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_product_costs_id', 'product_costs', ['id'])
    op.create_index('ix_product_costs_product_name', 'product_costs', ['product_name'])
    op.create_index('ix_product_costs_build_order_id', 'product_costs', ['build_order_id'])
    op.create_index('ix_product_costs_calculated_at', 'product_costs', ['calculated_at'])


def downgrade():
    op.drop_table('product_costs')
    op.drop_table('component_suppliers')

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute(sa.text("DROP TYPE IF EXISTS costtype"))
