"""initial_parts_ledger_schema

Revision ID: 3f1c2a9d7e10
Revises: 
Create Date: 2026-10-16 09:12:44.201733

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7e10'
down_revision: Union[str, None] = None
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
        'components',
        *audit_columns(),
        sa.Column('part_number', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('subcategory', sa.String(length=100), nullable=True),
        sa.Column('manufacturer', sa.String(length=200), nullable=True),
        sa.Column('manufacturer_part_number', sa.String(length=100), nullable=True),
        sa.Column('unit_of_measure', sa.String(length=20), nullable=False),
        sa.Column('status', sa.Enum('ACTIVE', 'DEPRECATED', 'EOL', 'PENDING_REVIEW', name='componentstatus'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_components_id', 'components', ['id'])
    op.create_index('ix_components_part_number', 'components', ['part_number'], unique=True)
    op.create_index('ix_components_category', 'components', ['category'])

    op.create_table(
        'locations',
        *audit_columns(),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('location_type', sa.Enum('ROOM', 'SHELF', 'BIN', 'DRAWER', 'ZONE', name='locationtype'), nullable=False),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=True),
        sa.Column('status', sa.Enum('ACTIVE', 'FULL', 'INACTIVE', name='locationstatus'), nullable=False),
        sa.ForeignKeyConstraint(['parent_id'], ['locations.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_locations_id', 'locations', ['id'])
    op.create_index('ix_locations_code', 'locations', ['code'], unique=True)
    op.create_index('ix_locations_parent_id', 'locations', ['parent_id'])

    op.create_table(
        'suppliers',
        *audit_columns(),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('contact_person', sa.String(length=100), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('website', sa.String(length=255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('lead_time_days', sa.Integer(), nullable=True),
        sa.Column('rating', sa.Numeric(3, 2), nullable=True),
        sa.Column('status', sa.Enum('ACTIVE', 'INACTIVE', 'PREFERRED', name='supplierstatus'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_suppliers_id', 'suppliers', ['id'])
    op.create_index('ix_suppliers_code', 'suppliers', ['code'], unique=True)

    op.create_table(
        'stock_records',
        *audit_columns(),
        sa.Column('component_id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('reserved_qty', sa.Integer(), nullable=False),
        sa.Column('available_qty', sa.Integer(), nullable=False),
        sa.Column('minimum_stock', sa.Integer(), nullable=True),
        sa.Column('maximum_stock', sa.Integer(), nullable=True),
        sa.Column('cost_per_unit', sa.Numeric(12, 4), nullable=True),
        sa.Column('status', sa.Enum('IN_STOCK', 'LOW_STOCK', 'OUT_OF_STOCK', 'OVERSTOCK', name='stockstatus'), nullable=False),
        sa.Column('last_counted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_counted_by', sa.String(length=100), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['component_id'], ['components.id']),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('component_id', 'location_id', name='uq_stock_record_component_location'),
        sa.CheckConstraint('quantity >= 0', name='ck_stock_record_quantity_non_negative'),
        sa.CheckConstraint('reserved_qty >= 0', name='ck_stock_record_reserved_non_negative'),
        sa.CheckConstraint('reserved_qty <= quantity', name='ck_stock_record_reserved_within_quantity'),
    )
    op.create_index('ix_stock_records_id', 'stock_records', ['id'])
    op.create_index('ix_stock_records_component_id', 'stock_records', ['component_id'])
    op.create_index('ix_stock_records_location_id', 'stock_records', ['location_id'])

    op.create_table(
        'inventory_transactions',
        *audit_columns(),
        sa.Column('transaction_type', sa.Enum(
            'RECEIVE', 'CONSUME', 'TRANSFER', 'ADJUST', 'RESERVE', 'UNRESERVE', 'RETURN', 'SCRAP',
            name='transactiontype'), nullable=False),
        sa.Column('component_id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('stock_record_id', sa.Integer(), nullable=False),
        sa.Column('to_location_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('reserved_change', sa.Integer(), nullable=False),
        sa.Column('previous_qty', sa.Integer(), nullable=False),
        sa.Column('new_qty', sa.Integer(), nullable=False),
        sa.Column('reference_type', sa.Enum(
            'PURCHASE_ORDER', 'BUILD_ORDER', 'MANUAL', 'CYCLE_COUNT', 'TRANSFER',
            name='referencetype'), nullable=True),
        sa.Column('reference_id', sa.String(length=100), nullable=True),
        sa.Column('reason', sa.String(length=500), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('performed_by', sa.String(length=100), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['component_id'], ['components.id']),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.ForeignKeyConstraint(['to_location_id'], ['locations.id']),
        sa.ForeignKeyConstraint(['stock_record_id'], ['stock_records.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_inventory_transactions_id', 'inventory_transactions', ['id'])
    op.create_index('ix_inventory_transactions_transaction_type', 'inventory_transactions', ['transaction_type'])
    op.create_index('ix_inventory_transactions_component_id', 'inventory_transactions', ['component_id'])
    op.create_index('ix_inventory_transactions_location_id', 'inventory_transactions', ['location_id'])
    op.create_index('ix_inventory_transactions_stock_record_id', 'inventory_transactions', ['stock_record_id'])
    op.create_index('ix_inventory_transactions_timestamp', 'inventory_transactions', ['timestamp'])
    op.create_index('ix_inventory_transactions_reference', 'inventory_transactions', ['reference_type', 'reference_id'])

    op.create_table(
        'bom_entries',
        *audit_columns(),
        sa.Column('product_name', sa.String(length=200), nullable=False),
        sa.Column('component_id', sa.Integer(), nullable=False),
        sa.Column('quantity_per_unit', sa.Integer(), nullable=False),
        sa.Column('reference_designator', sa.String(length=200), nullable=True),
        sa.Column('placement', sa.String(length=20), nullable=True),
        sa.Column('is_optional', sa.Boolean(), nullable=False),
        sa.Column('substitute_component_ids', sa.JSON(), nullable=True),
        sa.Column('bom_version', sa.String(length=50), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['component_id'], ['components.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_name', 'component_id', 'bom_version', name='uq_bom_entry_product_component_version'),
        sa.CheckConstraint('quantity_per_unit > 0', name='ck_bom_entry_quantity_positive'),
    )
    op.create_index('ix_bom_entries_id', 'bom_entries', ['id'])
    op.create_index('ix_bom_entries_product_name', 'bom_entries', ['product_name'])
    op.create_index('ix_bom_entries_component_id', 'bom_entries', ['component_id'])

    op.create_table(
        'purchase_orders',
        *audit_columns(),
        sa.Column('po_number', sa.String(length=50), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum(
            'DRAFT', 'SUBMITTED', 'CONFIRMED', 'SHIPPED', 'PARTIAL_RECEIVED', 'RECEIVED', 'CANCELLED',
            name='purchaseorderstatus'), nullable=False),
        sa.Column('order_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expected_delivery', sa.Date(), nullable=True),
        sa.Column('actual_delivery', sa.DateTime(timezone=True), nullable=True),
        sa.Column('tracking_number', sa.String(length=100), nullable=True),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('shipping_cost', sa.Numeric(12, 2), nullable=False),
        sa.Column('tax_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('approved_by', sa.String(length=100), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_purchase_orders_id', 'purchase_orders', ['id'])
    op.create_index('ix_purchase_orders_po_number', 'purchase_orders', ['po_number'], unique=True)
    op.create_index('ix_purchase_orders_supplier_id', 'purchase_orders', ['supplier_id'])
    op.create_index('ix_purchase_orders_status', 'purchase_orders', ['status'])
    op.create_index('ix_purchase_orders_expected_delivery', 'purchase_orders', ['expected_delivery'])

    op.create_table(
        'purchase_order_lines',
        *audit_columns(),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('component_id', sa.Integer(), nullable=False),
        sa.Column('supplier_part_number', sa.String(length=100), nullable=True),
        sa.Column('quantity_ordered', sa.Integer(), nullable=False),
        sa.Column('quantity_received', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 4), nullable=False),
        sa.Column('line_total', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', sa.Enum(
            'PENDING', 'PARTIAL', 'RECEIVED', 'BACKORDERED', 'CANCELLED',
            name='purchaseorderlinestatus'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id']),
        sa.ForeignKeyConstraint(['component_id'], ['components.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity_ordered > 0', name='ck_po_line_quantity_ordered_positive'),
        sa.CheckConstraint(
            'quantity_received >= 0 AND quantity_received <= quantity_ordered',
            name='ck_po_line_quantity_received_bounds',
        ),
    )
    op.create_index('ix_purchase_order_lines_id', 'purchase_order_lines', ['id'])
    op.create_index('ix_purchase_order_lines_purchase_order_id', 'purchase_order_lines', ['purchase_order_id'])
    op.create_index('ix_purchase_order_lines_component_id', 'purchase_order_lines', ['component_id'])

    op.create_table(
        'build_orders',
        *audit_columns(),
        sa.Column('build_number', sa.String(length=50), nullable=False),
        sa.Column('product_name', sa.String(length=200), nullable=False),
        sa.Column('bom_version', sa.String(length=50), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum(
            'PLANNED', 'MATERIALS_RESERVED', 'IN_PROGRESS', 'QC', 'COMPLETE', 'CANCELLED',
            name='buildorderstatus'), nullable=False),
        sa.Column('priority', sa.Enum('LOW', 'NORMAL', 'HIGH', 'URGENT', name='buildpriority'), nullable=False),
        sa.Column('scheduled_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('actual_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('assigned_to', sa.String(length=100), nullable=True),
        sa.Column('qc_status', sa.Enum('PENDING', 'PASSED', 'FAILED', 'PARTIAL', name='qcstatus'), nullable=True),
        sa.Column('qc_passed_count', sa.Integer(), nullable=True),
        sa.Column('qc_failed_count', sa.Integer(), nullable=True),
        sa.Column('qc_notes', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_build_order_quantity_positive'),
    )
    op.create_index('ix_build_orders_id', 'build_orders', ['id'])
    op.create_index('ix_build_orders_build_number', 'build_orders', ['build_number'], unique=True)
    op.create_index('ix_build_orders_product_name', 'build_orders', ['product_name'])
    op.create_index('ix_build_orders_status', 'build_orders', ['status'])

    op.create_table(
        'build_reservations',
        *audit_columns(),
        sa.Column('build_order_id', sa.Integer(), nullable=False),
        sa.Column('stock_record_id', sa.Integer(), nullable=False),
        sa.Column('component_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['build_order_id'], ['build_orders.id']),
        sa.ForeignKeyConstraint(['stock_record_id'], ['stock_records.id']),
        sa.ForeignKeyConstraint(['component_id'], ['components.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('build_order_id', 'stock_record_id', name='uq_build_reservation_build_record'),
        sa.CheckConstraint('quantity > 0', name='ck_build_reservation_quantity_positive'),
    )
    op.create_index('ix_build_reservations_id', 'build_reservations', ['id'])
    op.create_index('ix_build_reservations_build_order_id', 'build_reservations', ['build_order_id'])
    op.create_index('ix_build_reservations_stock_record_id', 'build_reservations', ['stock_record_id'])
    op.create_index('ix_build_reservations_component_id', 'build_reservations', ['component_id'])

    op.create_table(
        'tasks',
        *audit_columns(),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('task_type', sa.Enum(
            'COUNT_INVENTORY', 'RECEIVE_SHIPMENT', 'MOVE_STOCK', 'QUALITY_CHECK', 'REVIEW_BOM', 'GENERAL',
            name='tasktype'), nullable=False),
        sa.Column('status', sa.Enum(
            'PENDING', 'ASSIGNED', 'IN_PROGRESS', 'COMPLETED', 'VERIFIED', 'CANCELLED', 'ESCALATED',
            name='taskstatus'), nullable=False),
        sa.Column('priority', sa.Enum('LOW', 'NORMAL', 'HIGH', 'URGENT', name='taskpriority'), nullable=False),
        sa.Column('assigned_to', sa.String(length=100), nullable=True),
        sa.Column('due_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sla_hours', sa.Integer(), nullable=True),
        sa.Column('escalation_level', sa.Integer(), nullable=False),
        sa.Column('escalated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('component_id', sa.Integer(), nullable=True),
        sa.Column('location_id', sa.Integer(), nullable=True),
        sa.Column('purchase_order_id', sa.Integer(), nullable=True),
        sa.Column('build_order_id', sa.Integer(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_by', sa.String(length=100), nullable=True),
        sa.Column('completion_notes', sa.Text(), nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verified_by', sa.String(length=100), nullable=True),
        sa.Column('system_generated', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['component_id'], ['components.id']),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id']),
        sa.ForeignKeyConstraint(['build_order_id'], ['build_orders.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_tasks_id', 'tasks', ['id'])
    op.create_index('ix_tasks_status', 'tasks', ['status'])
    op.create_index('ix_tasks_due_at', 'tasks', ['due_at'])

    op.create_table(
        'alerts',
        *audit_columns(),
        sa.Column('alert_type', sa.Enum(
            'LOW_STOCK', 'OUT_OF_STOCK', 'PO_OVERDUE', 'TASK_OVERDUE', 'COUNT_DISCREPANCY', 'GENERAL',
            name='alerttype'), nullable=False),
        sa.Column('severity', sa.Enum('INFO', 'WARNING', 'CRITICAL', name='alertseverity'), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('status', sa.Enum('ACTIVE', 'ACKNOWLEDGED', 'RESOLVED', 'DISMISSED', name='alertstatus'), nullable=False),
        sa.Column('component_id', sa.Integer(), nullable=True),
        sa.Column('location_id', sa.Integer(), nullable=True),
        sa.Column('purchase_order_id', sa.Integer(), nullable=True),
        sa.Column('build_order_id', sa.Integer(), nullable=True),
        sa.Column('task_id', sa.Integer(), nullable=True),
        sa.Column('system_generated', sa.Boolean(), nullable=False),
        # SQLAlchemy persists enum member names
        sa.Column('trigger', sa.Enum(
            'STOCK_MONITOR', 'PO_OVERDUE_MONITOR', 'TASK_ESCALATION', 'CYCLE_COUNT',
            name='alerttrigger'), nullable=True),
        sa.Column('trigger_context', sa.JSON(), nullable=True),
        sa.Column('open_key', sa.String(length=100), nullable=True),
        sa.Column('acknowledged_by', sa.String(length=100), nullable=True),
        sa.Column('acknowledged_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_by', sa.String(length=100), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolution_notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['component_id'], ['components.id']),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id']),
        sa.ForeignKeyConstraint(['build_order_id'], ['build_orders.id']),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('open_key'),
    )
    op.create_index('ix_alerts_id', 'alerts', ['id'])
    op.create_index('ix_alerts_alert_type', 'alerts', ['alert_type'])
    op.create_index('ix_alerts_status', 'alerts', ['status'])
    op.create_index('ix_alerts_component_id', 'alerts', ['component_id'])
    op.create_index('ix_alerts_purchase_order_id', 'alerts', ['purchase_order_id'])
    op.create_index('ix_alerts_task_id', 'alerts', ['task_id'])

    op.create_table(
        'notification_queue',
        *audit_columns(),
        sa.Column('channel', sa.String(length=50), nullable=False),
        sa.Column('recipient', sa.String(length=100), nullable=True),
        sa.Column('subject', sa.String(length=500), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=True),
        sa.Column('requires_escalation', sa.Boolean(), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'SENT', 'FAILED', name='notificationstatus'), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('alert_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['alert_id'], ['alerts.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notification_queue_id', 'notification_queue', ['id'])
    op.create_index('ix_notification_queue_status', 'notification_queue', ['status'])
    op.create_index('ix_notification_queue_alert_id', 'notification_queue', ['alert_id'])

    op.create_table(
        'sequence_counters',
        *audit_columns(),
        sa.Column('scope', sa.String(length=200), nullable=False),
        sa.Column('last_value', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sequence_counters_id', 'sequence_counters', ['id'])
    op.create_index('ix_sequence_counters_scope', 'sequence_counters', ['scope'], unique=True)


def downgrade():
    op.drop_table('sequence_counters')
    op.drop_table('notification_queue')
    op.drop_table('alerts')
    op.drop_table('tasks')
    op.drop_table('build_reservations')
    op.drop_table('build_orders')
    op.drop_table('purchase_order_lines')
    op.drop_table('purchase_orders')
    op.drop_table('bom_entries')
    op.drop_table('inventory_transactions')
    op.drop_table('stock_records')
    op.drop_table('suppliers')
    op.drop_table('locations')
    op.drop_table('components')

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum_name in (
            'notificationstatus', 'alerttrigger', 'alertstatus', 'alertseverity', 'alerttype',
            'taskpriority', 'taskstatus', 'tasktype', 'qcstatus', 'buildpriority', 'buildorderstatus',
            'purchaseorderlinestatus', 'purchaseorderstatus', 'referencetype', 'transactiontype',
            'stockstatus', 'supplierstatus', 'locationstatus', 'locationtype', 'componentstatus',
        ):
            op.execute(sa.text(f"DROP TYPE IF EXISTS {enum_name}"))
