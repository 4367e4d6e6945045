from enum import Enum


# Catalog enums
class ComponentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    DEPRECATED = "DEPRECATED"
    EOL = "EOL"
    PENDING_REVIEW = "PENDING_REVIEW"

class LocationType(str, Enum):
    ROOM = "ROOM"
    SHELF = "SHELF"
    BIN = "BIN"
    DRAWER = "DRAWER"
    ZONE = "ZONE"

class LocationStatus(str, Enum):
    ACTIVE = "ACTIVE"
    FULL = "FULL"
    INACTIVE = "INACTIVE"

class SupplierStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PREFERRED = "PREFERRED"


# Stock enums
class StockStatus(str, Enum):
    IN_STOCK = "IN_STOCK"
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    OVERSTOCK = "OVERSTOCK"

class TransactionType(str, Enum):
    RECEIVE = "RECEIVE"
    CONSUME = "CONSUME"
    TRANSFER = "TRANSFER"
    ADJUST = "ADJUST"
    RESERVE = "RESERVE"
    UNRESERVE = "UNRESERVE"
    RETURN = "RETURN"
    SCRAP = "SCRAP"

class ReferenceType(str, Enum):
    PURCHASE_ORDER = "PURCHASE_ORDER"
    BUILD_ORDER = "BUILD_ORDER"
    MANUAL = "MANUAL"
    CYCLE_COUNT = "CYCLE_COUNT"
    TRANSFER = "TRANSFER"


# Purchase enums
class PurchaseOrderStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    PARTIAL_RECEIVED = "PARTIAL_RECEIVED"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"

class PurchaseOrderLineStatus(str, Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    RECEIVED = "RECEIVED"
    BACKORDERED = "BACKORDERED"
    CANCELLED = "CANCELLED"


# Production enums
class BuildOrderStatus(str, Enum):
    PLANNED = "PLANNED"
    MATERIALS_RESERVED = "MATERIALS_RESERVED"
    IN_PROGRESS = "IN_PROGRESS"
    QC = "QC"
    COMPLETE = "COMPLETE"
    CANCELLED = "CANCELLED"

class BuildPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"

class QcStatus(str, Enum):
    PENDING = "PENDING"
    PASSED = "PASSED"
    FAILED = "FAILED"
    PARTIAL = "PARTIAL"

class CostType(str, Enum):
    ESTIMATE = "ESTIMATE"
    ACTUAL = "ACTUAL"

class CostSource(str, Enum):
    """Where a component unit cost came from, best first"""
    PO_LAST = "PO_LAST"
    INVENTORY = "INVENTORY"
    SUPPLIER_PREFERRED = "SUPPLIER_PREFERRED"
    SUPPLIER_PRICE = "SUPPLIER_PRICE"
    UNKNOWN = "UNKNOWN"


# Alert enums
class AlertType(str, Enum):
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    PO_OVERDUE = "PO_OVERDUE"
    TASK_OVERDUE = "TASK_OVERDUE"
    COUNT_DISCREPANCY = "COUNT_DISCREPANCY"
    GENERAL = "GENERAL"

class AlertSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"

class AlertStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    RESOLVED = "RESOLVED"
    DISMISSED = "DISMISSED"

class AlertTrigger(str, Enum):
    STOCK_MONITOR = "stock_monitor"
    PO_OVERDUE_MONITOR = "po_overdue_monitor"
    TASK_ESCALATION = "task_escalation"
    CYCLE_COUNT = "cycle_count"


# Task related enums
class TaskType(str, Enum):
    COUNT_INVENTORY = "COUNT_INVENTORY"
    RECEIVE_SHIPMENT = "RECEIVE_SHIPMENT"
    MOVE_STOCK = "MOVE_STOCK"
    QUALITY_CHECK = "QUALITY_CHECK"
    REVIEW_BOM = "REVIEW_BOM"
    GENERAL = "GENERAL"

class TaskPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"

class TaskStatus(str, Enum):
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    VERIFIED = "VERIFIED"
    CANCELLED = "CANCELLED"
    ESCALATED = "ESCALATED"


# Notification enums
class NotificationStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"
