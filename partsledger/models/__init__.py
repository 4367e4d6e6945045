from partsledger.models.inventory.component import Component
from partsledger.models.inventory.location import Location
from partsledger.models.inventory.stock_record import StockRecord
from partsledger.models.inventory.inventory_transaction import InventoryTransaction
from partsledger.models.inventory.bom_entry import BOMEntry
from partsledger.models.purchase.supplier import Supplier
from partsledger.models.purchase.purchase_order import PurchaseOrder
from partsledger.models.purchase.purchase_order_line import PurchaseOrderLine
from partsledger.models.production.build_order import BuildOrder
from partsledger.models.production.build_reservation import BuildReservation
from partsledger.models.alerts.alert import Alert
from partsledger.models.alerts.notification_queue import NotificationQueue
from partsledger.models.task.task import Task
from partsledger.models.system.sequence_counter import SequenceCounter
from partsledger.models.purchase.component_supplier import ComponentSupplier
from partsledger.models.production.product_cost import ProductCost
