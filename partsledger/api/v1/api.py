from fastapi import APIRouter
from partsledger.api.v1.endpoints.alerts import alerts, notifications
from partsledger.api.v1.endpoints.inventory import bom, components, costing, locations, stock, transactions
from partsledger.api.v1.endpoints.monitor import monitors
from partsledger.api.v1.endpoints.production import build_orders
from partsledger.api.v1.endpoints.purchase import component_suppliers, purchase_orders, suppliers
from partsledger.api.v1.endpoints.task import tasks

api_router = APIRouter()

# Inventory routes
api_router.include_router(components.router, prefix="/inventory/component", tags=["Inventory"])
api_router.include_router(locations.router, prefix="/inventory/location", tags=["Inventory"])
api_router.include_router(stock.router, prefix="/inventory/stock", tags=["Inventory"])
api_router.include_router(transactions.router, prefix="/inventory/transaction", tags=["Inventory"])
api_router.include_router(bom.router, prefix="/inventory/bom", tags=["Inventory"])
api_router.include_router(costing.router, prefix="/inventory/costing", tags=["Inventory"])

# Purchase routes
api_router.include_router(suppliers.router, prefix="/purchase/supplier", tags=["Purchase"])
api_router.include_router(purchase_orders.router, prefix="/purchase/purchase-order", tags=["Purchase"])
api_router.include_router(component_suppliers.router, prefix="/purchase/component-supplier", tags=["Purchase"])

# Production routes
api_router.include_router(build_orders.router, prefix="/production/build-order", tags=["Production"])

# Alert routes
api_router.include_router(alerts.router, prefix="/alerts/alert", tags=["Alerts"])
api_router.include_router(notifications.router, prefix="/alerts/notification", tags=["Alerts"])

# Task routes
api_router.include_router(tasks.router, prefix="/task/task", tags=["Task"])

# Monitor routes
api_router.include_router(monitors.router, prefix="/monitor", tags=["Monitor"])
