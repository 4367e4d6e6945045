from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from partsledger.api.dependencies import Operator, require_admin
from partsledger.core.database import get_async_session
from partsledger.schemas.monitor.sweep_schema import SweepResult
from partsledger.services.monitor.po_monitor import PurchaseOrderMonitor
from partsledger.services.monitor.stock_monitor import StockMonitor
from partsledger.services.monitor.task_escalation import TaskEscalationMonitor
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/stock-sweep", response_model=SweepResult)
async def run_stock_sweep(
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(require_admin)
):
    """Run the stock level sweep now instead of waiting for the schedule"""
    logger.info(f"Manual stock sweep requested by {current_operator.name}")
    return await StockMonitor(db).run()

@router.post("/po-overdue-sweep", response_model=SweepResult)
async def run_po_overdue_sweep(
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(require_admin)
):
    logger.info(f"Manual PO overdue sweep requested by {current_operator.name}")
    return await PurchaseOrderMonitor(db).run()

@router.post("/task-sla-sweep", response_model=SweepResult)
async def run_task_sla_sweep(
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(require_admin)
):
    logger.info(f"Manual task SLA sweep requested by {current_operator.name}")
    return await TaskEscalationMonitor(db).run()
