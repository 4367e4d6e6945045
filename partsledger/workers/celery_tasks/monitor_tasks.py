"""
Periodic monitor sweeps run by Celery beat
"""
import asyncio
import logging
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool

from partsledger.core.celery_app import celery_app
from partsledger.core.config import settings
from partsledger.services.monitor.po_monitor import PurchaseOrderMonitor
from partsledger.services.monitor.stock_monitor import StockMonitor
from partsledger.services.monitor.task_escalation import TaskEscalationMonitor

logger = logging.getLogger(__name__)


def run_async_in_celery(coro):
    """
    Run a coroutine on a fresh event loop owned by this task execution
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        pending = asyncio.all_tasks(loop)
        for task in pending:
            task.cancel()
        if pending:
            loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        loop.close()


async def _run_sweep(monitor_class):
    # connections must not outlive the loop they were opened on
    engine = create_async_engine(settings.DATABASE_URL, echo=False, future=True, poolclass=NullPool)
    session_maker = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_maker() as session:
            result = await monitor_class(session).run()
            return result.model_dump(mode="json")
    finally:
        await engine.dispose()


@celery_app.task(bind=True)
def run_stock_sweep(self):
    """Hourly low/out-of-stock sweep"""
    try:
        logger.info("🔍 Running stock level sweep...")
        return run_async_in_celery(_run_sweep(StockMonitor))
    except Exception as e:
        logger.error(f"❌ Error in stock level sweep: {str(e)}")
        raise self.retry(exc=e, countdown=300, max_retries=3)


@celery_app.task(bind=True)
def run_po_overdue_sweep(self):
    """Purchase order overdue sweep, every 6 hours"""
    try:
        logger.info("🔍 Running purchase order overdue sweep...")
        return run_async_in_celery(_run_sweep(PurchaseOrderMonitor))
    except Exception as e:
        logger.error(f"❌ Error in purchase order overdue sweep: {str(e)}")
        raise self.retry(exc=e, countdown=300, max_retries=3)


@celery_app.task(bind=True)
def run_task_sla_sweep(self):
    """Task SLA escalation sweep, every 30 minutes"""
    try:
        logger.info("🔍 Running task SLA sweep...")
        return run_async_in_celery(_run_sweep(TaskEscalationMonitor))
    except Exception as e:
        logger.error(f"❌ Error in task SLA sweep: {str(e)}")
        raise self.retry(exc=e, countdown=300, max_retries=3)
