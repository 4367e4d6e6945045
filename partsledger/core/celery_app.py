from celery import Celery, signals
from partsledger.core.config import settings
from partsledger.core.logging_config import setup_logging
import sys

# Create Celery app
celery_app = Celery(
    "partsledger",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "partsledger.workers.celery_tasks.monitor_tasks",
    ]
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    result_expires=3600,
)

# Windows-specific configuration
if sys.platform == 'win32':
    celery_app.conf.update(
        worker_pool='threads',
        worker_concurrency=4
    )

celery_app.conf.beat_schedule = {
    'stock-level-sweep': {
        'task': 'partsledger.workers.celery_tasks.monitor_tasks.run_stock_sweep',
        'schedule': settings.STOCK_SWEEP_INTERVAL_SECONDS,  # Hourly
    },
    'po-overdue-sweep': {
        'task': 'partsledger.workers.celery_tasks.monitor_tasks.run_po_overdue_sweep',
        'schedule': settings.PO_OVERDUE_SWEEP_INTERVAL_SECONDS,  # Every 6 hours
    },
    'task-sla-sweep': {
        'task': 'partsledger.workers.celery_tasks.monitor_tasks.run_task_sla_sweep',
        'schedule': settings.TASK_SLA_SWEEP_INTERVAL_SECONDS,  # Every 30 minutes
    },
}

@signals.setup_logging.connect
def configure_worker_logging(**kwargs):
    setup_logging()
