# marketplace/celery_worker.py
from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_process_init, worker_process_shutdown

from marketplace.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    CELERY_TASK_ALWAYS_EAGER,
)

celery_app = Celery(
    "marketplace",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# explicit imports so the worker registers every task
celery_app.conf.imports = (
    "marketplace.tasks.scans",
    "marketplace.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "scan-products-hourly": {
        "task": "marketplace.tasks.scans.scan_products_task",
        "schedule": crontab(minute=0),
    },
    "cleanup-notifications-daily": {
        "task": "marketplace.tasks.scans.cleanup_notifications_task",
        "schedule": crontab(hour=2, minute=0),
    },
    "abandon-stale-carts-daily": {
        "task": "marketplace.tasks.scans.abandon_stale_carts_task",
        "schedule": crontab(hour=3, minute=0),
    },
}

celery_app.conf.timezone = "UTC"
celery_app.conf.task_always_eager = CELERY_TASK_ALWAYS_EAGER
celery_app.conf.task_ignore_result = True


@worker_process_init.connect
def _open_database(**kwargs):
    from marketplace.data.database import Database, bind_task_database

    bind_task_database(Database().connect())


@worker_process_shutdown.connect
def _close_database(**kwargs):
    from marketplace.data.database import task_database, bind_task_database

    task_database().dispose()
    bind_task_database(None)
