# marketplace/tasks/scans.py
from marketplace.celery_worker import celery_app
from marketplace.data.database import task_database
from marketplace.services.cart_service import CartService
from marketplace.services.lock_service import LockService
from marketplace.services.notification_service import NotificationService
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def run_exclusive(job_name: str, job, lock_service: LockService | None = None):
    """
    Run `job(session)` unless another instance holds the job lock.
    A skipped or overlapping run is harmless, every job is idempotent.
    """
    lock_service = lock_service or LockService()

    with lock_service.job_lock(job_name) as acquired:
        if not acquired:
            logger.info(f"Job {job_name} already running elsewhere, skipping")
            return None

        db = task_database().session()
        try:
            result = job(db)
            logger.info(f"Job {job_name} finished: {result}")
            return result
        except Exception:
            db.rollback()
            logger.exception(f"Job {job_name} failed")
            raise
        finally:
            db.close()


@celery_app.task(name="marketplace.tasks.scans.scan_products_task")
def scan_products_task():
    return run_exclusive("scan-products", lambda db: NotificationService(db).scan_products())


@celery_app.task(name="marketplace.tasks.scans.cleanup_notifications_task")
def cleanup_notifications_task():
    return run_exclusive("cleanup-notifications", lambda db: NotificationService(db).cleanup_old_notifications())


@celery_app.task(name="marketplace.tasks.scans.abandon_stale_carts_task")
def abandon_stale_carts_task():
    return run_exclusive("abandon-stale-carts", lambda db: CartService(db).abandon_stale_carts())
