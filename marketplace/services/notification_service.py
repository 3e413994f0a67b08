# marketplace/services/notification_service.py
from datetime import datetime, timezone, timedelta
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.celery_worker import celery_app
from marketplace.data.database import task_database
from marketplace.data.models.notification import NotificationModel
from marketplace.errors import NotFoundError, ValidationError
from marketplace.repos.notification_repo import NotificationRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.repos.product_repo import ProductRepo
from marketplace.repos.assignment_repo import AssignmentRepo
from marketplace.utils.settings import (
    LOW_STOCK_RATIO,
    NOTIFICATION_RETENTION_DAYS,
    PRODUCT_EXPIRY_DAYS,
)
from marketplace.utils.clock import as_utc
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

EARNINGS_MILESTONES = (1000, 5000, 10000, 25000, 50000, 100000, 250000, 500000, 1000000)
ORDER_MILESTONES = (10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000)


class NotificationService:
    """
    Notification records for the admin feed.

    expired / low_stock are standing alerts: at most one unread row per
    product, later triggers only refresh the message. Every other type is a
    historical event and always gets a new row. Milestones fire once per
    (user, type, threshold), guarded by the notification_milestones table.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = NotificationRepo(db)

    # =====================================================
    # QUERY
    # =====================================================
    def get_unread(self) -> list[NotificationModel]:
        return self.repo.find_unread()

    def get_all(self, limit: int = 50) -> list[NotificationModel]:
        if limit <= 0:
            raise ValidationError("Limit must be a positive integer")
        return self.repo.find_all(min(limit, 500))

    def unread_count(self) -> int:
        return self.repo.count_unread()

    # =====================================================
    # COMMANDS
    # =====================================================
    def mark_as_read(self, notification_id: int) -> NotificationModel:
        notification = self.repo.get(notification_id)
        if not notification:
            raise NotFoundError("Notification", notification_id)

        notification.is_read = True
        notification.updated_at = datetime.now(timezone.utc)
        self.repo.commit()
        return notification

    def mark_all_as_read(self) -> int:
        updated = self.repo.mark_all_read()
        self.repo.commit()
        return updated

    def delete(self, notification_id: int):
        notification = self.repo.get(notification_id)
        if not notification:
            raise NotFoundError("Notification", notification_id)

        self.repo.delete(notification)
        self.repo.commit()

    def raise_state_alert(self, product_id: int, notification_type: str, message: str):
        self.repo.upsert_state_alert(product_id, notification_type, message)
        self.repo.commit()

    def record_event(
        self,
        notification_type: str,
        message: str,
        product_id: int | None = None,
        order_id: int | None = None,
    ) -> NotificationModel:
        now = datetime.now(timezone.utc)
        notification = self.repo.create(
            NotificationModel(
                product_id=product_id,
                order_id=order_id,
                notification_type=notification_type,
                message=message,
                is_read=False,
                created_at=now,
                updated_at=now,
            )
        )
        self.repo.commit()
        logger.info(f"Notification {notification.id} ({notification_type}) recorded")
        return notification

    # =====================================================
    # EVENTS
    # =====================================================
    def notify_order_placed(self, order_id: int):
        order = OrderRepo(self.db).get_order(order_id)
        if not order:
            raise NotFoundError("Order", order_id)

        item_count = len(order.items)
        plural = "s" if item_count != 1 else ""
        message = (
            f"Order #{order.order_no} has been placed successfully! "
            f"Total: Rs {order.total:.2f} ({item_count} item{plural})"
        )
        return self.record_event("order_placed", message, order_id=order.id)

    def notify_order_cancelled(self, order_id: int, total: str):
        order = OrderRepo(self.db).get_order(order_id)
        if not order:
            raise NotFoundError("Order", order_id)

        message = f"Order #{order.order_no} has been cancelled. Amount: Rs {Decimal(total):.2f}"
        return self.record_event("order_cancelled", message, order_id=order.id)

    def notify_driver_assigned(self, assignment_id: int):
        assignment = AssignmentRepo(self.db).get_assignment(assignment_id)
        if not assignment:
            raise NotFoundError("Assignment", assignment_id)

        driver = assignment.driver
        phone = f" ({driver.phone})" if driver.phone else ""
        message = (
            f"Driver assigned! {driver.name}{phone} has been assigned "
            f"to Order #{assignment.order.order_no}."
        )
        return self.record_event("driver_assigned", message, order_id=assignment.order_id)

    def notify_new_product(self, product_id: int, province_name: str | None = None):
        product = self._product(product_id)
        where = f"{province_name} province" if province_name else "the"
        message = f'New product "{product.name}" has been added to {where} inventory.'
        return self.record_event("new_product", message, product_id=product.id)

    def notify_stock_updated(self, product_id: int, old_stock: int, new_stock: int):
        product = self._product(product_id)
        change = new_stock - old_stock
        change_text = f"increased by {change}" if change > 0 else f"decreased by {abs(change)}"
        message = (
            f'Stock for "{product.name}" {change_text} {product.unit}. '
            f"Current stock: {new_stock} {product.unit}."
        )
        return self.record_event("stock_updated", message, product_id=product.id)

    def notify_supplier_added(self, product_id: int, supplier_name: str, quantity: int):
        product = self._product(product_id)
        message = f'{supplier_name} supplied {quantity} {product.unit} of "{product.name}" to inventory.'
        return self.record_event("supplier_added", message, product_id=product.id)

    def _product(self, product_id: int):
        product = ProductRepo(self.db).get_product(product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        return product

    # =====================================================
    # MILESTONES
    # =====================================================
    def evaluate_milestones(self, user_id: int, order_id: int | None = None) -> list[NotificationModel]:
        """Walk both ladders for the user and fire every crossed threshold not yet recorded."""
        earned, order_count = OrderRepo(self.db).settled_totals(user_id)
        created = []
        created += self._check_ladder(
            user_id,
            "earnings",
            earned,
            EARNINGS_MILESTONES,
            lambda value: f"Congratulations! You've reached Rs {value:,}+ in total purchases!",
            order_id,
        )
        created += self._check_ladder(
            user_id,
            "orders",
            order_count,
            ORDER_MILESTONES,
            lambda value: f"Amazing! You've completed {value:,}+ orders!",
            order_id,
        )
        return created

    def _check_ladder(self, user_id, milestone_type, amount, ladder, render, order_id):
        created = []
        for value in ladder:
            if amount < value:
                break
            if self.repo.has_milestone(user_id, milestone_type, value):
                continue

            try:
                self.repo.record_milestone(user_id, milestone_type, value)
                now = datetime.now(timezone.utc)
                notification = self.repo.create(
                    NotificationModel(
                        order_id=order_id,
                        notification_type=f"milestone_{milestone_type}",
                        message=render(value),
                        is_read=False,
                        created_at=now,
                        updated_at=now,
                    )
                )
                self.repo.commit()
            except IntegrityError:
                # another evaluation recorded this threshold first
                self.repo.rollback()
                logger.info(f"Milestone {milestone_type}={value} already recorded for user {user_id}")
                continue

            logger.info(f"Milestone {milestone_type}={value} reached by user {user_id}")
            created.append(notification)
        return created

    # =====================================================
    # SCHEDULED
    # =====================================================
    def scan_products(self, now: datetime | None = None) -> dict:
        """Re-evaluate every active product for expiry and low stock; safe to run repeatedly."""
        now = now or datetime.now(timezone.utc)
        products = ProductRepo(self.db)

        expired = products.find_created_before(now - timedelta(days=PRODUCT_EXPIRY_DAYS))
        for product in expired:
            created = as_utc(product.created_at)
            age_days = (now - created).days
            message = (
                f'Product "{product.name}" has expired ({age_days} days old). '
                f"Added on {created:%Y-%m-%d}."
            )
            self.repo.upsert_state_alert(product.id, "expired", message)

        low = products.find_low_stock(float(LOW_STOCK_RATIO))
        for product in low:
            pct = (product.current_stock / product.daily_limit) * 100
            message = (
                f'Low stock alert for "{product.name}". Current stock: '
                f"{product.current_stock} {product.unit} ({pct:.1f}% of daily limit)."
            )
            self.repo.upsert_state_alert(product.id, "low_stock", message)

        self.repo.commit()
        logger.info(f"Product scan: {len(expired)} expired, {len(low)} low stock")
        return {"expired": len(expired), "low_stock": len(low)}

    def cleanup_old_notifications(self, days: int = NOTIFICATION_RETENTION_DAYS, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        deleted = self.repo.delete_read_before(now - timedelta(days=days))
        self.repo.commit()
        logger.info(f"Deleted {deleted} read notifications older than {days} days")
        return deleted


class NotificationPublisher:
    """
    Fire-and-forget side effects of lifecycle transitions.
    Publishing never raises: a broker or task failure is logged and the
    calling operation carries on.
    """

    @staticmethod
    def order_placed(order_id: int):
        _publish(notify_order_placed_task, order_id)

    @staticmethod
    def order_cancelled(order_id: int, total: Decimal):
        _publish(notify_order_cancelled_task, order_id, str(total))

    @staticmethod
    def driver_assigned(assignment_id: int):
        _publish(notify_driver_assigned_task, assignment_id)

    @staticmethod
    def payment_received(user_id: int, order_id: int):
        _publish(evaluate_milestones_task, user_id, order_id)

    @staticmethod
    def new_product(product_id: int, province_name: str | None = None):
        _publish(notify_new_product_task, product_id, province_name)

    @staticmethod
    def stock_updated(product_id: int, old_stock: int, new_stock: int):
        _publish(notify_stock_updated_task, product_id, old_stock, new_stock)

    @staticmethod
    def supplier_added(product_id: int, supplier_name: str, quantity: int):
        _publish(notify_supplier_added_task, product_id, supplier_name, quantity)


def _publish(task, *args):
    try:
        task.delay(*args)
    except Exception as e:
        logger.error(f"Failed to publish {task.name}{args}: {e}")


def _run(label: str, handler):
    db = task_database().session()
    try:
        handler(NotificationService(db))
    except Exception as e:
        db.rollback()
        logger.error(f"[NOTIFICATION] {label} failed: {e}")
    finally:
        db.close()


@celery_app.task(name="marketplace.services.notification_service.notify_order_placed_task")
def notify_order_placed_task(order_id: int):
    _run(f"order_placed order={order_id}", lambda svc: svc.notify_order_placed(order_id))


@celery_app.task(name="marketplace.services.notification_service.notify_order_cancelled_task")
def notify_order_cancelled_task(order_id: int, total: str):
    _run(f"order_cancelled order={order_id}", lambda svc: svc.notify_order_cancelled(order_id, total))


@celery_app.task(name="marketplace.services.notification_service.notify_driver_assigned_task")
def notify_driver_assigned_task(assignment_id: int):
    _run(
        f"driver_assigned assignment={assignment_id}",
        lambda svc: svc.notify_driver_assigned(assignment_id),
    )


@celery_app.task(name="marketplace.services.notification_service.evaluate_milestones_task")
def evaluate_milestones_task(user_id: int, order_id: int | None = None):
    _run(f"milestones user={user_id}", lambda svc: svc.evaluate_milestones(user_id, order_id))


@celery_app.task(name="marketplace.services.notification_service.notify_new_product_task")
def notify_new_product_task(product_id: int, province_name: str | None = None):
    _run(f"new_product product={product_id}", lambda svc: svc.notify_new_product(product_id, province_name))


@celery_app.task(name="marketplace.services.notification_service.notify_stock_updated_task")
def notify_stock_updated_task(product_id: int, old_stock: int, new_stock: int):
    _run(
        f"stock_updated product={product_id}",
        lambda svc: svc.notify_stock_updated(product_id, old_stock, new_stock),
    )


@celery_app.task(name="marketplace.services.notification_service.notify_supplier_added_task")
def notify_supplier_added_task(product_id: int, supplier_name: str, quantity: int):
    _run(
        f"supplier_added product={product_id}",
        lambda svc: svc.notify_supplier_added(product_id, supplier_name, quantity),
    )
