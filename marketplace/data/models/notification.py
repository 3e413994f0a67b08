# marketplace/data/models/notification.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, Text, Boolean, DateTime, Index, UniqueConstraint, text

from marketplace.data.database import Base

STATE_ALERT_TYPES = ("expired", "low_stock")
EVENT_TYPES = (
    "order_placed",
    "order_cancelled",
    "driver_assigned",
    "stock_updated",
    "new_product",
    "supplier_added",
)
MILESTONE_TYPES = ("milestone_earnings", "milestone_orders")

UNREAD_STATE_ALERT_WHERE = "is_read = false AND notification_type IN ('expired', 'low_stock')"


class NotificationModel(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=True, index=True)

    notification_type = Column(String(30), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # at most one unread expired/low_stock alert per product
    __table_args__ = (
        Index(
            "uq_notifications_unread_alert",
            "product_id",
            "notification_type",
            unique=True,
            postgresql_where=text(UNREAD_STATE_ALERT_WHERE),
            sqlite_where=text(UNREAD_STATE_ALERT_WHERE),
        ),
    )


class MilestoneModel(Base):
    __tablename__ = "notification_milestones"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False)
    milestone_type = Column(String(20), nullable=False)  # earnings, orders
    milestone_value = Column(Integer, nullable=False)
    achieved_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("user_id", "milestone_type", "milestone_value", name="u_user_milestone"),
    )
