# marketplace/data/models/payment.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric

from marketplace.data.database import Base


class PaymentModel(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)

    method = Column(String(10), nullable=False)  # COD, CARD
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default="completed")
    card_last4 = Column(String(4), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
