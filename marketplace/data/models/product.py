# marketplace/data/models/product.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Numeric, DateTime

from marketplace.data.database import Base


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    unit = Column(String(20), nullable=False, default="kg")

    current_stock = Column(Integer, nullable=False, default=0)
    daily_limit = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active")  # active, inactive, deleted

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
