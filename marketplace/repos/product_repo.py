# marketplace/repos/product_repo.py
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from marketplace.data.models.product import ProductModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def create_product(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.flush()
        return product

    def adjust_stock(self, product_id: int, delta: int) -> int:
        # conditional increment, never goes below zero
        result = self.db.execute(
            update(ProductModel)
            .where(
                ProductModel.id == product_id,
                ProductModel.current_stock + delta >= 0,
            )
            .values(current_stock=ProductModel.current_stock + delta)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def find_created_before(self, cutoff: datetime) -> list[ProductModel]:
        return list(
            self.db.execute(
                select(ProductModel)
                .where(ProductModel.status == "active", ProductModel.created_at <= cutoff)
                .order_by(ProductModel.id)
            ).scalars()
        )

    def find_low_stock(self, ratio) -> list[ProductModel]:
        return list(
            self.db.execute(
                select(ProductModel)
                .where(
                    ProductModel.status == "active",
                    ProductModel.current_stock < ProductModel.daily_limit * ratio,
                )
                .order_by(ProductModel.current_stock)
            ).scalars()
        )

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
