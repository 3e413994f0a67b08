# marketplace/repos/cart_repo.py
from datetime import datetime, timezone

from sqlalchemy import select, delete, update
from sqlalchemy.orm import Session

from marketplace.data.database import dialect_insert
from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.data.models.product import ProductModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_active_cart_by_buyer(self, buyer_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(
                CartModel.buyer_id == buyer_id,
                CartModel.status == "active",
            )
        ).scalar_one_or_none()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.flush()
        return cart

    def get_priced_items(self, cart_id: int) -> list[tuple[CartItemModel, ProductModel]]:
        """Cart rows joined with the live product row (name, price)."""
        rows = self.db.execute(
            select(CartItemModel, ProductModel)
            .join(ProductModel, ProductModel.id == CartItemModel.product_id)
            .where(CartItemModel.cart_id == cart_id)
            .order_by(ProductModel.name, CartItemModel.id)
            .execution_options(populate_existing=True)
        ).all()
        return [(item, product) for item, product in rows]

    def upsert_item(self, cart_id: int, product_id: int, qty: int):
        # INSERT ... ON CONFLICT (cart_id, product_id) DO UPDATE SET qty = qty + excluded.qty
        table = CartItemModel.__table__
        stmt = dialect_insert(self.db, table).values(
            cart_id=cart_id,
            product_id=product_id,
            qty=qty,
            added_at=datetime.now(timezone.utc),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.cart_id, table.c.product_id],
            set_={
                "qty": table.c.qty + stmt.excluded.qty,
                "added_at": stmt.excluded.added_at,
            },
        )
        self.db.execute(stmt)

    def set_item_qty(self, cart_id: int, item_id: int, qty: int) -> int:
        result = self.db.execute(
            update(CartItemModel)
            .where(CartItemModel.id == item_id, CartItemModel.cart_id == cart_id)
            .values(qty=qty)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete_item(self, cart_id: int, item_id: int) -> int:
        result = self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.id == item_id, CartItemModel.cart_id == cart_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete_items(self, cart_id: int) -> int:
        result = self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.cart_id == cart_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def touch(self, cart: CartModel):
        cart.updated_at = datetime.now(timezone.utc)

    def complete_cart(self, cart: CartModel):
        self.delete_items(cart.id)
        cart.status = "completed"
        cart.updated_at = datetime.now(timezone.utc)
        self.db.flush()

    def find_stale_active_carts(self, cutoff: datetime) -> list[CartModel]:
        return list(
            self.db.execute(
                select(CartModel).where(
                    CartModel.status == "active",
                    CartModel.updated_at < cutoff,
                )
            ).scalars()
        )

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
