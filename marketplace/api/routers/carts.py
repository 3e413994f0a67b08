# marketplace/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.domain.schemas import CartConfigOut, CartOut, ItemIn, QtyIn
from marketplace.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


# declared before /{buyer_id} so "config" is not parsed as a buyer id
@router.get("/config", response_model=CartConfigOut)
def get_config():
    return CartService.config()


@router.get("/{buyer_id}", response_model=CartOut)
def get_cart(buyer_id: int, db: Session = Depends(get_db)):
    """
    Returns the buyer's active cart, creating an empty one on first access.
    """
    return get_service(db).get_cart(buyer_id)


@router.post("/{buyer_id}/items", response_model=CartOut, status_code=201)
def add_item(buyer_id: int, payload: ItemIn, db: Session = Depends(get_db)):
    return get_service(db).add_item(buyer_id, payload.product_id, payload.qty)


@router.patch("/{buyer_id}/items/{item_id}", response_model=CartOut)
def update_item(buyer_id: int, item_id: int, payload: QtyIn, db: Session = Depends(get_db)):
    """
    Sets the quantity of a line; zero or less removes it.
    """
    return get_service(db).update_qty(buyer_id, item_id, payload.qty)


@router.delete("/{buyer_id}/items/{item_id}", response_model=CartOut)
def remove_item(buyer_id: int, item_id: int, db: Session = Depends(get_db)):
    return get_service(db).remove_item(buyer_id, item_id)


@router.delete("/{buyer_id}", response_model=CartOut)
def clear_cart(buyer_id: int, db: Session = Depends(get_db)):
    return get_service(db).clear_cart(buyer_id)
