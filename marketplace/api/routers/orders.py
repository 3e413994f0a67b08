# marketplace/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.domain.schemas import CheckoutIn, OrderOut, OrderStatsOut, StatusIn
from marketplace.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.post("/checkout", response_model=OrderOut, status_code=201)
def checkout(payload: CheckoutIn, db: Session = Depends(get_db)):
    """
    Turns the buyer's active cart into a pending order.
    Notifications are published asynchronously.
    """
    return get_service(db).checkout(payload.user_id, payload.contact, payload.shipping)


@router.get("/users/{user_id}", response_model=List[OrderOut])
def list_user_orders(user_id: int, db: Session = Depends(get_db)):
    return get_service(db).list_user_orders(user_id)


@router.get("/users/{user_id}/stats", response_model=OrderStatsOut)
def user_order_stats(user_id: int, db: Session = Depends(get_db)):
    return get_service(db).user_order_stats(user_id)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user_id: int | None = Query(default=None, alias="userId"),
    db: Session = Depends(get_db),
):
    """
    Order details. With userId, an order owned by someone else reads as not found.
    """
    return get_service(db).get_order(order_id, user_id)


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_status(order_id: int, payload: StatusIn, db: Session = Depends(get_db)):
    return get_service(db).update_status(order_id, payload.status)


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(order_id: int, db: Session = Depends(get_db)):
    return get_service(db).cancel_order(order_id)
