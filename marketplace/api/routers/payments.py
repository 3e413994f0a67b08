# marketplace/api/routers/payments.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.domain.schemas import (
    CardCheckOut,
    CardIn,
    PaymentIn,
    PaymentMethodOut,
    PaymentResultOut,
)
from marketplace.services.payment_service import PaymentService

router = APIRouter(prefix="/payment", tags=["payment"])


@router.post("/pay", response_model=PaymentResultOut, status_code=201)
def pay(payload: PaymentIn, db: Session = Depends(get_db)):
    return PaymentService(db).process_payment(payload.order_id, payload.method, payload.card_number)


@router.get("/methods", response_model=List[PaymentMethodOut])
def payment_methods():
    return PaymentService.payment_methods()


@router.post("/validate-card", response_model=CardCheckOut)
def validate_card(payload: CardIn):
    """Luhn check only; the number is never stored or logged."""
    return PaymentService.check_card(payload.card_number)
