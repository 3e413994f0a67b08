# marketplace/services/payment_service.py
from typing import Dict, Any

from sqlalchemy.orm import Session

from marketplace.domain.cards import (
    clean_card_number,
    is_ascii_digits,
    is_valid_card_number,
    mask_card_number,
)
from marketplace.errors import PaymentValidationError
from marketplace.services.order_service import OrderService, PAYMENT_METHODS
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

METHOD_LABELS = {"COD": "Cash on Delivery", "CARD": "Credit Card"}


class PaymentService:
    def __init__(self, db: Session):
        self.orders = OrderService(db)

    def process_payment(self, order_id: int, method: str, card_number: str | None = None) -> Dict[str, Any]:
        """
        Use case: capture payment for an order.

        Only the last 4 card digits ever reach storage. Returns the paid order,
        the payment row and an invoice summary.
        """
        method = (method or "").upper()
        if method not in PAYMENT_METHODS:
            raise PaymentValidationError("Payment method must be COD or CARD")

        card_last4 = None
        if method == "CARD":
            card_last4 = self.validate_card(card_number)

        payment = self.orders.mark_paid(order_id, method, card_last4)
        order = self.orders.get_order(order_id)

        contact = order.contact or {}
        customer = f"{contact.get('firstName', '')} {contact.get('lastName', '')}".strip()

        return {
            "order": order,
            "payment": payment,
            "invoice": {
                "order_no": order.order_no,
                "total": order.total,
                "customer_name": customer,
                "email": contact.get("email", ""),
                "created_at": order.created_at,
                "method": METHOD_LABELS[method],
            },
        }

    @staticmethod
    def validate_card(card_number: str | None) -> str:
        """Returns the last 4 digits of a valid card, raises PaymentValidationError otherwise."""
        cleaned = clean_card_number(card_number or "")
        if not cleaned:
            raise PaymentValidationError("Card number is required for card payments")
        if not is_ascii_digits(cleaned):
            raise PaymentValidationError("Card number must contain only digits")
        if len(cleaned) < 13 or len(cleaned) > 19:
            raise PaymentValidationError("Card number must be 13 to 19 digits long")
        if not is_valid_card_number(cleaned):
            raise PaymentValidationError("Invalid card number")
        return cleaned[-4:]

    @staticmethod
    def check_card(card_number: str) -> Dict[str, Any]:
        valid = is_valid_card_number(card_number)
        return {"valid": valid, "masked_number": mask_card_number(card_number) if valid else None}

    @staticmethod
    def payment_methods() -> list[Dict[str, Any]]:
        return [
            {
                "code": "COD",
                "name": "Cash on Delivery",
                "description": "Pay when your order is delivered",
                "requires_card": False,
            },
            {
                "code": "CARD",
                "name": "Credit/Debit Card",
                "description": "Pay securely with your card",
                "requires_card": True,
            },
        ]
