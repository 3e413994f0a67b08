# marketplace/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Dict, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    PlainSerializer,
    model_validator,
)
from pydantic.alias_generators import to_camel

# Decimal in the domain, plain JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case accepted too."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =====================================================
# VALUE OBJECTS
# =====================================================
class ContactInfo(ApiModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=30)


class ShippingInfo(ApiModel):
    address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)


# =====================================================
# CART
# =====================================================
class ItemIn(ApiModel):
    """Schema for adding a product to the cart."""

    product_id: int = Field(..., gt=0)
    qty: Optional[int] = Field(default=1)


class QtyIn(ApiModel):
    qty: int


class CartInfoOut(ApiModel):
    id: int
    buyer_id: int
    status: str


class CartItemOut(ApiModel):
    id: int
    product_id: int
    name: str
    price: Money
    qty: int
    line_total: Money


class TotalsOut(ApiModel):
    subtotal: Money
    tax: Money
    shipping_fee: Money
    total: Money


class CartOut(ApiModel):
    cart: CartInfoOut
    items: List[CartItemOut]
    totals: TotalsOut


class CartConfigOut(ApiModel):
    tax_rate: float
    shipping_fee: Money
    max_item_qty: int


# =====================================================
# ORDERS
# =====================================================
class CheckoutIn(ApiModel):
    user_id: int = Field(..., gt=0)
    contact: ContactInfo
    shipping: ShippingInfo


class StatusIn(ApiModel):
    status: str


class OrderItemOut(ApiModel):
    id: int
    product_id: int
    name: str
    price: Money
    qty: int


class OrderOut(ApiModel):
    id: int
    order_no: str
    buyer_id: int
    subtotal: Money
    tax: Money
    shipping_fee: Money
    total: Money
    status: str
    assignment_status: str
    contact: ContactInfo
    shipping: ShippingInfo
    created_at: datetime
    items: List[OrderItemOut] = []


class OrderStatsOut(ApiModel):
    total_orders: int
    total_spent: Money
    orders_by_status: Dict[str, int]
    latest_order: Optional[OrderOut] = None


# =====================================================
# PAYMENTS
# =====================================================
class PaymentIn(ApiModel):
    order_id: int = Field(..., gt=0)
    method: str = Field(..., min_length=1)
    card_number: Optional[str] = None


class CardIn(ApiModel):
    card_number: str = Field(..., min_length=1)


class CardCheckOut(ApiModel):
    valid: bool
    masked_number: Optional[str] = None


class PaymentMethodOut(ApiModel):
    code: str
    name: str
    description: str
    requires_card: bool


class PaymentOut(ApiModel):
    id: int
    order_id: int
    method: str
    amount: Money
    status: str
    card_last4: Optional[str] = None
    created_at: datetime


class InvoiceOut(ApiModel):
    order_no: str
    total: Money
    customer_name: str
    email: str
    created_at: datetime
    method: str


class PaymentResultOut(ApiModel):
    order: OrderOut
    payment: PaymentOut
    invoice: InvoiceOut


# =====================================================
# ASSIGNMENTS / DRIVERS
# =====================================================
class AssignmentIn(ApiModel):
    order_id: int = Field(..., gt=0)
    driver_id: int = Field(..., gt=0)
    schedule_time: datetime
    special_notes: Optional[str] = None


class AssignmentUpdateIn(ApiModel):
    schedule_time: Optional[datetime] = None
    special_notes: Optional[str] = None
    status: Optional[str] = None


class AssignmentOut(ApiModel):
    id: int
    order_id: int
    driver_id: int
    schedule_time: datetime
    special_notes: Optional[str] = None
    status: str
    created_at: datetime
    order_no: Optional[str] = None
    driver_name: Optional[str] = None
    vehicle_type: Optional[str] = None


class DriverCapacityOut(ApiModel):
    id: int
    name: str
    vehicle_type: str
    capacity: int
    availability_status: str
    remaining_capacity: int


# =====================================================
# PRODUCTS / STOCK
# =====================================================
class ProductIn(ApiModel):
    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., gt=0)
    unit: str = Field(default="kg", min_length=1, max_length=20)
    current_stock: int = Field(default=0, ge=0)
    daily_limit: int = Field(default=0, ge=0)
    province_name: Optional[str] = None


class ProductOut(ApiModel):
    id: int
    name: str
    price: Money
    unit: str
    current_stock: int
    daily_limit: int
    status: str
    created_at: datetime


class StockIn(ApiModel):
    """Either a raw delta, or a supplier intake (quantity + supplier name)."""

    delta: Optional[int] = None
    quantity: Optional[int] = Field(default=None, gt=0)
    supplier_name: Optional[str] = None

    @model_validator(mode="after")
    def check_one_kind(self):
        if self.delta is None and self.quantity is None:
            raise ValueError("Either delta or quantity is required")
        if self.delta is not None and self.quantity is not None:
            raise ValueError("Provide delta or quantity, not both")
        if self.quantity is not None and not self.supplier_name:
            raise ValueError("supplierName is required for supplier intake")
        return self


class AvailabilityOut(ApiModel):
    available: bool
    current_stock: int
    daily_limit: int
    status: str


# =====================================================
# NOTIFICATIONS
# =====================================================
class NotificationOut(ApiModel):
    id: int
    product_id: Optional[int] = None
    order_id: Optional[int] = None
    type: str = Field(validation_alias=AliasChoices("notification_type", "type"))
    message: str
    is_read: bool
    created_at: datetime
    updated_at: datetime


class CountOut(ApiModel):
    count: int
