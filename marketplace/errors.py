"""Domain exceptions for the marketplace order engine."""


class MarketplaceError(Exception):
    """Base exception for all marketplace errors."""

    pass


class ValidationError(MarketplaceError):
    """Raised when input is malformed or missing."""

    pass


class NotFoundError(MarketplaceError):
    """Raised when an order, driver, assignment, product or notification doesn't exist."""

    def __init__(self, entity: str, entity_id: int | str | None = None):
        self.entity = entity
        self.entity_id = entity_id
        msg = f"{entity} not found"
        if entity_id is not None:
            msg = f"{entity} not found: {entity_id}"
        super().__init__(msg)


class ConflictError(MarketplaceError):
    """Raised when the current state does not allow the requested operation."""

    pass


class NoActiveCartError(ConflictError):
    def __init__(self, buyer_id: int):
        self.buyer_id = buyer_id
        super().__init__(f"No active cart for buyer {buyer_id}")


class EmptyCartError(ConflictError):
    def __init__(self, cart_id: int):
        self.cart_id = cart_id
        super().__init__("Cart is empty. Please add items to your cart before checkout.")


class OutOfStockError(ConflictError):
    def __init__(self, product_name: str, reason: str | None = None):
        self.product_name = product_name
        msg = f"Not enough stock for product: {product_name}"
        if reason:
            msg = f"{reason}: {product_name}"
        super().__init__(msg)


class InsufficientStockError(ConflictError):
    def __init__(self, product_id: int, current_stock: int, delta: int):
        self.product_id = product_id
        self.current_stock = current_stock
        self.delta = delta
        super().__init__(
            f"Insufficient stock for product {product_id}: current {current_stock}, change {delta}"
        )


class InsufficientCapacityError(ConflictError):
    def __init__(self, driver_id: int, remaining: int, required: int):
        self.driver_id = driver_id
        self.remaining = remaining
        self.required = required
        super().__init__(
            "Driver does not have enough remaining capacity. "
            f"Remaining: {remaining}, required: {required}"
        )


class PaymentValidationError(MarketplaceError):
    """Raised for a bad payment method or an invalid card number."""

    pass


class TransactionFailure(MarketplaceError):
    """Raised when a step inside an atomic unit of work fails.

    The message is the public one; the original cause is chained and logged.
    """

    def __init__(self, public_message: str):
        super().__init__(public_message)
