# marketplace/api/__init__.py
from fastapi import FastAPI

from marketplace.api.routers import (
    assignments,
    carts,
    drivers,
    health,
    notifications,
    orders,
    payments,
    products,
)


def include_routers(app: FastAPI):
    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(payments.router)
    app.include_router(assignments.router)
    app.include_router(drivers.router)
    app.include_router(products.router)
    app.include_router(notifications.router)
