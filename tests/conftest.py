"""Pytest fixtures for marketplace tests."""

import os

# settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "1"
os.environ["TAX_RATE"] = "0.065"
os.environ["SHIPPING_FEE"] = "0"
os.environ["MAX_ITEM_QTY"] = "100"

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from marketplace.data.database import Database, bind_task_database
from marketplace.data.models.driver import DriverModel
from marketplace.data.models.product import ProductModel
from marketplace.domain.schemas import ContactInfo, ShippingInfo
from marketplace.main import create_app
from marketplace.services.cart_service import CartService
from marketplace.services.order_service import OrderService


@pytest.fixture
def database(tmp_path):
    """File-backed SQLite database shared by the test, the API and eager tasks."""
    database = Database(f"sqlite:///{tmp_path / 'marketplace.db'}").connect()
    database.create_all()
    bind_task_database(database)
    yield database
    bind_task_database(None)
    database.dispose()


@pytest.fixture
def session(database):
    db = database.session()
    yield db
    db.close()


@pytest.fixture
def client(database):
    with TestClient(create_app(database)) as client:
        yield client


@pytest.fixture
def make_product(session):
    def _make(
        name="Potatoes",
        price="10.00",
        current_stock=100,
        daily_limit=0,
        status="active",
        created_at=None,
    ):
        product = ProductModel(
            name=name,
            price=Decimal(price),
            unit="kg",
            current_stock=current_stock,
            daily_limit=daily_limit,
            status=status,
        )
        if created_at is not None:
            product.created_at = created_at
        session.add(product)
        session.commit()
        return product

    return _make


@pytest.fixture
def make_driver(session):
    def _make(name="Anna Kowalska", capacity=50, availability_status="available", phone="+48 600 100 200"):
        driver = DriverModel(
            name=name,
            phone=phone,
            vehicle_type="van",
            capacity=capacity,
            availability_status=availability_status,
        )
        session.add(driver)
        session.commit()
        return driver

    return _make


@pytest.fixture
def contact():
    return ContactInfo(first_name="Jan", last_name="Kowalski", email="jan.kowalski@poczta.pl", phone="+48 500 600 700")


@pytest.fixture
def shipping():
    return ShippingInfo(address="Polna 1", city="Kraków", state="Małopolskie", postal_code="30-001")


@pytest.fixture
def place_order(session, contact, shipping):
    """Fill the buyer's cart with (product, qty) lines and check it out."""

    def _place(buyer_id, lines):
        carts = CartService(session)
        for product, qty in lines:
            carts.add_item(buyer_id, product.id, qty)
        return OrderService(session).checkout(buyer_id, contact, shipping)

    return _place


@pytest.fixture
def tomorrow():
    return datetime.now(timezone.utc) + timedelta(days=1)
