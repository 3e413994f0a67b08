# marketplace/data/seed.py
from decimal import Decimal

from marketplace.data.database import Database
from marketplace.data.models.driver import DriverModel
from marketplace.data.models.product import ProductModel
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

PRODUCTS = [
    ("Potatoes", Decimal("1.20"), "kg", 500, 100),
    ("Tomatoes", Decimal("3.50"), "kg", 200, 50),
    ("Apples", Decimal("2.10"), "kg", 350, 80),
    ("Eggs", Decimal("4.00"), "tray", 60, 20),
]

DRIVERS = [
    ("Anna Kowalska", "+48 600 100 200", "van", 150),
    ("Marek Nowak", "+48 600 300 400", "truck", 600),
    ("Ola Wiśniewska", "+48 600 500 600", "pickup", 80),
]


def seed(database: Database | None = None):
    database = (database or Database()).connect()
    database.create_all()

    db = database.session()
    try:
        # not forcing: only seed if empty
        if db.query(ProductModel).first() or db.query(DriverModel).first():
            logger.info("Seed skipped, data already present")
            return

        db.add_all(
            ProductModel(name=name, price=price, unit=unit, current_stock=stock, daily_limit=limit)
            for name, price, unit, stock, limit in PRODUCTS
        )
        db.add_all(
            DriverModel(name=name, phone=phone, vehicle_type=vehicle, capacity=capacity)
            for name, phone, vehicle, capacity in DRIVERS
        )
        db.commit()
        logger.info(f"Seeded {len(PRODUCTS)} products and {len(DRIVERS)} drivers")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
