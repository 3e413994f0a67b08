# marketplace/api/routers/products.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.domain.schemas import AvailabilityOut, ProductIn, ProductOut, StockIn
from marketplace.services.stock_service import StockService

router = APIRouter(prefix="/products", tags=["products"])


def get_service(db: Session):
    return StockService(db)


@router.post("", response_model=ProductOut, status_code=201)
def register_product(payload: ProductIn, db: Session = Depends(get_db)):
    return get_service(db).register_product(
        name=payload.name,
        price=payload.price,
        unit=payload.unit,
        current_stock=payload.current_stock,
        daily_limit=payload.daily_limit,
        province_name=payload.province_name,
    )


@router.get("/{product_id}/availability", response_model=AvailabilityOut)
def availability(product_id: int, db: Session = Depends(get_db)):
    return get_service(db).check_availability(product_id)


@router.post("/{product_id}/stock", response_model=ProductOut)
def change_stock(product_id: int, payload: StockIn, db: Session = Depends(get_db)):
    """
    Either a raw adjustment ({delta}) or a supplier intake ({quantity, supplierName}).
    """
    svc = get_service(db)
    if payload.quantity is not None:
        return svc.record_supply(product_id, payload.supplier_name, payload.quantity)
    return svc.adjust_stock(product_id, payload.delta)
