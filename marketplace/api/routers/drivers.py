# marketplace/api/routers/drivers.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.domain.schemas import DriverCapacityOut
from marketplace.services.assignment_service import AssignmentService

router = APIRouter(prefix="/drivers", tags=["drivers"])


@router.get("/available", response_model=List[DriverCapacityOut])
def available_drivers(db: Session = Depends(get_db)):
    """Available drivers that still have capacity left, with the remaining amount."""
    return AssignmentService(db).assignable_drivers()
