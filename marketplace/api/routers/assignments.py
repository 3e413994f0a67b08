# marketplace/api/routers/assignments.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.domain.schemas import AssignmentIn, AssignmentOut, AssignmentUpdateIn
from marketplace.services.assignment_service import AssignmentService

router = APIRouter(prefix="/assignments", tags=["assignments"])


def get_service(db: Session):
    return AssignmentService(db)


@router.post("", response_model=AssignmentOut, status_code=201)
def create_assignment(payload: AssignmentIn, db: Session = Depends(get_db)):
    """
    Binds an order to a driver if the driver has room for the order's total quantity.
    """
    svc = get_service(db)
    assignment = svc.create_assignment(
        payload.order_id,
        payload.driver_id,
        payload.schedule_time,
        payload.special_notes,
    )
    return svc.get_assignment(assignment.id)


@router.get("", response_model=List[AssignmentOut])
def list_assignments(db: Session = Depends(get_db)):
    return get_service(db).list_assignments()


@router.get("/driver/{driver_id}", response_model=List[AssignmentOut])
def list_by_driver(driver_id: int, db: Session = Depends(get_db)):
    return get_service(db).list_by_driver(driver_id)


@router.get("/status/{status}", response_model=List[AssignmentOut])
def list_by_status(status: str, db: Session = Depends(get_db)):
    return get_service(db).list_by_status(status)


@router.get("/{assignment_id}", response_model=AssignmentOut)
def get_assignment(assignment_id: int, db: Session = Depends(get_db)):
    return get_service(db).get_assignment(assignment_id)


@router.patch("/{assignment_id}", response_model=AssignmentOut)
def update_assignment(assignment_id: int, payload: AssignmentUpdateIn, db: Session = Depends(get_db)):
    return get_service(db).update_assignment(
        assignment_id,
        schedule_time=payload.schedule_time,
        special_notes=payload.special_notes,
        status=payload.status,
    )


@router.delete("/{assignment_id}")
def delete_assignment(assignment_id: int, db: Session = Depends(get_db)):
    get_service(db).delete_assignment(assignment_id)
    return {"message": "Assignment deleted", "id": assignment_id}
