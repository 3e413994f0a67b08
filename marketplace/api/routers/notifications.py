# marketplace/api/routers/notifications.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.domain.schemas import CountOut, NotificationOut
from marketplace.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_service(db: Session):
    return NotificationService(db)


@router.get("", response_model=List[NotificationOut])
def list_notifications(limit: int = Query(default=50), db: Session = Depends(get_db)):
    return get_service(db).get_all(limit)


@router.get("/unread", response_model=List[NotificationOut])
def list_unread(db: Session = Depends(get_db)):
    return get_service(db).get_unread()


@router.get("/unread/count", response_model=CountOut)
def unread_count(db: Session = Depends(get_db)):
    return {"count": get_service(db).unread_count()}


@router.patch("/read-all", response_model=CountOut)
def mark_all_read(db: Session = Depends(get_db)):
    return {"count": get_service(db).mark_all_as_read()}


@router.patch("/{notification_id}/read", response_model=NotificationOut)
def mark_read(notification_id: int, db: Session = Depends(get_db)):
    return get_service(db).mark_as_read(notification_id)


@router.delete("/{notification_id}")
def delete_notification(notification_id: int, db: Session = Depends(get_db)):
    get_service(db).delete(notification_id)
    return {"message": "Notification deleted", "id": notification_id}
