# marketplace/repos/notification_repo.py
from datetime import datetime, timezone

from sqlalchemy import select, update, delete, func, text
from sqlalchemy.orm import Session

from marketplace.data.database import dialect_insert
from marketplace.data.models.notification import (
    NotificationModel,
    MilestoneModel,
    UNREAD_STATE_ALERT_WHERE,
)


class NotificationRepo:
    def __init__(self, db: Session):
        self.db = db

    def upsert_state_alert(self, product_id: int, notification_type: str, message: str):
        # one unread row per (product, type): refresh the message instead of inserting
        now = datetime.now(timezone.utc)
        table = NotificationModel.__table__
        stmt = dialect_insert(self.db, table).values(
            product_id=product_id,
            notification_type=notification_type,
            message=message,
            is_read=False,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.product_id, table.c.notification_type],
            index_where=text(UNREAD_STATE_ALERT_WHERE),
            set_={"message": stmt.excluded.message, "updated_at": stmt.excluded.updated_at},
        )
        self.db.execute(stmt)

    def create(self, notification: NotificationModel) -> NotificationModel:
        self.db.add(notification)
        self.db.flush()
        return notification

    def get(self, notification_id: int) -> NotificationModel | None:
        return self.db.get(NotificationModel, notification_id)

    def find_unread(self) -> list[NotificationModel]:
        return list(
            self.db.execute(
                select(NotificationModel)
                .where(NotificationModel.is_read.is_(False))
                .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
            ).scalars()
        )

    def find_all(self, limit: int) -> list[NotificationModel]:
        return list(
            self.db.execute(
                select(NotificationModel)
                .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
                .limit(limit)
            ).scalars()
        )

    def count_unread(self) -> int:
        return self.db.execute(
            select(func.count(NotificationModel.id)).where(NotificationModel.is_read.is_(False))
        ).scalar_one()

    def mark_all_read(self) -> int:
        result = self.db.execute(
            update(NotificationModel)
            .where(NotificationModel.is_read.is_(False))
            .values(is_read=True, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete(self, notification: NotificationModel):
        self.db.delete(notification)
        self.db.flush()

    def delete_read_before(self, cutoff: datetime) -> int:
        result = self.db.execute(
            delete(NotificationModel)
            .where(NotificationModel.is_read.is_(True), NotificationModel.updated_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def has_milestone(self, user_id: int, milestone_type: str, value: int) -> bool:
        found = self.db.execute(
            select(MilestoneModel.id).where(
                MilestoneModel.user_id == user_id,
                MilestoneModel.milestone_type == milestone_type,
                MilestoneModel.milestone_value == value,
            )
        ).first()
        return found is not None

    def record_milestone(self, user_id: int, milestone_type: str, value: int) -> MilestoneModel:
        milestone = MilestoneModel(user_id=user_id, milestone_type=milestone_type, milestone_value=value)
        self.db.add(milestone)
        self.db.flush()
        return milestone

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
