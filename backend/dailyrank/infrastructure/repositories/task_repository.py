from sqlalchemy.orm import Session
from typing import Optional, List
from datetime import datetime
from dailyrank.infrastructure.database.models import TaskORM


class TaskRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_active(self, task_id: int, user_id: int) -> Optional[TaskORM]:
        return self.db.query(TaskORM).filter(
            TaskORM.id == task_id,
            TaskORM.user_id == user_id,
            TaskORM.deleted_at.is_(None),
        ).first()

    def list_created_between(self, user_id: int, start: datetime, end: datetime) -> List[TaskORM]:
        return self.db.query(TaskORM).filter(
            TaskORM.user_id == user_id,
            TaskORM.deleted_at.is_(None),
            TaskORM.created_at >= start,
            TaskORM.created_at <= end,
        ).order_by(TaskORM.created_at).all()

    def create(self, user_id: int, data: dict, created_at: datetime) -> TaskORM:
        task = TaskORM(user_id=user_id, created_at=created_at, **data)
        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)
        return task

    def set_completed(self, task: TaskORM, completed: bool, at: datetime) -> TaskORM:
        task.is_completed = completed
        task.completed_at = at if completed else None
        task.updated_at = at
        self.db.commit()
        self.db.refresh(task)
        return task

    def soft_delete(self, task: TaskORM, at: datetime) -> TaskORM:
        """Keep the row: deleted tasks still count towards the day's discipline penalty."""
        task.deleted_at = at
        task.updated_at = at
        self.db.commit()
        self.db.refresh(task)
        return task
