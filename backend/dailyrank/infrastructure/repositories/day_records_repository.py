from sqlalchemy.orm import Session
from typing import Optional, List
from datetime import date
from dailyrank.core.clock import Clock
from dailyrank.domain.models.records import DayRecords
from dailyrank.infrastructure.database.models import (
    UserORM, TaskORM, StudySessionORM, ActivityORM, ExpenseORM, BudgetORM
)


class DayRecordsRepository:
    """Read-only view over the records that feed one day's score."""

    def __init__(self, db: Session, clock: Clock):
        self.db = db
        self.clock = clock

    def tasks_created_on(self, user_id: int, day: date) -> List[TaskORM]:
        # deleted tasks included: they still carry creation and deletion penalties
        start, end = self.clock.day_bounds(day)
        return self.db.query(TaskORM).filter(
            TaskORM.user_id == user_id,
            TaskORM.created_at >= start,
            TaskORM.created_at <= end,
        ).all()

    def study_sessions_on(self, user_id: int, day: date) -> List[StudySessionORM]:
        start, end = self.clock.day_bounds(day)
        return self.db.query(StudySessionORM).filter(
            StudySessionORM.user_id == user_id,
            StudySessionORM.date >= start,
            StudySessionORM.date <= end,
        ).all()

    def activities_on(self, user_id: int, day: date) -> List[ActivityORM]:
        start, end = self.clock.day_bounds(day)
        return self.db.query(ActivityORM).filter(
            ActivityORM.user_id == user_id,
            ActivityORM.date >= start,
            ActivityORM.date <= end,
        ).all()

    def expenses_on(self, user_id: int, day: date) -> List[ExpenseORM]:
        start, end = self.clock.day_bounds(day)
        return self.db.query(ExpenseORM).filter(
            ExpenseORM.user_id == user_id,
            ExpenseORM.date >= start,
            ExpenseORM.date <= end,
        ).all()

    def active_budget(self, user_id: int) -> Optional[BudgetORM]:
        return self.db.query(BudgetORM).filter(
            BudgetORM.user_id == user_id
        ).order_by(BudgetORM.created_at.desc(), BudgetORM.id.desc()).first()

    def load(self, user: UserORM, day: date) -> DayRecords:
        return DayRecords(
            tasks=self.tasks_created_on(user.id, day),
            study_sessions=self.study_sessions_on(user.id, day),
            activities=self.activities_on(user.id, day),
            expenses=self.expenses_on(user.id, day),
            budget=self.active_budget(user.id),
            daily_study_goal=user.daily_study_goal,
        )
