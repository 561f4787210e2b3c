from sqlalchemy import update
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date, datetime
from dailyrank.infrastructure.database.models import UserORM


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: int) -> Optional[UserORM]:
        return self.db.query(UserORM).filter(UserORM.id == user_id, UserORM.is_active == True).first()

    def get_for_update(self, user_id: int) -> Optional[UserORM]:
        """Row-locked read (SELECT ... FOR UPDATE; ignored by SQLite)."""
        return self.db.query(UserORM).filter(
            UserORM.id == user_id, UserORM.is_active == True
        ).with_for_update().populate_existing().first()

    def create(self, email: str, username: str, daily_study_goal: Optional[float] = None) -> UserORM:
        user = UserORM(email=email, username=username)
        if daily_study_goal is not None:
            user.daily_study_goal = daily_study_goal
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def set_rating(self, user: UserORM, rating: int, rank: str, active_day: date) -> UserORM:
        """Provisional write used by the live projection. Caller commits."""
        user.rating = rating
        user.rank = rank
        user.last_active_date = active_day
        user.updated_at = datetime.utcnow()
        self.db.flush()
        return user

    def swap_active_day(self, user_id: int, expected_day: Optional[date], new_day: date,
                        rating: int, rank: str) -> bool:
        """Compare-and-swap on last_active_date. False when another writer moved it first."""
        stmt = update(UserORM).where(UserORM.id == user_id)
        if expected_day is None:
            stmt = stmt.where(UserORM.last_active_date.is_(None))
        else:
            stmt = stmt.where(UserORM.last_active_date == expected_day)
        stmt = stmt.values(
            rating=rating, rank=rank, last_active_date=new_day, updated_at=datetime.utcnow()
        ).execution_options(synchronize_session=False)
        result = self.db.execute(stmt)
        return result.rowcount == 1
