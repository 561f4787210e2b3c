from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date,
    Float, ForeignKey, Enum as SAEnum, JSON, UniqueConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime
from dailyrank.infrastructure.database.session import Base


class UserORM(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100), unique=True, nullable=False)
    is_active = Column(Boolean, default=True)
    rating = Column(Integer, nullable=False, default=1000)
    rank = Column(String(50), nullable=False, default="Newbie")
    last_active_date = Column(Date, nullable=True)      # calendar date in settings.TIMEZONE
    daily_study_goal = Column(Float, nullable=True, default=2.0)  # hours
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    tasks = relationship("TaskORM", back_populates="user", cascade="all, delete-orphan")
    rating_history = relationship("RatingHistoryORM", back_populates="user", cascade="all, delete-orphan")
    study_sessions = relationship("StudySessionORM", back_populates="user", cascade="all, delete-orphan")
    activities = relationship("ActivityORM", back_populates="user", cascade="all, delete-orphan")
    expenses = relationship("ExpenseORM", back_populates="user", cascade="all, delete-orphan")
    budgets = relationship("BudgetORM", back_populates="user", cascade="all, delete-orphan")


class RatingHistoryORM(Base):
    """Append-only ledger. One row per closed day or per inactivity gap."""
    __tablename__ = "rating_history"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_rating_history_user_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    old_rating = Column(Integer, nullable=False)
    new_rating = Column(Integer, nullable=False)
    change = Column(Integer, nullable=False)
    dps = Column(Float, nullable=False, default=0.0)
    breakdown = Column(JSON, nullable=False)
    reason = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("UserORM", back_populates="rating_history")


class TaskORM(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    estimated_duration = Column(Integer, nullable=True)  # minutes, None -> 30
    is_completed = Column(Boolean, default=False)
    completed_at = Column(DateTime)
    deleted_at = Column(DateTime)
    date = Column(DateTime)  # planned day
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("UserORM", back_populates="tasks")


class StudySessionORM(Base):
    __tablename__ = "study_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    duration = Column(Integer, nullable=False, default=0)  # minutes
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("UserORM", back_populates="study_sessions")


class ActivityORM(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), default="")
    date = Column(DateTime, nullable=False, index=True)
    duration = Column(Integer, nullable=False, default=0)          # minutes actually tracked
    planned_duration = Column(Integer, nullable=False, default=0)  # 0 = ad hoc, untimed
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("UserORM", back_populates="activities")


class ExpenseORM(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("UserORM", back_populates="expenses")


class BudgetORM(Base):
    __tablename__ = "budgets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Float, nullable=False)
    type = Column(SAEnum("DAILY", "WEEKLY", "MONTHLY", name="budget_type"), default="MONTHLY")
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("UserORM", back_populates="budgets")
