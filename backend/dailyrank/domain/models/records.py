from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List
from enum import Enum

DEFAULT_TASK_MINUTES = 30


class BudgetType(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


@dataclass
class TaskRecord:
    created_at: datetime
    estimated_duration: Optional[int] = None
    is_completed: bool = False
    deleted_at: Optional[datetime] = None


@dataclass
class StudySessionRecord:
    date: datetime
    duration: int


@dataclass
class ActivityRecord:
    date: datetime
    duration: int
    planned_duration: int = 0


@dataclass
class ExpenseRecord:
    date: datetime
    amount: float


@dataclass
class BudgetRecord:
    amount: float
    type: BudgetType = BudgetType.DAILY


@dataclass
class DayRecords:
    """Everything the calculators read for one user and one calendar day.

    Items may be the dataclasses above or ORM rows with the same attributes.
    """
    tasks: List = field(default_factory=list)
    study_sessions: List = field(default_factory=list)
    activities: List = field(default_factory=list)
    expenses: List = field(default_factory=list)
    budget: Optional[object] = None
    daily_study_goal: Optional[float] = None  # hours


def task_minutes(task) -> int:
    return task.estimated_duration or DEFAULT_TASK_MINUTES


def prorate_budget(amount: float, budget_type) -> float:
    """Daily share of a budget. Anything but WEEKLY/MONTHLY is already daily."""
    if budget_type == BudgetType.WEEKLY:
        return amount / 7
    if budget_type == BudgetType.MONTHLY:
        return amount / 30
    return amount
