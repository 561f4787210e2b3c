from pydantic import BaseModel, Field
from typing import Optional, List, Union, Literal, Annotated
from datetime import datetime, date

from dailyrank.domain.models.rating import RatingEventType


# ──── Breakdowns ──────────────────────────────────────────────────────────────
class DPSBreakdownResponse(BaseModel):
    kind: Literal["daily"] = "daily"
    plan_score: int
    study_score: int
    activity_score: float
    budget_score: int
    discipline_penalty: float
    raw_dps: float
    relative_adjustment: int
    total_dps: float

    class Config:
        from_attributes = True


class InactivityBreakdownResponse(BaseModel):
    kind: Literal["inactivity"] = "inactivity"
    days_skipped: int
    decay: int

    class Config:
        from_attributes = True


BreakdownResponse = Annotated[
    Union[DPSBreakdownResponse, InactivityBreakdownResponse],
    Field(discriminator="kind"),
]


# ──── Rating ──────────────────────────────────────────────────────────────────
class LiveRatingResponse(BaseModel):
    old_rating: int
    new_rating: int
    change: int
    dps: float
    breakdown: DPSBreakdownResponse
    is_provisional: bool = True

    class Config:
        from_attributes = True


class FinalizationResponse(BaseModel):
    new_rating: int
    new_rank: str
    delta: int
    dps: DPSBreakdownResponse
    finalized: bool
    closed_day: Optional[date] = None
    decay: int = 0

    class Config:
        from_attributes = True


class RatingStateResponse(BaseModel):
    current_rating: int
    rank: str
    rank_color: str
    base_rating: int
    today_delta: int
    today_dps: DPSBreakdownResponse

    class Config:
        from_attributes = True


class RatingEventRequest(BaseModel):
    type: RatingEventType


class RatingEventResponse(BaseModel):
    event: RatingEventType
    finalization: FinalizationResponse
    live: Optional[LiveRatingResponse] = None
    state: Optional[RatingStateResponse] = None
    warning: Optional[str] = None

    class Config:
        from_attributes = True


class RatingHistoryEntryResponse(BaseModel):
    id: int
    date: date
    old_rating: int
    new_rating: int
    change: int
    dps: float
    breakdown: BreakdownResponse
    reason: str
    created_at: datetime

    class Config:
        from_attributes = True


class RatingHistoryPage(BaseModel):
    total: int
    page: int
    page_size: int
    items: List[RatingHistoryEntryResponse]


# ──── Task ────────────────────────────────────────────────────────────────────
class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    estimated_duration: Optional[int] = Field(default=None, ge=1, le=720)
    date: Optional[datetime] = None


class TaskResponse(BaseModel):
    id: int
    user_id: int
    title: str
    estimated_duration: Optional[int]
    is_completed: bool
    completed_at: Optional[datetime]
    deleted_at: Optional[datetime]
    date: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class TaskMutationResponse(BaseModel):
    """A task change plus the rating it produced. ``rating`` is None when the projection failed."""
    task: Optional[TaskResponse] = None
    rating: Optional[LiveRatingResponse] = None
    warning: Optional[str] = None
