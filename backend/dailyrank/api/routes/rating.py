from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from dailyrank.infrastructure.database.models import UserORM
from dailyrank.domain.services.rating_engine import RatingEngine
from dailyrank.api.dependencies.auth import get_current_user
from dailyrank.api.dependencies.rating import get_rating_engine
from dailyrank.api.dependencies.rate_limit import limiter, RATE_LIMIT
from dailyrank.api.schemas import (
    RatingEventRequest, RatingEventResponse, LiveRatingResponse,
    FinalizationResponse, RatingStateResponse, RatingHistoryPage, RatingHistoryEntryResponse
)
from dailyrank.core.logging import get_logger

router = APIRouter(prefix="/rating", tags=["Rating"])
logger = get_logger(__name__)


@router.post("/event", response_model=RatingEventResponse)
@limiter.limit(RATE_LIMIT)
def rating_event(
    request: Request,
    data: RatingEventRequest,
    engine: RatingEngine = Depends(get_rating_engine),
    current_user: UserORM = Depends(get_current_user)
):
    """Report that something affecting today's score happened (or REFRESH on page load)."""
    outcome = engine.process_event(current_user.id, data.type)
    logger.info("Rating event processed", event_type=data.type.value, user_id=current_user.id,
                finalized=outcome.finalization.finalized)
    return outcome


@router.post("/recalculate", response_model=LiveRatingResponse)
def recalculate(
    engine: RatingEngine = Depends(get_rating_engine),
    current_user: UserORM = Depends(get_current_user)
):
    """Close any stale day, then project today's provisional rating."""
    engine.finalize_if_day_crossed(current_user.id)
    return engine.recalculate_live_rating(current_user.id)


@router.post("/finalize", response_model=FinalizationResponse)
def finalize(
    engine: RatingEngine = Depends(get_rating_engine),
    current_user: UserORM = Depends(get_current_user)
):
    """Close the last active day if the calendar moved on. No-op on the same day."""
    return engine.finalize_if_day_crossed(current_user.id)


@router.get("/state", response_model=RatingStateResponse)
def get_state(
    engine: RatingEngine = Depends(get_rating_engine),
    current_user: UserORM = Depends(get_current_user)
):
    engine.finalize_if_day_crossed(current_user.id)
    return engine.get_state(current_user.id)


@router.get("/history", response_model=RatingHistoryPage)
def get_history(
    page: int = Query(default=1, ge=1),
    page_size: Optional[int] = Query(default=None, ge=1, le=100),
    engine: RatingEngine = Depends(get_rating_engine),
    current_user: UserORM = Depends(get_current_user)
):
    """Finalized ledger, most recent first."""
    engine.finalize_if_day_crossed(current_user.id)
    history = engine.get_history(current_user.id, page, page_size)
    return RatingHistoryPage(
        total=history.total,
        page=history.page,
        page_size=history.page_size,
        items=[RatingHistoryEntryResponse.model_validate(entry) for entry in history.items],
    )
