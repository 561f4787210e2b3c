from fastapi import Depends
from sqlalchemy.orm import Session
from dailyrank.core.clock import Clock, system_clock
from dailyrank.domain.services.rating_engine import RatingEngine
from dailyrank.infrastructure.database.session import get_db


def get_clock() -> Clock:
    return system_clock


def get_rating_engine(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> RatingEngine:
    return RatingEngine(db, clock=clock)
