from sqlalchemy.orm import Session
from typing import Optional, List, Tuple
from datetime import date
from dailyrank.core.config import settings
from dailyrank.infrastructure.database.models import RatingHistoryORM


class RatingHistoryRepository:
    """Append-only access to the rating ledger.

    Writes are flushed, never committed here: a finalization commits the
    end-of-day entry, the decay entry and the user update together.
    """

    def __init__(self, db: Session):
        self.db = db

    def _ordered(self, user_id: int):
        return self.db.query(RatingHistoryORM).filter(
            RatingHistoryORM.user_id == user_id
        ).order_by(RatingHistoryORM.date.desc(), RatingHistoryORM.id.desc())

    def latest(self, user_id: int) -> Optional[RatingHistoryORM]:
        return self._ordered(user_id).first()

    def baseline_rating(self, user_id: int) -> int:
        """Rating as of the last closed day; users with no history start at BASE_RATING."""
        last = self.latest(user_id)
        return last.new_rating if last else settings.BASE_RATING

    def recent_changes(self, user_id: int, n: int = 7) -> List[int]:
        return [h.change for h in self._ordered(user_id).limit(n).all()]

    def get_on(self, user_id: int, day: date) -> Optional[RatingHistoryORM]:
        return self.db.query(RatingHistoryORM).filter(
            RatingHistoryORM.user_id == user_id,
            RatingHistoryORM.date == day,
        ).first()

    def append(self, user_id: int, data: dict) -> RatingHistoryORM:
        entry = RatingHistoryORM(user_id=user_id, **data)
        self.db.add(entry)
        self.db.flush()
        return entry

    def page(self, user_id: int, page: int = 1, page_size: int = 20) -> Tuple[int, List[RatingHistoryORM]]:
        q = self._ordered(user_id)
        total = q.count()
        items = q.offset((page - 1) * page_size).limit(page_size).all()
        return total, items
