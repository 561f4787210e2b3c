"""
Rating Engine: the only code that changes a user's rating.

A calendar day is either open (today: provisional rating on the user row,
nothing in the ledger) or closed (exactly one "End of Day Summary" entry).
Days are closed lazily: the first action on a later day closes the previous
active day, plus an inactivity entry when whole days were skipped.
"""
import threading
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from dailyrank.core.clock import Clock, system_clock
from dailyrank.core.config import settings
from dailyrank.core.logging import get_logger
from dailyrank.domain.exceptions import (
    UserNotFoundError, InconsistentLedgerError, FinalizationConflictError
)
from dailyrank.domain.models.rating import (
    DPSBreakdown, InactivityBreakdown, HistoryReason, RatingEventType,
    LiveRating, FinalizationResult, RatingState, EventOutcome,
    rank_for, clamp_rating,
)
from dailyrank.domain.services.score_calculator import ScoreCalculator, round_half_up
from dailyrank.infrastructure.database.models import UserORM, RatingHistoryORM
from dailyrank.infrastructure.repositories.user_repository import UserRepository
from dailyrank.infrastructure.repositories.rating_history_repository import RatingHistoryRepository
from dailyrank.infrastructure.repositories.day_records_repository import DayRecordsRepository

logger = get_logger(__name__)

PROJECTION_FAILED_WARNING = "Rating could not be refreshed; it will update on your next action."


class UserLockRegistry:
    """One re-entrant lock per user id, shared by every request in the process."""

    def __init__(self):
        self._locks: Dict[int, threading.RLock] = {}
        self._guard = threading.Lock()

    def get(self, user_id: int) -> threading.RLock:
        with self._guard:
            if user_id not in self._locks:
                self._locks[user_id] = threading.RLock()
            return self._locks[user_id]


user_locks = UserLockRegistry()


@dataclass
class HistoryPage:
    total: int
    page: int
    page_size: int
    items: List[RatingHistoryORM]


class RatingEngine:

    def __init__(self, db: Session, clock: Optional[Clock] = None,
                 calculator: Optional[ScoreCalculator] = None):
        self.db = db
        self.clock = clock or system_clock
        self.calculator = calculator or ScoreCalculator(self.clock.tz, settings.RELATIVE_FACTOR)
        self.users = UserRepository(db)
        self.history = RatingHistoryRepository(db)
        self.records = DayRecordsRepository(db, self.clock)

    # ──── Helpers ─────────────────────────────────────────────────────────────
    def _require_user(self, user_id: int) -> UserORM:
        user = self.users.get_by_id(user_id)
        if not user:
            raise UserNotFoundError(user_id)
        return user

    def _clamp(self, value: float) -> int:
        return clamp_rating(value, settings.MIN_RATING, settings.MAX_RATING)

    def compute_day(self, user: UserORM, day: date) -> DPSBreakdown:
        """DPS of ``day`` from its records. Read errors propagate."""
        records = self.records.load(user, day)
        if records.daily_study_goal is None:
            records.daily_study_goal = settings.DEFAULT_STUDY_GOAL_HOURS
        changes = self.history.recent_changes(user.id, settings.RELATIVE_WINDOW)
        return self.calculator.compute_breakdown(records, changes)

    @staticmethod
    def _day_crossed(user: UserORM, today: date) -> bool:
        return user.last_active_date is not None and user.last_active_date != today

    # ──── Live projection ─────────────────────────────────────────────────────
    def recalculate_live_rating(self, user_id: int) -> LiveRating:
        """Provisional rating for today. Writes the user row only, never the ledger."""
        with user_locks.get(user_id):
            user = self._require_user(user_id)
            today = self.clock.today()
            if self._day_crossed(user, today):
                # the stale day must be closed before today's pointer overwrites it
                self.finalize_if_day_crossed(user_id)
                user = self._require_user(user_id)

            breakdown = self.compute_day(user, today)
            base = self.history.baseline_rating(user_id)
            change = round_half_up(breakdown.total_dps)
            new_rating = self._clamp(base + change)
            try:
                self.users.set_rating(user, new_rating, rank_for(new_rating).name, today)
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                raise

        logger.info("Live rating projected", user_id=user_id, base=base,
                    new_rating=new_rating, dps=breakdown.total_dps)
        return LiveRating(
            old_rating=base,
            new_rating=new_rating,
            change=change,
            dps=breakdown.total_dps,
            breakdown=breakdown,
        )

    def try_live_rating(self, user_id: int) -> Tuple[Optional[LiveRating], Optional[str]]:
        """Best-effort projection: a failure is logged and reported, never raised."""
        try:
            return self.recalculate_live_rating(user_id), None
        except Exception as exc:
            self.db.rollback()
            logger.warning("Live rating projection failed", user_id=user_id, error=str(exc))
            return None, PROJECTION_FAILED_WARNING

    # ──── Finalization ────────────────────────────────────────────────────────
    def finalize_if_day_crossed(self, user_id: int) -> FinalizationResult:
        user = self._require_user(user_id)
        today = self.clock.today()
        if not self._day_crossed(user, today):
            return self._open_day_result(user, today)

        observed_day = user.last_active_date
        with user_locks.get(user_id):
            try:
                result = self._close_day(user_id, today)
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                logger.warning("Finalization conflict", user_id=user_id, error=str(exc))
                raise FinalizationConflictError(user_id, observed_day) from exc
            except FinalizationConflictError:
                self.db.rollback()
                logger.warning("Finalization conflict", user_id=user_id)
                raise
            except Exception:
                self.db.rollback()
                raise

        if result is None:
            # closed by a concurrent request while we waited for the lock
            return self._open_day_result(self._require_user(user_id), today)
        return result

    def _open_day_result(self, user: UserORM, today: date) -> FinalizationResult:
        return FinalizationResult(
            new_rating=user.rating,
            new_rank=user.rank,
            delta=0,
            dps=self.compute_day(user, today),
            finalized=False,
        )

    def _close_day(self, user_id: int, today: date) -> Optional[FinalizationResult]:
        user = self.users.get_for_update(user_id)
        if not user:
            raise UserNotFoundError(user_id)
        closed_day = user.last_active_date
        if not self._day_crossed(user, today):
            return None
        if closed_day > today:
            raise InconsistentLedgerError(
                user_id, f"Last active day {closed_day} is after today {today}", closed_day
            )
        if self.history.get_on(user_id, closed_day):
            raise InconsistentLedgerError(
                user_id, f"Day {closed_day} is already in the rating history", closed_day
            )
        latest = self.history.latest(user_id)
        if latest and latest.date > closed_day:
            raise InconsistentLedgerError(
                user_id, f"Rating history has {latest.date}, later than last active day {closed_day}",
                closed_day,
            )

        base = self.history.baseline_rating(user_id)
        breakdown = self.compute_day(user, closed_day)
        change = round_half_up(breakdown.total_dps)
        new_rating = self._clamp(base + change)
        self.history.append(user_id, {
            "date": closed_day,
            "old_rating": base,
            "new_rating": new_rating,
            "change": change,
            "dps": breakdown.total_dps,
            "breakdown": breakdown.to_dict(),
            "reason": HistoryReason.END_OF_DAY.value,
        })

        gap_days = Clock.days_between(closed_day, today)
        decay = 0
        if gap_days > 1:
            skipped = gap_days - 1
            decay = skipped * settings.DECAY_PER_SKIPPED_DAY
            decayed = self._clamp(new_rating - decay)
            self.history.append(user_id, {
                "date": Clock.previous_day(today),
                "old_rating": new_rating,
                "new_rating": decayed,
                "change": -decay,
                "dps": 0,
                "breakdown": InactivityBreakdown(days_skipped=skipped, decay=decay).to_dict(),
                "reason": HistoryReason.INACTIVITY.value,
            })
            new_rating = decayed

        rank = rank_for(new_rating)
        if not self.users.swap_active_day(user_id, closed_day, today, new_rating, rank.name):
            raise FinalizationConflictError(user_id, closed_day)

        logger.info("Day finalized", user_id=user_id, closed_day=str(closed_day),
                    base=base, dps=breakdown.total_dps, decay=decay, new_rating=new_rating)
        return FinalizationResult(
            new_rating=new_rating,
            new_rank=rank.name,
            delta=change,
            dps=breakdown,
            finalized=True,
            closed_day=closed_day,
            decay=decay,
        )

    # ──── Reads ───────────────────────────────────────────────────────────────
    def get_history(self, user_id: int, page: int = 1, page_size: Optional[int] = None) -> HistoryPage:
        self._require_user(user_id)
        size = page_size or settings.HISTORY_PAGE_SIZE
        total, items = self.history.page(user_id, page, size)
        return HistoryPage(total=total, page=page, page_size=size, items=items)

    def get_state(self, user_id: int) -> RatingState:
        user = self._require_user(user_id)
        base = self.history.baseline_rating(user_id)
        rank = rank_for(user.rating)
        return RatingState(
            current_rating=user.rating,
            rank=rank.name,
            rank_color=rank.color,
            base_rating=base,
            today_delta=user.rating - base,
            today_dps=self.compute_day(user, self.clock.today()),
        )

    # ──── Events ──────────────────────────────────────────────────────────────
    def process_event(self, user_id: int, event: RatingEventType) -> EventOutcome:
        """Finalization check, then the live projection (skipped for REFRESH)."""
        finalization = self.finalize_if_day_crossed(user_id)
        if event == RatingEventType.REFRESH:
            return EventOutcome(event=event, finalization=finalization, state=self.get_state(user_id))

        live, warning = self.try_live_rating(user_id)
        return EventOutcome(event=event, finalization=finalization, live=live, warning=warning)
