from dataclasses import dataclass, asdict
from datetime import date
from typing import Optional, Dict, Any, List
from enum import Enum


class HistoryReason(str, Enum):
    END_OF_DAY = "End of Day Summary"
    INACTIVITY = "Inactivity Penalty"


class RatingEventType(str, Enum):
    TASK_CREATE = "TASK_CREATE"
    TASK_COMPLETE = "TASK_COMPLETE"
    TASK_UNCOMPLETE = "TASK_UNCOMPLETE"
    TASK_DELETE = "TASK_DELETE"
    ACTIVITY_LOGGED = "ACTIVITY_LOGGED"
    EXPENSE_LOGGED = "EXPENSE_LOGGED"
    STUDY_LOGGED = "STUDY_LOGGED"
    REFRESH = "REFRESH"  # page load, nothing changed


# ──── Breakdowns ──────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class DPSBreakdown:
    """Sub-scores of one day. Stored verbatim in the ledger."""
    plan_score: int
    study_score: int
    activity_score: float
    budget_score: int
    discipline_penalty: float
    raw_dps: float
    relative_adjustment: int
    total_dps: float
    kind: str = "daily"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class InactivityBreakdown:
    days_skipped: int
    decay: int
    kind: str = "inactivity"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ──── Ranks ───────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Rank:
    name: str
    min_rating: float
    color: str


UNRATED = Rank("Unrated", float("-inf"), "#6b7280")

RANKS: List[Rank] = [
    Rank("Newbie", 0, "#6b7280"),
    Rank("Pupil", 1200, "#22c55e"),
    Rank("Specialist", 1400, "#06b6d4"),
    Rank("Expert", 1600, "#3b82f6"),
    Rank("Master", 2100, "#f97316"),
    Rank("Grandmaster", 2400, "#ef4444"),
    Rank("Legendary", 3000, "#dc2626"),
]


def rank_for(rating: float) -> Rank:
    """Highest rank whose threshold is <= rating."""
    selected = UNRATED
    for rank in RANKS:
        if rating >= rank.min_rating:
            selected = rank
    return selected


def clamp_rating(value: float, low: int, high: int) -> int:
    return int(max(low, min(high, value)))


# ──── Engine results ──────────────────────────────────────────────────────────
@dataclass
class LiveRating:
    old_rating: int
    new_rating: int
    change: int
    dps: float
    breakdown: DPSBreakdown
    is_provisional: bool = True


@dataclass
class FinalizationResult:
    new_rating: int
    new_rank: str
    delta: int
    dps: DPSBreakdown
    finalized: bool
    closed_day: Optional[date] = None
    decay: int = 0


@dataclass
class RatingState:
    current_rating: int
    rank: str
    rank_color: str
    base_rating: int
    today_delta: int
    today_dps: DPSBreakdown


@dataclass
class EventOutcome:
    event: RatingEventType
    finalization: FinalizationResult
    live: Optional[LiveRating] = None
    state: Optional[RatingState] = None
    warning: Optional[str] = None
