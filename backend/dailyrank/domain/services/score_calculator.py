"""
Score Calculator: pure domain logic.
Turns one day of raw activity into sub-scores and a Daily Performance Score.
No database, no clock: callers pass the day's records and the recent ledger changes.
"""
import math
from datetime import tzinfo, timezone
from typing import List, Optional, Sequence

from dailyrank.core.clock import to_local
from dailyrank.domain.models.records import DayRecords, task_minutes, prorate_budget
from dailyrank.domain.models.rating import DPSBreakdown

PLAN_SPAN = 25
STUDY_SPAN = 30
ACTIVITY_MIN, ACTIVITY_MAX = -30, 20
ACTIVITY_MISS_PENALTY = 10
ACTIVITY_COMPLETION_BONUS = 2
ACTIVITY_ADHOC_BONUS = 1
BUDGET_FULL = 20
BUDGET_OVERSPEND_FACTOR = 50
NO_PLAN_PENALTY = -50
DPS_MIN, DPS_MAX = -100, 100
DEFAULT_STUDY_GOAL_HOURS = 2


def round_half_up(value: float) -> int:
    """Round .5 towards +inf (2.5 -> 3, -2.5 -> -2), unlike Python's round()."""
    return int(math.floor(value + 0.5))


def creation_base_penalty(hour: int) -> int:
    if hour >= 21:
        return -6
    if hour >= 9:
        return -4
    if hour >= 6:
        return -2
    return 0


def deletion_base_penalty(hour: int) -> int:
    return -5 if hour >= 6 else -2


class ScoreCalculator:

    def __init__(self, tz: tzinfo = timezone.utc, relative_factor: float = 0.1):
        self.tz = tz
        self.relative_factor = relative_factor

    # ──── Sub-scores ──────────────────────────────────────────────────────────
    def plan_score(self, tasks: Sequence) -> int:
        active = [t for t in tasks if t.deleted_at is None]
        if not active:
            return 0
        total_minutes = sum(task_minutes(t) for t in active)
        completed_minutes = sum(task_minutes(t) for t in active if t.is_completed)
        completion_rate = completed_minutes / total_minutes if total_minutes else 0.0
        return round_half_up(completion_rate * 2 * PLAN_SPAN - PLAN_SPAN)

    def discipline_penalty(self, tasks: Sequence) -> float:
        """Creation-time and deletion penalties, weighted by task length (30 min = 1.0)."""
        if not tasks:
            return NO_PLAN_PENALTY

        penalty = 0.0
        for t in tasks:
            weight = task_minutes(t) / 30
            penalty += creation_base_penalty(to_local(t.created_at, self.tz).hour) * weight

        for t in tasks:
            if t.deleted_at is None:
                continue
            weight = task_minutes(t) / 30
            penalty += deletion_base_penalty(to_local(t.deleted_at, self.tz).hour) * weight
        return penalty

    def study_score(self, sessions: Sequence, goal_hours: Optional[float] = None) -> int:
        goal_minutes = (goal_hours or DEFAULT_STUDY_GOAL_HOURS) * 60
        study_minutes = sum(s.duration or 0 for s in sessions)
        if study_minutes >= goal_minutes:
            return STUDY_SPAN
        ratio = study_minutes / goal_minutes
        return round_half_up(ratio * 2 * STUDY_SPAN - STUDY_SPAN)

    def activity_score(self, activities: Sequence) -> float:
        """Timer honesty: stopping a planned timer early costs up to 10 points."""
        score = 0.0
        for act in activities:
            planned = act.planned_duration or 0
            if planned > 0:
                ratio = min(1.0, (act.duration or 0) / planned)
                if ratio < 1:
                    score -= (1 - ratio) * ACTIVITY_MISS_PENALTY
                else:
                    score += ACTIVITY_COMPLETION_BONUS
            else:
                score += ACTIVITY_ADHOC_BONUS
        return max(ACTIVITY_MIN, min(ACTIVITY_MAX, score))

    def budget_score(self, budget, expenses: Sequence) -> int:
        # no lower bound on overspend
        if budget is None:
            return 0
        daily_limit = prorate_budget(budget.amount, budget.type)
        if daily_limit <= 0:
            return 0
        spent = sum(e.amount for e in expenses)
        if spent <= daily_limit:
            return BUDGET_FULL
        percentage_over = (spent - daily_limit) / daily_limit
        return round_half_up(BUDGET_FULL - percentage_over * BUDGET_OVERSPEND_FACTOR)

    # ──── Aggregation ─────────────────────────────────────────────────────────
    def relative_adjustment(self, raw_dps: float, recent_changes: List[int]) -> int:
        if not recent_changes:
            return 0
        avg = sum(recent_changes) / len(recent_changes)
        return round_half_up((raw_dps - avg) * self.relative_factor)

    def compute_breakdown(self, records: DayRecords, recent_changes: List[int]) -> DPSBreakdown:
        plan = self.plan_score(records.tasks)
        discipline = self.discipline_penalty(records.tasks)
        study = self.study_score(records.study_sessions, records.daily_study_goal)
        activity = self.activity_score(records.activities)
        budget = self.budget_score(records.budget, records.expenses)

        raw = plan + study + activity + budget + discipline
        raw = max(DPS_MIN, min(DPS_MAX, raw))

        adjustment = self.relative_adjustment(raw, recent_changes)
        # not re-clamped: the adjustment may push the total past +/-100
        return DPSBreakdown(
            plan_score=plan,
            study_score=study,
            activity_score=activity,
            budget_score=budget,
            discipline_penalty=discipline,
            raw_dps=raw,
            relative_adjustment=adjustment,
            total_dps=raw + adjustment,
        )
