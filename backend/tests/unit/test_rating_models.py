"""
Unit tests for rank lookup, ledger breakdowns and the calendar policy.
"""
import pytest
from pydantic import TypeAdapter, ValidationError
from datetime import date, datetime, timezone

from dailyrank.core.clock import Clock, to_local, to_utc_naive
from dailyrank.domain.models.rating import (
    DPSBreakdown, InactivityBreakdown,
    rank_for, clamp_rating, UNRATED,
)
from dailyrank.domain.models.records import TaskRecord, BudgetType, prorate_budget, task_minutes
from dailyrank.api.schemas import BreakdownResponse, DPSBreakdownResponse, InactivityBreakdownResponse


# ──── Ranks ───────────────────────────────────────────────────────────────────
class TestRankLookup:

    @pytest.mark.parametrize("rating,expected", [
        (0, "Newbie"),
        (400, "Newbie"),
        (1199, "Newbie"),
        (1200, "Pupil"),
        (1399, "Pupil"),
        (1400, "Specialist"),
        (1600, "Expert"),
        (2100, "Master"),
        (2400, "Grandmaster"),
        (2500, "Grandmaster"),
        (3000, "Legendary"),
    ])
    def test_thresholds(self, rating, expected):
        assert rank_for(rating).name == expected

    def test_negative_is_unrated(self):
        assert rank_for(-1) is UNRATED

    def test_rank_has_color(self):
        assert rank_for(1450).color.startswith("#")

    def test_clamp_rating(self):
        assert clamp_rating(350, 400, 2500) == 400
        assert clamp_rating(2600, 400, 2500) == 2500
        assert clamp_rating(1047, 400, 2500) == 1047


# ──── Breakdowns ──────────────────────────────────────────────────────────────
class TestBreakdowns:

    def make_daily(self):
        return DPSBreakdown(
            plan_score=25, study_score=30, activity_score=2.0, budget_score=20,
            discipline_penalty=-8.0, raw_dps=69.0, relative_adjustment=0, total_dps=69.0,
        )

    def test_daily_is_tagged(self):
        assert self.make_daily().to_dict()["kind"] == "daily"

    def test_inactivity_is_tagged(self):
        data = InactivityBreakdown(days_skipped=3, decay=30).to_dict()
        assert data == {"days_skipped": 3, "decay": 30, "kind": "inactivity"}

    def test_stored_breakdown_read_back_by_kind(self):
        adapter = TypeAdapter(BreakdownResponse)
        daily = adapter.validate_python(self.make_daily().to_dict())
        assert isinstance(daily, DPSBreakdownResponse)
        assert daily.raw_dps == 69
        inactivity = adapter.validate_python({"kind": "inactivity", "days_skipped": 1, "decay": 10})
        assert isinstance(inactivity, InactivityBreakdownResponse)

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            TypeAdapter(BreakdownResponse).validate_python({"kind": "bonus"})


# ──── Records ─────────────────────────────────────────────────────────────────
class TestRecords:

    def test_task_minutes_default(self):
        task = TaskRecord(created_at=datetime(2024, 3, 5, 10))
        assert task_minutes(task) == 30
        assert task_minutes(TaskRecord(created_at=task.created_at, estimated_duration=45)) == 45

    def test_prorate_budget(self):
        assert prorate_budget(70, BudgetType.WEEKLY) == 10
        assert prorate_budget(300, BudgetType.MONTHLY) == 10
        assert prorate_budget(10, BudgetType.DAILY) == 10


# ──── Calendar ────────────────────────────────────────────────────────────────
class TestClock:

    def test_day_bounds_utc(self):
        start, end = Clock("UTC").day_bounds(date(2024, 3, 5))
        assert start == datetime(2024, 3, 5, 0, 0)
        assert end == datetime(2024, 3, 5, 23, 59, 59, 999000)

    def test_day_bounds_follow_timezone(self):
        start, end = Clock("America/New_York").day_bounds(date(2024, 1, 15))
        assert start == datetime(2024, 1, 15, 5, 0)
        assert end == datetime(2024, 1, 16, 4, 59, 59, 999000)

    def test_local_date_of_stored_timestamp(self):
        tz = Clock("America/New_York").tz
        # 03:00 UTC on the 16th is still the evening of the 15th in New York
        local = to_local(datetime(2024, 1, 16, 3, 0), tz)
        assert local.date() == date(2024, 1, 15)
        assert local.hour == 22

    def test_days_between_crosses_months_and_years(self):
        assert Clock.days_between(date(2024, 1, 31), date(2024, 2, 1)) == 1
        assert Clock.days_between(date(2023, 3, 5), date(2024, 3, 5)) == 366

    def test_previous_day(self):
        assert Clock.previous_day(date(2024, 3, 1)) == date(2024, 2, 29)

    def test_utc_conversions(self):
        aware = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)
        assert to_utc_naive(aware) == datetime(2024, 3, 5, 12, 0)
        assert to_local(datetime(2024, 3, 5, 12, 0), timezone.utc) == aware

    def test_fixed_clock_today(self, clock):
        assert clock.today() == date(2024, 3, 5)
        clock.advance(days=1)
        assert clock.today() == date(2024, 3, 6)
        assert clock.utcnow() == datetime(2024, 3, 6, 10, 0)
