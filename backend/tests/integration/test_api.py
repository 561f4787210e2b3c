"""
Integration tests for the DailyRank API.
Uses a throwaway SQLite DB and a frozen clock.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from datetime import date

from dailyrank.main import app
from dailyrank.infrastructure.database.session import Base, get_db
from dailyrank.infrastructure.database.models import RatingHistoryORM
from dailyrank.infrastructure.repositories.user_repository import UserRepository
from dailyrank.infrastructure.security.jwt import create_access_token
from dailyrank.api.dependencies.rating import get_clock
from dailyrank.domain.services.rating_engine import RatingEngine, PROJECTION_FAILED_WARNING

TEST_DATABASE_URL = "sqlite:///./test_dailyrank_api.db"

engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_db(clock):
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    yield
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


client = TestClient(app)


# ──── Helpers ─────────────────────────────────────────────────────────────────
def create_user(email="test@dailyrank.dev", username="testuser", last_active=None):
    db = TestingSessionLocal()
    try:
        user = UserRepository(db).create(email, username)
        if last_active:
            user.last_active_date = last_active
            db.commit()
        return user.id
    finally:
        db.close()


def auth_headers(user_id: int):
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


def create_task(headers, title="Write report", minutes=60):
    return client.post("/api/v1/tasks", json={"title": title, "estimated_duration": minutes},
                       headers=headers)


# ──── System ──────────────────────────────────────────────────────────────────
class TestSystem:

    def test_health(self):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"

    def test_root(self):
        assert client.get("/").json()["docs"] == "/docs"


# ──── Auth ────────────────────────────────────────────────────────────────────
class TestAuth:

    def test_missing_token(self):
        assert client.get("/api/v1/rating/state").status_code == 401

    def test_invalid_token(self):
        r = client.get("/api/v1/rating/state", headers={"Authorization": "Bearer nope"})
        assert r.status_code == 401

    def test_unknown_user(self):
        r = client.get("/api/v1/rating/state", headers=auth_headers(42))
        assert r.status_code == 401


# ──── Tasks ───────────────────────────────────────────────────────────────────
class TestTasks:

    def test_create_task_projects_rating(self):
        headers = auth_headers(create_user())
        r = create_task(headers)
        assert r.status_code == 201
        body = r.json()
        assert body["task"]["title"] == "Write report"
        # plan -25, created at 10:00 -> -8, no study -30
        assert body["rating"]["new_rating"] == 937
        assert body["rating"]["is_provisional"] is True
        assert body["warning"] is None

    def test_complete_and_uncomplete(self):
        headers = auth_headers(create_user())
        task_id = create_task(headers).json()["task"]["id"]

        r = client.post(f"/api/v1/tasks/{task_id}/complete", headers=headers)
        assert r.status_code == 200
        assert r.json()["task"]["is_completed"] is True
        assert r.json()["rating"]["new_rating"] == 987

        r = client.post(f"/api/v1/tasks/{task_id}/uncomplete", headers=headers)
        assert r.json()["task"]["completed_at"] is None
        assert r.json()["rating"]["new_rating"] == 937

    def test_delete_is_soft_and_penalized(self):
        headers = auth_headers(create_user())
        task_id = create_task(headers).json()["task"]["id"]

        r = client.delete(f"/api/v1/tasks/{task_id}", headers=headers)
        assert r.status_code == 200
        assert r.json()["task"]["deleted_at"] is not None
        # creation -8 and deletion -10, no study -30
        assert r.json()["rating"]["new_rating"] == 952
        assert r.json()["rating"]["breakdown"]["discipline_penalty"] == -18

        assert client.get("/api/v1/tasks", headers=headers).json() == []

    def test_list_today(self):
        headers = auth_headers(create_user())
        create_task(headers, "One")
        create_task(headers, "Two")
        titles = {t["title"] for t in client.get("/api/v1/tasks", headers=headers).json()}
        assert titles == {"One", "Two"}

    def test_task_not_found(self):
        headers = auth_headers(create_user())
        r = client.post("/api/v1/tasks/999/complete", headers=headers)
        assert r.status_code == 404

    def test_tasks_are_per_user(self):
        owner = auth_headers(create_user())
        other = auth_headers(create_user("other@dailyrank.dev", "other"))
        task_id = create_task(owner).json()["task"]["id"]
        assert client.delete(f"/api/v1/tasks/{task_id}", headers=other).status_code == 404

    def test_invalid_duration(self):
        headers = auth_headers(create_user())
        assert create_task(headers, minutes=0).status_code == 422

    def test_task_kept_when_rating_update_fails(self, monkeypatch):
        def broken(self, user_id):
            raise RuntimeError("projection crashed")

        monkeypatch.setattr(RatingEngine, "recalculate_live_rating", broken)
        headers = auth_headers(create_user())
        r = create_task(headers)
        assert r.status_code == 201
        assert r.json()["rating"] is None
        assert r.json()["warning"] == PROJECTION_FAILED_WARNING
        assert len(client.get("/api/v1/tasks", headers=headers).json()) == 1


# ──── Rating ──────────────────────────────────────────────────────────────────
class TestRating:

    def test_refresh_event(self):
        headers = auth_headers(create_user())
        r = client.post("/api/v1/rating/event", json={"type": "REFRESH"}, headers=headers)
        assert r.status_code == 200
        body = r.json()
        assert body["live"] is None
        assert body["state"]["current_rating"] == 1000
        assert body["state"]["rank"] == "Newbie"
        assert body["finalization"]["finalized"] is False

    def test_action_event(self):
        headers = auth_headers(create_user())
        r = client.post("/api/v1/rating/event", json={"type": "STUDY_LOGGED"}, headers=headers)
        body = r.json()
        assert body["live"]["new_rating"] == 920
        assert body["live"]["breakdown"]["kind"] == "daily"
        assert body["state"] is None

    def test_unknown_event_type(self):
        headers = auth_headers(create_user())
        r = client.post("/api/v1/rating/event", json={"type": "JUMP"}, headers=headers)
        assert r.status_code == 422

    def test_task_event_returns_live_rating(self):
        headers = auth_headers(create_user())
        r = client.post("/api/v1/rating/event", json={"type": "TASK_CREATE"}, headers=headers)
        assert r.status_code == 200
        assert r.json()["event"] == "TASK_CREATE"
        assert r.json()["live"]["new_rating"] == 920
        assert r.json()["warning"] is None

    def test_recalculate(self):
        headers = auth_headers(create_user())
        r = client.post("/api/v1/rating/recalculate", headers=headers)
        assert r.status_code == 200
        assert r.json()["old_rating"] == 1000
        assert r.json()["new_rating"] == 920

    def test_day_crossed_finalizes_and_lists_history(self, clock):
        headers = auth_headers(create_user())
        create_task(headers)
        clock.advance(days=1)

        r = client.post("/api/v1/rating/finalize", headers=headers)
        assert r.status_code == 200
        body = r.json()
        assert body["finalized"] is True
        assert body["closed_day"] == "2024-03-05"
        assert body["delta"] == -63
        assert body["new_rating"] == 937

        page = client.get("/api/v1/rating/history", headers=headers).json()
        assert page["total"] == 1
        assert page["page"] == 1
        entry = page["items"][0]
        assert entry["reason"] == "End of Day Summary"
        assert entry["breakdown"]["kind"] == "daily"
        assert entry["new_rating"] == 937

    def test_history_includes_inactivity_entry(self, clock):
        headers = auth_headers(create_user())
        create_task(headers)
        clock.advance(days=3)

        page = client.get("/api/v1/rating/history", headers=headers).json()
        assert page["total"] == 2
        penalty = page["items"][0]
        assert penalty["reason"] == "Inactivity Penalty"
        assert penalty["breakdown"] == {"kind": "inactivity", "days_skipped": 2, "decay": 20}
        assert penalty["change"] == -20

    def test_state_after_finalization(self, clock):
        headers = auth_headers(create_user())
        create_task(headers)
        clock.advance(days=1)
        body = client.get("/api/v1/rating/state", headers=headers).json()
        assert body["base_rating"] == 937
        assert body["current_rating"] == 937
        assert body["today_delta"] == 0

    def test_history_page_out_of_range(self):
        headers = auth_headers(create_user())
        r = client.get("/api/v1/rating/history?page=0", headers=headers)
        assert r.status_code == 422

    def test_inconsistent_ledger_is_conflict(self, clock):
        user_id = create_user(last_active=date(2024, 3, 5))
        db = TestingSessionLocal()
        db.add(RatingHistoryORM(
            user_id=user_id, date=date(2024, 3, 5), old_rating=1000, new_rating=1010,
            change=10, dps=10.0, breakdown={"kind": "inactivity", "days_skipped": 0, "decay": 0},
            reason="End of Day Summary",
        ))
        db.commit()
        db.close()
        clock.advance(days=1)

        r = client.post("/api/v1/rating/finalize", headers=auth_headers(user_id))
        assert r.status_code == 409
