from dataclasses import asdict
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from dailyrank.infrastructure.database.session import get_db
from dailyrank.infrastructure.repositories.task_repository import TaskRepository
from dailyrank.infrastructure.database.models import UserORM
from dailyrank.domain.services.rating_engine import RatingEngine
from dailyrank.api.dependencies.auth import get_current_user
from dailyrank.api.dependencies.rating import get_rating_engine
from dailyrank.api.schemas import TaskCreate, TaskResponse, TaskMutationResponse
from dailyrank.core.logging import get_logger

router = APIRouter(prefix="/tasks", tags=["Tasks"])
logger = get_logger(__name__)


def _with_rating(engine: RatingEngine, user_id: int, task=None) -> TaskMutationResponse:
    live, warning = engine.try_live_rating(user_id)
    return TaskMutationResponse(task=task, rating=asdict(live) if live else None, warning=warning)


@router.get("", response_model=List[TaskResponse])
def list_today_tasks(
    db: Session = Depends(get_db),
    engine: RatingEngine = Depends(get_rating_engine),
    current_user: UserORM = Depends(get_current_user)
):
    """List today's active tasks."""
    start, end = engine.clock.day_bounds(engine.clock.today())
    return TaskRepository(db).list_created_between(current_user.id, start, end)


@router.post("", response_model=TaskMutationResponse, status_code=201)
def create_task(
    data: TaskCreate,
    db: Session = Depends(get_db),
    engine: RatingEngine = Depends(get_rating_engine),
    current_user: UserORM = Depends(get_current_user)
):
    """Create a task for today. Planning late in the day costs discipline points."""
    engine.finalize_if_day_crossed(current_user.id)
    task = TaskRepository(db).create(current_user.id, data.model_dump(), engine.clock.utcnow())
    logger.info("Task created", task_id=task.id, user_id=current_user.id)
    return _with_rating(engine, current_user.id, TaskResponse.model_validate(task))


@router.post("/{task_id}/complete", response_model=TaskMutationResponse)
def complete_task(
    task_id: int,
    db: Session = Depends(get_db),
    engine: RatingEngine = Depends(get_rating_engine),
    current_user: UserORM = Depends(get_current_user)
):
    engine.finalize_if_day_crossed(current_user.id)
    repo = TaskRepository(db)
    task = repo.get_active(task_id, current_user.id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    task = repo.set_completed(task, True, engine.clock.utcnow())
    return _with_rating(engine, current_user.id, TaskResponse.model_validate(task))


@router.post("/{task_id}/uncomplete", response_model=TaskMutationResponse)
def uncomplete_task(
    task_id: int,
    db: Session = Depends(get_db),
    engine: RatingEngine = Depends(get_rating_engine),
    current_user: UserORM = Depends(get_current_user)
):
    engine.finalize_if_day_crossed(current_user.id)
    repo = TaskRepository(db)
    task = repo.get_active(task_id, current_user.id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    task = repo.set_completed(task, False, engine.clock.utcnow())
    return _with_rating(engine, current_user.id, TaskResponse.model_validate(task))


@router.delete("/{task_id}", response_model=TaskMutationResponse)
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    engine: RatingEngine = Depends(get_rating_engine),
    current_user: UserORM = Depends(get_current_user)
):
    """Soft-delete a task. The deletion penalty applies to the day the task was created."""
    engine.finalize_if_day_crossed(current_user.id)
    repo = TaskRepository(db)
    task = repo.get_active(task_id, current_user.id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    task = repo.soft_delete(task, engine.clock.utcnow())
    logger.info("Task deleted", task_id=task.id, user_id=current_user.id)
    return _with_rating(engine, current_user.id, TaskResponse.model_validate(task))
