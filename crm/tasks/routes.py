from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import asc
from datetime import datetime
from typing import Optional
import logging

from crm.database import get_db
from crm.models import Milestone, Task, TaskStatus
from crm.tasks.schemas import TaskCreate, TaskUpdate, TaskResponse, TaskListItem
from crm.auth.dependencies import get_current_principal, require_admin
from crm.auth.schemas import Principal
from crm.errors import not_found, validation_error
from crm.projects.routes import get_project_for_principal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])

TASK_STATUSES = [s.value for s in TaskStatus]

# Tasks without a due date sort last
TASK_ORDER = (Task.due_date.is_(None), asc(Task.due_date), asc(Task.id))


def to_list_item(task: Task) -> TaskListItem:
    item = TaskListItem(**TaskResponse.model_validate(task).dict())
    if task.project is not None:
        item.project_name = task.project.project_name
    return item


def get_task_or_404(db: Session, task_id: int) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise not_found("Task")
    return task


def check_milestone(db: Session, project_id: int, milestone_id: Optional[int]) -> None:
    if milestone_id is None:
        return
    exists = db.query(Milestone.id).filter(
        Milestone.id == milestone_id,
        Milestone.project_id == project_id
    ).first()
    if not exists:
        raise validation_error("Milestone does not belong to this project")


def apply_status(task: Task, new_status: str) -> None:
    """Stamp completion on the way into ``completed``; clear it on the way out."""
    if new_status == TaskStatus.COMPLETED.value:
        if task.status != TaskStatus.COMPLETED.value:
            task.completed_at = datetime.utcnow()
    else:
        task.completed_at = None
    task.status = new_status

# =====================================================
# TASK OPERATIONS
# =====================================================

@router.get("")
def list_tasks(
    status: Optional[str] = None,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    """Tasks across every project; an unknown status filter is ignored."""
    query = db.query(Task).options(joinedload(Task.project))
    if status in TASK_STATUSES:
        query = query.filter(Task.status == status)

    tasks = query.order_by(*TASK_ORDER).all()
    return {"tasks": [to_list_item(t) for t in tasks]}

@router.get("/project/{project_id}")
def list_project_tasks(
    project_id: int,
    current_user: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    get_project_for_principal(db, project_id, current_user)
    tasks = db.query(Task).filter(Task.project_id == project_id).order_by(*TASK_ORDER).all()
    return {"tasks": [TaskResponse.model_validate(t) for t in tasks]}

@router.post("/project/{project_id}", status_code=status.HTTP_201_CREATED)
def create_task(
    project_id: int,
    task_data: TaskCreate,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    get_project_for_principal(db, project_id, current_user)
    check_milestone(db, project_id, task_data.milestone_id)

    task = Task(project_id=project_id, **task_data.dict(exclude={"status"}))
    task.status = TaskStatus.PENDING.value
    apply_status(task, task_data.status)

    db.add(task)
    db.commit()
    db.refresh(task)
    logger.info("Created task %s on project %s", task.id, project_id)
    return {"success": True, "task": TaskResponse.model_validate(task)}

@router.put("/{task_id}")
def update_task(
    task_id: int,
    task_update: TaskUpdate,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    task = get_task_or_404(db, task_id)

    update_data = task_update.dict(exclude_unset=True)
    if "milestone_id" in update_data:
        check_milestone(db, task.project_id, update_data["milestone_id"])
    if update_data.get("status") is not None:
        apply_status(task, update_data.pop("status"))
    update_data.pop("status", None)

    for field, value in update_data.items():
        setattr(task, field, value)

    task.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(task)
    return {"success": True, "task": TaskResponse.model_validate(task)}

@router.delete("/{task_id}")
def delete_task(
    task_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    task = get_task_or_404(db, task_id)
    db.delete(task)
    db.commit()
    return {"success": True, "message": "Task deleted successfully"}
