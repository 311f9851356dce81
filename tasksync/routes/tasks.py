"""
Task Sync - Task Routes

Local task CRUD. Each mutation also queues the change for sync.
"""

from fastapi import APIRouter, HTTPException, Depends, Response
from sqlalchemy.orm import Session
from tasksync.errors import ValidationError
from tasksync.routes.dependencies import get_db
from tasksync.schemas import TaskCreate, TaskUpdate
from tasksync.services.task_service import TaskService

router = APIRouter()


@router.get("")
def list_tasks(db: Session = Depends(get_db)):
    try:
        return [task.to_dict() for task in TaskService(db).get_all_tasks()]
    except Exception:
        raise HTTPException(status_code=500, detail="Failed to fetch tasks")


@router.get("/{task_id}")
def get_task(task_id: str, db: Session = Depends(get_db)):
    try:
        task = TaskService(db).get_task(task_id)
    except Exception:
        raise HTTPException(status_code=500, detail="Failed to fetch task")
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task.to_dict()


@router.post("", status_code=201)
def create_task(request: TaskCreate, db: Session = Depends(get_db)):
    try:
        task = TaskService(db).create_task(
            request.title,
            description=request.description or "",
            completed=bool(request.completed),
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        raise HTTPException(status_code=500, detail="Failed to create task")
    return task.to_dict()


@router.put("/{task_id}")
def update_task(task_id: str, request: TaskUpdate, db: Session = Depends(get_db)):
    try:
        task = TaskService(db).update_task(
            task_id,
            title=request.title,
            description=request.description,
            completed=request.completed,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        raise HTTPException(status_code=500, detail="Failed to update task")
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task.to_dict()


@router.delete("/{task_id}", status_code=204)
def delete_task(task_id: str, db: Session = Depends(get_db)):
    try:
        deleted = TaskService(db).delete_task(task_id)
    except Exception:
        raise HTTPException(status_code=500, detail="Failed to delete task")
    if not deleted:
        raise HTTPException(status_code=404, detail="Task not found")
    return Response(status_code=204)
