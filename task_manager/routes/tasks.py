from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession
from .. import crud
from ..db import get_db
from ..schemas import (
    TaskCreate,
    TaskFilter,
    TaskPriority,
    TaskResponse,
    TaskStats,
    TaskStatus,
    TaskUpdate,
    ValidationErrorResponse,
)

TASK_NOT_FOUND = "Task not found"

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
    responses={400: {"model": ValidationErrorResponse}},
)


@router.get("/stats", response_model=TaskStats)
async def get_task_stats(db: AsyncSession = Depends(get_db)):
    """Count tasks per status"""
    return await crud.get_task_stats(db)


@router.get("", response_model=List[TaskResponse])
async def list_tasks(
    status: Optional[TaskStatus] = Query(None),
    priority: Optional[TaskPriority] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    db: AsyncSession = Depends(get_db)
):
    """List tasks, optionally filtered by status, priority and a search term"""
    task_filter = TaskFilter(status=status, priority=priority, search=search)
    tasks = await crud.list_tasks(db, task_filter)
    return [TaskResponse.model_validate(task) for task in tasks]


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    """Get a specific task by ID"""
    task = await crud.get_task(db, str(task_id))
    if not task:
        raise HTTPException(status_code=404, detail=TASK_NOT_FOUND)
    return TaskResponse.model_validate(task)


@router.post("", response_model=TaskResponse, status_code=201)
async def create_task(
    task: TaskCreate,
    db: AsyncSession = Depends(get_db)
):
    """Create a new task"""
    db_task = await crud.create_task(db, task)
    return TaskResponse.model_validate(db_task)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    task_update: TaskUpdate,
    db: AsyncSession = Depends(get_db)
):
    """Update the supplied fields of a task"""
    task = await crud.update_task(db, str(task_id), task_update)
    if not task:
        raise HTTPException(status_code=404, detail=TASK_NOT_FOUND)
    return TaskResponse.model_validate(task)


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    """Delete a specific task"""
    deleted = await crud.delete_task(db, str(task_id))
    if not deleted:
        raise HTTPException(status_code=404, detail=TASK_NOT_FOUND)
    return Response(status_code=204)
