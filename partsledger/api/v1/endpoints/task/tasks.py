from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from partsledger.api.dependencies import Operator, get_current_operator
from partsledger.core.database import get_async_session
from partsledger.models.shared.enums import TaskStatus
from partsledger.schemas.common.pagination import PaginatedResponse
from partsledger.schemas.task.task_schema import TaskAssign, TaskComplete, TaskCreate, TaskResponse, TaskUpdate
from partsledger.services.task.task_service import TaskService

router = APIRouter()

@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Create a task; its due time follows from the SLA when not given"""
    service = TaskService(db)
    return await service.create_task(task_data, current_operator.name)

@router.get("/", response_model=PaginatedResponse[TaskResponse])
async def get_tasks(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    status: Optional[TaskStatus] = Query(None),
    assigned_to: Optional[str] = Query(None),
    overdue_only: bool = Query(False),
    search: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = TaskService(db)
    return await service.get_tasks(
        page_index=page_index,
        page_size=page_size,
        status=status,
        assigned_to=assigned_to,
        overdue_only=overdue_only,
        search=search
    )

@router.get("/my-tasks", response_model=PaginatedResponse[TaskResponse])
async def get_my_tasks(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = TaskService(db)
    return await service.get_tasks(page_index=page_index, page_size=page_size, assigned_to=current_operator.name)

@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = TaskService(db)
    return await service.get_task(task_id)

@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    task_data: TaskUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = TaskService(db)
    return await service.update_task(task_id, task_data, current_operator.name)

@router.post("/{task_id}/assign", response_model=TaskResponse)
async def assign_task(
    task_id: int,
    assignment: TaskAssign,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = TaskService(db)
    return await service.assign_task(task_id, assignment.assigned_to, current_operator.name)

@router.post("/{task_id}/start", response_model=TaskResponse)
async def start_task(
    task_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = TaskService(db)
    return await service.start_task(task_id, current_operator.name)

@router.post("/{task_id}/complete", response_model=TaskResponse)
async def complete_task(
    task_id: int,
    completion: TaskComplete,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = TaskService(db)
    return await service.complete_task(task_id, current_operator.name, completion.completion_notes)

@router.post("/{task_id}/verify", response_model=TaskResponse)
async def verify_task(
    task_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = TaskService(db)
    return await service.verify_task(task_id, current_operator.name)

@router.post("/{task_id}/cancel", response_model=TaskResponse)
async def cancel_task(
    task_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = TaskService(db)
    return await service.cancel_task(task_id, current_operator.name)
