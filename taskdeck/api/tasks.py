from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..schemas.task import ReorderRequest, TaskCreate, TaskListOut, TaskOut, TaskStatsOut, TaskUpdate
from ..dependencies.auth import get_reconciler
from ..services.reconciler import Notice, Reconciler

router = APIRouter()


def latest_notice(reconciler: Reconciler) -> Optional[Notice]:
    return reconciler.notices[-1] if reconciler.notices else None


def remote_error(reconciler: Reconciler) -> HTTPException:
    """502 carrying the notice the failed operation produced."""
    notice = latest_notice(reconciler)
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=notice.message if notice else "Remote store unavailable",
    )


def task_list(reconciler: Reconciler) -> TaskListOut:
    stats = reconciler.stats()
    return TaskListOut(
        filter=reconciler.current_filter,
        tasks=[TaskOut.model_validate(task.model_dump()) for task in reconciler.view()],
        stats=TaskStatsOut(total=stats.total, completed=stats.completed, pending=stats.pending),
        can_undo=reconciler.can_undo,
        can_redo=reconciler.can_redo,
    )


@router.get("/tasks", response_model=TaskListOut)
async def get_tasks(
    filter: Optional[str] = Query(None, description="all, active, completed, high, or a category id"),
    reconciler: Reconciler = Depends(get_reconciler),
):
    if filter:
        reconciler.set_filter(filter)
    return task_list(reconciler)


@router.post("/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def create_task(task: TaskCreate, reconciler: Reconciler = Depends(get_reconciler)):
    created = await reconciler.add_task(**task.model_dump())
    if created is None:
        raise remote_error(reconciler)
    return TaskOut.model_validate(created.model_dump())


@router.post("/tasks/reorder", response_model=TaskListOut)
async def reorder_tasks(request: ReorderRequest, reconciler: Reconciler = Depends(get_reconciler)):
    moved = await reconciler.reorder_task(request.source_index, request.destination_index)
    if not moved:
        raise remote_error(reconciler)
    return task_list(reconciler)


@router.patch("/tasks/{task_id}", response_model=TaskOut)
async def update_task(task_id: int, task_update: TaskUpdate, reconciler: Reconciler = Depends(get_reconciler)):
    updated = await reconciler.edit_task(task_id, task_update.model_dump(exclude_unset=True))
    if updated is None:
        raise remote_error(reconciler)
    return TaskOut.model_validate(updated.model_dump())


@router.patch("/tasks/{task_id}/toggle", response_model=TaskOut)
async def toggle_task(task_id: int, reconciler: Reconciler = Depends(get_reconciler)):
    if reconciler.store.get(task_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    toggled = await reconciler.toggle_task(task_id)
    if toggled is None:
        raise remote_error(reconciler)
    return TaskOut.model_validate(toggled.model_dump())


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: int, reconciler: Reconciler = Depends(get_reconciler)):
    deleted = await reconciler.delete_task(task_id)
    if deleted is None:
        raise remote_error(reconciler)
