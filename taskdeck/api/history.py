from fastapi import APIRouter, Depends

from ..schemas.task import TaskListOut
from ..dependencies.auth import get_reconciler
from ..services.reconciler import Reconciler
from .tasks import latest_notice, remote_error, task_list

router = APIRouter()


class HistoryOut(TaskListOut):
    changed: bool


async def _step(reconciler: Reconciler, reverse: bool) -> HistoryOut:
    before = latest_notice(reconciler)
    changed = await (reconciler.undo() if reverse else reconciler.redo())
    notice = latest_notice(reconciler)
    if not changed and notice is not before and notice.level == "error":
        raise remote_error(reconciler)
    return HistoryOut(changed=changed, **task_list(reconciler).model_dump())


@router.post("/history/undo", response_model=HistoryOut)
async def undo(reconciler: Reconciler = Depends(get_reconciler)):
    """Revert the most recent change; `changed` is false when there was nothing to undo."""
    return await _step(reconciler, reverse=True)


@router.post("/history/redo", response_model=HistoryOut)
async def redo(reconciler: Reconciler = Depends(get_reconciler)):
    return await _step(reconciler, reverse=False)
