from typing import List

from fastapi import APIRouter, Depends

from ..schemas.user import NoticeOut
from ..dependencies.auth import get_reconciler
from ..services.reconciler import Reconciler

router = APIRouter()


@router.get("/notices", response_model=List[NoticeOut])
async def get_notices(reconciler: Reconciler = Depends(get_reconciler)):
    """Most recent notices first."""
    return [
        NoticeOut(level=n.level, operation=n.operation, message=n.message, created_at=n.created_at)
        for n in reversed(reconciler.notices)
    ]
