from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..schemas.category import CategoryCreate, CategoryDeleteOut, CategoryOut
from ..dependencies.auth import get_reconciler
from ..services.reconciler import Reconciler
from .tasks import remote_error

router = APIRouter()


@router.get("/categories", response_model=List[CategoryOut])
async def get_categories(reconciler: Reconciler = Depends(get_reconciler)):
    return [CategoryOut.model_validate(c.model_dump()) for c in reconciler.categories.categories]


@router.post("/categories", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
async def create_category(category: CategoryCreate, reconciler: Reconciler = Depends(get_reconciler)):
    created = await reconciler.add_category(category.name, category.color)
    if created is None:
        raise remote_error(reconciler)
    return CategoryOut.model_validate(created.model_dump())


@router.delete("/categories/{category_id}", response_model=CategoryDeleteOut)
async def delete_category(
    category_id: str,
    reassign: bool = Query(False, description="Move the category's tasks to the default category"),
    reconciler: Reconciler = Depends(get_reconciler),
):
    result = await reconciler.delete_category(category_id, reassign_to_default=reassign)
    if result.refusal is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(result.refusal))
    if result.failure is not None:
        raise remote_error(reconciler)
    return CategoryDeleteOut(
        category_id=result.category_id,
        deleted=result.deleted,
        reassigned=result.reassigned,
    )
