from datetime import datetime

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field("#6B7280", pattern=r"^#[0-9A-Fa-f]{6}$")


class CategoryOut(BaseModel):
    id: str
    name: str
    color: str
    count: int
    created_at: datetime


class CategoryDeleteOut(BaseModel):
    category_id: str
    deleted: bool
    reassigned: int
