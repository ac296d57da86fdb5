from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models import Priority


class TaskCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=2000)
    completed: bool = False
    priority: Priority = Priority.MEDIUM
    scheduled_for: Optional[str] = None  # ISO date or datetime, parsed by the model
    estimated_hours: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None


class TaskUpdate(BaseModel):
    text: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=2000)
    completed: Optional[bool] = None
    priority: Optional[Priority] = None
    scheduled_for: Optional[str] = None
    estimated_hours: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None


class ReorderRequest(BaseModel):
    source_index: int
    destination_index: int


class TaskOut(BaseModel):
    id: int
    remote_id: Optional[str] = None
    text: str
    description: str
    completed: bool
    priority: Priority
    scheduled_for: Optional[datetime] = None
    estimated_hours: Optional[float] = None
    category: str
    sort_order: int
    created_at: datetime


class TaskStatsOut(BaseModel):
    total: int
    completed: int
    pending: int


class TaskListOut(BaseModel):
    filter: str
    tasks: List[TaskOut]
    stats: TaskStatsOut
    can_undo: bool
    can_redo: bool
