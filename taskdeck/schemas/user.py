from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Credentials(BaseModel):
    email: str
    password: str


class SessionOut(BaseModel):
    user_id: str
    email: str
    access_token: str
    token_type: str = "bearer"
    expires_at: Optional[datetime] = None


class NoticeOut(BaseModel):
    level: str
    operation: str
    message: str
    created_at: datetime
