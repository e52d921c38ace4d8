from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class ChoreTemplateCreate(BaseModel):
    title: str
    default_points: int


class ChoreTemplateRead(BaseModel):
    id: int
    family_id: int
    title: str
    default_points: int
    created_by_id: Optional[int] = None
    is_archived: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
