"""Directory views of family members."""

from pydantic import BaseModel, ConfigDict

from family_chores.models import Role


class MemberRead(BaseModel):
    id: int
    family_id: int
    name: str
    role: Role
    points: int

    model_config = ConfigDict(from_attributes=True)
