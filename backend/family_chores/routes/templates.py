from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from family_chores import registry
from family_chores.auth import get_current_member
from family_chores.database import get_session
from family_chores.models import FamilyMember
from family_chores.schemas import ChoreTemplateCreate, ChoreTemplateRead

router = APIRouter(prefix="/chore-templates", tags=["chore-templates"])


@router.post("/", response_model=ChoreTemplateRead)
async def add_template(
    data: ChoreTemplateCreate,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    return await registry.create_template(db, current, data.title, data.default_points)


@router.get("/", response_model=List[ChoreTemplateRead])
async def list_templates(
    include_archived: bool = False,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    return await registry.list_templates(db, current.family_id, include_archived)


@router.post("/{template_id}/archive", response_model=ChoreTemplateRead)
async def archive_template(
    template_id: int,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    return await registry.archive_template(db, template_id, current)


@router.post("/{template_id}/unarchive", response_model=ChoreTemplateRead)
async def unarchive_template(
    template_id: int,
    db: AsyncSession = Depends(get_session),
    current: FamilyMember = Depends(get_current_member),
):
    return await registry.unarchive_template(db, template_id, current)
