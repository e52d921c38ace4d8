"""Caller-facing chore and wishlist registry.

Composes the state machine, expiry rules and conversion for the read
and housekeeping operations the API exposes: template management,
listing and filtering, editing open chores, duplicating and deleting.
"""

import logging
from datetime import datetime

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from family_chores import acl
from family_chores.chores import (
    commit_transition,
    compare_and_set,
    load_chore,
    parse_status,
    validate_deadline,
    validate_member_ids,
    validate_points,
    validate_title,
)
from family_chores.crud import (
    get_chores_by_family,
    get_template,
    get_templates_by_family,
    get_wishlist_items,
    get_wishlist_settings,
    save,
    save_template,
)
from family_chores.errors import InvalidInput, InvalidTransition, NotFound, StaleState
from family_chores.events import emit
from family_chores.expiry import effective_status
from family_chores.models import (
    Chore,
    ChoreStatus,
    ChoreTemplate,
    FamilyMember,
    WishlistStatus,
    utcnow,
)
from family_chores.wishlist import quote

logger = logging.getLogger(__name__)

CHORE_EDITABLE_FIELDS = {
    "title",
    "description",
    "points",
    "assigned_to_ids",
    "expires_at",
    "audio_description_url",
    "audio_description_duration",
}


# --- Templates ----------------------------------------------------------


async def create_template(
    db: AsyncSession, actor: FamilyMember, title: str, default_points: int
) -> ChoreTemplate:
    acl.require(actor.role, acl.OP_MANAGE_TEMPLATES)
    template = ChoreTemplate(
        family_id=actor.family_id,
        title=validate_title(title),
        default_points=validate_points(default_points),
        created_by_id=actor.id,
    )
    template = await save(db, template)
    logger.info("Chore template %s created by member %s", template.id, actor.id)
    emit(template.family_id, "chore_template", template.id, "created")
    return template


async def list_templates(
    db: AsyncSession, family_id: int, include_archived: bool = False
) -> list[ChoreTemplate]:
    return await get_templates_by_family(db, family_id, include_archived)


async def set_template_archived(
    db: AsyncSession, template_id: int, actor: FamilyMember, archived: bool
) -> ChoreTemplate:
    acl.require(actor.role, acl.OP_MANAGE_TEMPLATES)
    template = await get_template(db, template_id)
    if not template or template.family_id != actor.family_id:
        raise NotFound("Chore template not found")
    template.is_archived = archived
    template = await save_template(db, template)
    action = "archived" if archived else "unarchived"
    logger.info("Chore template %s %s by member %s", template.id, action, actor.id)
    emit(template.family_id, "chore_template", template.id, action)
    return template


async def archive_template(
    db: AsyncSession, template_id: int, actor: FamilyMember
) -> ChoreTemplate:
    return await set_template_archived(db, template_id, actor, True)


async def unarchive_template(
    db: AsyncSession, template_id: int, actor: FamilyMember
) -> ChoreTemplate:
    return await set_template_archived(db, template_id, actor, False)


# --- Chores -------------------------------------------------------------


def chore_view(chore: Chore, now: datetime | None = None) -> dict:
    """Row data with the effective status; overdue OPEN reads as EXPIRED."""
    data = chore.model_dump()
    data["status"] = effective_status(chore, now)
    return data


async def get_chore(
    db: AsyncSession, chore_id: int, actor: FamilyMember, now: datetime | None = None
) -> dict:
    return chore_view(await load_chore(db, chore_id, actor), now)


async def list_chores(
    db: AsyncSession,
    family_id: int,
    status=None,
    member_id: int | None = None,
    now: datetime | None = None,
) -> list[dict]:
    """Family chores newest first, filtered on effective status and member.

    ``member_id`` matches chores assigned to the member, completed by the
    member, or open to anyone.
    """
    now = now or utcnow()
    wanted = parse_status(status) if status is not None else None
    views = []
    for chore in await get_chores_by_family(db, family_id):
        view = chore_view(chore, now)
        if wanted is not None and view["status"] != wanted:
            continue
        if member_id is not None and not (
            not chore.assigned_to_ids
            or member_id in chore.assigned_to_ids
            or member_id in chore.done_by_ids
        ):
            continue
        views.append(view)
    return views


async def update_chore(
    db: AsyncSession,
    chore_id: int,
    actor: FamilyMember,
    fields: dict,
    now: datetime | None = None,
) -> Chore:
    """Edit an OPEN chore.  Submitted and terminal chores are frozen.

    The write only lands while the row is still OPEN, so an edit racing a
    submit or approval fails with ``StaleState`` instead of rewriting the
    points of a chore that already paid out.
    """
    acl.require(actor.role, acl.OP_EDIT_CHORE)
    now = now or utcnow()
    chore = await load_chore(db, chore_id, actor)
    if effective_status(chore, now) != ChoreStatus.OPEN:
        raise InvalidTransition(
            f"Cannot edit a {effective_status(chore, now).value} chore"
        )
    changes = {}
    for field, value in fields.items():
        if field not in CHORE_EDITABLE_FIELDS:
            raise InvalidInput(f"Field {field} cannot be edited")
        if field == "title":
            value = validate_title(value)
        elif field == "points":
            value = validate_points(value)
        elif field == "assigned_to_ids":
            value = await validate_member_ids(db, chore.family_id, value)
        elif field == "expires_at":
            value = validate_deadline(value, now)
        changes[field] = value
    won = await compare_and_set(
        db, chore.id, ChoreStatus.OPEN, **changes, updated_at=now
    )
    chore = await commit_transition(db, chore, won)
    logger.info("Chore %s updated by member %s", chore.id, actor.id)
    emit(chore.family_id, "chore", chore.id, "updated")
    return chore


async def delete_chore(db: AsyncSession, chore_id: int, actor: FamilyMember) -> None:
    """Remove a chore that never paid out."""
    acl.require(actor.role, acl.OP_DELETE_CHORE)
    chore = await load_chore(db, chore_id, actor)
    if chore.status == ChoreStatus.APPROVED:
        raise InvalidTransition("Approved chores are part of the points history")
    family_id = chore.family_id
    result = await db.execute(
        delete(Chore)
        .where(Chore.id == chore_id, Chore.status != ChoreStatus.APPROVED)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise StaleState("Chore was changed by someone else; reload and retry")
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    db.expunge(chore)
    logger.info("Chore %s deleted by member %s", chore_id, actor.id)
    emit(family_id, "chore", chore_id, "deleted")


async def duplicate_chore(
    db: AsyncSession,
    chore_id: int,
    actor: FamilyMember,
    expires_at: datetime | None = None,
    now: datetime | None = None,
) -> Chore:
    """Fresh OPEN copy; completion data and proofs are not carried over."""
    acl.require(actor.role, acl.OP_CREATE_CHORE)
    now = now or utcnow()
    source = await load_chore(db, chore_id, actor)
    copy = Chore(
        family_id=source.family_id,
        title=source.title,
        description=source.description,
        points=source.points,
        assigned_to_ids=list(source.assigned_to_ids),
        expires_at=validate_deadline(expires_at, now),
        created_by_member_id=actor.id,
        template_id=source.template_id,
        audio_description_url=source.audio_description_url,
        audio_description_duration=source.audio_description_duration,
        created_at=now,
        updated_at=now,
    )
    copy = await save(db, copy)
    logger.info("Chore %s duplicated as %s by member %s", chore_id, copy.id, actor.id)
    emit(copy.family_id, "chore", copy.id, "created")
    return copy


# --- Wishlist -----------------------------------------------------------


async def list_wishlist(
    db: AsyncSession,
    family_id: int,
    member_id: int | None = None,
    status=None,
) -> list[dict]:
    """Wishlist items with a points preview at the current rate."""
    if status is not None:
        try:
            status = WishlistStatus(status)
        except ValueError:
            raise InvalidInput(f"Unknown wishlist status: {status!r}")
    settings = await get_wishlist_settings(db, family_id)
    items = await get_wishlist_items(db, family_id, member_id, status)
    views = []
    for item in items:
        data = item.model_dump()
        preview = quote(item, settings)
        data["points_cost"] = preview["points"]
        data["currency"] = preview["currency"]
        views.append(data)
    return views
