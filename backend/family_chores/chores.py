"""Chore lifecycle state machine.

    OPEN --submit--> SUBMITTED --approve--> APPROVED   (terminal)
      ^                  |
      +-----reject-------+
    OPEN --deadline passes--> EXPIRED                  (terminal)

Every status write is a compare-and-set ``UPDATE ... WHERE status =
<expected>``; the row count decides which of two concurrent writers
wins.  Approval writes the status and the ledger credits in a single
transaction so a chore is credited at most once.
"""

import logging
import os
from datetime import datetime
from typing import Iterable

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from family_chores import acl, ledger
from family_chores.crud import (
    get_chore,
    get_member,
    get_member_ids_by_family,
    get_template,
    save,
)
from family_chores.errors import (
    Expired,
    InvalidInput,
    InvalidTransition,
    MissingProof,
    NotFound,
    StaleState,
)
from family_chores.events import emit
from family_chores.expiry import is_overdue, mark_expired
from family_chores.models import (
    TERMINAL_CHORE_STATUSES,
    Chore,
    ChoreStatus,
    FamilyMember,
    LedgerKind,
    to_naive_utc,
    utcnow,
)

logger = logging.getLogger(__name__)

ALLOW_ZERO_POINT_CHORES = (
    os.getenv("ALLOW_ZERO_POINT_CHORES", "false").lower() == "true"
)

PROOF_KINDS = {"image", "video"}
PROOF_TYPES = {"BEFORE", "AFTER"}


def split_points(points: int, doer_ids: Iterable[int]) -> list[tuple[int, int]]:
    """Divide ``points`` across doers, ascending by member id.

    Each doer gets ``points // n``; the first ``points % n`` doers get one
    extra point, so the shares always add up to ``points``.

    >>> split_points(10, [7, 3, 5])
    [(3, 4), (5, 3), (7, 3)]
    """
    members = sorted(set(doer_ids))
    if not members:
        raise InvalidInput("A chore needs at least one doer to be credited")
    share, remainder = divmod(points, len(members))
    return [
        (member_id, share + (1 if index < remainder else 0))
        for index, member_id in enumerate(members)
    ]


def validate_points(points) -> int:
    if isinstance(points, bool) or not isinstance(points, int):
        raise InvalidInput("Points must be a whole number")
    if points < 0:
        raise InvalidInput("Points cannot be negative")
    if points == 0 and not ALLOW_ZERO_POINT_CHORES:
        raise InvalidInput("Points must be greater than zero")
    return points


def validate_title(title: str | None) -> str:
    if not title or not title.strip():
        raise InvalidInput("Title is required")
    return title.strip()


def validate_deadline(expires_at: datetime | None, now: datetime) -> datetime | None:
    expires_at = to_naive_utc(expires_at)
    if expires_at is not None and expires_at <= now:
        raise InvalidInput("Deadline must be in the future")
    return expires_at


def normalize_proofs(proofs) -> list[dict]:
    """Validate proof references; the media itself is never inspected."""
    if not proofs:
        raise MissingProof("At least one photo or video proof is required")
    normalized = []
    for proof in proofs:
        if hasattr(proof, "model_dump"):
            proof = proof.model_dump(mode="json")
        uri = (proof.get("uri") or "").strip()
        kind = proof.get("kind")
        proof_type = proof.get("type") or "AFTER"
        if not uri:
            raise MissingProof("Proof is missing its media reference")
        if kind not in PROOF_KINDS:
            raise InvalidInput(f"Proof kind must be one of {sorted(PROOF_KINDS)}")
        if proof_type not in PROOF_TYPES:
            raise InvalidInput(f"Proof type must be one of {sorted(PROOF_TYPES)}")
        normalized.append({"uri": uri, "kind": kind, "type": proof_type})
    return normalized


async def validate_member_ids(
    db: AsyncSession, family_id: int, member_ids: Iterable[int] | None
) -> list[int]:
    ids = sorted(set(member_ids or []))
    if ids:
        unknown = set(ids) - await get_member_ids_by_family(db, family_id)
        if unknown:
            raise InvalidInput(f"Unknown family member(s): {sorted(unknown)}")
    return ids


def parse_status(value) -> ChoreStatus:
    try:
        return ChoreStatus(value)
    except ValueError:
        raise InvalidInput(f"Unknown chore status: {value!r}")


async def load_chore(db: AsyncSession, chore_id: int, actor: FamilyMember | None) -> Chore:
    """Fetch a chore, hiding chores of other families."""
    chore = await get_chore(db, chore_id)
    if not chore or (actor is not None and chore.family_id != actor.family_id):
        raise NotFound("Chore not found")
    return chore


async def compare_and_set(
    db: AsyncSession, chore_id: int, expected: ChoreStatus, **values
) -> bool:
    result = await db.execute(
        update(Chore)
        .where(Chore.id == chore_id, Chore.status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def commit_transition(db: AsyncSession, chore: Chore, won: bool) -> Chore:
    if not won:
        await db.rollback()
        raise StaleState("Chore was changed by someone else; reload and retry")
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(chore)
    return chore


async def create_chore(
    db: AsyncSession,
    creator: FamilyMember,
    title: str | None = None,
    points: int | None = None,
    assigned_to_ids: Iterable[int] | None = None,
    expires_at: datetime | None = None,
    template_id: int | None = None,
    description: str | None = None,
    audio_description_url: str | None = None,
    audio_description_duration: int | None = None,
    now: datetime | None = None,
) -> Chore:
    acl.require(creator.role, acl.OP_CREATE_CHORE)
    now = now or utcnow()
    if template_id is not None:
        template = await get_template(db, template_id)
        if (
            not template
            or template.family_id != creator.family_id
            or template.is_archived
        ):
            raise NotFound("Chore template not found")
        title = title if title is not None else template.title
        points = points if points is not None else template.default_points
    if points is None:
        raise InvalidInput("Points are required")

    chore = Chore(
        family_id=creator.family_id,
        title=validate_title(title),
        description=description,
        points=validate_points(points),
        assigned_to_ids=await validate_member_ids(
            db, creator.family_id, assigned_to_ids
        ),
        expires_at=validate_deadline(expires_at, now),
        created_by_member_id=creator.id,
        template_id=template_id,
        audio_description_url=audio_description_url,
        audio_description_duration=audio_description_duration,
        created_at=now,
        updated_at=now,
    )
    chore = await save(db, chore)
    logger.info("Chore %s created in family %s by member %s", chore.id, chore.family_id, creator.id)
    emit(chore.family_id, "chore", chore.id, "created")
    return chore


async def submit_chore(
    db: AsyncSession,
    chore_id: int,
    actor: FamilyMember,
    doer_ids: Iterable[int] | None,
    proofs,
    proof_note: str | None = None,
    now: datetime | None = None,
) -> Chore:
    """Mark an OPEN chore as done, pending parent review."""
    acl.require(actor.role, acl.OP_SUBMIT_CHORE)
    now = now or utcnow()
    chore = await load_chore(db, chore_id, actor)
    if chore.status == ChoreStatus.EXPIRED or is_overdue(chore, now):
        raise Expired("Chore deadline has passed")
    if chore.status != ChoreStatus.OPEN:
        raise InvalidTransition(f"Cannot submit a {chore.status.value} chore")
    normalized = normalize_proofs(proofs)
    doers = await validate_member_ids(db, chore.family_id, doer_ids)
    if not doers:
        raise InvalidInput("Say who did the chore")
    if chore.assigned_to_ids:
        outsiders = set(doers) - set(chore.assigned_to_ids)
        if outsiders:
            raise InvalidInput(
                f"Member(s) {sorted(outsiders)} are not assigned to this chore"
            )

    won = await compare_and_set(
        db,
        chore.id,
        ChoreStatus.OPEN,
        status=ChoreStatus.SUBMITTED,
        done_by_ids=doers,
        proofs=normalized,
        proof_note=proof_note,
        done_at=now,
        updated_at=now,
    )
    chore = await commit_transition(db, chore, won)
    logger.info("Chore %s submitted by member %s for %s", chore.id, actor.id, doers)
    emit(chore.family_id, "chore", chore.id, "submitted")
    return chore


async def approve_chore(
    db: AsyncSession,
    chore_id: int,
    approver: FamilyMember,
    expected_status,
    notes: str | None = None,
    now: datetime | None = None,
) -> Chore:
    """Approve a SUBMITTED chore and credit its doers in one transaction."""
    acl.require(approver.role, acl.OP_APPROVE_CHORE)
    now = now or utcnow()
    expected = parse_status(expected_status)
    chore = await load_chore(db, chore_id, approver)
    if expected != ChoreStatus.SUBMITTED:
        raise InvalidTransition("Only submitted chores can be approved")
    if chore.status != expected:
        raise StaleState(f"Chore is {chore.status.value}, not {expected.value}")

    shares = split_points(chore.points, chore.done_by_ids)
    members = []
    for member_id, delta in shares:
        member = await get_member(db, member_id)
        if not member or member.family_id != chore.family_id:
            raise NotFound(f"Member {member_id} not found")
        members.append((member, delta))

    entries = []
    try:
        won = await compare_and_set(
            db,
            chore.id,
            ChoreStatus.SUBMITTED,
            status=ChoreStatus.APPROVED,
            approved_by_id=approver.id,
            approved_at=now,
            notes=notes if notes is not None else chore.notes,
            updated_at=now,
        )
        if won:
            for member, delta in members:
                if delta == 0:
                    continue
                entries.append(
                    await ledger.credit(
                        db,
                        member,
                        delta,
                        f"chore:{chore.id} {chore.title}",
                        LedgerKind.CHORE_APPROVAL,
                        approver_id=approver.id,
                        chore_id=chore.id,
                        commit=False,
                    )
                )
    except Exception:
        await db.rollback()
        raise
    chore = await commit_transition(db, chore, won)
    for entry in entries:
        await db.refresh(entry)
    for member, _ in members:
        await db.refresh(member)

    logger.info(
        "Chore %s approved by member %s; %s point(s) split over %s",
        chore.id,
        approver.id,
        chore.points,
        [member_id for member_id, _ in shares],
    )
    ledger.announce(entries)
    emit(chore.family_id, "chore", chore.id, "approved")
    return chore


async def reject_chore(
    db: AsyncSession,
    chore_id: int,
    actor: FamilyMember,
    expected_status,
    notes: str | None = None,
    now: datetime | None = None,
) -> Chore:
    """Send a SUBMITTED chore back to OPEN, dropping its completion data."""
    acl.require(actor.role, acl.OP_REJECT_CHORE)
    now = now or utcnow()
    expected = parse_status(expected_status)
    chore = await load_chore(db, chore_id, actor)
    if expected != ChoreStatus.SUBMITTED:
        raise InvalidTransition("Only submitted chores can be rejected")
    if chore.status != expected:
        raise StaleState(f"Chore is {chore.status.value}, not {expected.value}")

    won = await compare_and_set(
        db,
        chore.id,
        ChoreStatus.SUBMITTED,
        status=ChoreStatus.OPEN,
        done_by_ids=[],
        proofs=[],
        proof_note=None,
        done_at=None,
        approved_by_id=None,
        approved_at=None,
        notes=notes if notes is not None else chore.notes,
        updated_at=now,
    )
    chore = await commit_transition(db, chore, won)
    logger.info("Chore %s rejected by member %s", chore.id, actor.id)
    emit(chore.family_id, "chore", chore.id, "rejected")
    return chore


async def expire_chore(
    db: AsyncSession,
    chore_id: int,
    actor: FamilyMember | None = None,
    now: datetime | None = None,
) -> Chore:
    """Persist EXPIRED for one overdue OPEN chore.

    ``actor`` is ``None`` for system-triggered calls.  Already terminal
    chores are returned unchanged.
    """
    if actor is not None:
        acl.require(actor.role, acl.OP_EXPIRE_CHORES)
    now = now or utcnow()
    chore = await load_chore(db, chore_id, actor)
    if chore.status in TERMINAL_CHORE_STATUSES:
        return chore
    if not is_overdue(chore, now):
        raise InvalidTransition("Chore is not past its deadline")

    try:
        won = await mark_expired(db, chore.id, now)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(chore)
    if not won:
        if chore.status in TERMINAL_CHORE_STATUSES:
            return chore
        raise StaleState("Chore was changed by someone else; reload and retry")
    logger.info("Chore %s expired", chore.id)
    emit(chore.family_id, "chore", chore.id, "expired")
    return chore
