from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict

from family_chores.models import ChoreStatus


class Proof(BaseModel):
    uri: str
    kind: Literal["image", "video"]
    type: Literal["BEFORE", "AFTER"] = "AFTER"


class ChoreCreate(BaseModel):
    title: Optional[str] = None
    points: Optional[int] = None
    description: Optional[str] = None
    assigned_to_ids: list[int] = []
    expires_at: Optional[datetime] = None
    template_id: Optional[int] = None
    audio_description_url: Optional[str] = None
    audio_description_duration: Optional[int] = None


class ChoreUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    points: Optional[int] = None
    assigned_to_ids: Optional[list[int]] = None
    expires_at: Optional[datetime] = None
    audio_description_url: Optional[str] = None
    audio_description_duration: Optional[int] = None


class ChoreSubmit(BaseModel):
    doer_ids: list[int]
    proofs: list[Proof] = []
    proof_note: Optional[str] = None


class ChoreReview(BaseModel):
    expected_status: ChoreStatus
    notes: Optional[str] = None


class ChoreDuplicate(BaseModel):
    expires_at: Optional[datetime] = None


class ChoreRead(BaseModel):
    id: int
    family_id: int
    title: str
    description: Optional[str] = None
    points: int
    status: ChoreStatus
    assigned_to_ids: list[int]
    done_by_ids: list[int]
    proofs: list[Proof]
    proof_note: Optional[str] = None
    expires_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    done_at: Optional[datetime] = None
    approved_by_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_by_member_id: Optional[int] = None
    template_id: Optional[int] = None
    audio_description_url: Optional[str] = None
    audio_description_duration: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SweepResult(BaseModel):
    expired_ids: list[int]


class ExpiredCount(BaseModel):
    period: str
    count: int
