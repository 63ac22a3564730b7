"""Pydantic schemas for moderation and audit endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class RemarkRequest(BaseModel):
    """Optional reason attached to a transition.

    Blank remarks are replaced by the transition's default remark. Length is
    checked by the engine against REMARK_MAX_LENGTH.
    """
    remark: Optional[str] = Field(None, description="Reason for the decision")

    class Config:
        json_schema_extra = {"example": {"remark": "Contains copyrighted material"}}


class FileResponse(BaseModel):
    id: int
    owner_id: int
    category_id: int
    title: str
    description: Optional[str] = None
    original_name: str
    blob_key: str
    file_type: str
    file_ext: str
    size_bytes: int
    cover_key: Optional[str] = None
    tag_ids: List[int] = Field(default_factory=list)
    audit_status: str = Field(..., description="PENDING | APPROVED | REJECTED | BANNED (DELETED after hard delete)")
    audit_user_id: Optional[int] = None
    audit_time: Optional[datetime] = None
    audit_remark: Optional[str] = None
    view_count: int
    download_count: int
    like_count: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AuditHallResponse(BaseModel):
    files: List[FileResponse]
    total: int
    page: int
    per_page: int


class AuditRecordResponse(BaseModel):
    """Immutable ledger entry."""
    id: int
    subject_type: str = Field(..., description="FILE | USER")
    subject_id: int
    actor_id: int
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    operation_type: str
    remark: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 17,
                "subject_type": "FILE",
                "subject_id": 42,
                "actor_id": 3,
                "old_value": "PENDING",
                "new_value": "APPROVED",
                "operation_type": "APPROVE",
                "remark": "File approved",
                "created_at": "2026-01-04T12:00:00Z"
            }
        }


class AuditRecordListResponse(BaseModel):
    entries: List[AuditRecordResponse]
    total: int
    page: int
    per_page: int
