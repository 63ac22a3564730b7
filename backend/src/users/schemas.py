"""Pydantic schemas for user moderation endpoints.

Responses never include password_hash.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from audit.schemas import FileResponse


class UserTypeUpdate(BaseModel):
    """Request schema for PUT /users/{id}/type.

    The role value is validated by the engine so an unknown role is reported
    through the same error envelope as every other moderation failure.
    """
    user_type: str = Field(
        ...,
        description="New role: NORMAL | VOLUNTEER | ADMIN",
        examples=["VOLUNTEER"]
    )
    remark: Optional[str] = Field(None, description="Reason for the change")

    @field_validator('user_type')
    @classmethod
    def normalize_role(cls, v):
        return v.strip().upper()

    class Config:
        json_schema_extra = {
            "example": {"user_type": "VOLUNTEER", "remark": "Trusted reviewer"}
        }


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    role: str = Field(..., description="NORMAL | VOLUNTEER | ADMIN")
    upload_status: str = Field(..., description="NORMAL | BANNED")
    upload_count: int
    banned_file_count: int
    last_status_actor_id: Optional[int] = None
    last_status_changed_at: Optional[datetime] = None
    last_status_remark: Optional[str] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 12,
                "username": "alice",
                "email": "alice@example.com",
                "role": "NORMAL",
                "upload_status": "BANNED",
                "upload_count": 4,
                "banned_file_count": 1,
                "last_status_actor_id": 3,
                "last_status_changed_at": "2026-01-04T12:00:00Z",
                "last_status_remark": "Repeated spam uploads",
                "last_login_at": None,
                "created_at": "2026-01-01T12:00:00Z"
            }
        }


class UserDeleteResponse(UserResponse):
    """Snapshot of the deleted user plus the files removed with it."""
    deleted_files: List[FileResponse] = Field(default_factory=list)


class UploadStatusResponse(BaseModel):
    user_id: int
    username: str
    role: str
    upload_status: str
    upload_count: int
    banned_file_count: int
    files_by_status: Dict[str, int]
    last_status_actor_id: Optional[int] = None
    last_status_changed_at: Optional[datetime] = None
    last_status_remark: Optional[str] = None
