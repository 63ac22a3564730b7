"""User moderation endpoints.

Upload bans (VOLUNTEER+), role changes and account deletion (ADMIN). The
engine enforces that the actor outranks the target; these handlers only
translate HTTP to engine calls.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from audit.schemas import AuditRecordResponse, RemarkRequest
from audit.service import subject_history
from auth.dependencies import get_current_actor, require_role
from database import get_db
from dependencies import get_moderation_engine
from domain.moderation.enums import SubjectType, UserRole
from domain.moderation.policy import Actor
from models.user import User
from moderation.engine import ModerationEngine
from .schemas import UploadStatusResponse, UserDeleteResponse, UserResponse, UserTypeUpdate
from .service import upload_status_summary


router = APIRouter(prefix="/users", tags=["User Moderation"])


@router.put("/{user_id}/ban-upload", response_model=UserResponse, summary="Revoke upload permission (VOLUNTEER+)")
def ban_upload(
    user_id: int,
    body: Optional[RemarkRequest] = None,
    actor: Actor = Depends(get_current_actor),
    engine: ModerationEngine = Depends(get_moderation_engine),
):
    return engine.ban_upload(actor, user_id, body.remark if body else None)


@router.put("/{user_id}/unban-upload", response_model=UserResponse, summary="Restore upload permission (VOLUNTEER+)")
def unban_upload(
    user_id: int,
    body: Optional[RemarkRequest] = None,
    actor: Actor = Depends(get_current_actor),
    engine: ModerationEngine = Depends(get_moderation_engine),
):
    return engine.unban_upload(actor, user_id, body.remark if body else None)


@router.put("/{user_id}/type", response_model=UserResponse, summary="Change a user's role (ADMIN)")
def change_user_type(
    user_id: int,
    data: UserTypeUpdate,
    actor: Actor = Depends(get_current_actor),
    engine: ModerationEngine = Depends(get_moderation_engine),
):
    return engine.change_role(actor, user_id, data.user_type, data.remark)


@router.delete("/{user_id}", response_model=UserDeleteResponse, summary="Delete a user and their files (ADMIN)")
def delete_user(
    user_id: int,
    body: Optional[RemarkRequest] = None,
    actor: Actor = Depends(get_current_actor),
    engine: ModerationEngine = Depends(get_moderation_engine),
):
    """Delete the account in one transaction.

    The response lists the removed files; their blobs are released by the
    blob store's own cleanup using the returned ``blob_key`` values.
    """
    return engine.delete_user(actor, user_id, body.remark if body else None)


@router.get("/{user_id}/upload-status", response_model=UploadStatusResponse, summary="Upload standing (VOLUNTEER+)")
def get_upload_status(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.VOLUNTEER)),
):
    return upload_status_summary(db, user_id)


@router.get(
    "/{user_id}/audit-records",
    response_model=list[AuditRecordResponse],
    summary="Moderation history of a user, newest first (VOLUNTEER+)",
)
def get_user_audit_records(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.VOLUNTEER)),
):
    return [AuditRecordResponse.model_validate(r) for r in subject_history(db, SubjectType.USER, user_id)]
