"""Moderation endpoints: file audit transitions and ledger queries.

Transition endpoints are thin adapters over the ModerationEngine; role and
state checks happen inside the engine so every caller gets the same
guarantees. Query endpoints are read-only.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auth.dependencies import get_current_actor, require_role
from database import get_db
from dependencies import Page, get_moderation_engine, get_page
from domain.moderation.enums import OperationType, SubjectType, UserRole
from domain.moderation.policy import Actor
from models.user import User
from moderation.engine import ModerationEngine
from .schemas import (
    AuditHallResponse,
    AuditRecordListResponse,
    AuditRecordResponse,
    FileResponse,
    RemarkRequest,
)
from .service import list_audit_hall, query_records, subject_history


router = APIRouter(prefix="/audits", tags=["Moderation"])


def _remark(body: Optional[RemarkRequest]) -> Optional[str]:
    return body.remark if body is not None else None


@router.put("/approve/{file_id}", response_model=FileResponse, summary="Approve a PENDING file (VOLUNTEER+)")
def approve_file(
    file_id: int,
    body: Optional[RemarkRequest] = None,
    actor: Actor = Depends(get_current_actor),
    engine: ModerationEngine = Depends(get_moderation_engine),
):
    return engine.approve_file(actor, file_id, _remark(body))


@router.put("/reject/{file_id}", response_model=FileResponse, summary="Reject a PENDING file (VOLUNTEER+)")
def reject_file(
    file_id: int,
    body: Optional[RemarkRequest] = None,
    actor: Actor = Depends(get_current_actor),
    engine: ModerationEngine = Depends(get_moderation_engine),
):
    return engine.reject_file(actor, file_id, _remark(body))


@router.put("/ban/{file_id}", response_model=FileResponse, summary="Ban an APPROVED file (ADMIN)")
def ban_file(
    file_id: int,
    body: Optional[RemarkRequest] = None,
    actor: Actor = Depends(get_current_actor),
    engine: ModerationEngine = Depends(get_moderation_engine),
):
    return engine.ban_file(actor, file_id, _remark(body))


@router.put("/unban/{file_id}", response_model=FileResponse, summary="Unban a BANNED file (ADMIN)")
def unban_file(
    file_id: int,
    body: Optional[RemarkRequest] = None,
    actor: Actor = Depends(get_current_actor),
    engine: ModerationEngine = Depends(get_moderation_engine),
):
    return engine.unban_file(actor, file_id, _remark(body))


@router.get("/hall", response_model=AuditHallResponse, summary="PENDING files, oldest first (VOLUNTEER+)")
def audit_hall(
    page: Page = Depends(get_page),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.VOLUNTEER)),
):
    files, total = list_audit_hall(db, offset=page.offset, limit=page.per_page)
    return AuditHallResponse(
        files=[file.to_dict() for file in files],
        total=total,
        page=page.page,
        per_page=page.per_page,
    )


@router.get("/records", response_model=AuditRecordListResponse, summary="Query the audit ledger (ADMIN)")
def audit_records(
    subject_type: Optional[SubjectType] = Query(None, description="FILE or USER"),
    operation_type: Optional[OperationType] = Query(None, description="e.g. APPROVE, BAN, USER_DELETE"),
    actor_id: Optional[int] = Query(None, description="Only entries made by this actor"),
    start_date: Optional[datetime] = Query(None, description="Inclusive lower bound (ISO 8601)"),
    end_date: Optional[datetime] = Query(None, description="Exclusive upper bound (ISO 8601)"),
    page: Page = Depends(get_page),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.ADMIN)),
):
    """Ledger entries matching all given filters, newest first.

    Example:
        GET /audits/records?subject_type=FILE&operation_type=BAN&page=1&per_page=20
    """
    entries, total = query_records(
        db,
        subject_type=subject_type,
        operation_type=operation_type,
        actor_id=actor_id,
        start=start_date,
        end=end_date,
        offset=page.offset,
        limit=page.per_page,
    )
    return AuditRecordListResponse(
        entries=[AuditRecordResponse.model_validate(entry) for entry in entries],
        total=total,
        page=page.page,
        per_page=page.per_page,
    )


@router.get(
    "/records/file/{file_id}",
    response_model=list[AuditRecordResponse],
    summary="Audit history of one file, newest first (VOLUNTEER+)",
)
def file_audit_records(
    file_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.VOLUNTEER)),
):
    return [AuditRecordResponse.model_validate(r) for r in subject_history(db, SubjectType.FILE, file_id)]
