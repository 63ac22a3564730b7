"""Read side of moderation: the audit hall and ledger history queries.

Everything here is read-only. Writes to the ledger happen exclusively inside
the moderation engine's units of work.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from domain.moderation.enums import FileStatus, OperationType, SubjectType
from domain.moderation.errors import NotFoundError
from models.audit_record import AuditRecord
from models.file import File
from models.user import User
from store.ledger import AuditLedger


def list_audit_hall(db: Session, offset: int = 0, limit: int = 20) -> Tuple[List[File], int]:
    """PENDING files awaiting review, oldest first.

    Returns:
        (files on the requested page, total PENDING files)
    """
    criteria = File.audit_status == FileStatus.PENDING.value
    total = db.scalar(select(func.count()).select_from(File).where(criteria))
    files = db.scalars(
        select(File)
        .where(criteria)
        .order_by(File.created_at.asc(), File.id.asc())
        .offset(offset)
        .limit(limit)
    )
    return list(files), total


def query_records(
    db: Session,
    subject_type: Optional[SubjectType] = None,
    operation_type: Optional[OperationType] = None,
    actor_id: Optional[int] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    offset: int = 0,
    limit: int = 20,
) -> Tuple[List[AuditRecord], int]:
    return AuditLedger(db).query(
        subject_type=subject_type,
        operation_type=operation_type,
        actor_id=actor_id,
        start=start,
        end=end,
        offset=offset,
        limit=limit,
    )


def subject_history(db: Session, subject_type: SubjectType, subject_id: int) -> List[AuditRecord]:
    """Ledger history of a file or user, newest first.

    History outlives hard deletion, so a subject with no row is only
    NotFound when the ledger has never heard of it either.
    """
    records = AuditLedger(db).list_by_subject(subject_type, subject_id)
    if not records:
        model = File if subject_type == SubjectType.FILE else User
        if db.get(model, subject_id) is None:
            raise NotFoundError(
                f"{subject_type.value.title()} {subject_id} not found",
                context={"subject_type": subject_type.value, "subject_id": subject_id},
            )
    return records
