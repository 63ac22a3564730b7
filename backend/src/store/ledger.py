"""Audit ledger: append-only access to ``audit_record``.

The ledger exposes no update or delete operation. Entries are written in the
same session as the state change they describe, so they commit or roll back
with it.
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from domain.moderation.enums import OperationType, SubjectType
from models.audit_record import AuditRecord


class AuditLedger:
    """Append and read ledger entries bound to one session."""

    def __init__(self, session: Session):
        self.session = session

    def append(
        self,
        subject_type: SubjectType,
        subject_id: int,
        actor_id: int,
        old_value: Optional[str],
        new_value: Optional[str],
        operation_type: OperationType,
        remark: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> AuditRecord:
        """Insert one ledger entry and flush so it receives its id.

        Args:
            subject_type: FILE or USER
            subject_id: Id of the file or user the entry is about
            actor_id: Id of the acting user
            old_value: Status/role before the transition
            new_value: Status/role after the transition
            operation_type: Classification of the transition
            remark: Free text reason
            created_at: Timestamp; defaults to now (UTC)

        Returns:
            The persisted AuditRecord
        """
        record = AuditRecord(
            subject_type=SubjectType(subject_type).value,
            subject_id=subject_id,
            actor_id=actor_id,
            old_value=old_value,
            new_value=new_value,
            operation_type=OperationType(operation_type).value,
            remark=remark,
            created_at=created_at or datetime.now(timezone.utc),
        )
        self.session.add(record)
        self.session.flush()
        return record

    def list_by_subject(
        self,
        subject_type: SubjectType,
        subject_id: int,
        newest_first: bool = True,
    ) -> List[AuditRecord]:
        """Audit history of one subject ordered by (created_at, id)."""
        stmt = select(AuditRecord).where(
            AuditRecord.subject_type == SubjectType(subject_type).value,
            AuditRecord.subject_id == subject_id,
        )
        if newest_first:
            stmt = stmt.order_by(AuditRecord.created_at.desc(), AuditRecord.id.desc())
        else:
            stmt = stmt.order_by(AuditRecord.created_at.asc(), AuditRecord.id.asc())
        return list(self.session.scalars(stmt))

    def query(
        self,
        subject_type: Optional[SubjectType] = None,
        operation_type: Optional[OperationType] = None,
        actor_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[AuditRecord], int]:
        """Filtered, paginated ledger listing, newest first.

        Returns:
            (records on the requested page, total matching records)
        """
        criteria = []
        if subject_type is not None:
            criteria.append(AuditRecord.subject_type == SubjectType(subject_type).value)
        if operation_type is not None:
            criteria.append(AuditRecord.operation_type == OperationType(operation_type).value)
        if actor_id is not None:
            criteria.append(AuditRecord.actor_id == actor_id)
        if start is not None:
            criteria.append(AuditRecord.created_at >= start)
        if end is not None:
            criteria.append(AuditRecord.created_at < end)

        total = self.session.scalar(
            select(func.count()).select_from(AuditRecord).where(*criteria)
        )
        records = self.session.scalars(
            select(AuditRecord)
            .where(*criteria)
            .order_by(AuditRecord.created_at.desc(), AuditRecord.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(records), total
