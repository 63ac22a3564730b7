"""AuditRecord SQLAlchemy model"""

from sqlalchemy import Column, Integer, Text, DateTime, Index, CheckConstraint, event

from .base import Base


class AuditRecord(Base):
    """Immutable ledger entry for one moderation transition.

    Rows reference their subject by (subject_type, subject_id) without a
    foreign key so history survives hard deletion of files and users.
    Entries are append-only: the mapper events below reject any UPDATE or
    DELETE issued through the ORM.
    """
    __tablename__ = "audit_record"
    __table_args__ = (
        Index("ix_audit_record_subject", "subject_type", "subject_id", "created_at"),
        Index("ix_audit_record_actor", "actor_id", "created_at"),
        Index("ix_audit_record_operation", "operation_type", "created_at"),
        CheckConstraint("subject_type IN ('FILE', 'USER')", name="subject_type"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_type = Column(Text, nullable=False)
    subject_id = Column(Integer, nullable=False)
    actor_id = Column(Integer, nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    operation_type = Column(Text, nullable=False)
    remark = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    def to_dict(self):
        """Convert audit record to dictionary representation"""
        return {
            "id": self.id,
            "subject_type": self.subject_type,
            "subject_id": self.subject_id,
            "actor_id": self.actor_id,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "operation_type": self.operation_type,
            "remark": self.remark,
            "created_at": self.created_at.isoformat(),
        }


class ImmutableRecordError(Exception):
    """Raised when code attempts to modify or remove a ledger row."""


@event.listens_for(AuditRecord, "before_update")
def _reject_update(mapper, connection, target):
    raise ImmutableRecordError(f"audit_record {target.id} is append-only")


@event.listens_for(AuditRecord, "before_delete")
def _reject_delete(mapper, connection, target):
    raise ImmutableRecordError(f"audit_record {target.id} is append-only")
