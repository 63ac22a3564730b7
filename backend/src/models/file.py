"""File SQLAlchemy model

A File is an uploaded document or image. The binary content lives in an
external blob store addressed by ``blob_key``; this row carries metadata,
the moderation status and the derived popularity counters.
"""

from sqlalchemy import Column, Integer, BigInteger, Text, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base
from .tag import file_tag


class File(Base):
    """Uploaded file under moderation.

    ``audit_status`` is one of PENDING, APPROVED, REJECTED, BANNED. DELETED is
    never stored: deletion removes the row and is recorded only in the ledger.
    The ``audit_*`` columns point at the latest transition.
    """
    __tablename__ = "file"
    __table_args__ = (
        Index("ix_file_owner_status", "owner_id", "audit_status"),
        Index("ix_file_status_created", "audit_status", "created_at"),
        CheckConstraint(
            "audit_status IN ('PENDING', 'APPROVED', 'REJECTED', 'BANNED')",
            name="audit_status",
        ),
        CheckConstraint("view_count >= 0", name="view_count_non_negative"),
        CheckConstraint("download_count >= 0", name="download_count_non_negative"),
        CheckConstraint("like_count >= 0", name="like_count_non_negative"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("user.id", ondelete="RESTRICT"), nullable=False)
    category_id = Column(Integer, ForeignKey("category.id", ondelete="RESTRICT"), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    original_name = Column(Text, nullable=False)
    blob_key = Column(Text, nullable=False, unique=True)
    file_type = Column(Text, nullable=False)  # document | image
    file_ext = Column(Text, nullable=False)
    size_bytes = Column(BigInteger, nullable=False, server_default="0", default=0)
    cover_key = Column(Text, nullable=True)
    audit_status = Column(Text, nullable=False, server_default="PENDING", default="PENDING")
    audit_user_id = Column(Integer, nullable=True)
    audit_time = Column(DateTime(timezone=True), nullable=True)
    audit_remark = Column(Text, nullable=True)
    view_count = Column(Integer, nullable=False, server_default="0", default=0)
    download_count = Column(Integer, nullable=False, server_default="0", default=0)
    like_count = Column(Integer, nullable=False, server_default="0", default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    owner = relationship("User")
    category = relationship("Category")
    tags = relationship("Tag", secondary=file_tag, order_by="Tag.id")

    def to_dict(self):
        """Convert file to dictionary representation"""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "category_id": self.category_id,
            "title": self.title,
            "description": self.description,
            "original_name": self.original_name,
            "blob_key": self.blob_key,
            "file_type": self.file_type,
            "file_ext": self.file_ext,
            "size_bytes": self.size_bytes,
            "cover_key": self.cover_key,
            "tag_ids": [tag.id for tag in self.tags],
            "audit_status": self.audit_status,
            "audit_user_id": self.audit_user_id,
            "audit_time": self.audit_time.isoformat() if self.audit_time else None,
            "audit_remark": self.audit_remark,
            "view_count": self.view_count,
            "download_count": self.download_count,
            "like_count": self.like_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
