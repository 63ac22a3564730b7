"""Tag SQLAlchemy model and file/tag association table"""

from sqlalchemy import Column, Integer, Text, Boolean, DateTime, ForeignKey, Table, CheckConstraint
from sqlalchemy.sql import func, true

from .base import Base


file_tag = Table(
    "file_tag",
    Base.metadata,
    Column("file_id", Integer, ForeignKey("file.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tag.id", ondelete="RESTRICT"), primary_key=True, index=True),
)


class Tag(Base):
    """Fixed tag attachable to files.

    ``usage_count`` mirrors the number of file_tag rows for this tag and is
    maintained by the counter projection. A tag in use cannot be deleted.
    """
    __tablename__ = "tag"
    __table_args__ = (
        CheckConstraint("usage_count >= 0", name="usage_count_non_negative"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    enabled = Column(Boolean, nullable=False, server_default=true(), default=True)
    usage_count = Column(Integer, nullable=False, server_default="0", default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "enabled": self.enabled,
            "usage_count": self.usage_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
