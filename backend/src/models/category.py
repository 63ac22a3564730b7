"""Category SQLAlchemy model"""

from sqlalchemy import Column, Integer, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func, true

from .base import Base


class Category(Base):
    """Tree-structured file category.

    A category cannot be deleted while it has children or files. Only enabled
    categories accept new uploads.
    """
    __tablename__ = "category"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    parent_id = Column(Integer, ForeignKey("category.id", ondelete="RESTRICT"), nullable=True, index=True)
    sort_order = Column(Integer, nullable=False, server_default="0", default=0)
    enabled = Column(Boolean, nullable=False, server_default=true(), default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "parent_id": self.parent_id,
            "sort_order": self.sort_order,
            "enabled": self.enabled,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
