"""FileLike SQLAlchemy model"""

from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from .base import Base


class FileLike(Base):
    """Like relation between a user and a file.

    At most one row per (user, file); the row's existence is the source of
    truth and ``File.like_count`` is a cached count of these rows.
    """
    __tablename__ = "file_like"
    __table_args__ = (
        UniqueConstraint("user_id", "file_id", name="uq_file_like_user_file"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    file_id = Column(Integer, ForeignKey("file.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
