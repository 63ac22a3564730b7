"""User SQLAlchemy model"""

import re

from sqlalchemy import Column, Integer, Text, DateTime, CheckConstraint
from sqlalchemy.orm import validates
from sqlalchemy.sql import func

from .base import Base


class User(Base):
    """Account on the sharing platform.

    ``role`` orders privilege (NORMAL < VOLUNTEER < ADMIN). ``upload_status``
    governs upload permission and is independent of the role. The
    ``last_status_*`` columns point at the latest moderation transition
    applied to this account; the full history lives in the audit ledger.
    ``upload_count`` and ``banned_file_count`` are derived counters owned by
    the counter projection.
    """
    __tablename__ = "user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(Text, nullable=False, unique=True)
    email = Column(Text, nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    role = Column(Text, nullable=False, server_default="NORMAL", default="NORMAL")
    upload_status = Column(Text, nullable=False, server_default="NORMAL", default="NORMAL")
    upload_count = Column(Integer, nullable=False, server_default="0", default=0)
    banned_file_count = Column(Integer, nullable=False, server_default="0", default=0)
    last_status_actor_id = Column(Integer, nullable=True)
    last_status_changed_at = Column(DateTime(timezone=True), nullable=True)
    last_status_remark = Column(Text, nullable=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("role IN ('NORMAL', 'VOLUNTEER', 'ADMIN')", name="role"),
        CheckConstraint("upload_status IN ('NORMAL', 'BANNED')", name="upload_status"),
        CheckConstraint("upload_count >= 0", name="upload_count_non_negative"),
        CheckConstraint("banned_file_count >= 0", name="banned_file_count_non_negative"),
    )

    @validates("email")
    def validate_email(self, key, value):
        """Basic email format validation"""
        if not re.match(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$', value):
            raise ValueError("Invalid email format")
        return value.lower()

    def to_dict(self):
        """Convert user to dictionary representation (excludes password_hash)"""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "upload_status": self.upload_status,
            "upload_count": self.upload_count,
            "banned_file_count": self.banned_file_count,
            "last_status_actor_id": self.last_status_actor_id,
            "last_status_changed_at": self.last_status_changed_at.isoformat() if self.last_status_changed_at else None,
            "last_status_remark": self.last_status_remark,
            "last_login_at": self.last_login_at.isoformat() if self.last_login_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
