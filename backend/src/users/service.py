"""Read-only user queries for moderators."""

from typing import Any, Dict

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from domain.moderation.enums import FileStatus
from domain.moderation.errors import NotFoundError
from models.file import File
from models.user import User


def upload_status_summary(db: Session, user_id: int) -> Dict[str, Any]:
    """Upload standing of a user and their files counted per audit status.

    The per-status counts are read from the file table; ``upload_count`` and
    ``banned_file_count`` are the cached counters, so the two can be compared.
    """
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found", context={"user_id": user_id})

    rows = db.execute(
        select(File.audit_status, func.count())
        .where(File.owner_id == user_id)
        .group_by(File.audit_status)
    )
    by_status = {status.value: 0 for status in FileStatus if status != FileStatus.DELETED}
    for audit_status, count in rows:
        by_status[audit_status] = count

    return {
        "user_id": user.id,
        "username": user.username,
        "role": user.role,
        "upload_status": user.upload_status,
        "upload_count": user.upload_count,
        "banned_file_count": user.banned_file_count,
        "files_by_status": by_status,
        "last_status_actor_id": user.last_status_actor_id,
        "last_status_changed_at": user.last_status_changed_at.isoformat() if user.last_status_changed_at else None,
        "last_status_remark": user.last_status_remark,
    }
