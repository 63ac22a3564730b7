"""Statistics aggregation.

All queries are plain reads against the current state and the ledger. Cached
counters are fine for display here; nothing in this module feeds a policy
decision.
"""

from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, case, extract, func, select
from sqlalchemy.orm import Session

from domain.moderation.enums import FileStatus, OperationType, UploadStatus, UserRole
from models.audit_record import AuditRecord
from models.category import Category
from models.file import File
from models.tag import Tag
from models.user import User

HOT_FILE_ORDERINGS = {
    "views": File.view_count,
    "downloads": File.download_count,
    "likes": File.like_count,
}

# Ledger operations that count as a review decision
REVIEW_OPERATIONS = (OperationType.APPROVE.value, OperationType.REJECT.value)


def _count(db: Session, model, *criteria) -> int:
    return db.scalar(select(func.count()).select_from(model).where(*criteria))


def _status_distribution(db: Session) -> Dict[str, int]:
    distribution = {status.value: 0 for status in FileStatus if status != FileStatus.DELETED}
    for audit_status, count in db.execute(
        select(File.audit_status, func.count()).group_by(File.audit_status)
    ):
        distribution[audit_status] = count
    return distribution


def overview(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Headline counts plus the audit status distribution."""
    distribution = _status_distribution(db)
    return {
        "users": _count(db, User),
        "files": sum(distribution.values()),
        "pending_files": distribution[FileStatus.PENDING.value],
        "categories": _count(db, Category),
        "tags": _count(db, Tag),
        "uploads_today": _count(db, File, File.created_at >= window_start("today", now)),
        "audit_status_distribution": distribution,
    }


def auditor_leaderboard(db: Session, limit: int = 10) -> List[Dict[str, Any]]:
    """Approve/reject decisions per actor, read from the ledger."""
    approvals = func.sum(case((AuditRecord.operation_type == OperationType.APPROVE.value, 1), else_=0))
    rejections = func.sum(case((AuditRecord.operation_type == OperationType.REJECT.value, 1), else_=0))
    total = func.count(AuditRecord.id)

    rows = db.execute(
        select(AuditRecord.actor_id, User.username, approvals, rejections, total)
        .outerjoin(User, User.id == AuditRecord.actor_id)
        .where(AuditRecord.operation_type.in_(REVIEW_OPERATIONS))
        .group_by(AuditRecord.actor_id, User.username)
        .order_by(total.desc(), AuditRecord.actor_id.asc())
        .limit(limit)
    )
    return [
        {
            "actor_id": actor_id,
            "username": username,
            "approved": int(approved or 0),
            "rejected": int(rejected or 0),
            "total": count,
        }
        for actor_id, username, approved, rejected, count in rows
    ]


def hot_files(db: Session, by: str = "views", limit: int = 10) -> List[Dict[str, Any]]:
    """Most popular APPROVED files by views, downloads or likes."""
    column = HOT_FILE_ORDERINGS[by]
    files = db.scalars(
        select(File)
        .where(File.audit_status == FileStatus.APPROVED.value)
        .order_by(column.desc(), File.id.asc())
        .limit(limit)
    )
    return [
        {
            "id": file.id,
            "title": file.title,
            "owner_id": file.owner_id,
            "view_count": file.view_count,
            "download_count": file.download_count,
            "like_count": file.like_count,
        }
        for file in files
    ]


def window_start(window: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """First instant of ``window`` containing ``now``; None for ``all``.

    Weeks start on Monday. Boundaries are taken in the timezone of ``now``
    (UTC by default), matching the timestamps the store records.
    """
    now = now or datetime.now(timezone.utc)
    day = now.date()
    if window == "today":
        pass
    elif window == "week":
        day = day - timedelta(days=day.weekday())
    elif window == "month":
        day = day.replace(day=1)
    elif window == "all":
        return None
    else:
        raise ValueError(f"Unknown statistics window: {window}")
    return datetime.combine(day, time.min, tzinfo=now.tzinfo)


def window_summary(db: Session, window: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Uploads, registrations, review decisions and bans since the window opened.

    Downloads are not recorded as events, so only the ``all`` window reports
    them, as the sum of the per-file counters.
    """
    start = window_start(window, now)

    def since(column):
        return () if start is None else (column >= start,)

    summary = {
        "window": window,
        "since": start.isoformat() if start else None,
        "uploads": _count(db, File, *since(File.created_at)),
        "new_users": _count(db, User, *since(User.created_at)),
        "audits": _count(
            db, AuditRecord,
            AuditRecord.operation_type.in_(REVIEW_OPERATIONS),
            *since(AuditRecord.created_at),
        ),
        "bans": _count(
            db, AuditRecord,
            AuditRecord.operation_type == OperationType.BAN.value,
            *since(AuditRecord.created_at),
        ),
    }
    if start is None:
        summary["downloads"] = int(db.scalar(select(func.coalesce(func.sum(File.download_count), 0))))
        summary["categories"] = _count(db, Category)
        summary["tags"] = _count(db, Tag)
    return summary


def ban_records(db: Session, recent: int = 10) -> Dict[str, Any]:
    """Current takedowns plus ban and unban history from the ledger."""
    operation_counts = {
        op.value: 0 for op in (
            OperationType.BAN,
            OperationType.UNBAN,
            OperationType.USER_BAN_UPLOAD,
            OperationType.USER_UNBAN_UPLOAD,
        )
    }
    for operation_type, count in db.execute(
        select(AuditRecord.operation_type, func.count())
        .where(AuditRecord.operation_type.in_(list(operation_counts)))
        .group_by(AuditRecord.operation_type)
    ):
        operation_counts[operation_type] = count

    latest = db.scalars(
        select(AuditRecord)
        .where(AuditRecord.operation_type.in_([OperationType.BAN.value, OperationType.USER_BAN_UPLOAD.value]))
        .order_by(AuditRecord.created_at.desc(), AuditRecord.id.desc())
        .limit(recent)
    )
    return {
        "banned_files": _count(db, File, File.audit_status == FileStatus.BANNED.value),
        "banned_uploaders": _count(db, User, User.upload_status == UploadStatus.BANNED.value),
        "operations": operation_counts,
        "recent_bans": [record.to_dict() for record in latest],
    }


def category_file_counts(db: Session) -> List[Dict[str, Any]]:
    """APPROVED files per category, empty categories included."""
    file_count = func.count(File.id)
    rows = db.execute(
        select(Category.id, Category.name, file_count)
        .outerjoin(
            File,
            and_(File.category_id == Category.id, File.audit_status == FileStatus.APPROVED.value),
        )
        .group_by(Category.id, Category.name)
        .order_by(file_count.desc(), Category.id.asc())
    )
    return [
        {"category_id": category_id, "name": name, "file_count": count}
        for category_id, name, count in rows
    ]


def _months_back(now: datetime, months: int) -> List[Tuple[int, int]]:
    year, month = now.year, now.month
    buckets = []
    for _ in range(months):
        buckets.append((year, month))
        year, month = (year - 1, 12) if month == 1 else (year, month - 1)
    return list(reversed(buckets))


def _monthly_counts(db: Session, column, months: int, now: Optional[datetime], *criteria) -> List[Dict[str, Any]]:
    """Row counts per calendar month for the last ``months`` months, oldest first.

    Months without rows are reported with a zero count.
    """
    now = now or datetime.now(timezone.utc)
    buckets = _months_back(now, months)
    first_year, first_month = buckets[0]
    start = datetime(first_year, first_month, 1, tzinfo=now.tzinfo)

    year = extract("year", column)
    month = extract("month", column)
    counts = {
        (int(y), int(m)): count
        for y, m, count in db.execute(
            select(year, month, func.count())
            .where(column >= start, *criteria)
            .group_by(year, month)
        )
    }
    return [
        {"month": f"{y:04d}-{m:02d}", "count": counts.get((y, m), 0)}
        for y, m in buckets
    ]


def monthly_uploads(db: Session, months: int = 12, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    return _monthly_counts(db, File.created_at, months, now)


def user_statistics(db: Session, months: int = 12, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Accounts by role, uploaders, banned uploaders and monthly registrations."""
    by_role = {role.value: 0 for role in UserRole}
    for role, count in db.execute(select(User.role, func.count()).group_by(User.role)):
        by_role[role] = count
    return {
        "users": sum(by_role.values()),
        "by_role": by_role,
        "uploaders": _count(db, User, User.upload_count > 0),
        "banned_uploaders": _count(db, User, User.upload_status == UploadStatus.BANNED.value),
        "registrations": _monthly_counts(db, User.created_at, months, now),
    }


def audit_statistics(db: Session, months: int = 12, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Review decisions from the ledger next to the current status distribution."""
    return {
        "decisions": _count(db, AuditRecord, AuditRecord.operation_type.in_(REVIEW_OPERATIONS)),
        "audit_status_distribution": _status_distribution(db),
        "trend": _monthly_counts(
            db, AuditRecord.created_at, months, now,
            AuditRecord.operation_type.in_(REVIEW_OPERATIONS),
        ),
    }
