"""Enumerations for the moderation state machines.

Values are stored as TEXT in the database and must match exactly.

UserRole is totally ordered by privilege (NORMAL < VOLUNTEER < ADMIN); use
``UserRole.rank`` or the comparison operators instead of comparing strings.
"""

from enum import Enum


class UserRole(str, Enum):
    """Account role, ordered by privilege."""
    NORMAL = "NORMAL"
    VOLUNTEER = "VOLUNTEER"
    ADMIN = "ADMIN"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, UserRole):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, UserRole):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, UserRole):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, UserRole):
            return NotImplemented
        return self.rank >= other.rank


_ROLE_RANK = {
    UserRole.NORMAL: 1,
    UserRole.VOLUNTEER: 2,
    UserRole.ADMIN: 3,
}


class UploadStatus(str, Enum):
    """Upload permission of a user account (independent of role)."""
    NORMAL = "NORMAL"
    BANNED = "BANNED"


class FileStatus(str, Enum):
    """Audit status of an uploaded file.

    State flow:
    PENDING → APPROVED | REJECTED
    APPROVED ⇄ BANNED
    any → DELETED (hard delete, the row is removed)
    """
    PENDING = "PENDING"      # Waiting in the audit hall
    APPROVED = "APPROVED"    # Publicly visible
    REJECTED = "REJECTED"    # Refused by a reviewer
    BANNED = "BANNED"        # Taken down by an admin
    DELETED = "DELETED"      # Terminal; only ever appears in ledger rows


class SubjectType(str, Enum):
    """Kind of entity an audit record is about."""
    FILE = "FILE"
    USER = "USER"


class OperationType(str, Enum):
    """Classification of a ledger entry."""
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    BAN = "BAN"
    UNBAN = "UNBAN"
    FILE_DELETE = "FILE_DELETE"
    USER_BAN_UPLOAD = "USER_BAN_UPLOAD"
    USER_UNBAN_UPLOAD = "USER_UNBAN_UPLOAD"
    USER_TYPE_CHANGE = "USER_TYPE_CHANGE"
    USER_DELETE = "USER_DELETE"
    UNKNOWN = "UNKNOWN"


class Transition(str, Enum):
    """Named operations an actor may request."""
    FILE_APPROVE = "file.approve"
    FILE_REJECT = "file.reject"
    FILE_BAN = "file.ban"
    FILE_UNBAN = "file.unban"
    FILE_DELETE = "file.delete"
    FILE_EDIT = "file.edit"
    USER_BAN_UPLOAD = "user.ban_upload"
    USER_UNBAN_UPLOAD = "user.unban_upload"
    USER_CHANGE_ROLE = "user.change_role"
    USER_DELETE = "user.delete"
    CATEGORY_CREATE = "category.create"
    CATEGORY_UPDATE = "category.update"
    CATEGORY_DELETE = "category.delete"
    TAG_CREATE = "tag.create"
    TAG_UPDATE = "tag.update"
    TAG_DELETE = "tag.delete"


class CounterKey(str, Enum):
    """Derived counters maintained by the counter projection."""
    FILE_VIEWS = "file.view_count"
    FILE_DOWNLOADS = "file.download_count"
    FILE_LIKES = "file.like_count"
    USER_UPLOADS = "user.upload_count"
    USER_BANNED_FILES = "user.banned_file_count"
    TAG_USAGE = "tag.usage_count"
