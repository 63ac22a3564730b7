"""Moderation domain - status enums, state tables, access policy, errors"""

from .enums import (
    CounterKey,
    FileStatus,
    OperationType,
    SubjectType,
    Transition,
    UploadStatus,
    UserRole,
)
from .errors import (
    ConflictError,
    ForbiddenError,
    ModerationError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from .policy import Actor, authorize, is_allowed
from .state_machine import (
    ALLOWED_TRANSITIONS,
    DEFAULT_REMARKS,
    can_transition,
    resolve_operation_type,
    target_file_status,
    target_upload_status,
)

__all__ = [
    "CounterKey",
    "FileStatus",
    "OperationType",
    "SubjectType",
    "Transition",
    "UploadStatus",
    "UserRole",
    "ConflictError",
    "ForbiddenError",
    "ModerationError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
    "Actor",
    "authorize",
    "is_allowed",
    "ALLOWED_TRANSITIONS",
    "DEFAULT_REMARKS",
    "can_transition",
    "resolve_operation_type",
    "target_file_status",
    "target_upload_status",
]
