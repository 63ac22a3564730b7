"""State tables for file audit status and user upload status.

File transitions:
    approve: PENDING  → APPROVED
    reject:  PENDING  → REJECTED
    ban:     APPROVED → BANNED
    unban:   BANNED   → APPROVED
    delete:  any non-DELETED → DELETED (row removed)

User upload-status transitions:
    ban_upload:   NORMAL → BANNED
    unban_upload: BANNED → NORMAL

Role changes are not constrained here; any role may be assigned to any other
role, subject to the access policy.
"""

from typing import Dict, List, Optional, Tuple

from .enums import FileStatus, OperationType, Transition, UploadStatus
from .errors import ConflictError


ALLOWED_TRANSITIONS: Dict[FileStatus, List[FileStatus]] = {
    FileStatus.PENDING: [FileStatus.APPROVED, FileStatus.REJECTED, FileStatus.DELETED],
    FileStatus.APPROVED: [FileStatus.BANNED, FileStatus.DELETED],
    FileStatus.REJECTED: [FileStatus.DELETED],
    FileStatus.BANNED: [FileStatus.APPROVED, FileStatus.DELETED],
    FileStatus.DELETED: [],  # Terminal
}

# Named file transitions: (required current status, target status)
FILE_TRANSITIONS: Dict[Transition, Tuple[Optional[FileStatus], FileStatus]] = {
    Transition.FILE_APPROVE: (FileStatus.PENDING, FileStatus.APPROVED),
    Transition.FILE_REJECT: (FileStatus.PENDING, FileStatus.REJECTED),
    Transition.FILE_BAN: (FileStatus.APPROVED, FileStatus.BANNED),
    Transition.FILE_UNBAN: (FileStatus.BANNED, FileStatus.APPROVED),
    Transition.FILE_DELETE: (None, FileStatus.DELETED),  # None = any live status
}

# Operation type classification keyed by (old, new)
OPERATION_TYPES: Dict[Tuple[FileStatus, FileStatus], OperationType] = {
    (FileStatus.PENDING, FileStatus.APPROVED): OperationType.APPROVE,
    (FileStatus.PENDING, FileStatus.REJECTED): OperationType.REJECT,
    (FileStatus.APPROVED, FileStatus.BANNED): OperationType.BAN,
    (FileStatus.BANNED, FileStatus.APPROVED): OperationType.UNBAN,
    (FileStatus.PENDING, FileStatus.DELETED): OperationType.FILE_DELETE,
    (FileStatus.APPROVED, FileStatus.DELETED): OperationType.FILE_DELETE,
    (FileStatus.REJECTED, FileStatus.DELETED): OperationType.FILE_DELETE,
    (FileStatus.BANNED, FileStatus.DELETED): OperationType.FILE_DELETE,
}

UPLOAD_STATUS_TRANSITIONS: Dict[Transition, Tuple[UploadStatus, UploadStatus]] = {
    Transition.USER_BAN_UPLOAD: (UploadStatus.NORMAL, UploadStatus.BANNED),
    Transition.USER_UNBAN_UPLOAD: (UploadStatus.BANNED, UploadStatus.NORMAL),
}

# Remark recorded when the caller does not supply one
DEFAULT_REMARKS: Dict[Transition, str] = {
    Transition.FILE_APPROVE: "File approved",
    Transition.FILE_REJECT: "File rejected",
    Transition.FILE_BAN: "File banned",
    Transition.FILE_UNBAN: "File unbanned",
    Transition.FILE_DELETE: "File deleted",
    Transition.USER_BAN_UPLOAD: "Upload permission banned",
    Transition.USER_UNBAN_UPLOAD: "Upload permission restored",
    Transition.USER_CHANGE_ROLE: "User type updated",
    Transition.USER_DELETE: "User deleted",
}


def can_transition(from_status: FileStatus, to_status: FileStatus) -> bool:
    """Check whether an edge exists in the file status graph.

    Example:
        >>> can_transition(FileStatus.PENDING, FileStatus.APPROVED)
        True
        >>> can_transition(FileStatus.PENDING, FileStatus.BANNED)
        False
    """
    return to_status in ALLOWED_TRANSITIONS.get(from_status, [])


def get_allowed_transitions(from_status: FileStatus) -> List[FileStatus]:
    return ALLOWED_TRANSITIONS.get(from_status, [])


def target_file_status(transition: Transition, current: FileStatus) -> FileStatus:
    """Resolve the target status of a named file transition.

    Raises:
        ConflictError: If ``current`` does not admit the transition. The
            error context names the current status.
    """
    required, target = FILE_TRANSITIONS[transition]
    admitted = (current == required) if required is not None else current != FileStatus.DELETED
    if not admitted or not can_transition(current, target):
        raise ConflictError(
            f"Cannot {transition.value.split('.')[-1]} file: current status {current.value}",
            context={"current_status": current.value, "transition": transition.value},
        )
    return target


def target_upload_status(transition: Transition, current: UploadStatus) -> UploadStatus:
    """Resolve the target upload status, refusing repeats.

    Raises:
        ConflictError: If the user is already in the target state.
    """
    required, target = UPLOAD_STATUS_TRANSITIONS[transition]
    if current != required:
        raise ConflictError(
            f"Upload status is already {current.value}",
            context={"current_status": current.value, "transition": transition.value},
        )
    return target


def resolve_operation_type(old: FileStatus, new: FileStatus) -> OperationType:
    """Classify a file status change for the ledger.

    Unrecognised pairs yield ``OperationType.UNKNOWN``; callers are expected
    to report that as an anomaly.
    """
    return OPERATION_TYPES.get((old, new), OperationType.UNKNOWN)
