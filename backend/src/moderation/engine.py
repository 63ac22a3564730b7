"""Moderation engine.

Executes exactly one legal transition per call. Every call follows the same
sequence:

1. Load the target inside a unit of work, holding a row lock (NotFoundError)
2. Evaluate the access policy against the loaded state (ForbiddenError)
3. Check the state table admits the transition (ConflictError)
4. Write the new state with a conditional UPDATE, append the ledger entry and
   adjust derived counters, all in the same unit of work
5. Return a snapshot of the entity as committed

Nothing is written if any step fails. Storage failures surface as
StorageError and are not retried here.
"""

import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from database import UnitOfWork, UnitOfWorkFactory
from domain.moderation.enums import (
    CounterKey,
    FileStatus,
    OperationType,
    SubjectType,
    Transition,
    UploadStatus,
    UserRole,
)
from domain.moderation.errors import ConflictError, ModerationError, NotFoundError, ValidationError
from domain.moderation.policy import Actor, authorize
from domain.moderation.state_machine import (
    DEFAULT_REMARKS,
    resolve_operation_type,
    target_file_status,
    target_upload_status,
)
from models.file import File
from observability.metrics import transition_duration_seconds, transitions_total, unknown_operation_total

logger = logging.getLogger(__name__)

# Operation type a transition is expected to produce, used to label metrics
# for attempts that fail before a ledger entry exists
EXPECTED_OPERATION: Dict[Transition, OperationType] = {
    Transition.FILE_APPROVE: OperationType.APPROVE,
    Transition.FILE_REJECT: OperationType.REJECT,
    Transition.FILE_BAN: OperationType.BAN,
    Transition.FILE_UNBAN: OperationType.UNBAN,
    Transition.FILE_DELETE: OperationType.FILE_DELETE,
    Transition.USER_BAN_UPLOAD: OperationType.USER_BAN_UPLOAD,
    Transition.USER_UNBAN_UPLOAD: OperationType.USER_UNBAN_UPLOAD,
    Transition.USER_CHANGE_ROLE: OperationType.USER_TYPE_CHANGE,
    Transition.USER_DELETE: OperationType.USER_DELETE,
}

USER_DELETED_VALUE = "DELETED"
CASCADE_FILE_REMARK = "File deleted with owner account"


def normalize_remark(transition: Transition, remark: Optional[str], max_length: int) -> str:
    """Return the remark to record for ``transition``.

    Blank or missing remarks fall back to the transition's canned remark.

    Raises:
        ValidationError: If the remark exceeds ``max_length`` characters
    """
    if remark is None or not remark.strip():
        return DEFAULT_REMARKS[transition]
    remark = remark.strip()
    if len(remark) > max_length:
        raise ValidationError(
            f"Remark exceeds {max_length} characters",
            context={"max_length": max_length, "length": len(remark)},
        )
    return remark


def classify_file_change(old: FileStatus, new: FileStatus, subject_id: Optional[int] = None) -> OperationType:
    """Classify a file status change, reporting unrecognised pairs.

    An UNKNOWN classification still lets the transition complete; it is
    logged at WARNING and counted so it can be told apart from real
    operation types.
    """
    operation = resolve_operation_type(old, new)
    if operation == OperationType.UNKNOWN:
        logger.warning(
            f"Unclassified file status change {old.value} -> {new.value}",
            extra={
                "subject_type": SubjectType.FILE.value,
                "subject_id": subject_id,
                "old_value": old.value,
                "new_value": new.value,
                "operation_type": operation.value,
            },
        )
        unknown_operation_total.labels(old_value=old.value, new_value=new.value).inc()
    return operation


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ModerationEngine:
    """Stateless executor of moderation transitions.

    Args:
        uow_factory: Opens a fresh UnitOfWork per call
        remark_max_length: Upper bound for caller-supplied remarks
        clock: Returns the timestamp recorded on entities and ledger rows

    Example:
        engine = ModerationEngine(unit_of_work_factory(db))
        snapshot = engine.approve_file(Actor(7, UserRole.VOLUNTEER), 42)
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        remark_max_length: int = 500,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.uow_factory = uow_factory
        self.remark_max_length = remark_max_length
        self.clock = clock

    # ------------------------------------------------------------------
    # File transitions
    # ------------------------------------------------------------------

    def approve_file(self, actor: Actor, file_id: int, remark: Optional[str] = None) -> Dict[str, Any]:
        return self._transition_file(actor, file_id, Transition.FILE_APPROVE, remark)

    def reject_file(self, actor: Actor, file_id: int, remark: Optional[str] = None) -> Dict[str, Any]:
        return self._transition_file(actor, file_id, Transition.FILE_REJECT, remark)

    def ban_file(self, actor: Actor, file_id: int, remark: Optional[str] = None) -> Dict[str, Any]:
        return self._transition_file(actor, file_id, Transition.FILE_BAN, remark)

    def unban_file(self, actor: Actor, file_id: int, remark: Optional[str] = None) -> Dict[str, Any]:
        return self._transition_file(actor, file_id, Transition.FILE_UNBAN, remark)

    def delete_file(self, actor: Actor, file_id: int, remark: Optional[str] = None) -> Dict[str, Any]:
        """Hard-delete a file (ADMIN only).

        Removes the row, its like relations and tag links. The ledger keeps a
        FILE_DELETE entry; the returned snapshot shows the file as it was with
        ``audit_status`` DELETED.
        """
        transition = Transition.FILE_DELETE
        with self._observed(SubjectType.FILE, transition):
            remark = normalize_remark(transition, remark, self.remark_max_length)
            with self.uow_factory() as uow:
                file = uow.store.lock_file(file_id)
                authorize(actor, transition)
                target_file_status(transition, FileStatus(file.audit_status))
                snapshot = self._delete_file_row(uow, actor, file, remark, self.clock())
        return snapshot

    def _transition_file(
        self,
        actor: Actor,
        file_id: int,
        transition: Transition,
        remark: Optional[str],
    ) -> Dict[str, Any]:
        with self._observed(SubjectType.FILE, transition):
            remark = normalize_remark(transition, remark, self.remark_max_length)
            with self.uow_factory() as uow:
                file = uow.store.lock_file(file_id)
                authorize(actor, transition)
                old = FileStatus(file.audit_status)
                new = target_file_status(transition, old)
                now = self.clock()

                updated = uow.store.conditional_update_file(file_id, old.value, {
                    "audit_status": new.value,
                    "audit_user_id": actor.id,
                    "audit_time": now,
                    "audit_remark": remark,
                    "updated_at": now,
                })
                if not updated:
                    self._raise_lost_file_race(uow, file_id, transition)

                operation = classify_file_change(old, new, file_id)
                uow.ledger.append(
                    SubjectType.FILE, file_id, actor.id,
                    old.value, new.value, operation, remark, now,
                )

                if new == FileStatus.BANNED:
                    uow.counters.increment(CounterKey.USER_BANNED_FILES, file.owner_id)
                elif old == FileStatus.BANNED:
                    uow.counters.decrement(CounterKey.USER_BANNED_FILES, file.owner_id)

                uow.flush()
                snapshot = file.to_dict()

            logger.info(
                f"File {file_id} {old.value} -> {new.value}",
                extra={
                    "actor_id": actor.id,
                    "subject_type": SubjectType.FILE.value,
                    "subject_id": file_id,
                    "operation_type": operation.value,
                },
            )
        return snapshot

    def _delete_file_row(
        self,
        uow: UnitOfWork,
        actor: Actor,
        file: File,
        remark: str,
        now: datetime,
    ) -> Dict[str, Any]:
        """Remove one file and unwind every counter it contributed to."""
        old = FileStatus(file.audit_status)
        snapshot = file.to_dict()
        snapshot.update({
            "audit_status": FileStatus.DELETED.value,
            "audit_user_id": actor.id,
            "audit_time": now.isoformat(),
            "audit_remark": remark,
        })

        uow.store.delete_likes_of_file(file.id)
        for tag_id in snapshot["tag_ids"]:
            uow.counters.decrement(CounterKey.TAG_USAGE, tag_id)
        uow.counters.decrement(CounterKey.USER_UPLOADS, file.owner_id)
        if old == FileStatus.BANNED:
            uow.counters.decrement(CounterKey.USER_BANNED_FILES, file.owner_id)

        uow.store.delete(file)
        operation = classify_file_change(old, FileStatus.DELETED, snapshot["id"])
        uow.ledger.append(
            SubjectType.FILE, snapshot["id"], actor.id,
            old.value, FileStatus.DELETED.value, operation, remark, now,
        )

        logger.info(
            f"File {snapshot['id']} deleted (was {old.value})",
            extra={
                "actor_id": actor.id,
                "subject_type": SubjectType.FILE.value,
                "subject_id": snapshot["id"],
                "operation_type": operation.value,
            },
        )
        return snapshot

    def _raise_lost_file_race(self, uow: UnitOfWork, file_id: int, transition: Transition) -> None:
        current = uow.store.get_file(file_id)
        if current is None:
            raise NotFoundError(f"File {file_id} not found", context={"file_id": file_id})
        raise ConflictError(
            f"File status changed concurrently: current status {current.audit_status}",
            context={"current_status": current.audit_status, "transition": transition.value},
        )

    # ------------------------------------------------------------------
    # User transitions
    # ------------------------------------------------------------------

    def ban_upload(self, actor: Actor, user_id: int, remark: Optional[str] = None) -> Dict[str, Any]:
        return self._transition_upload_status(actor, user_id, Transition.USER_BAN_UPLOAD, remark)

    def unban_upload(self, actor: Actor, user_id: int, remark: Optional[str] = None) -> Dict[str, Any]:
        return self._transition_upload_status(actor, user_id, Transition.USER_UNBAN_UPLOAD, remark)

    def _transition_upload_status(
        self,
        actor: Actor,
        user_id: int,
        transition: Transition,
        remark: Optional[str],
    ) -> Dict[str, Any]:
        operation = EXPECTED_OPERATION[transition]
        with self._observed(SubjectType.USER, transition):
            remark = normalize_remark(transition, remark, self.remark_max_length)
            with self.uow_factory() as uow:
                user = uow.store.lock_user(user_id)
                authorize(actor, transition, target_role=UserRole(user.role))
                old = UploadStatus(user.upload_status)
                new = target_upload_status(transition, old)
                now = self.clock()

                updated = uow.store.conditional_update_user(
                    user_id,
                    {"upload_status": old.value},
                    {
                        "upload_status": new.value,
                        "last_status_actor_id": actor.id,
                        "last_status_changed_at": now,
                        "last_status_remark": remark,
                        "updated_at": now,
                    },
                )
                if not updated:
                    self._raise_lost_user_race(uow, user_id, transition, "upload_status")

                uow.ledger.append(
                    SubjectType.USER, user_id, actor.id,
                    old.value, new.value, operation, remark, now,
                )
                uow.flush()
                snapshot = user.to_dict()

            logger.info(
                f"User {user_id} upload status {old.value} -> {new.value}",
                extra={
                    "actor_id": actor.id,
                    "subject_type": SubjectType.USER.value,
                    "subject_id": user_id,
                    "operation_type": operation.value,
                },
            )
        return snapshot

    def change_role(
        self,
        actor: Actor,
        user_id: int,
        new_role: Union[UserRole, str],
        remark: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Assign ``new_role`` to a user (ADMIN only).

        Any reassignment, upward or downward, is legal as long as the actor
        outranks the target's current role and the requested role does not
        exceed the actor's own.

        Raises:
            ValidationError: Unknown role value
            ConflictError: The user already holds ``new_role``
        """
        transition = Transition.USER_CHANGE_ROLE
        operation = EXPECTED_OPERATION[transition]
        with self._observed(SubjectType.USER, transition):
            try:
                requested = UserRole(new_role)
            except ValueError:
                raise ValidationError(
                    f"Unknown user role: {new_role}",
                    context={"allowed": [role.value for role in UserRole]},
                )
            remark = normalize_remark(transition, remark, self.remark_max_length)

            with self.uow_factory() as uow:
                user = uow.store.lock_user(user_id)
                current = UserRole(user.role)
                authorize(actor, transition, target_role=current, requested_role=requested)
                if requested == current:
                    raise ConflictError(
                        f"User already has role {current.value}",
                        context={"current_role": current.value},
                    )
                now = self.clock()

                updated = uow.store.conditional_update_user(
                    user_id,
                    {"role": current.value},
                    {
                        "role": requested.value,
                        "last_status_actor_id": actor.id,
                        "last_status_changed_at": now,
                        "last_status_remark": remark,
                        "updated_at": now,
                    },
                )
                if not updated:
                    self._raise_lost_user_race(uow, user_id, transition, "role")

                uow.ledger.append(
                    SubjectType.USER, user_id, actor.id,
                    current.value, requested.value, operation, remark, now,
                )
                uow.flush()
                snapshot = user.to_dict()

            logger.info(
                f"User {user_id} role {current.value} -> {requested.value}",
                extra={
                    "actor_id": actor.id,
                    "subject_type": SubjectType.USER.value,
                    "subject_id": user_id,
                    "operation_type": operation.value,
                },
            )
        return snapshot

    def delete_user(self, actor: Actor, user_id: int, remark: Optional[str] = None) -> Dict[str, Any]:
        """Hard-delete a user account and everything it owns (ADMIN only).

        One unit of work removes the user's files (one FILE_DELETE entry
        each), the likes the user gave (decrementing those files' like
        counts) and the user row, then records one USER_DELETE entry. Any
        failure rolls all of it back.

        Returns:
            The user snapshot plus ``deleted_files``, the snapshots of the
            cascaded files (the caller owns blob cleanup)
        """
        transition = Transition.USER_DELETE
        operation = EXPECTED_OPERATION[transition]
        with self._observed(SubjectType.USER, transition):
            remark = normalize_remark(transition, remark, self.remark_max_length)
            with self.uow_factory() as uow:
                user = uow.store.lock_user(user_id)
                role = UserRole(user.role)
                authorize(actor, transition, target_role=role)
                now = self.clock()
                snapshot = user.to_dict()

                deleted_files: List[Dict[str, Any]] = [
                    self._delete_file_row(uow, actor, file, CASCADE_FILE_REMARK, now)
                    for file in uow.store.files_owned_by(user_id)
                ]

                liked_file_ids = uow.store.liked_file_ids(user_id)
                uow.store.delete_likes_by_user(user_id)
                for file_id in liked_file_ids:
                    uow.counters.decrement(CounterKey.FILE_LIKES, file_id)

                uow.store.delete(user)
                uow.ledger.append(
                    SubjectType.USER, user_id, actor.id,
                    role.value, USER_DELETED_VALUE, operation, remark, now,
                )

            logger.info(
                f"User {user_id} deleted with {len(deleted_files)} files",
                extra={
                    "actor_id": actor.id,
                    "subject_type": SubjectType.USER.value,
                    "subject_id": user_id,
                    "operation_type": operation.value,
                },
            )
        snapshot["deleted_files"] = deleted_files
        return snapshot

    def _raise_lost_user_race(self, uow: UnitOfWork, user_id: int, transition: Transition, column: str) -> None:
        current = uow.store.get_user(user_id)
        if current is None:
            raise NotFoundError(f"User {user_id} not found", context={"user_id": user_id})
        value = getattr(current, column)
        raise ConflictError(
            f"User {column} changed concurrently: current value {value}",
            context={f"current_{column}": value, "transition": transition.value},
        )

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    @contextmanager
    def _observed(self, subject_type: SubjectType, transition: Transition):
        """Count the outcome and time of one transition attempt."""
        operation = EXPECTED_OPERATION[transition]
        start = time.perf_counter()
        try:
            yield
        except ModerationError as e:
            transitions_total.labels(
                subject_type=subject_type.value,
                operation_type=operation.value,
                outcome=e.kind,
            ).inc()
            logger.info(
                f"{transition.value} refused: {e.message}",
                extra={
                    "subject_type": subject_type.value,
                    "operation_type": operation.value,
                    "error_kind": e.kind,
                },
            )
            raise
        else:
            transitions_total.labels(
                subject_type=subject_type.value,
                operation_type=operation.value,
                outcome="success",
            ).inc()
        finally:
            transition_duration_seconds.labels(subject_type=subject_type.value).observe(
                time.perf_counter() - start
            )
