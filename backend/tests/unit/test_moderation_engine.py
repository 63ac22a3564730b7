"""Unit tests for the moderation engine.

Each test drives the engine against an in-memory database and checks the
three things a transition touches together: entity state, ledger entries and
derived counters.
"""

from datetime import datetime, timezone

import pytest
from prometheus_client import REGISTRY
from sqlalchemy.exc import SQLAlchemyError

from database import unit_of_work_factory
from domain.moderation.enums import FileStatus, OperationType, SubjectType, UserRole
from domain.moderation.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from domain.moderation.policy import Actor
from models import AuditRecord, Category, File, FileLike, User
from moderation.engine import ModerationEngine, classify_file_change, normalize_remark
from store.entity_store import EntityStore
from store.ledger import AuditLedger


def _records(db_session, subject_type=None, subject_id=None):
    query = db_session.query(AuditRecord)
    if subject_type is not None:
        query = query.filter(AuditRecord.subject_type == subject_type, AuditRecord.subject_id == subject_id)
    return query.order_by(AuditRecord.id).all()


def _transitions(subject_type, operation_type, outcome):
    value = REGISTRY.get_sample_value(
        "docshare_transitions_total",
        {"subject_type": subject_type, "operation_type": operation_type, "outcome": outcome},
    )
    return value or 0


class TestFileReview:
    """approve / reject by volunteers"""

    def test_approve_pending_file(self, db_session, engine, actor, volunteer_user, make_file):
        file = make_file()

        snapshot = engine.approve_file(actor(volunteer_user), file.id)

        assert snapshot["audit_status"] == "APPROVED"
        assert snapshot["audit_user_id"] == volunteer_user.id
        assert snapshot["audit_remark"] == "File approved"
        assert file.audit_status == "APPROVED"

        records = _records(db_session, "FILE", file.id)
        assert len(records) == 1
        assert records[0].old_value == "PENDING"
        assert records[0].new_value == "APPROVED"
        assert records[0].operation_type == "APPROVE"
        assert records[0].actor_id == volunteer_user.id

    def test_approve_twice_conflicts_and_records_once(self, db_session, engine, actor, volunteer_user, make_file):
        file = make_file()
        engine.approve_file(actor(volunteer_user), file.id)

        with pytest.raises(ConflictError) as exc_info:
            engine.approve_file(actor(volunteer_user), file.id)

        assert exc_info.value.context["current_status"] == "APPROVED"
        assert len(_records(db_session, "FILE", file.id)) == 1

    def test_reject_then_approve_conflicts(self, engine, actor, volunteer_user, make_file):
        file = make_file()
        engine.reject_file(actor(volunteer_user), file.id, remark="Blurry scan")

        with pytest.raises(ConflictError):
            engine.approve_file(actor(volunteer_user), file.id)
        assert file.audit_remark == "Blurry scan"

    def test_normal_user_cannot_approve(self, db_session, engine, actor, normal_user, make_file):
        file = make_file()

        with pytest.raises(ForbiddenError):
            engine.approve_file(actor(normal_user), file.id)

        assert file.audit_status == "PENDING"
        assert _records(db_session) == []

    def test_missing_file_is_not_found_before_forbidden(self, engine, actor, normal_user):
        with pytest.raises(NotFoundError):
            engine.approve_file(actor(normal_user), 424242)

    def test_success_and_refusal_are_counted(self, engine, actor, volunteer_user, make_file):
        file = make_file()
        success_before = _transitions("FILE", "APPROVE", "success")
        conflict_before = _transitions("FILE", "APPROVE", "conflict")

        engine.approve_file(actor(volunteer_user), file.id)
        with pytest.raises(ConflictError):
            engine.approve_file(actor(volunteer_user), file.id)

        assert _transitions("FILE", "APPROVE", "success") == success_before + 1
        assert _transitions("FILE", "APPROVE", "conflict") == conflict_before + 1


class TestFileBan:
    """ban / unban by admins, with banned_file_count kept in step"""

    def test_ban_increments_owner_banned_count(self, engine, actor, admin_user, normal_user, make_file):
        file = make_file(status="APPROVED")

        engine.ban_file(actor(admin_user), file.id, remark="Copyright claim")

        assert file.audit_status == "BANNED"
        assert normal_user.banned_file_count == 1

    def test_unban_decrements_owner_banned_count(self, db_session, engine, actor, admin_user, normal_user, make_file):
        file = make_file(status="BANNED")
        assert normal_user.banned_file_count == 1

        engine.unban_file(actor(admin_user), file.id)

        assert file.audit_status == "APPROVED"
        assert normal_user.banned_file_count == 0
        assert _records(db_session, "FILE", file.id)[0].operation_type == "UNBAN"

    def test_volunteer_cannot_unban(self, engine, actor, volunteer_user, make_file):
        file = make_file(status="BANNED")

        with pytest.raises(ForbiddenError):
            engine.unban_file(actor(volunteer_user), file.id)
        assert file.audit_status == "BANNED"

    def test_ban_pending_conflicts(self, engine, actor, admin_user, make_file):
        file = make_file()
        with pytest.raises(ConflictError):
            engine.ban_file(actor(admin_user), file.id)

    def test_banned_file_count_tracks_mixed_sequence(self, db_session, engine, actor, admin_user, normal_user, make_file):
        file_ids = [make_file(status="APPROVED").id for _ in range(4)]
        admin = actor(admin_user)
        steps = [
            (engine.ban_file, 0, 1),
            (engine.ban_file, 1, 2),
            (engine.unban_file, 0, 1),
            (engine.ban_file, 2, 2),
            (engine.delete_file, 1, 1),
            (engine.delete_file, 3, 1),
            (engine.ban_file, 0, 2),
            (engine.unban_file, 2, 1),
        ]

        for operation, index, expected_banned in steps:
            operation(admin, file_ids[index])

            db_session.expire_all()
            owned = db_session.query(File).filter(File.owner_id == normal_user.id)
            banned = owned.filter(File.audit_status == "BANNED").count()
            user = db_session.get(User, normal_user.id)
            assert banned == expected_banned
            assert user.banned_file_count == banned
            assert user.upload_count == owned.count()


class TestConcurrentUpdate:

    def test_lost_conditional_update_conflicts_without_writes(
        self, db_session, engine, actor, volunteer_user, make_file, monkeypatch
    ):
        """A writer that loses the race sees a conflict and leaves no ledger entry."""
        file = make_file()
        monkeypatch.setattr(EntityStore, "conditional_update_file", lambda self, *args, **kwargs: False)

        with pytest.raises(ConflictError) as exc_info:
            engine.approve_file(actor(volunteer_user), file.id)

        assert "changed concurrently" in exc_info.value.message
        assert _records(db_session) == []
        assert file.audit_status == "PENDING"


def _seed_review_queue(session):
    """Owner, two reviewers and one PENDING file, committed."""
    owner, first, second = (
        User(username=name, email=f"{name}@test.com", password_hash="x", role=role)
        for name, role in (("owner", "NORMAL"), ("reviewer_a", "VOLUNTEER"), ("reviewer_b", "VOLUNTEER"))
    )
    category = Category(name="Lecture notes")
    session.add_all([owner, first, second, category])
    session.flush()
    file = File(
        owner_id=owner.id,
        category_id=category.id,
        title="Linear algebra",
        original_name="la.pdf",
        blob_key="uploads/la.pdf",
        file_type="document",
        file_ext="pdf",
    )
    session.add(file)
    owner.upload_count = 1
    session.commit()
    return file.id, Actor(first.id, UserRole.VOLUNTEER), Actor(second.id, UserRole.VOLUNTEER)


class TestConcurrentSessions:

    def test_stale_session_loses_to_committed_review(self, independent_sessions):
        file_id, reviewer_a, reviewer_b = _seed_review_queue(independent_sessions())
        session_a, session_b = independent_sessions(), independent_sessions()

        stale = session_b.get(File, file_id)
        assert stale.audit_status == "PENDING"

        ModerationEngine(unit_of_work_factory(session_a)).approve_file(reviewer_a, file_id)

        with pytest.raises(ConflictError) as exc_info:
            ModerationEngine(unit_of_work_factory(session_b)).approve_file(reviewer_b, file_id)

        assert exc_info.value.context["current_status"] == "APPROVED"
        assert "APPROVED" in exc_info.value.message

        check = independent_sessions()
        records = check.query(AuditRecord).all()
        assert len(records) == 1
        assert records[0].actor_id == reviewer_a.id
        assert check.get(File, file_id).audit_user_id == reviewer_a.id

    def test_stale_session_cannot_reject_an_approved_file(self, independent_sessions):
        file_id, reviewer_a, reviewer_b = _seed_review_queue(independent_sessions())
        session_a, session_b = independent_sessions(), independent_sessions()
        session_b.get(File, file_id)

        ModerationEngine(unit_of_work_factory(session_a)).approve_file(reviewer_a, file_id)

        with pytest.raises(ConflictError):
            ModerationEngine(unit_of_work_factory(session_b)).reject_file(reviewer_b, file_id)

        check = independent_sessions()
        assert check.get(File, file_id).audit_status == "APPROVED"
        assert check.query(AuditRecord).count() == 1


class TestRemarks:

    def test_blank_remark_uses_default(self, engine, actor, volunteer_user, make_file):
        file = make_file()
        snapshot = engine.reject_file(actor(volunteer_user), file.id, remark="   ")
        assert snapshot["audit_remark"] == "File rejected"

    def test_oversized_remark_is_rejected_before_any_write(self, db_session, engine, actor, volunteer_user, make_file):
        file = make_file()

        with pytest.raises(ValidationError) as exc_info:
            engine.approve_file(actor(volunteer_user), file.id, remark="x" * 501)

        assert exc_info.value.context == {"max_length": 500, "length": 501}
        assert file.audit_status == "PENDING"
        assert _records(db_session) == []

    def test_normalize_remark_strips(self):
        from domain.moderation.enums import Transition
        assert normalize_remark(Transition.FILE_BAN, "  spam  ", 10) == "spam"

    def test_injected_clock_stamps_entity_and_ledger(self, db_session, uow_factory, actor, volunteer_user, make_file):
        fixed = datetime(2024, 5, 17, 8, 30, tzinfo=timezone.utc)
        engine = ModerationEngine(uow_factory, clock=lambda: fixed)
        file = make_file()

        engine.approve_file(actor(volunteer_user), file.id)

        record = _records(db_session, "FILE", file.id)[0]
        assert record.created_at.replace(tzinfo=None) == fixed.replace(tzinfo=None)
        assert file.audit_time.replace(tzinfo=None) == fixed.replace(tzinfo=None)


class TestUnknownOperation:

    def test_unclassified_change_is_logged_and_counted(self, caplog):
        labels = {"old_value": "REJECTED", "new_value": "APPROVED"}
        before = REGISTRY.get_sample_value("docshare_unknown_operation_total", labels) or 0

        operation = classify_file_change(FileStatus.REJECTED, FileStatus.APPROVED, subject_id=9)

        assert operation == OperationType.UNKNOWN
        assert REGISTRY.get_sample_value("docshare_unknown_operation_total", labels) == before + 1
        assert "Unclassified file status change REJECTED -> APPROVED" in caplog.text


class TestDeleteFile:

    def test_delete_unwinds_every_counter(
        self, db_session, engine, file_service, actor, admin_user, volunteer_user, normal_user, make_file, make_tag
    ):
        tag = make_tag()
        file = make_file(status="BANNED", tags=[tag])
        file_id = file.id
        file_service.toggle_like(actor(volunteer_user), file_id)

        snapshot = engine.delete_file(actor(admin_user), file_id)

        assert snapshot["id"] == file_id
        assert snapshot["audit_status"] == "DELETED"
        assert db_session.get(File, file_id) is None
        assert db_session.query(FileLike).count() == 0
        assert normal_user.upload_count == 0
        assert normal_user.banned_file_count == 0
        assert tag.usage_count == 0

    def test_history_survives_deletion(self, db_session, engine, actor, admin_user, volunteer_user, make_file):
        file = make_file()
        file_id = file.id
        engine.approve_file(actor(volunteer_user), file_id)
        engine.delete_file(actor(admin_user), file_id)

        history = AuditLedger(db_session).list_by_subject(SubjectType.FILE, file_id, newest_first=False)
        assert [(r.old_value, r.new_value, r.operation_type) for r in history] == [
            ("PENDING", "APPROVED", "APPROVE"),
            ("APPROVED", "DELETED", "FILE_DELETE"),
        ]

    def test_volunteer_cannot_delete(self, db_session, engine, actor, volunteer_user, make_file):
        file = make_file()
        with pytest.raises(ForbiddenError):
            engine.delete_file(actor(volunteer_user), file.id)
        assert db_session.get(File, file.id) is not None


class TestUploadPermission:

    def test_volunteer_bans_normal_user_upload(self, db_session, engine, actor, volunteer_user, normal_user):
        snapshot = engine.ban_upload(actor(volunteer_user), normal_user.id, remark="Spam uploads")

        assert snapshot["upload_status"] == "BANNED"
        assert normal_user.last_status_actor_id == volunteer_user.id
        assert normal_user.last_status_remark == "Spam uploads"
        record = _records(db_session, "USER", normal_user.id)[0]
        assert (record.old_value, record.new_value, record.operation_type) == ("NORMAL", "BANNED", "USER_BAN_UPLOAD")

    def test_repeat_ban_conflicts(self, engine, actor, volunteer_user, make_user):
        target = make_user(upload_status="BANNED")
        with pytest.raises(ConflictError):
            engine.ban_upload(actor(volunteer_user), target.id)

    def test_unban_restores_upload(self, engine, actor, admin_user, make_user):
        target = make_user(upload_status="BANNED")
        snapshot = engine.unban_upload(actor(admin_user), target.id)
        assert snapshot["upload_status"] == "NORMAL"

    def test_volunteer_cannot_ban_peer(self, engine, actor, volunteer_user, make_user):
        peer = make_user("VOLUNTEER")
        with pytest.raises(ForbiddenError):
            engine.ban_upload(actor(volunteer_user), peer.id)
        assert peer.upload_status == "NORMAL"


class TestChangeRole:

    def test_admin_promotes_normal_user(self, db_session, engine, actor, admin_user, normal_user):
        snapshot = engine.change_role(actor(admin_user), normal_user.id, "VOLUNTEER")

        assert snapshot["role"] == "VOLUNTEER"
        record = _records(db_session, "USER", normal_user.id)[0]
        assert (record.old_value, record.new_value, record.operation_type) == (
            "NORMAL", "VOLUNTEER", "USER_TYPE_CHANGE"
        )
        assert record.remark == "User type updated"

    def test_volunteer_cannot_self_escalate(self, db_session, engine, actor, volunteer_user):
        with pytest.raises(ForbiddenError):
            engine.change_role(actor(volunteer_user), volunteer_user.id, "ADMIN")
        assert volunteer_user.role == "VOLUNTEER"
        assert _records(db_session) == []

    def test_admin_cannot_change_peer_admin(self, engine, actor, admin_user, make_user):
        other_admin = make_user("ADMIN")
        with pytest.raises(ForbiddenError):
            engine.change_role(actor(admin_user), other_admin.id, "NORMAL")

    def test_same_role_conflicts(self, engine, actor, admin_user, normal_user):
        with pytest.raises(ConflictError) as exc_info:
            engine.change_role(actor(admin_user), normal_user.id, "NORMAL")
        assert exc_info.value.message == "User already has role NORMAL"

    def test_unknown_role_is_validation_error(self, engine, actor, admin_user, normal_user):
        with pytest.raises(ValidationError) as exc_info:
            engine.change_role(actor(admin_user), normal_user.id, "SUPERUSER")
        assert exc_info.value.context["allowed"] == ["NORMAL", "VOLUNTEER", "ADMIN"]


class TestDeleteUser:

    @pytest.fixture
    def populated_user(self, file_service, actor, normal_user, volunteer_user, make_file, make_tag):
        """normal_user owns two files (one tagged) and likes volunteer_user's file."""
        tag = make_tag()
        make_file(tags=[tag])
        make_file(status="BANNED")
        liked = make_file(owner=volunteer_user, status="APPROVED")
        file_service.toggle_like(actor(normal_user), liked.id)
        return normal_user, tag, liked

    def test_cascade_removes_files_likes_and_user(self, db_session, engine, actor, admin_user, populated_user):
        user, tag, liked = populated_user
        user_id = user.id

        snapshot = engine.delete_user(actor(admin_user), user_id)

        assert snapshot["id"] == user_id
        assert len(snapshot["deleted_files"]) == 2
        assert db_session.get(User, user_id) is None
        assert db_session.query(File).filter(File.owner_id == user_id).count() == 0
        assert liked.like_count == 0
        assert tag.usage_count == 0

        operations = [r.operation_type for r in _records(db_session)]
        assert operations.count("FILE_DELETE") == 2
        user_record = _records(db_session, "USER", user_id)[-1]
        assert (user_record.old_value, user_record.new_value, user_record.operation_type) == (
            "NORMAL", "DELETED", "USER_DELETE"
        )

    def test_failure_rolls_back_whole_cascade(self, db_session, engine, actor, admin_user, populated_user, monkeypatch):
        user, tag, liked = populated_user
        user_id = user.id
        original_append = AuditLedger.append

        def failing_append(self, subject_type, subject_id, actor_id, old_value, new_value, operation_type, *args):
            if operation_type == OperationType.USER_DELETE:
                raise SQLAlchemyError("disk full")
            return original_append(self, subject_type, subject_id, actor_id, old_value, new_value, operation_type, *args)

        monkeypatch.setattr(AuditLedger, "append", failing_append)

        with pytest.raises(StorageError):
            engine.delete_user(actor(admin_user), user_id)

        assert db_session.get(User, user_id) is not None
        assert db_session.query(File).filter(File.owner_id == user_id).count() == 2
        assert liked.like_count == 1
        assert tag.usage_count == 1
        assert _records(db_session) == []

    def test_volunteer_cannot_delete_user(self, engine, actor, volunteer_user, normal_user):
        with pytest.raises(ForbiddenError):
            engine.delete_user(actor(volunteer_user), normal_user.id)

    def test_missing_user(self, engine, actor, admin_user):
        with pytest.raises(NotFoundError):
            engine.delete_user(actor(admin_user), 999)


class TestUnitOfWorkFactory:

    def test_each_call_opens_a_fresh_unit(self, db_session):
        factory = unit_of_work_factory(db_session)
        first, second = factory(), factory()
        assert first is not second
        assert first.session is second.session is db_session
