"""Unit tests for the file and upload-status state tables"""

import pytest

from domain.moderation import (
    ALLOWED_TRANSITIONS,
    ConflictError,
    FileStatus,
    OperationType,
    Transition,
    UploadStatus,
    can_transition,
    resolve_operation_type,
    target_file_status,
    target_upload_status,
)
from domain.moderation.state_machine import DEFAULT_REMARKS, get_allowed_transitions


class TestFileStatusGraph:
    """Edges of the file audit status graph"""

    def test_pending_edges(self):
        assert can_transition(FileStatus.PENDING, FileStatus.APPROVED) is True
        assert can_transition(FileStatus.PENDING, FileStatus.REJECTED) is True
        assert can_transition(FileStatus.PENDING, FileStatus.BANNED) is False

    def test_approved_and_banned_toggle(self):
        assert can_transition(FileStatus.APPROVED, FileStatus.BANNED) is True
        assert can_transition(FileStatus.BANNED, FileStatus.APPROVED) is True
        assert can_transition(FileStatus.APPROVED, FileStatus.PENDING) is False

    def test_rejected_only_deletes(self):
        assert get_allowed_transitions(FileStatus.REJECTED) == [FileStatus.DELETED]

    def test_every_live_status_can_be_deleted(self):
        for status in FileStatus:
            if status != FileStatus.DELETED:
                assert can_transition(status, FileStatus.DELETED) is True

    def test_deleted_is_terminal(self):
        assert ALLOWED_TRANSITIONS[FileStatus.DELETED] == []
        for status in FileStatus:
            assert can_transition(FileStatus.DELETED, status) is False


class TestTargetFileStatus:
    """Named transitions resolve to a target or raise ConflictError"""

    @pytest.mark.parametrize("transition,current,expected", [
        (Transition.FILE_APPROVE, FileStatus.PENDING, FileStatus.APPROVED),
        (Transition.FILE_REJECT, FileStatus.PENDING, FileStatus.REJECTED),
        (Transition.FILE_BAN, FileStatus.APPROVED, FileStatus.BANNED),
        (Transition.FILE_UNBAN, FileStatus.BANNED, FileStatus.APPROVED),
        (Transition.FILE_DELETE, FileStatus.REJECTED, FileStatus.DELETED),
    ])
    def test_legal_transitions(self, transition, current, expected):
        assert target_file_status(transition, current) == expected

    def test_approve_twice_conflicts_with_current_status(self):
        with pytest.raises(ConflictError) as exc_info:
            target_file_status(Transition.FILE_APPROVE, FileStatus.APPROVED)

        assert exc_info.value.message == "Cannot approve file: current status APPROVED"
        assert exc_info.value.context["current_status"] == "APPROVED"

    def test_ban_pending_conflicts(self):
        with pytest.raises(ConflictError):
            target_file_status(Transition.FILE_BAN, FileStatus.PENDING)

    def test_unban_approved_conflicts(self):
        with pytest.raises(ConflictError):
            target_file_status(Transition.FILE_UNBAN, FileStatus.APPROVED)

    def test_delete_deleted_conflicts(self):
        with pytest.raises(ConflictError):
            target_file_status(Transition.FILE_DELETE, FileStatus.DELETED)


class TestUploadStatus:

    def test_ban_and_unban(self):
        assert target_upload_status(Transition.USER_BAN_UPLOAD, UploadStatus.NORMAL) == UploadStatus.BANNED
        assert target_upload_status(Transition.USER_UNBAN_UPLOAD, UploadStatus.BANNED) == UploadStatus.NORMAL

    def test_repeat_ban_conflicts(self):
        with pytest.raises(ConflictError) as exc_info:
            target_upload_status(Transition.USER_BAN_UPLOAD, UploadStatus.BANNED)
        assert exc_info.value.message == "Upload status is already BANNED"


class TestOperationTypeClassification:

    @pytest.mark.parametrize("old,new,expected", [
        (FileStatus.PENDING, FileStatus.APPROVED, OperationType.APPROVE),
        (FileStatus.PENDING, FileStatus.REJECTED, OperationType.REJECT),
        (FileStatus.APPROVED, FileStatus.BANNED, OperationType.BAN),
        (FileStatus.BANNED, FileStatus.APPROVED, OperationType.UNBAN),
        (FileStatus.BANNED, FileStatus.DELETED, OperationType.FILE_DELETE),
    ])
    def test_known_pairs(self, old, new, expected):
        assert resolve_operation_type(old, new) == expected

    def test_unrecognised_pair_is_unknown(self):
        assert resolve_operation_type(FileStatus.REJECTED, FileStatus.APPROVED) == OperationType.UNKNOWN

    def test_every_graph_edge_is_classified(self):
        for old, targets in ALLOWED_TRANSITIONS.items():
            for new in targets:
                assert resolve_operation_type(old, new) != OperationType.UNKNOWN

    def test_default_remarks_cover_moderation_transitions(self):
        assert DEFAULT_REMARKS[Transition.FILE_APPROVE] == "File approved"
        assert DEFAULT_REMARKS[Transition.USER_CHANGE_ROLE] == "User type updated"
