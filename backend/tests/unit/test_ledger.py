"""Unit tests for the append-only audit ledger"""

from datetime import datetime, timedelta, timezone

import pytest

from domain.moderation.enums import OperationType, SubjectType
from models.audit_record import AuditRecord, ImmutableRecordError
from store.ledger import AuditLedger


T0 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def ledger(db_session):
    return AuditLedger(db_session)


def _append(ledger, subject_id=1, operation=OperationType.APPROVE, actor_id=10, at=T0, subject_type=SubjectType.FILE):
    return ledger.append(subject_type, subject_id, actor_id, "PENDING", "APPROVED", operation, "ok", at)


class TestAppend:

    def test_append_assigns_id_and_fields(self, ledger):
        record = _append(ledger)

        assert record.id is not None
        assert record.subject_type == "FILE"
        assert record.operation_type == "APPROVE"
        assert record.remark == "ok"

    def test_created_at_defaults_to_now(self, ledger):
        record = ledger.append(SubjectType.USER, 3, 10, "NORMAL", "BANNED", OperationType.USER_BAN_UPLOAD)
        assert record.created_at is not None


class TestImmutability:

    def test_update_is_rejected(self, db_session, ledger):
        record = _append(ledger)
        db_session.commit()

        record.remark = "rewritten"
        with pytest.raises(ImmutableRecordError):
            db_session.flush()
        db_session.rollback()

    def test_delete_is_rejected(self, db_session, ledger):
        record = _append(ledger)
        db_session.commit()

        db_session.delete(record)
        with pytest.raises(ImmutableRecordError):
            db_session.flush()
        db_session.rollback()

    def test_ledger_has_no_mutators(self):
        assert not hasattr(AuditLedger, "update")
        assert not hasattr(AuditLedger, "delete")


class TestListBySubject:

    def test_ordered_by_created_at_then_id(self, ledger):
        first = _append(ledger, at=T0)
        same_time = _append(ledger, at=T0)
        later = _append(ledger, at=T0 + timedelta(minutes=5))
        _append(ledger, subject_id=2)

        newest = ledger.list_by_subject(SubjectType.FILE, 1)
        oldest = ledger.list_by_subject(SubjectType.FILE, 1, newest_first=False)

        assert [r.id for r in newest] == [later.id, same_time.id, first.id]
        assert [r.id for r in oldest] == [first.id, same_time.id, later.id]

    def test_subject_type_separates_histories(self, ledger):
        _append(ledger, subject_id=1, subject_type=SubjectType.FILE)
        assert ledger.list_by_subject(SubjectType.USER, 1) == []


class TestQuery:

    def test_filters_and_total(self, ledger):
        _append(ledger, actor_id=10, operation=OperationType.APPROVE)
        _append(ledger, actor_id=10, operation=OperationType.REJECT)
        _append(ledger, actor_id=11, operation=OperationType.APPROVE)

        records, total = ledger.query(operation_type=OperationType.APPROVE)
        assert total == 2
        assert {r.actor_id for r in records} == {10, 11}

        records, total = ledger.query(actor_id=10)
        assert total == 2

    def test_time_window_is_half_open(self, ledger):
        _append(ledger, at=T0)
        _append(ledger, at=T0 + timedelta(hours=1))

        records, total = ledger.query(start=T0, end=T0 + timedelta(hours=1))
        assert total == 1
        assert records[0].created_at.replace(tzinfo=None) == T0.replace(tzinfo=None)

    def test_pagination(self, ledger):
        for i in range(5):
            _append(ledger, at=T0 + timedelta(minutes=i))

        page, total = ledger.query(offset=2, limit=2)
        assert total == 5
        assert len(page) == 2
        assert page[0].created_at.replace(tzinfo=None) == (T0 + timedelta(minutes=2)).replace(tzinfo=None)

    def test_query_is_empty_without_matches(self, db_session, ledger):
        records, total = ledger.query(subject_type=SubjectType.USER)
        assert records == []
        assert total == 0
        assert db_session.query(AuditRecord).count() == 0
