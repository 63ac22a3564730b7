"""Unit tests for category and tag management"""

import pytest

from domain.moderation.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from models import AuditRecord


class TestCategoryService:

    def test_create_nested_category(self, category_service, actor, volunteer_user, category):
        child = category_service.create_category(actor(volunteer_user), " Calculus ", parent_id=category.id)

        assert child["name"] == "Calculus"
        assert child["parent_id"] == category.id

    def test_duplicate_name_conflicts(self, category_service, actor, volunteer_user, category):
        with pytest.raises(ConflictError):
            category_service.create_category(actor(volunteer_user), category.name)

    def test_normal_user_cannot_create(self, category_service, actor, normal_user):
        with pytest.raises(ForbiddenError):
            category_service.create_category(actor(normal_user), "Slides")

    def test_cycle_is_rejected(self, category_service, actor, volunteer_user, category):
        child = category_service.create_category(actor(volunteer_user), "Child", parent_id=category.id)

        with pytest.raises(ValidationError):
            category_service.update_category(actor(volunteer_user), category.id, parent_id=child["id"])

    def test_move_to_root(self, category_service, actor, volunteer_user, category):
        child = category_service.create_category(actor(volunteer_user), "Child", parent_id=category.id)
        moved = category_service.update_category(actor(volunteer_user), child["id"], parent_id=None)
        assert moved["parent_id"] is None

    def test_update_missing_is_not_found_before_forbidden(self, category_service, actor, normal_user):
        with pytest.raises(NotFoundError):
            category_service.update_category(actor(normal_user), 999, name="x")

    def test_delete_refused_while_holding_files(self, category_service, actor, admin_user, category, make_file):
        make_file()
        with pytest.raises(ConflictError):
            category_service.delete_category(actor(admin_user), category.id)

    def test_delete_refused_with_children(self, category_service, actor, admin_user, category):
        category_service.create_category(actor(admin_user), "Child", parent_id=category.id)
        with pytest.raises(ConflictError):
            category_service.delete_category(actor(admin_user), category.id)

    def test_delete_empty_category_is_not_ledgered(self, db_session, category_service, actor, admin_user, category):
        category_service.delete_category(actor(admin_user), category.id)

        assert category_service.list_categories() == []
        assert db_session.query(AuditRecord).count() == 0


class TestTagService:

    def test_create_and_rename(self, tag_service, actor, volunteer_user):
        tag = tag_service.create_tag(actor(volunteer_user), "exam")
        renamed = tag_service.update_tag(actor(volunteer_user), tag["id"], name="exams", enabled=False)

        assert renamed["name"] == "exams"
        assert renamed["enabled"] is False

    def test_blank_name(self, tag_service, actor, volunteer_user):
        with pytest.raises(ValidationError):
            tag_service.create_tag(actor(volunteer_user), "  ")

    def test_tag_in_use_cannot_be_deleted(self, tag_service, actor, admin_user, make_file, make_tag):
        tag = make_tag()
        make_file(tags=[tag])

        with pytest.raises(ConflictError) as exc_info:
            tag_service.delete_tag(actor(admin_user), tag.id)
        assert exc_info.value.context["files"] == 1

    def test_delete_unused_tag(self, tag_service, actor, admin_user, make_tag):
        tag = make_tag()
        tag_service.delete_tag(actor(admin_user), tag.id)
        assert tag_service.list_tags() == []

    def test_volunteer_cannot_delete(self, tag_service, actor, volunteer_user, make_tag):
        tag = make_tag()
        with pytest.raises(ForbiddenError):
            tag_service.delete_tag(actor(volunteer_user), tag.id)
