"""
Handler-level permission tests

These tests exercise PermissionHandlers' can_perform_action and build_query
logic using lightweight principals, transient documents and mocked database
sessions.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from edutrack_backend.api.exceptions import ForbiddenException
from edutrack_backend.permissions.handlers_impl import (
    CoursePermissionHandler,
    EnrollmentPermissionHandler,
    UserPermissionHandler,
)
from edutrack_backend.permissions.principal import Principal, Role
from edutrack_backend.model.course import Course
from edutrack_backend.model.enrollment import Enrollment
from edutrack_backend.model.user import User


def make_db():
    """Create a MagicMock DB session with common methods."""
    db = MagicMock()
    q = MagicMock()
    q.filter.return_value = q
    q.order_by.return_value = q
    q.limit.return_value = q
    q.all.return_value = []
    q.first.return_value = None
    db.query.return_value = q
    return db


def principal(role, user_id="u1", institution_id="inst-1", child_id=None):
    return Principal(user_id=user_id, role=role, institution_id=institution_id, child_id=child_id)


def course(teacher_id="t1", institution_id="inst-1", published=False):
    return Course(id="c1", title="Algebra", teacher_id=teacher_id, institution_id=institution_id, is_published=published)


def enrollment(teacher_id="t1", student_id="s1", institution_id="inst-1"):
    return Enrollment(id="e1", course_id="c1", student_id=student_id, teacher_id=teacher_id,
                      institution_id=institution_id, progress=0.0, status="active")


class TestCoursePermissionHandler:

    handler = CoursePermissionHandler(Course)

    def test_super_admin_may_do_anything(self):
        admin = principal(Role.super_admin, institution_id=None)
        for action in ("get", "update", "delete", "publish", "stats"):
            assert self.handler.can_perform_action(admin, action, course(institution_id="other"))

    def test_published_course_readable_by_teachers_and_students(self):
        for role in (Role.teacher, Role.student):
            assert self.handler.can_perform_action(principal(role, user_id="x", institution_id="other"), "get", course(published=True))

    def test_unpublished_course_hidden_from_students_and_other_teachers(self):
        assert not self.handler.can_perform_action(principal(Role.student, user_id="s1"), "get", course())
        assert not self.handler.can_perform_action(principal(Role.teacher, user_id="t2"), "get", course())

    def test_owner_may_read_and_mutate_draft(self):
        owner = principal(Role.teacher, user_id="t1")
        for action in ("get", "update", "delete", "publish", "stats"):
            assert self.handler.can_perform_action(owner, action, course())

    def test_teacher_cannot_mutate_published_course_of_someone_else(self):
        other = principal(Role.teacher, user_id="t2")
        assert not self.handler.can_perform_action(other, "update", course(published=True))

    def test_institution_admin_is_tenant_scoped(self):
        admin = principal(Role.institution_admin, user_id="ia")
        assert self.handler.can_perform_action(admin, "update", course())
        assert not self.handler.can_perform_action(admin, "update", course(institution_id="inst-2"))

    def test_institution_admin_cannot_read_published_course_of_other_tenant(self):
        admin = principal(Role.institution_admin, user_id="ia")
        assert self.handler.can_perform_action(admin, "get", course(published=True))
        assert not self.handler.can_perform_action(admin, "get", course(institution_id="inst-2", published=True))

    def test_parent_has_no_course_access(self):
        assert not self.handler.can_perform_action(principal(Role.parent), "get", course(published=True))

    def test_parent_listing_is_forbidden(self):
        with pytest.raises(ForbiddenException):
            self.handler.build_query(principal(Role.parent), "list", make_db())

    def test_student_listing_is_filtered(self):
        db = make_db()
        query = self.handler.build_query(principal(Role.student), "list", db)
        assert query is db.query.return_value
        # archived filter plus published filter
        assert db.query.return_value.filter.call_count == 2

    def test_archived_course_is_not_live(self):
        archived = course()
        archived.archived_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert not self.handler.is_live(archived)
        assert self.handler.is_live(course())


class TestEnrollmentPermissionHandler:

    handler = EnrollmentPermissionHandler(Enrollment)

    def test_only_exact_owner_may_record_progress(self):
        assert self.handler.can_perform_action(principal(Role.teacher, user_id="t1"), "progress", enrollment())
        assert not self.handler.can_perform_action(principal(Role.teacher, user_id="t2"), "progress", enrollment())

    def test_admins_may_not_record_progress(self):
        assert not self.handler.can_perform_action(principal(Role.super_admin, user_id="t1"), "progress", enrollment())
        assert not self.handler.can_perform_action(principal(Role.institution_admin, user_id="t1"), "progress", enrollment())

    def test_student_reads_own_enrollment_only(self):
        assert self.handler.can_perform_action(principal(Role.student, user_id="s1"), "get", enrollment())
        assert not self.handler.can_perform_action(principal(Role.student, user_id="s2"), "get", enrollment())

    def test_student_cannot_unenroll(self):
        assert not self.handler.can_perform_action(principal(Role.student, user_id="s1"), "delete", enrollment())

    def test_parent_reads_child_enrollment_only(self):
        assert self.handler.can_perform_action(principal(Role.parent, user_id="p1", child_id="s1"), "get", enrollment())
        assert not self.handler.can_perform_action(principal(Role.parent, user_id="p1", child_id="s9"), "get", enrollment())
        assert not self.handler.can_perform_action(principal(Role.parent, user_id="p1"), "get", enrollment())

    def test_institution_admin_is_tenant_scoped(self):
        admin = principal(Role.institution_admin, user_id="ia")
        assert self.handler.can_perform_action(admin, "delete", enrollment())
        assert not self.handler.can_perform_action(admin, "delete", enrollment(institution_id="inst-2"))

    def test_parent_without_child_sees_nothing(self):
        db = make_db()
        self.handler.build_query(principal(Role.parent), "list", db)
        db.query.return_value.filter.assert_called_once()

    def test_progress_query_requires_teacher_role(self):
        with pytest.raises(ForbiddenException):
            self.handler.build_query(principal(Role.institution_admin), "progress", make_db())


class TestUserPermissionHandler:

    handler = UserPermissionHandler(User)

    def user(self, id="u2", institution_id="inst-1", deleted=False):
        return User(id=id, email=f"{id}@example.org", role="Student", institution_id=institution_id, deleted=deleted)

    def test_everyone_reads_and_updates_self(self):
        for role in Role:
            me = principal(role, user_id="u2")
            assert self.handler.can_perform_action(me, "get", self.user())
            assert self.handler.can_perform_action(me, "update", self.user())

    def test_teacher_cannot_read_other_users(self):
        assert not self.handler.can_perform_action(principal(Role.teacher), "get", self.user())

    def test_institution_admin_reads_own_tenant(self):
        admin = principal(Role.institution_admin, user_id="ia")
        assert self.handler.can_perform_action(admin, "get", self.user())
        assert not self.handler.can_perform_action(admin, "get", self.user(institution_id="inst-2"))

    def test_only_super_admin_deletes(self):
        assert self.handler.can_perform_action(principal(Role.super_admin), "delete", self.user())
        assert not self.handler.can_perform_action(principal(Role.institution_admin), "delete", self.user())
        assert not self.handler.can_perform_action(principal(Role.student, user_id="u2"), "delete", self.user())

    def test_soft_deleted_user_is_not_live(self):
        assert not self.handler.is_live(self.user(deleted=True))

    def test_listing_requires_admin_role(self):
        with pytest.raises(ForbiddenException):
            self.handler.build_query(principal(Role.teacher), "list", make_db())
