from typing import Any
from sqlalchemy.orm import Session, Query
from edutrack_backend.permissions.handlers import PermissionHandler
from edutrack_backend.permissions.query_builders import (
    CoursePermissionQueryBuilder,
    EnrollmentPermissionQueryBuilder,
    UserPermissionQueryBuilder
)
from edutrack_backend.permissions.principal import Principal, Role
from edutrack_backend.model.course import Course
from edutrack_backend.model.enrollment import Enrollment
from edutrack_backend.model.user import User


READ_ACTIONS = ("list", "get")


class CoursePermissionHandler(PermissionHandler):
    """Courses: published ones are readable by teachers and students, institution admins stay in their tenant"""

    def is_live(self, document: Course) -> bool:
        return document.archived_at is None

    def is_owner(self, principal: Principal, course: Course) -> bool:
        return principal.role == Role.teacher and course.teacher_id == principal.user_id

    def can_perform_action(self, principal: Principal, action: str, document: Course) -> bool:
        if not self.check_general_permission(principal, action):
            return False

        if self.check_admin(principal):
            return True

        if principal.is_institution_admin:
            return principal.same_institution(document.institution_id)

        if action in READ_ACTIONS and document.is_published:
            return True

        return self.is_owner(principal, document)

    def build_query(self, principal: Principal, action: str, db: Session) -> Query:
        if not self.check_general_permission(principal, action):
            raise self.forbid(action)

        query = db.query(self.entity).filter(Course.archived_at.is_(None))

        if action in READ_ACTIONS:
            return CoursePermissionQueryBuilder.filter_readable(principal, query)

        return CoursePermissionQueryBuilder.filter_mutable(principal, query)


class EnrollmentPermissionHandler(PermissionHandler):
    """Enrollments: owned by the enrolling teacher, read by the student and the student's parent"""

    def is_owner(self, principal: Principal, enrollment: Enrollment) -> bool:
        return principal.role == Role.teacher and enrollment.teacher_id == principal.user_id

    def can_perform_action(self, principal: Principal, action: str, document: Enrollment) -> bool:
        if not self.check_general_permission(principal, action):
            return False

        # Progress belongs to the owning teacher alone, admins included
        if action == "progress":
            return self.is_owner(principal, document)

        if self.check_admin(principal):
            return True

        if principal.is_institution_admin:
            return principal.same_institution(document.institution_id)

        if self.is_owner(principal, document):
            return True

        if action in READ_ACTIONS or action == "student":
            if principal.role == Role.student:
                return document.student_id == principal.user_id
            if principal.role == Role.parent:
                return principal.child_id is not None and document.student_id == principal.child_id

        return False

    def build_query(self, principal: Principal, action: str, db: Session) -> Query:
        if not self.check_general_permission(principal, action):
            raise self.forbid(action)

        query = db.query(self.entity)

        if action == "progress":
            return query.filter(Enrollment.teacher_id == principal.user_id)

        if action in READ_ACTIONS or action == "student":
            return EnrollmentPermissionQueryBuilder.filter_visible(principal, query)

        return EnrollmentPermissionQueryBuilder.filter_mutable(principal, query)


class UserPermissionHandler(PermissionHandler):
    """Users: everyone sees themselves, institution admins their tenant, super admins everyone"""

    def is_live(self, document: User) -> bool:
        return not document.deleted

    def can_perform_action(self, principal: Principal, action: str, document: User) -> bool:
        if not self.check_general_permission(principal, action):
            return False

        if self.check_admin(principal):
            return True

        if action in READ_ACTIONS or action == "update":
            if document.id == principal.user_id:
                return True
            return principal.is_institution_admin and principal.same_institution(document.institution_id)

        return False

    def build_query(self, principal: Principal, action: str, db: Session) -> Query:
        if not self.check_general_permission(principal, action):
            raise self.forbid(action)

        return UserPermissionQueryBuilder.filter_visible(principal, db.query(self.entity))
