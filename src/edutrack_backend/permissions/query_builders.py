from sqlalchemy import false, or_
from sqlalchemy.orm import Query

from edutrack_backend.model.course import Course
from edutrack_backend.model.enrollment import Enrollment
from edutrack_backend.model.user import User
from edutrack_backend.permissions.principal import Principal, Role


class CoursePermissionQueryBuilder:
    """Role scoped filters for the courses collection"""

    @classmethod
    def filter_readable(cls, principal: Principal, query: Query) -> Query:
        if principal.role == Role.super_admin:
            return query
        if principal.role == Role.institution_admin:
            return cls.filter_institution(principal, query)
        if principal.role == Role.teacher:
            return query.filter(or_(Course.teacher_id == principal.user_id, Course.is_published.is_(True)))
        if principal.role == Role.student:
            return query.filter(Course.is_published.is_(True))
        return query.filter(false())

    @classmethod
    def filter_mutable(cls, principal: Principal, query: Query) -> Query:
        if principal.role == Role.super_admin:
            return query
        if principal.role == Role.institution_admin:
            return cls.filter_institution(principal, query)
        if principal.role == Role.teacher:
            return query.filter(Course.teacher_id == principal.user_id)
        return query.filter(false())

    @classmethod
    def filter_institution(cls, principal: Principal, query: Query) -> Query:
        if principal.institution_id is None:
            return query.filter(false())
        return query.filter(Course.institution_id == principal.institution_id)


class EnrollmentPermissionQueryBuilder:
    """Role scoped filters for the enrollments collection"""

    @classmethod
    def filter_visible(cls, principal: Principal, query: Query) -> Query:
        if principal.role == Role.super_admin:
            return query
        if principal.role == Role.institution_admin:
            if principal.institution_id is None:
                return query.filter(false())
            return query.filter(Enrollment.institution_id == principal.institution_id)
        if principal.role == Role.teacher:
            return query.filter(Enrollment.teacher_id == principal.user_id)
        if principal.role == Role.student:
            return query.filter(Enrollment.student_id == principal.user_id)
        if principal.role == Role.parent and principal.child_id is not None:
            return query.filter(Enrollment.student_id == principal.child_id)
        return query.filter(false())

    @classmethod
    def filter_mutable(cls, principal: Principal, query: Query) -> Query:
        if principal.role in (Role.student, Role.parent):
            return query.filter(false())
        return cls.filter_visible(principal, query)


class UserPermissionQueryBuilder:
    """Role scoped filters for the users collection"""

    @classmethod
    def filter_visible(cls, principal: Principal, query: Query) -> Query:
        query = query.filter(User.deleted.is_(False))
        if principal.role == Role.super_admin:
            return query
        if principal.role == Role.institution_admin and principal.institution_id is not None:
            return query.filter(or_(User.institution_id == principal.institution_id, User.id == principal.user_id))
        return query.filter(User.id == principal.user_id)
