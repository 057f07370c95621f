"""
Entry points of the access policy.

Listing goes through check_permissions, which returns a query already
narrowed to what the principal may see. Single documents go through
get_authorized: missing documents are NotFound (404), visible-but-denied
ones are Forbidden (403).
"""

import logging
from typing import Any, Optional, Type, TypeVar
from sqlalchemy.orm import Session, Query

from edutrack_backend.api.exceptions import ForbiddenException, NotFoundException
from edutrack_backend.permissions.handlers import permission_registry
from edutrack_backend.permissions.handlers_impl import (
    CoursePermissionHandler,
    EnrollmentPermissionHandler,
    UserPermissionHandler
)
from edutrack_backend.permissions.principal import Principal, Role
from edutrack_backend.model.course import Course
from edutrack_backend.model.enrollment import Enrollment
from edutrack_backend.model.user import User

logger = logging.getLogger(__name__)

T = TypeVar("T")


def initialize_permission_handlers():
    """Initialize and register all permission handlers"""
    permission_registry.register(User, UserPermissionHandler(User))
    permission_registry.register(Course, CoursePermissionHandler(Course))
    permission_registry.register(Enrollment, EnrollmentPermissionHandler(Enrollment))


def check_permissions(permissions: Principal, entity: Any, action: str, db: Session) -> Query:
    """
    Main entry point for listing.
    Uses the registry pattern to delegate to appropriate handlers.
    """
    return permission_registry.check_permissions(permissions, entity, action, db)


def check_role(permissions: Principal, resource: str, action: str):
    """Role gate for operations that are not bound to a stored document"""
    if not permissions.permitted(resource, action):
        logger.warning(f"{permissions.role.value} {permissions.user_id} denied {resource}:{action}")
        raise ForbiddenException(detail={"error": "Forbidden", "entity": resource, "action": action})


def can_access(permissions: Principal, action: str, document: Any) -> bool:
    handler = permission_registry.get_handler(type(document))
    if handler is None:
        return permissions.is_admin
    return handler.can_perform_action(permissions, action, document)


def get_authorized(permissions: Principal, entity: Type[T], id: str, action: str, db: Session) -> T:
    """Load one document and apply the single-document decision procedure."""
    document: Optional[T] = db.query(entity).filter(entity.id == id).first()

    handler = permission_registry.get_handler(entity)

    if document is None or (handler is not None and not handler.is_live(document)):
        raise NotFoundException(detail=f"{entity.__name__} not found")

    if not can_access(permissions, action, document):
        logger.warning(f"{permissions.role.value} {permissions.user_id} denied {entity.__tablename__}:{action} on {id}")
        raise ForbiddenException(detail={"error": "Forbidden", "entity": entity.__tablename__, "action": action})

    return document


def check_student_scope(permissions: Principal, student_id: str):
    """Parents may only look at their own child."""
    if permissions.role == Role.parent and permissions.child_id != student_id:
        raise ForbiddenException(detail="Parents may only access their own child")
    if permissions.role == Role.student and permissions.user_id != student_id:
        raise ForbiddenException(detail="Students may only access their own records")


initialize_permission_handlers()
