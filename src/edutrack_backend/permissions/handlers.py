from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type
from sqlalchemy.orm import Session, Query
from edutrack_backend.permissions.principal import Principal
from edutrack_backend.api.exceptions import ForbiddenException


class PermissionHandler(ABC):
    """Base class for entity-specific permission handlers"""

    def __init__(self, entity: Type[Any]):
        self.entity = entity
        self.resource_name = entity.__tablename__

    @abstractmethod
    def can_perform_action(self, principal: Principal, action: str, document: Any) -> bool:
        """Decide whether principal may perform action on one loaded document.

        Args:
            principal: Current principal
            action: Action to perform (e.g., get, update, progress)
            document: The stored document the action targets
        """
        pass

    @abstractmethod
    def build_query(self, principal: Principal, action: str, db: Session) -> Query:
        """Build a filtered query based on permissions"""
        pass

    def check_admin(self, principal: Principal) -> bool:
        """Check if principal has admin privileges"""
        return principal.is_admin

    def check_general_permission(self, principal: Principal, action: str) -> bool:
        """Check if the principal's role may attempt action on this resource at all"""
        return principal.permitted(self.resource_name, action)

    def is_live(self, document: Any) -> bool:
        """Archived or soft-deleted documents behave as missing"""
        return True

    def forbid(self, action: str) -> ForbiddenException:
        return ForbiddenException(detail={"error": "Forbidden", "entity": self.resource_name, "action": action})


class PermissionRegistry:
    """Registry for managing entity permission handlers"""

    _instance = None
    _handlers: Dict[Type[Any], PermissionHandler] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def register(self, entity: Type[Any], handler: PermissionHandler):
        """Register a permission handler for an entity"""
        self._handlers[entity] = handler

    def get_handler(self, entity: Type[Any]) -> Optional[PermissionHandler]:
        """Get the permission handler for an entity"""
        return self._handlers.get(entity)

    def check_permissions(self, principal: Principal, entity: Type[Any], action: str, db: Session) -> Query:
        """Check permissions and return filtered query"""
        handler = self.get_handler(entity)
        if not handler:
            # Fallback to admin-only if no handler registered
            if not principal.is_admin:
                raise ForbiddenException(detail={"error": "Forbidden", "entity": entity.__tablename__})
            return db.query(entity)

        return handler.build_query(principal, action, db)


# Global registry instance
permission_registry = PermissionRegistry()
