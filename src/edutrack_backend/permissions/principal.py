from enum import Enum
from typing import Dict, Iterable, Optional, Set, Union
from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    """Closed set of platform roles carried in identity-gateway claims."""

    super_admin = "SuperAdmin"
    institution_admin = "InstitutionAdmin"
    teacher = "Teacher"
    student = "Student"
    parent = "Parent"

    @classmethod
    def from_claim(cls, value: Optional[str]) -> "Role":
        """Parse a role claim, tolerating legacy spellings such as SUPER_ADMIN or teacher.

        A missing claim maps to Student. Unknown values raise ValueError.
        """
        if value is None or value == "":
            return cls.student

        if isinstance(value, Role):
            return value

        normalized = str(value).replace("_", "").replace("-", "").lower()
        for role in cls:
            if role.value.lower() == normalized:
                return role

        raise ValueError(f"Unknown role '{value}'")


SUPER_ADMIN = Role.super_admin
INSTITUTION_ADMIN = Role.institution_admin
TEACHER = Role.teacher
STUDENT = Role.student
PARENT = Role.parent

ADMINS = frozenset({SUPER_ADMIN, INSTITUTION_ADMIN})
STAFF = frozenset({SUPER_ADMIN, INSTITUTION_ADMIN, TEACHER})
EVERYONE = frozenset(Role)

# resource -> action -> roles allowed to attempt the action
ROLE_PERMISSIONS: Dict[str, Dict[str, frozenset]] = {
    "users": {
        "list": ADMINS,
        "get": EVERYONE,
        "create": ADMINS,
        "import": ADMINS,
        "update": EVERYONE,
        "delete": frozenset({SUPER_ADMIN}),
    },
    "courses": {
        "list": frozenset({SUPER_ADMIN, INSTITUTION_ADMIN, TEACHER, STUDENT}),
        "get": frozenset({SUPER_ADMIN, INSTITUTION_ADMIN, TEACHER, STUDENT}),
        "create": STAFF,
        "update": STAFF,
        "delete": STAFF,
        "publish": STAFF,
        "stats": STAFF,
        "enroll": STAFF,
    },
    "enrollments": {
        "list": EVERYONE,
        "get": EVERYONE,
        "create": STAFF,
        "delete": STAFF,
        "progress": frozenset({TEACHER}),
        "student": EVERYONE,
    },
    "analytics": {
        "institution": ADMINS,
        "teachers": ADMINS,
        "student": EVERYONE,
        "course": STAFF,
    },
    "claims": {
        "register": frozenset({SUPER_ADMIN}),
        "set": frozenset({SUPER_ADMIN}),
    },
}


class Principal(BaseModel):
    """The authenticated caller, built from verified identity-gateway claims."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: Optional[str] = None
    role: Role = Role.student
    institution_id: Optional[str] = None
    child_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.super_admin

    @property
    def is_institution_admin(self) -> bool:
        return self.role == Role.institution_admin

    def has_role(self, *roles: Union[Role, Iterable[Role]]) -> bool:
        allowed: Set[Role] = set()
        for role in roles:
            if isinstance(role, Role):
                allowed.add(role)
            else:
                allowed.update(role)
        return self.role in allowed

    def permitted(self, resource: str, action: str) -> bool:
        return self.role in ROLE_PERMISSIONS.get(resource, {}).get(action, frozenset())

    def same_institution(self, institution_id: Optional[str]) -> bool:
        return self.institution_id is not None and self.institution_id == institution_id
