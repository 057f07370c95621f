"""
Identity gateway abstraction.

The identity provider owns credentials and the role claim set
({role, institutionId, childId}). The backend only verifies tokens and
writes claims through this interface.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


ROLE_CLAIM = "role"
INSTITUTION_CLAIM = "institutionId"
CHILD_CLAIM = "childId"


class IdentityGatewayError(Exception):
    """Base class for identity provider failures."""


class InvalidTokenError(IdentityGatewayError):
    """Token is malformed, expired or not signed by the provider."""


class InvalidCredentialsError(IdentityGatewayError):
    """Email/password pair was rejected."""


class DuplicateIdentityError(IdentityGatewayError):
    """An account with that email already exists."""


class IdentityNotFoundError(IdentityGatewayError):
    """No account exists for the given subject."""


class IdentityClaims(BaseModel):
    subject: str
    email: Optional[str] = None
    role: Optional[str] = None
    institution_id: Optional[str] = None
    child_id: Optional[str] = None
    claims: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_token_claims(cls, claims: Dict[str, Any]) -> "IdentityClaims":
        return cls(
            subject=claims["sub"],
            email=claims.get("email"),
            role=claims.get(ROLE_CLAIM),
            institution_id=claims.get(INSTITUTION_CLAIM),
            child_id=claims.get(CHILD_CLAIM),
            claims=claims,
        )


class LoginResult(BaseModel):
    token: str
    claims: IdentityClaims


class IdentityGateway(ABC):
    """Client for the external identity provider with an explicit lifecycle."""

    async def initialize(self) -> None:
        """Open connections and fetch provider metadata."""

    async def close(self) -> None:
        """Release connections."""

    @abstractmethod
    async def verify(self, token: str) -> IdentityClaims:
        """Verify a bearer token and return its claims. Raises InvalidTokenError."""

    @abstractmethod
    async def login(self, email: str, password: str) -> LoginResult:
        """Exchange credentials for a token. Raises InvalidCredentialsError."""

    @abstractmethod
    async def create_user(self, email: str, password: Optional[str] = None, name: Optional[str] = None) -> str:
        """Create a credential and return its subject. Raises DuplicateIdentityError."""

    @abstractmethod
    async def set_claims(self, subject: str, role: str, institution_id: Optional[str] = None, child_id: Optional[str] = None) -> None:
        """Replace the role claim set of a subject."""

    @abstractmethod
    async def disable_user(self, subject: str) -> None:
        """Prevent further logins for a subject."""

    @abstractmethod
    async def send_setup_email(self, subject: str) -> None:
        """Ask the provider to mail an account setup (set password) link."""
