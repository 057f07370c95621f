from .gateway import (
    IdentityGateway,
    IdentityClaims,
    LoginResult,
    IdentityGatewayError,
    InvalidTokenError,
    InvalidCredentialsError,
    DuplicateIdentityError,
    IdentityNotFoundError,
)

__all__ = [
    "IdentityGateway",
    "IdentityClaims",
    "LoginResult",
    "IdentityGatewayError",
    "InvalidTokenError",
    "InvalidCredentialsError",
    "DuplicateIdentityError",
    "IdentityNotFoundError",
]
