"""
Account provisioning against the identity gateway.

The gateway holds credentials and the authoritative role claim set; the
users collection mirrors it. Steps are not transactional: if a later step
fails, earlier ones stay applied and the failure is reported as a 500.
"""

import logging
from contextlib import contextmanager
from typing import Optional
from sqlalchemy.orm import Session

from edutrack_backend.api.crud import create_db, update_db
from edutrack_backend.api.exceptions import (
    BadRequestException,
    InternalServerException,
    NotFoundException,
    UnauthorizedException
)
from edutrack_backend.auth.gateway import (
    DuplicateIdentityError,
    IdentityGateway,
    IdentityGatewayError,
    IdentityNotFoundError,
    InvalidCredentialsError
)
from edutrack_backend.interface.auth import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    SetClaimsRequest,
    SetClaimsResponse
)
from edutrack_backend.model.user import User
from edutrack_backend.permissions.core import check_role
from edutrack_backend.permissions.principal import Principal, Role

logger = logging.getLogger(__name__)


@contextmanager
def gateway_errors(operation: str):
    """Translate identity gateway failures into HTTP errors."""
    try:
        yield
    except DuplicateIdentityError as e:
        raise BadRequestException(detail="Email already registered") from e
    except IdentityNotFoundError as e:
        raise NotFoundException(detail="User not found in identity provider") from e
    except IdentityGatewayError as e:
        logger.error(f"Identity gateway failed during {operation}: {e}")
        raise InternalServerException(detail=f"Identity provider error during {operation}") from e


async def provision_account(
    db: Session,
    gateway: IdentityGateway,
    email: str,
    role: Role,
    password: Optional[str] = None,
    institution_id: Optional[str] = None,
    child_id: Optional[str] = None,
    name: Optional[str] = None
) -> User:
    """Create the credential, write the claims, then persist the mirror document."""

    if db.query(User.id).filter(User.email == email).first() is not None:
        raise BadRequestException(detail="Email already registered")

    with gateway_errors("account creation"):
        subject = await gateway.create_user(email, password, name)
        await gateway.set_claims(subject, role.value, institution_id, child_id)
        if not password:
            await gateway.send_setup_email(subject)

    user = create_db(db, User(
        id=subject,
        email=email,
        name=name,
        role=role.value,
        institution_id=institution_id,
        child_id=child_id
    ))

    logger.info(f"Provisioned {role.value} account {subject} ({email})")
    return user


async def register(permissions: Principal, db: Session, gateway: IdentityGateway, entity: RegisterRequest) -> RegisterResponse:
    check_role(permissions, "claims", "register")

    user = await provision_account(
        db,
        gateway,
        email=entity.email,
        role=entity.role,
        password=entity.password,
        institution_id=entity.institution_id,
        child_id=entity.child_id,
        name=entity.name
    )

    return RegisterResponse(
        uid=user.id,
        email=user.email,
        role=Role(user.role),
        institution_id=user.institution_id,
        created_at=user.created_at
    )


async def login(gateway: IdentityGateway, entity: LoginRequest) -> LoginResponse:
    try:
        result = await gateway.login(entity.email, entity.password)
    except InvalidCredentialsError as e:
        logger.warning(f"Failed login for {entity.email}")
        raise UnauthorizedException("Invalid email or password") from e
    except IdentityGatewayError as e:
        logger.error(f"Identity gateway failed during login: {e}")
        raise InternalServerException(detail="Identity provider error during login") from e

    try:
        role = Role.from_claim(result.claims.role)
    except ValueError as e:
        raise UnauthorizedException("Unknown role claim") from e

    return LoginResponse(
        token=result.token,
        uid=result.claims.subject,
        email=result.claims.email or entity.email,
        role=role
    )


async def set_claims(permissions: Principal, db: Session, gateway: IdentityGateway, entity: SetClaimsRequest) -> SetClaimsResponse:
    check_role(permissions, "claims", "set")

    with gateway_errors("claim update"):
        await gateway.set_claims(entity.uid, entity.role.value, entity.institution_id, entity.child_id)

    user = db.query(User).filter(User.id == entity.uid).first()

    if user is not None:
        update_db(db, user, {
            "role": entity.role,
            "institution_id": entity.institution_id,
            "child_id": entity.child_id
        })
    else:
        logger.warning(f"Claims set for {entity.uid} which has no user document")

    logger.info(f"Claims of {entity.uid} set to {entity.role.value}/{entity.institution_id} by {permissions.user_id}")

    return SetClaimsResponse(
        uid=entity.uid,
        role=entity.role,
        institution_id=entity.institution_id,
        child_id=entity.child_id
    )
