import logging
from io import StringIO
from typing import Optional
import pandas as pd
from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.orm import Session

from edutrack_backend.api.crud import paginate, update_db
from edutrack_backend.api.exceptions import BadRequestException, ForbiddenException, InternalServerException
from edutrack_backend.auth.gateway import IdentityGateway, IdentityGatewayError, IdentityNotFoundError
from edutrack_backend.interface.base import Page, PageQuery
from edutrack_backend.interface.users import (
    UserCreate,
    UserGet,
    UserImportFailure,
    UserImportResult,
    UserList,
    UserQuery,
    UserUpdate
)
from edutrack_backend.model.base import utcnow
from edutrack_backend.model.user import User
from edutrack_backend.permissions.core import check_permissions, check_role, get_authorized
from edutrack_backend.permissions.principal import Principal, Role
from edutrack_backend.services.accounts import provision_account

logger = logging.getLogger(__name__)

# Roles an institution admin may hand out inside its own institution
INSTITUTION_ASSIGNABLE_ROLES = {Role.teacher, Role.student, Role.parent}

IMPORT_COLUMNS = ["email", "password", "role", "institutionId"]


def list_users(permissions: Principal, db: Session, params: UserQuery, page: PageQuery) -> Page[UserList]:
    query = check_permissions(permissions, User, "list", db)

    if params.role is not None:
        query = query.filter(User.role == params.role.value)
    if params.institution_id is not None:
        query = query.filter(User.institution_id == params.institution_id)

    return paginate(query, User, page, UserList)


def get_user(permissions: Principal, db: Session, id: str) -> UserGet:
    return UserGet.model_validate(get_authorized(permissions, User, id, "get", db))


def update_user(permissions: Principal, db: Session, id: str, entity: UserUpdate) -> UserGet:
    user = get_authorized(permissions, User, id, "update", db)
    return UserGet.model_validate(update_db(db, user, entity))


def _resolve_institution(permissions: Principal, entity: UserCreate) -> Optional[str]:
    institution_id = entity.institution_id or permissions.institution_id

    if permissions.is_admin:
        return institution_id

    if entity.role not in INSTITUTION_ASSIGNABLE_ROLES:
        raise ForbiddenException(detail=f"Institution admins cannot create {entity.role.value} accounts")

    if institution_id != permissions.institution_id:
        raise ForbiddenException(detail="Users can only be created within your institution")

    return institution_id


async def create_user(permissions: Principal, db: Session, gateway: IdentityGateway, entity: UserCreate) -> UserGet:
    check_role(permissions, "users", "create")

    institution_id = _resolve_institution(permissions, entity)

    user = await provision_account(
        db,
        gateway,
        email=entity.email,
        role=entity.role,
        password=entity.password,
        institution_id=institution_id,
        child_id=entity.child_id,
        name=entity.name
    )

    return UserGet.model_validate(user)


async def delete_user(permissions: Principal, db: Session, gateway: IdentityGateway, id: str) -> UserGet:
    user = get_authorized(permissions, User, id, "delete", db)

    try:
        await gateway.disable_user(user.id)
    except IdentityNotFoundError:
        logger.warning(f"User {id} has no identity to disable")
    except IdentityGatewayError as e:
        logger.error(f"Identity gateway failed to disable {id}: {e}")
        raise InternalServerException(detail="Identity provider error during user deletion") from e

    deleted = update_db(db, user, {"deleted": True, "deleted_at": utcnow()})
    logger.info(f"User {id} soft deleted by {permissions.user_id}")
    return UserGet.model_validate(deleted)


def _cell(row, column: str) -> Optional[str]:
    value = row.get(column)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


async def import_users(permissions: Principal, db: Session, gateway: IdentityGateway, content: bytes) -> UserImportResult:
    """Bulk account creation from CSV with columns email,password,role,institutionId[,childId,name]."""
    check_role(permissions, "users", "import")

    try:
        df = pd.read_csv(StringIO(content.decode("utf-8")), dtype=str, keep_default_na=False)
    except (UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise BadRequestException(detail=f"Could not parse CSV file: {e}")

    missing = [column for column in IMPORT_COLUMNS if column not in df.columns]
    if missing:
        raise BadRequestException(detail=f"CSV is missing columns: {', '.join(missing)}")

    imported = []
    skipped = []

    for index, row in df.iterrows():
        row_number = int(index) + 2
        email = _cell(row, "email")
        password = _cell(row, "password")
        role = _cell(row, "role")

        if not email or not password or not role:
            skipped.append(UserImportFailure(row=row_number, email=email, reason="Missing email, password or role"))
            continue

        try:
            entity = UserCreate(
                email=email,
                password=password,
                role=role,
                institution_id=_cell(row, "institutionId"),
                child_id=_cell(row, "childId"),
                name=_cell(row, "name")
            )
        except ValidationError as e:
            reason = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
            skipped.append(UserImportFailure(row=row_number, email=email, reason=reason))
            continue

        try:
            user = await provision_account(
                db,
                gateway,
                email=entity.email,
                role=entity.role,
                password=entity.password,
                institution_id=_resolve_institution(permissions, entity),
                child_id=entity.child_id,
                name=entity.name
            )
        except HTTPException as e:
            skipped.append(UserImportFailure(row=row_number, email=email, reason=str(e.detail)))
            continue

        imported.append(UserList.model_validate(user))

    logger.info(f"Bulk import by {permissions.user_id}: {len(imported)} imported, {len(skipped)} skipped")

    return UserImportResult(imported=imported, skipped=skipped)
