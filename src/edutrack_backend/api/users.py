from typing import Annotated, Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from edutrack_backend.api.crud import page_params
from edutrack_backend.api.exceptions import BadRequestException
from edutrack_backend.auth.gateway import IdentityGateway
from edutrack_backend.database import get_db
from edutrack_backend.interface.base import MessageResponse, Page, PageQuery
from edutrack_backend.interface.users import UserCreate, UserGet, UserImportResult, UserList, UserQuery, UserUpdate
from edutrack_backend.permissions.auth import get_current_principal, get_identity_gateway, require_permission
from edutrack_backend.permissions.principal import Principal, Role
from edutrack_backend.services import users as user_service

user_router = APIRouter()

@user_router.get("", response_model=Page[UserList])
async def list_users(
    permissions: Annotated[Principal, Depends(require_permission("users", "list"))],
    page: Annotated[PageQuery, Depends(page_params)],
    role: Annotated[Optional[Role], Query()] = None,
    institution_id: Annotated[Optional[str], Query(alias="institutionId")] = None,
    db: Session = Depends(get_db)
):
    return user_service.list_users(permissions, db, UserQuery(role=role, institution_id=institution_id), page)

@user_router.post("", response_model=UserGet, status_code=status.HTTP_201_CREATED)
async def create_user(
    permissions: Annotated[Principal, Depends(require_permission("users", "create"))],
    entity: UserCreate,
    gateway: Annotated[IdentityGateway, Depends(get_identity_gateway)],
    db: Session = Depends(get_db)
):
    return await user_service.create_user(permissions, db, gateway, entity)

@user_router.post("/bulk", response_model=UserImportResult)
async def import_users(
    permissions: Annotated[Principal, Depends(require_permission("users", "import"))],
    gateway: Annotated[IdentityGateway, Depends(get_identity_gateway)],
    file: UploadFile = File(...),
    db: Session = Depends(get_db)
):
    content = await file.read()

    if not content:
        raise BadRequestException(detail="No file uploaded")

    return await user_service.import_users(permissions, db, gateway, content)

@user_router.get("/{user_id}", response_model=UserGet)
async def get_user(permissions: Annotated[Principal, Depends(get_current_principal)], user_id: str, db: Session = Depends(get_db)):
    return user_service.get_user(permissions, db, user_id)

@user_router.put("/{user_id}", response_model=UserGet)
async def update_user(
    permissions: Annotated[Principal, Depends(get_current_principal)],
    user_id: str,
    entity: UserUpdate,
    db: Session = Depends(get_db)
):
    return user_service.update_user(permissions, db, user_id, entity)

@user_router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    permissions: Annotated[Principal, Depends(require_permission("users", "delete"))],
    user_id: str,
    gateway: Annotated[IdentityGateway, Depends(get_identity_gateway)],
    db: Session = Depends(get_db)
):
    await user_service.delete_user(permissions, db, gateway, user_id)
    return MessageResponse(message="User deleted")
