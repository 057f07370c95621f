from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from edutrack_backend.auth.gateway import IdentityGateway
from edutrack_backend.database import get_db
from edutrack_backend.interface.auth import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    SetClaimsRequest,
    SetClaimsResponse
)
from edutrack_backend.permissions.auth import get_identity_gateway, require_permission
from edutrack_backend.permissions.principal import Principal
from edutrack_backend.services import accounts as account_service

auth_router = APIRouter()

@auth_router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    permissions: Annotated[Principal, Depends(require_permission("claims", "register"))],
    entity: RegisterRequest,
    gateway: Annotated[IdentityGateway, Depends(get_identity_gateway)],
    db: Session = Depends(get_db)
):
    return await account_service.register(permissions, db, gateway, entity)

@auth_router.post("/login", response_model=LoginResponse)
async def login(entity: LoginRequest, gateway: Annotated[IdentityGateway, Depends(get_identity_gateway)]):
    return await account_service.login(gateway, entity)

@auth_router.post("/set-claims", response_model=SetClaimsResponse)
async def set_claims(
    permissions: Annotated[Principal, Depends(require_permission("claims", "set"))],
    entity: SetClaimsRequest,
    gateway: Annotated[IdentityGateway, Depends(get_identity_gateway)],
    db: Session = Depends(get_db)
):
    return await account_service.set_claims(permissions, db, gateway, entity)
