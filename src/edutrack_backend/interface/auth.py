from datetime import datetime
from typing import Optional
from pydantic import EmailStr, Field

from edutrack_backend.interface.base import CamelModel
from edutrack_backend.permissions.principal import Role

class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)
    role: Role
    institution_id: str = Field(min_length=1)
    child_id: Optional[str] = None
    name: Optional[str] = Field(None, max_length=255)

class RegisterResponse(CamelModel):
    uid: str
    email: str
    role: Role
    institution_id: Optional[str] = None
    created_at: datetime

class LoginRequest(CamelModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)

class LoginResponse(CamelModel):
    token: str
    uid: str
    email: Optional[str] = None
    role: Role

class SetClaimsRequest(CamelModel):
    uid: str = Field(min_length=1)
    role: Role
    institution_id: Optional[str] = None
    child_id: Optional[str] = None

class SetClaimsResponse(CamelModel):
    message: str = "Claims updated successfully"
    uid: str
    role: Role
    institution_id: Optional[str] = None
    child_id: Optional[str] = None
