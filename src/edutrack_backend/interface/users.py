from datetime import datetime
from typing import List, Optional
from pydantic import EmailStr, Field, field_validator

from edutrack_backend.interface.base import BaseEntityGet, CamelModel
from edutrack_backend.permissions.principal import Role

class UserCreate(CamelModel):
    email: EmailStr = Field(description="User's email address")
    password: Optional[str] = Field(None, min_length=6, description="Initial password; omitted sends an account setup email")
    role: Role = Field(description="Platform role")
    institution_id: Optional[str] = Field(None, description="Tenant; defaults to the caller's institution")
    child_id: Optional[str] = Field(None, description="Linked student for parents")
    name: Optional[str] = Field(None, max_length=255, description="Display name")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Name cannot be empty or only whitespace')
        return v.strip() if v else v

class UserGet(BaseEntityGet):
    id: str = Field(description="User unique identifier (identity subject)")
    email: str
    name: Optional[str] = None
    role: Role
    institution_id: Optional[str] = None
    child_id: Optional[str] = None

class UserList(CamelModel):
    id: str
    email: str
    name: Optional[str] = None
    role: Role
    institution_id: Optional[str] = None
    created_at: Optional[datetime] = None

class UserUpdate(CamelModel):
    name: Optional[str] = Field(None, max_length=255)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Name cannot be empty or only whitespace')
        return v.strip() if v else v

class UserQuery(CamelModel):
    role: Optional[Role] = None
    institution_id: Optional[str] = None

class UserImportFailure(CamelModel):
    row: int
    email: Optional[str] = None
    reason: str

class UserImportResult(CamelModel):
    message: str = "Bulk import completed"
    imported: List[UserList]
    skipped: List[UserImportFailure]
