from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime

from app.core.scope import AppRole, RoleAssignment


class UserUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = None
    is_active: Optional[bool] = None


class UserResponse(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = True
    force_password_change: Optional[bool] = False
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserWithRolesResponse(UserResponse):
    roles: List[RoleAssignment] = []


class RoleAssignmentCreate(BaseModel):
    role: AppRole
    organization_id: Optional[str] = None
    workspace_id: Optional[str] = None
    facility_id: Optional[str] = None
    department_id: Optional[str] = None
    specialty_id: Optional[str] = None
    custom_role_id: Optional[str] = None


class RoleAssignmentUpdate(BaseModel):
    organization_id: Optional[str] = None
    workspace_id: Optional[str] = None
    facility_id: Optional[str] = None
    department_id: Optional[str] = None
    specialty_id: Optional[str] = None
    custom_role_id: Optional[str] = None


class UserCreate(RoleAssignmentCreate):
    email: EmailStr
    full_name: str = Field(..., min_length=2, max_length=100)
    password: Optional[str] = Field(None, min_length=6)
    force_password_change: bool = True

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v):
        return v.strip()


class BulkUserRow(BaseModel):
    email: EmailStr
    full_name: str = Field(..., min_length=2, max_length=100)
    facility_name: str = Field(..., min_length=1, max_length=200)
    department_name: str = Field(..., min_length=1, max_length=200)
    specialty_name: Optional[str] = Field(None, max_length=200)
    role: Literal["staff", "department_head", "facility_supervisor"]

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("full_name", "facility_name", "department_name", "specialty_name")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class BulkUploadRequest(BaseModel):
    users: List[BulkUserRow] = Field(..., min_length=1)


class BulkUploadError(BaseModel):
    row: int
    email: str
    error: str


class BulkUploadResult(BaseModel):
    success: int = 0
    failed: int = 0
    errors: List[BulkUploadError] = []
