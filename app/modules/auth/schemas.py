from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List

from app.config import settings
from app.core.module_access import ResolvedModule
from app.core.scope import RoleAssignment, Scope


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    email: str
    force_password_change: bool = False


class ChangePasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=settings.min_password_length, max_length=128)


class MeResponse(BaseModel):
    id: str
    email: Optional[str] = None
    roles: List[RoleAssignment]
    scope: Optional[Scope] = None
    modules: List[ResolvedModule]
