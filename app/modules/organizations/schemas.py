from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    owner_id: Optional[str] = None
    max_workspaces: Optional[int] = Field(None, ge=0)
    max_facilities: Optional[int] = Field(None, ge=0)
    max_users: Optional[int] = Field(None, ge=0)


class OrganizationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    owner_id: Optional[str] = None
    max_workspaces: Optional[int] = Field(None, ge=0)
    max_facilities: Optional[int] = Field(None, ge=0)
    max_users: Optional[int] = Field(None, ge=0)


class OrganizationResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_active: Optional[bool] = True
    owner_id: Optional[str] = None
    max_workspaces: Optional[int] = None
    max_facilities: Optional[int] = None
    max_users: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrganizationUsage(BaseModel):
    organization_id: str
    workspaces: int
    facilities: int
    users: int


class LimitCheck(BaseModel):
    limit_type: str
    allowed: bool
    limit: Optional[int] = None
    current: int
    remaining: Optional[int] = None
    message: Optional[str] = None
