from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class ModulePermission(BaseModel):
    module_id: str
    can_view: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_admin: bool = False


class ModulePermissionResponse(ModulePermission):
    id: Optional[str] = None
    role: Optional[str] = None
    role_id: Optional[str] = None


class CustomRoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    organization_id: Optional[str] = None
    permissions: List[ModulePermission] = []


class CustomRoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class CustomRoleResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    organization_id: Optional[str] = None
    is_active: Optional[bool] = True
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CustomRoleWithPermissionsResponse(CustomRoleResponse):
    permissions: List[ModulePermissionResponse] = []


class BulkModulePermissionUpdate(BaseModel):
    permissions: List[ModulePermission]


class BulkModulePermissionResponse(BaseModel):
    role_id: str
    assigned_count: int
    permissions: List[ModulePermissionResponse]
    message: str
