from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class ModuleDefinitionResponse(BaseModel):
    id: str
    key: str
    name: str
    description: Optional[str] = None
    is_active: Optional[bool] = True
    depends_on: Optional[List[str]] = None

    class Config:
        from_attributes = True


class ModuleActiveUpdate(BaseModel):
    is_active: bool


class UserModuleOverrideUpsert(BaseModel):
    can_view: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_admin: bool = False


class UserModuleOverrideResponse(BaseModel):
    id: Optional[str] = None
    user_id: str
    module_id: str
    can_view: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_admin: bool = False
    is_override: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ModuleCapabilitiesResponse(BaseModel):
    user_id: str
    module_id: str
    module_key: str
    can_view: bool
    can_edit: bool
    can_delete: bool
    can_admin: bool
    source: str  # "override", "roles" or "restricted"
