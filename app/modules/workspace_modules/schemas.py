from pydantic import BaseModel
from typing import Optional, List
from app.modules.workspace_modules.gate import ModuleState


class WorkspaceModuleStatus(BaseModel):
    module_id: str
    key: str
    name: str
    description: Optional[str] = None
    depends_on: List[str] = []
    state: ModuleState
    enabled: bool
    can_toggle: bool


class WorkspaceModuleToggle(BaseModel):
    is_enabled: bool


class ModuleDependencyConflict(BaseModel):
    detail: str
    dependents: List[str]
