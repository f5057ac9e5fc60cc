from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class WorkspaceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    organization_id: str


class WorkspaceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)


class WorkspaceResponse(BaseModel):
    id: str
    name: str
    organization_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WorkspaceTemplateAssign(BaseModel):
    department_template_ids: List[str] = Field(..., min_length=1)


class WorkspaceTemplateResponse(BaseModel):
    id: str
    workspace_id: str
    department_template_id: str
    created_at: datetime

    class Config:
        from_attributes = True
