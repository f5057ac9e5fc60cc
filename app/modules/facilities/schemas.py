from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class FacilityCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    workspace_id: str


class FacilityUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)


class FacilityResponse(BaseModel):
    id: str
    name: str
    workspace_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
