from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class CategoryResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_system_default: Optional[bool] = False
    is_active: Optional[bool] = True
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: Optional[str] = None
    parent_department_id: Optional[str] = None
    facility_id: Optional[str] = None
    is_template: bool = False
    min_staffing: int = Field(1, ge=0)


class SubDepartmentsCreate(BaseModel):
    names: List[str] = Field(..., min_length=1, max_length=10)


class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    min_staffing: Optional[int] = Field(None, ge=0)


class DepartmentResponse(BaseModel):
    id: str
    name: str
    category: Optional[str] = None
    parent_department_id: Optional[str] = None
    facility_id: Optional[str] = None
    is_template: Optional[bool] = False
    min_staffing: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DepartmentCopyRequest(BaseModel):
    facility_id: str
