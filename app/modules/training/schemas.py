from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Literal
from datetime import datetime

EventType = Literal["training", "workshop", "seminar", "webinar", "meeting", "conference", "other"]
LocationType = Literal["online", "physical", "hybrid"]
RegistrationType = Literal["open", "mandatory", "invite_only"]
EventStatus = Literal["draft", "published", "cancelled", "completed"]


class TrainingEventBase(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = None
    event_type: EventType = "training"
    location_type: LocationType = "physical"
    location_address: Optional[str] = None
    online_link: Optional[str] = None
    start_datetime: datetime
    end_datetime: datetime
    max_participants: Optional[int] = Field(None, ge=1)
    registration_type: RegistrationType = "open"
    responsible_user_id: Optional[str] = None

    @model_validator(mode="after")
    def check_end_after_start(self):
        if self.end_datetime <= self.start_datetime:
            raise ValueError("End date/time must be after start date/time")
        return self


class TrainingEventCreate(TrainingEventBase):
    organization_id: str
    status: Literal["draft", "published"] = "draft"
    # Targets apply to mandatory and invite_only events
    target_user_ids: List[str] = []
    target_department_ids: List[str] = []


class TrainingEventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = None
    event_type: Optional[EventType] = None
    location_type: Optional[LocationType] = None
    location_address: Optional[str] = None
    online_link: Optional[str] = None
    start_datetime: Optional[datetime] = None
    end_datetime: Optional[datetime] = None
    max_participants: Optional[int] = Field(None, ge=1)
    status: Optional[EventStatus] = None
    responsible_user_id: Optional[str] = None


class TrainingEventResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    event_type: str
    location_type: str
    location_address: Optional[str] = None
    online_link: Optional[str] = None
    start_datetime: datetime
    end_datetime: datetime
    organization_id: str
    max_participants: Optional[int] = None
    registration_type: str = "open"
    responsible_user_id: Optional[str] = None
    status: str
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RegistrationResponse(BaseModel):
    id: str
    event_id: str
    user_id: str
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CheckInRequest(BaseModel):
    checked_in: bool = True  # False marks the attendee absent


class BulkCheckInResult(BaseModel):
    checked_in: int


class CancelEventResult(BaseModel):
    event_id: str
    notified: int
    message: str
