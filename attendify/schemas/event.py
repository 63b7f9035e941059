from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, date

# ---------------------------
# Event Schemas
# ---------------------------

class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    event_date: date
    # ISO 8601 ou "HH:MM" (combinado com event_date no fuso configurado)
    start_time: str
    end_time: str
    location: Optional[str] = None
    course: Optional[str] = None
    section: Optional[str] = None
    year_level: Optional[str] = None
    department: Optional[str] = None
    college: Optional[str] = None
    tagged_courses: List[str] = Field(default_factory=list)

class EventUpdate(BaseModel):
    """Atualização parcial: só os campos enviados são aplicados."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    event_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    location: Optional[str] = None
    course: Optional[str] = None
    section: Optional[str] = None
    year_level: Optional[str] = None
    department: Optional[str] = None
    college: Optional[str] = None
    tagged_courses: Optional[List[str]] = None

class EventOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    event_date: date
    start_time: datetime
    end_time: datetime
    location: Optional[str] = None
    course: Optional[str] = None
    section: Optional[str] = None
    year_level: Optional[str] = None
    department: Optional[str] = None
    college: Optional[str] = None
    tagged_courses: List[str] = Field(default_factory=list)
    created_by: str
    created_by_role: str
    status: str
    is_active: bool
    attendee_count: int = 0

class StudentEventOut(EventOut):
    allowed: bool

class EventQRCode(BaseModel):
    event_id: int
    qr_code_data: str

class CreationDropdowns(BaseModel):
    departments: List[str]
    sections: List[str]
