from typing import List, Optional
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from attendify.api.deps import client_ip, get_current_user, get_db, get_dispatcher, get_rotation
from attendify.core.rbac import ROLE_FACULTY, require_min_role
from attendify.models.user import User
from attendify.schemas.attendance import AttendanceOut
from attendify.schemas.event import (
    CreationDropdowns, EventCreate, EventOut, EventQRCode, EventUpdate, StudentEventOut,
)
from attendify.services import attendance as attendance_service
from attendify.services import events as event_service

router = APIRouter()

staff_only = require_min_role(ROLE_FACULTY)

@router.get("/creation-dropdowns", response_model=CreationDropdowns)
def creation_dropdowns(_ = Depends(get_current_user)):
    return event_service.creation_dropdowns()

@router.get("/", response_model=List[EventOut])
def list_events(
    course: Optional[str] = None,
    section: Optional[str] = None,
    year_level: Optional[str] = None,
    status: Optional[str] = None,
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
    _ = Depends(get_current_user),
):
    return event_service.list_events(db, course=course, section=section, year_level=year_level,
                                     status=status, is_active=is_active)

@router.get("/my-events", response_model=List[StudentEventOut])
def my_events(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return event_service.events_for_student(db, user.student_id)

@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: int, db: Session = Depends(get_db), _ = Depends(get_current_user)):
    return event_service.get_event(db, event_id)

@router.post("/", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    body: EventCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(staff_only),
    rotation = Depends(get_rotation),
    dispatcher = Depends(get_dispatcher),
):
    e = event_service.create_event(db, body, user, rotation=rotation, dispatcher=dispatcher,
                                   ip_address=client_ip(request))
    return event_service.event_view(e)

@router.put("/{event_id}", response_model=EventOut)
def update_event(
    event_id: int,
    body: EventUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(staff_only),
    rotation = Depends(get_rotation),
    dispatcher = Depends(get_dispatcher),
):
    event_service.update_event(db, event_id, body, user, rotation=rotation, dispatcher=dispatcher,
                               ip_address=client_ip(request))
    return event_service.get_event(db, event_id)

@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: int,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(staff_only),
    rotation = Depends(get_rotation),
    dispatcher = Depends(get_dispatcher),
):
    event_service.delete_event(db, event_id, user, rotation=rotation, dispatcher=dispatcher,
                               ip_address=client_ip(request))
    return None  # 204

@router.get("/{event_id}/qrcode", response_model=EventQRCode)
def event_qrcode(
    event_id: int,
    db: Session = Depends(get_db),
    _ = Depends(staff_only),
    rotation = Depends(get_rotation),
):
    data = event_service.get_event_qr_code(db, event_id, encoder=rotation.encoder)
    return EventQRCode(event_id=event_id, qr_code_data=data)

@router.get("/{event_id}/attendance", response_model=List[AttendanceOut])
def event_attendance(event_id: int, db: Session = Depends(get_db), _ = Depends(staff_only)):
    return attendance_service.list_for_event(db, event_id)
