# attendify/services/events.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from attendify.core.config import settings
from attendify.core.errors import AccessDeniedError, NotFoundError, StateError, ValidationError
from attendify.core.timeutil import ensure_aware, parse_event_datetime, utcnow
from attendify.crud.event import event_crud
from attendify.crud.user import user_crud
from attendify.models.audit import EVENT_CREATED, EVENT_DELETED, EVENT_UPDATED
from attendify.models.event import Event, EventStatus, join_courses, normalize_course
from attendify.models.user import Role, User
from attendify.schemas.event import EventCreate, EventOut, EventUpdate, StudentEventOut
from attendify.services import audit
from attendify.services.access import can_access_event
from attendify.services.qr import QRRotationManager, event_payload

logger = logging.getLogger(__name__)

DEPARTMENTS = [
    "College of Education",
    "College of Engineering",
    "College of Science",
    "College of Arts and Sciences",
    "College of Business and Management",
    "College of Social Sciences",
    "College of Health Sciences",
    "College of Law",
    "College of Agriculture",
    "College of Medicine",
]

SECTIONS = [f"Section {n}" for n in range(1, 7)]

UPDATE_ROLES = {Role.faculty.value, Role.admin.value, Role.superadmin.value}
DELETE_ROLES = {Role.admin.value, Role.superadmin.value}

_SIMPLE_FIELDS = ("title", "description", "location", "course", "section", "year_level", "department", "college")


def creation_dropdowns() -> Dict[str, List[str]]:
    return {"departments": list(DEPARTMENTS), "sections": list(SECTIONS)}


def rotation_courses(event: Event) -> List[str]:
    """Cursos cujos alunos recebem QR do evento: tags, ou curso+ano como fallback."""
    tags = event.tagged_course_list
    if tags:
        return tags
    if normalize_course(event.course) and (event.year_level or "").strip():
        return [normalize_course(event.course)]
    return []


def _parse_time(raw: str, event_date, field: str) -> datetime:
    try:
        return parse_event_datetime(raw, event_date)
    except ValueError:
        raise ValidationError(f"invalid {field} format. Use HH:MM, YYYY-MM-DDTHH:MM:SS, or ISO 8601")


def _ensure_order(start: datetime, end: datetime) -> None:
    if end <= start:
        raise ValidationError("end_time must be after start_time")


def _get(db: Session, event_id: int) -> Event:
    event = event_crud.get(db, event_id)
    if not event:
        raise NotFoundError("event not found")
    return event


def event_view(event: Event, attendee_count: int = 0, now: Optional[datetime] = None) -> EventOut:
    now = ensure_aware(now) if now else utcnow()
    start = ensure_aware(event.start_time)
    description = event.description
    # descrição só aparece a partir de 24h antes do início
    if now < start - timedelta(hours=settings.DESCRIPTION_REVEAL_HOURS):
        description = None
    return EventOut(
        id=event.id,
        title=event.title,
        description=description,
        event_date=event.event_date,
        start_time=start,
        end_time=ensure_aware(event.end_time),
        location=event.location,
        course=event.course,
        section=event.section,
        year_level=event.year_level,
        department=event.department,
        college=event.college,
        tagged_courses=event.tagged_course_list,
        created_by=event.created_by,
        created_by_role=event.created_by_role,
        status=event.status,
        is_active=event.is_active,
        attendee_count=attendee_count,
    )


def create_event(
    db: Session,
    payload: EventCreate,
    creator: User,
    *,
    rotation: QRRotationManager,
    dispatcher,
    now: Optional[datetime] = None,
    ip_address: Optional[str] = None,
) -> Event:
    now = ensure_aware(now) if now else utcnow()
    start = _parse_time(payload.start_time, payload.event_date, "start_time")
    end = _parse_time(payload.end_time, payload.event_date, "end_time")
    _ensure_order(start, end)

    event = Event(
        title=payload.title.strip(),
        description=payload.description,
        event_date=payload.event_date,
        start_time=start,
        end_time=end,
        location=payload.location,
        course=payload.course,
        section=payload.section,
        year_level=payload.year_level,
        department=payload.department,
        college=payload.college,
        tagged_courses=join_courses(payload.tagged_courses),
        created_by=creator.student_id,
        created_by_role=creator.role,
        status=EventStatus.scheduled.value,
        is_active=True,
        qr_code_data=rotation.encoder(event_payload(int(now.timestamp()), creator.student_id)),
    )
    db.add(event)
    db.commit()
    db.refresh(event)

    courses = rotation_courses(event)
    if courses:
        dispatcher.submit(rotation.activate_for_event, event.id, courses, event.year_level, event.section)

    audit.record(db, EVENT_CREATED, actor_id=creator.student_id, target_id=str(event.id),
                 details=event.title, ip_address=ip_address)
    logger.info("event %s created by %s (courses=%s)", event.id, creator.student_id, courses)
    return event


def get_event(db: Session, event_id: int, now: Optional[datetime] = None) -> EventOut:
    event = _get(db, event_id)
    counts = event_crud.attendee_counts(db, [event.id])
    return event_view(event, counts.get(event.id, 0), now)


def list_events(
    db: Session,
    *,
    course: Optional[str] = None,
    section: Optional[str] = None,
    year_level: Optional[str] = None,
    status: Optional[str] = None,
    is_active: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> List[EventOut]:
    if status:
        try:
            EventStatus(status)
        except ValueError:
            raise ValidationError("status must be one of: scheduled, ongoing, completed, cancelled")
    events = event_crud.list_filtered(db, course=course, section=section, year_level=year_level,
                                      status=status, is_active=is_active)
    counts = event_crud.attendee_counts(db, [e.id for e in events])
    return [event_view(e, counts.get(e.id, 0), now) for e in events]


def events_for_student(db: Session, student_id: str, now: Optional[datetime] = None) -> List[StudentEventOut]:
    user = user_crud.get_by_student_id(db, student_id)
    if not user:
        raise NotFoundError("student not found")
    events = event_crud.list_active(db)
    counts = event_crud.attendee_counts(db, [e.id for e in events])
    out = []
    for e in events:
        view = event_view(e, counts.get(e.id, 0), now)
        out.append(StudentEventOut(**view.model_dump(), allowed=can_access_event(e, user).allowed))
    return out


def update_event(
    db: Session,
    event_id: int,
    changes: EventUpdate,
    actor: User,
    *,
    rotation: QRRotationManager,
    dispatcher,
    ip_address: Optional[str] = None,
) -> Event:
    event = _get(db, event_id)
    if event.created_by != actor.student_id and actor.role not in UPDATE_ROLES:
        raise AccessDeniedError("unauthorized: only event creator, admin, or faculty can update")
    if not event.is_active or event.status == EventStatus.cancelled.value:
        raise StateError("event is cancelled and can no longer be updated")

    data = changes.model_dump(exclude_unset=True)
    for field in _SIMPLE_FIELDS:
        if field not in data or (field == "title" and not data[field]):
            continue
        setattr(event, field, data[field])
    if "event_date" in data and data["event_date"] is not None:
        event.event_date = data["event_date"]
    if "tagged_courses" in data:
        event.tagged_courses = join_courses(data["tagged_courses"])
    try:
        if data.get("start_time"):
            event.start_time = _parse_time(data["start_time"], event.event_date, "start_time")
        if data.get("end_time"):
            event.end_time = _parse_time(data["end_time"], event.event_date, "end_time")
        _ensure_order(ensure_aware(event.start_time), ensure_aware(event.end_time))
    except ValidationError:
        db.rollback()
        raise

    db.commit()
    db.refresh(event)

    if event.status == EventStatus.completed.value:
        # evento encerrado: só devolve os QRs originais
        dispatcher.submit(rotation.revert_for_event, event.id)
    else:
        # revert + reativação na mesma tarefa para manter a ordem
        dispatcher.submit(rotation.reactivate_for_event, event.id, rotation_courses(event), event.year_level, event.section)

    audit.record(db, EVENT_UPDATED, actor_id=actor.student_id, target_id=str(event.id),
                 details=",".join(sorted(data)), ip_address=ip_address)
    return event


def delete_event(
    db: Session,
    event_id: int,
    actor: User,
    *,
    rotation: QRRotationManager,
    dispatcher,
    ip_address: Optional[str] = None,
) -> None:
    event = _get(db, event_id)
    if event.created_by != actor.student_id and actor.role not in DELETE_ROLES:
        raise AccessDeniedError("unauthorized: only event creator or admin can delete")

    event.is_active = False
    event.status = EventStatus.cancelled.value
    db.commit()

    dispatcher.submit(rotation.revert_for_event, event.id)
    audit.record(db, EVENT_DELETED, actor_id=actor.student_id, target_id=str(event.id),
                 details=event.title, ip_address=ip_address)
    logger.info("event %s cancelled by %s", event.id, actor.student_id)


def get_event_qr_code(db: Session, event_id: int, *, encoder) -> str:
    event = _get(db, event_id)
    if event.qr_code_data:
        return event.qr_code_data
    created = ensure_aware(event.created_at) or utcnow()
    event.qr_code_data = encoder(event_payload(int(created.timestamp()), event.created_by))
    db.commit()
    return event.qr_code_data
