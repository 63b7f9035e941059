from datetime import date, datetime, timedelta, timezone

import pytest

from attendify.core.errors import AccessDeniedError, NotFoundError, StateError, ValidationError
from attendify.models.audit import EVENT_CREATED, AuditLog
from attendify.models.event import Event
from attendify.models.user import User
from attendify.schemas.event import EventCreate, EventUpdate
from attendify.services import events as svc
from attendify.services.qr import QRRotationManager

from tests.conftest import NOW, RecordingDispatcher, fake_encoder


@pytest.fixture
def rotation(session_factory):
    return QRRotationManager(session_factory, encoder=fake_encoder)


def _payload(**overrides):
    data = dict(
        title="Orientation",
        description="Bring your ID",
        event_date=date(2025, 3, 11),
        start_time="2025-03-11T09:00:00Z",
        end_time="2025-03-11T11:00:00Z",
        location="Main Hall",
    )
    data.update(overrides)
    return EventCreate(**data)


def _student(db, student_id):
    db.expire_all()
    return db.query(User).filter(User.student_id == student_id).one()


def test_create_event_with_tags_rotates_student_qr(db, make_user, rotation, dispatcher):
    faculty = make_user("FAC-1", role="faculty", course=None)
    make_user("S-001", course="BSIT")
    make_user("S-002", course="BSN")

    event = svc.create_event(db, _payload(tagged_courses=["bsit", "BSCS", "bsit"]), faculty,
                             rotation=rotation, dispatcher=dispatcher, now=NOW)

    assert event.tagged_courses == "BSIT,BSCS"
    assert event.status == "scheduled"
    assert event.is_active is True
    assert event.created_by == "FAC-1"
    assert event.created_by_role == "faculty"
    assert event.qr_code_data == f"qr:event:{int(NOW.timestamp())}:FAC-1"
    assert dispatcher.names() == ["activate_for_event"]
    assert _student(db, "S-001").active_event_id == event.id
    assert _student(db, "S-002").active_event_id is None
    assert db.query(AuditLog).filter(AuditLog.action == EVENT_CREATED).count() == 1


def test_create_event_falls_back_to_course_and_year(db, make_user, rotation, dispatcher):
    faculty = make_user("FAC-1", role="faculty", course=None)
    make_user("S-001", course="BSIT", year_level="3")
    make_user("S-002", course="BSIT", year_level="1")

    event = svc.create_event(db, _payload(course="BSIT", year_level="3"), faculty,
                             rotation=rotation, dispatcher=dispatcher, now=NOW)
    assert _student(db, "S-001").active_event_id == event.id
    assert _student(db, "S-002").active_event_id is None


def test_create_event_with_course_only_skips_rotation(db, make_user, rotation, dispatcher):
    faculty = make_user("FAC-1", role="faculty", course=None)
    make_user("S-001", course="BSIT")
    svc.create_event(db, _payload(course="BSIT"), faculty, rotation=rotation, dispatcher=dispatcher, now=NOW)
    assert dispatcher.calls == []
    assert _student(db, "S-001").active_event_id is None


def test_create_event_rejects_bad_times(db, make_user, rotation, dispatcher):
    faculty = make_user("FAC-1", role="faculty", course=None)
    with pytest.raises(ValidationError, match="after start_time"):
        svc.create_event(db, _payload(end_time="2025-03-11T09:00:00Z"), faculty,
                         rotation=rotation, dispatcher=dispatcher, now=NOW)
    with pytest.raises(ValidationError, match="invalid start_time"):
        svc.create_event(db, _payload(start_time="nine o'clock"), faculty,
                         rotation=rotation, dispatcher=dispatcher, now=NOW)
    assert db.query(Event).count() == 0


def test_create_event_accepts_hh_mm(db, make_user, rotation, dispatcher):
    faculty = make_user("FAC-1", role="faculty", course=None)
    event = svc.create_event(db, _payload(start_time="09:30", end_time="10:45"), faculty,
                             rotation=rotation, dispatcher=dispatcher, now=NOW)
    db.expire_all()
    stored = db.get(Event, event.id)
    assert stored.start_time.replace(tzinfo=None) == datetime(2025, 3, 11, 9, 30)
    assert stored.end_time.replace(tzinfo=None) == datetime(2025, 3, 11, 10, 45)


def test_description_hidden_until_a_day_before_start(db, make_event):
    event = make_event(start=NOW + timedelta(hours=30), description="Secret agenda")

    assert svc.get_event(db, event.id, now=NOW).description is None
    assert svc.get_event(db, event.id, now=NOW + timedelta(hours=6)).description == "Secret agenda"
    assert svc.get_event(db, event.id, now=NOW + timedelta(hours=40)).description == "Secret agenda"


def test_get_event_not_found(db):
    with pytest.raises(NotFoundError):
        svc.get_event(db, 404)


def test_list_events_filters_and_orders(db, make_event):
    older = make_event(start=NOW - timedelta(days=2), course="BSIT", title="Older")
    newer = make_event(start=NOW + timedelta(days=2), course="BSIT", title="Newer")
    other = make_event(start=NOW, course="BSCS", status="completed", title="Other")

    assert [e.id for e in svc.list_events(db, now=NOW)] == [newer.id, other.id, older.id]
    assert [e.id for e in svc.list_events(db, course="BSIT", now=NOW)] == [newer.id, older.id]
    assert [e.id for e in svc.list_events(db, status="completed", now=NOW)] == [other.id]
    with pytest.raises(ValidationError):
        svc.list_events(db, status="postponed")


def test_events_for_student_flags_allowed(db, make_user, make_event):
    make_user("S-001", course="BSIT")
    open_event = make_event(title="Open")
    bsit = make_event(course="BSIT", title="BSIT only")
    bscs = make_event(tagged_courses=["BSCS"], title="BSCS only")
    make_event(title="Gone", is_active=False)

    flags = {e.id: e.allowed for e in svc.events_for_student(db, "S-001", now=NOW)}
    assert flags == {open_event.id: True, bsit.id: True, bscs.id: False}


def test_update_event_reactivates_rotation(db, make_user, make_event, rotation, dispatcher):
    faculty = make_user("FAC-1", role="faculty", course=None)
    make_user("S-001", course="BSIT")
    make_user("S-002", course="BSCS")
    event = make_event(tagged_courses=["BSIT"])
    rotation.activate_for_event(event.id, ["BSIT"])

    updated = svc.update_event(db, event.id, EventUpdate(tagged_courses=["BSCS"], title="Renamed"), faculty,
                               rotation=rotation, dispatcher=dispatcher)

    assert updated.title == "Renamed"
    assert updated.tagged_courses == "BSCS"
    assert dispatcher.names() == ["reactivate_for_event"]
    assert _student(db, "S-001").active_event_id is None
    assert _student(db, "S-002").active_event_id == event.id


def test_update_event_always_schedules_reactivation(db, make_user, make_event, rotation):
    faculty = make_user("FAC-1", role="faculty", course=None)
    event = make_event()
    recorder = RecordingDispatcher()
    svc.update_event(db, event.id, EventUpdate(location="Gym"), faculty, rotation=rotation, dispatcher=recorder)
    assert recorder.names() == ["reactivate_for_event"]


def test_update_cancelled_event_is_rejected(db, make_user, make_event, rotation, dispatcher):
    admin = make_user("ADM-1", role="admin", course=None)
    make_user("S-001")
    event = make_event(tagged_courses=["BSIT"])
    rotation.activate_for_event(event.id, ["BSIT"])
    svc.delete_event(db, event.id, admin, rotation=rotation, dispatcher=dispatcher)

    with pytest.raises(StateError, match="cancelled"):
        svc.update_event(db, event.id, EventUpdate(title="Back again"), admin, rotation=rotation, dispatcher=dispatcher)

    assert dispatcher.names() == ["revert_for_event"]
    assert _student(db, "S-001").active_event_id is None
    db.expire_all()
    assert db.get(Event, event.id).title != "Back again"


def test_update_completed_event_only_reverts_rotation(db, make_user, make_event, rotation, dispatcher):
    faculty = make_user("FAC-1", role="faculty", course=None)
    make_user("S-001")
    event = make_event(tagged_courses=["BSIT"], start=NOW - timedelta(hours=3), status="completed")
    rotation.activate_for_event(event.id, ["BSIT"])
    assert _student(db, "S-001").active_event_id == event.id

    svc.update_event(db, event.id, EventUpdate(location="Gym"), faculty, rotation=rotation, dispatcher=dispatcher)

    assert dispatcher.names() == ["revert_for_event"]
    assert _student(db, "S-001").active_event_id is None


def test_update_event_permissions_and_validation(db, make_user, make_event, rotation, dispatcher):
    student = make_user("S-001")
    faculty = make_user("FAC-2", role="faculty", course=None)
    event = make_event(created_by="FAC-1")

    with pytest.raises(AccessDeniedError):
        svc.update_event(db, event.id, EventUpdate(title="x"), student, rotation=rotation, dispatcher=dispatcher)
    with pytest.raises(NotFoundError):
        svc.update_event(db, 999, EventUpdate(title="x"), faculty, rotation=rotation, dispatcher=dispatcher)
    with pytest.raises(ValidationError):
        svc.update_event(db, event.id, EventUpdate(end_time="2000-01-01T00:00:00Z"), faculty,
                         rotation=rotation, dispatcher=dispatcher)
    assert dispatcher.calls == []


def test_delete_event_soft_deletes_and_reverts(db, make_user, make_event, rotation, dispatcher):
    admin = make_user("ADM-1", role="admin", course=None)
    make_user("S-001")
    event = make_event(tagged_courses=["BSIT"])
    rotation.activate_for_event(event.id, ["BSIT"])

    svc.delete_event(db, event.id, admin, rotation=rotation, dispatcher=dispatcher)

    db.expire_all()
    stored = db.get(Event, event.id)
    assert stored is not None
    assert stored.is_active is False
    assert stored.status == "cancelled"
    assert dispatcher.names() == ["revert_for_event"]
    assert _student(db, "S-001").active_event_id is None


def test_delete_event_permissions(db, make_user, make_event, rotation, dispatcher):
    creator = make_user("FAC-1", role="faculty", course=None)
    other = make_user("FAC-2", role="faculty", course=None)
    event = make_event(created_by="FAC-1")

    with pytest.raises(AccessDeniedError):
        svc.delete_event(db, event.id, other, rotation=rotation, dispatcher=dispatcher)
    svc.delete_event(db, event.id, creator, rotation=rotation, dispatcher=dispatcher)


def test_event_qr_code_generated_on_demand(db, make_event):
    event = make_event(created_by="FAC-1")
    assert event.qr_code_data is None

    data = svc.get_event_qr_code(db, event.id, encoder=fake_encoder)
    assert data.startswith("qr:event:")
    assert data.endswith(":FAC-1")
    assert svc.get_event_qr_code(db, event.id, encoder=lambda _: "other") == data


def test_creation_dropdowns():
    dropdowns = svc.creation_dropdowns()
    assert "College of Engineering" in dropdowns["departments"]
    assert dropdowns["sections"][0] == "Section 1"
    assert len(dropdowns["sections"]) == 6


def test_event_view_normalizes_times(make_event):
    event = make_event(start=datetime(2025, 3, 12, 8, 0, tzinfo=timezone.utc))
    view = svc.event_view(event, 3, now=NOW)
    assert view.start_time.tzinfo is not None
    assert view.attendee_count == 3
