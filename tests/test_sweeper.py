from datetime import timedelta

from attendify.models.event import Event
from attendify.models.user import User
from attendify.services.qr import QRRotationManager
from attendify.services.sweeper import EventSweeper

from tests.conftest import NOW, fake_encoder


def _status(db, event_id):
    db.expire_all()
    return db.get(Event, event_id).status


def test_sweep_completes_past_and_starts_current(db, session_factory, make_event):
    past = make_event(start=NOW - timedelta(hours=3), duration=timedelta(hours=1))
    ongoing_past = make_event(start=NOW - timedelta(hours=5), duration=timedelta(hours=1), status="ongoing")
    current = make_event(start=NOW - timedelta(minutes=10))
    future = make_event(start=NOW + timedelta(days=1))
    cancelled = make_event(start=NOW - timedelta(hours=3), duration=timedelta(hours=1),
                           status="cancelled", is_active=False)

    sweeper = EventSweeper(session_factory, QRRotationManager(session_factory, encoder=fake_encoder))
    result = sweeper.run_once(NOW)

    assert sorted(result.completed) == sorted([past.id, ongoing_past.id])
    assert result.started == [current.id]
    assert _status(db, past.id) == "completed"
    assert _status(db, ongoing_past.id) == "completed"
    assert _status(db, current.id) == "ongoing"
    assert _status(db, future.id) == "scheduled"
    assert _status(db, cancelled.id) == "cancelled"


def test_sweep_is_idempotent(session_factory, make_event):
    make_event(start=NOW - timedelta(hours=3), duration=timedelta(hours=1))
    make_event(start=NOW - timedelta(minutes=10))
    sweeper = EventSweeper(session_factory, QRRotationManager(session_factory, encoder=fake_encoder))

    sweeper.run_once(NOW)
    again = sweeper.run_once(NOW)
    assert again.completed == []
    assert again.started == []


def test_completed_event_reverts_student_qr(db, session_factory, make_user, make_event):
    make_user("S-001")
    event = make_event(start=NOW - timedelta(hours=3), duration=timedelta(hours=1), tagged_courses=["BSIT"])
    rotation = QRRotationManager(session_factory, encoder=fake_encoder)
    rotation.activate_for_event(event.id, ["BSIT"])

    EventSweeper(session_factory, rotation).run_once(NOW)

    db.expire_all()
    student = db.query(User).filter(User.student_id == "S-001").one()
    assert student.active_event_id is None
    assert student.qr_code_data == "qr:student:S-001"


def test_sweep_reverts_rotations_left_on_closed_events(db, session_factory, make_user, make_event):
    make_user("S-001")
    make_user("S-002", course="BSCS")
    make_user("S-003", course="BSED")
    done = make_event(start=NOW - timedelta(hours=3), duration=timedelta(hours=1),
                      tagged_courses=["BSIT"], status="completed")
    dropped = make_event(start=NOW + timedelta(days=1), tagged_courses=["BSCS"],
                         status="cancelled", is_active=False)
    live = make_event(start=NOW + timedelta(days=1), tagged_courses=["BSED"])
    rotation = QRRotationManager(session_factory, encoder=fake_encoder)
    rotation.activate_for_event(done.id, ["BSIT"])
    rotation.activate_for_event(dropped.id, ["BSCS"])
    rotation.activate_for_event(live.id, ["BSED"])

    result = EventSweeper(session_factory, rotation).run_once(NOW)

    assert result.completed == []
    assert result.reverted == sorted([done.id, dropped.id])
    db.expire_all()
    by_id = {u.student_id: u for u in db.query(User).all()}
    assert by_id["S-001"].active_event_id is None
    assert by_id["S-001"].qr_code_data == "qr:student:S-001"
    assert by_id["S-002"].active_event_id is None
    assert by_id["S-003"].active_event_id == live.id

    assert EventSweeper(session_factory, rotation).run_once(NOW).reverted == []


def test_start_and_stop_background_thread(session_factory):
    sweeper = EventSweeper(session_factory, QRRotationManager(session_factory, encoder=fake_encoder),
                           interval_seconds=3600)
    sweeper.start()
    assert sweeper._thread is not None and sweeper._thread.is_alive()
    sweeper.stop()
    assert sweeper._thread is None
