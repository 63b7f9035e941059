from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest

from attendify.db.base import Base
from attendify.db.session import make_engine, make_session_factory
from attendify.models.event import Event, EventStatus, join_courses
from attendify.models.user import User

NOW = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


def fake_encoder(content: str) -> str:
    return f"qr:{content}"


class SyncDispatcher:
    """Executa a tarefa na hora e guarda a chamada."""

    def __init__(self):
        self.calls = []

    def submit(self, fn, *args, **kwargs):
        self.calls.append((getattr(fn, "__name__", repr(fn)), args))
        return fn(*args, **kwargs)

    def names(self):
        return [name for name, _ in self.calls]

    def shutdown(self, wait: bool = True) -> None:
        pass


class RecordingDispatcher(SyncDispatcher):
    """Só registra; nada é executado."""

    def submit(self, fn, *args, **kwargs):
        self.calls.append((getattr(fn, "__name__", repr(fn)), args))
        return None


class FakeNotifier:
    def __init__(self):
        self.sent = []

    def notify_attendance(self, action, event_id, student_id, when, timing):
        self.sent.append(("attendance", action, event_id, student_id, timing))
        return True

    def send_verification_code(self, email, name, code):
        self.sent.append(("verification", email, code))
        return True

    def send_password_reset_code(self, email, code):
        self.sent.append(("password_reset", email, code))
        return True


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def dispatcher():
    return SyncDispatcher()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def make_user(db):
    def _make(
        student_id: str,
        *,
        role: str = "student",
        course: Optional[str] = "BSIT",
        year_level: Optional[str] = "3",
        section: Optional[str] = None,
        department: Optional[str] = None,
        email: Optional[str] = None,
        password_hash: str = "x",
        is_verified: bool = True,
    ) -> User:
        user = User(
            student_id=student_id,
            email=email or f"{student_id.lower()}@campus.edu",
            username=student_id,
            password_hash=password_hash,
            role=role,
            is_verified=is_verified,
            first_name="Test",
            last_name=student_id,
            course=course,
            year_level=year_level,
            section=section,
            department=department,
            qr_code_data=fake_encoder(f"student:{student_id}"),
            qr_type="student_id",
        )
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def make_event(db):
    def _make(
        *,
        start: datetime = NOW + timedelta(hours=1),
        duration: timedelta = timedelta(hours=2),
        course: Optional[str] = None,
        year_level: Optional[str] = None,
        department: Optional[str] = None,
        section: Optional[str] = None,
        tagged_courses=None,
        created_by: str = "FAC-1",
        created_by_role: str = "faculty",
        status: str = EventStatus.scheduled.value,
        is_active: bool = True,
        title: str = "Orientation",
        description: Optional[str] = "Welcome session",
    ) -> Event:
        event = Event(
            title=title,
            description=description,
            event_date=start.date() if isinstance(start, datetime) else date.today(),
            start_time=start,
            end_time=start + duration,
            location="Main Hall",
            course=course,
            year_level=year_level,
            department=department,
            section=section,
            tagged_courses=join_courses(tagged_courses),
            created_by=created_by,
            created_by_role=created_by_role,
            status=status,
            is_active=is_active,
        )
        db.add(event)
        db.commit()
        return event
    return _make
