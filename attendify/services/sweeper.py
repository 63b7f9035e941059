# attendify/services/sweeper.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.orm import sessionmaker

from attendify.core.config import settings
from attendify.core.timeutil import ensure_aware, utcnow
from attendify.models.event import Event, EventStatus
from attendify.models.user import User
from attendify.services.qr import QRRotationManager

logger = logging.getLogger(__name__)

_OPEN_STATUSES = (EventStatus.scheduled.value, EventStatus.ongoing.value)
_CLOSED_STATUSES = (EventStatus.completed.value, EventStatus.cancelled.value)


@dataclass
class SweepResult:
    completed: List[int] = field(default_factory=list)
    started: List[int] = field(default_factory=list)
    reverted: List[int] = field(default_factory=list)


class EventSweeper:
    """Avança o ciclo de vida dos eventos: scheduled -> ongoing -> completed.

    Cada transição é um UPDATE condicionado ao status atual, então rodar em
    paralelo com update/delete manuais (ou com outra instância) é seguro.
    """

    def __init__(self, session_factory: sessionmaker, rotation: QRRotationManager,
                 interval_seconds: Optional[int] = None):
        self.session_factory = session_factory
        self.rotation = rotation
        self.interval = interval_seconds or settings.SWEEP_INTERVAL_SECONDS
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self, now: Optional[datetime] = None) -> SweepResult:
        now = ensure_aware(now) if now else utcnow()
        result = SweepResult()

        with self.session_factory() as db:
            candidates = list(db.scalars(
                select(Event.id).where(
                    Event.is_active.is_(True),
                    Event.end_time < now,
                    Event.status.in_(_OPEN_STATUSES),
                )
            ).all())
            for event_id in candidates:
                res = db.execute(
                    update(Event)
                    .where(Event.id == event_id, Event.status.in_(_OPEN_STATUSES), Event.is_active.is_(True))
                    .values(status=EventStatus.completed.value, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                db.commit()
                if res.rowcount == 1:
                    result.completed.append(event_id)

            starting = list(db.scalars(
                select(Event.id).where(
                    Event.is_active.is_(True),
                    Event.status == EventStatus.scheduled.value,
                    Event.start_time <= now,
                    Event.end_time >= now,
                )
            ).all())
            for event_id in starting:
                res = db.execute(
                    update(Event)
                    .where(Event.id == event_id, Event.status == EventStatus.scheduled.value, Event.is_active.is_(True))
                    .values(status=EventStatus.ongoing.value, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                db.commit()
                if res.rowcount == 1:
                    result.started.append(event_id)

            # alunos ainda presos a eventos encerrados ou cancelados
            stale = list(db.scalars(
                select(User.active_event_id).distinct()
                .join(Event, Event.id == User.active_event_id)
                .where(or_(Event.is_active.is_(False), Event.status.in_(_CLOSED_STATUSES)))
            ).all())

        for event_id in sorted(set(result.completed) | set(stale)):
            if self.rotation.revert_for_event(event_id):
                result.reverted.append(event_id)

        if result.completed or result.started or result.reverted:
            logger.info("sweep: completed=%s started=%s reverted=%s",
                        result.completed, result.started, result.reverted)
        return result

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("event sweep failed")
            self._stop.wait(self.interval)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="event-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None
