from typing import Dict, Iterable, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import select, func
from attendify.crud.base import CRUDBase
from attendify.models.event import Event
from attendify.models.attendance import Attendance

class CRUDEvent(CRUDBase[Event]):
    def list_filtered(
        self,
        db: Session,
        *,
        course: Optional[str] = None,
        section: Optional[str] = None,
        year_level: Optional[str] = None,
        status: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> List[Event]:
        stmt = select(Event)
        if course:
            stmt = stmt.where(Event.course == course)
        if section:
            stmt = stmt.where(Event.section == section)
        if year_level:
            stmt = stmt.where(Event.year_level == year_level)
        if status:
            stmt = stmt.where(Event.status == status)
        if is_active is not None:
            stmt = stmt.where(Event.is_active.is_(is_active))
        stmt = stmt.order_by(Event.event_date.desc(), Event.start_time.desc())
        return list(db.scalars(stmt).all())

    def list_active(self, db: Session) -> List[Event]:
        stmt = select(Event).where(Event.is_active.is_(True)).order_by(Event.event_date.desc(), Event.start_time.desc())
        return list(db.scalars(stmt).all())

    def attendee_counts(self, db: Session, event_ids: Iterable[int]) -> Dict[int, int]:
        ids = list(event_ids)
        if not ids:
            return {}
        rows = db.execute(
            select(Attendance.event_id, func.count(Attendance.id))
            .where(Attendance.event_id.in_(ids))
            .group_by(Attendance.event_id)
        ).all()
        return {eid: n for eid, n in rows}

    def count(self, db: Session) -> int:
        return db.scalar(select(func.count(Event.id))) or 0

event_crud = CRUDEvent(Event)
