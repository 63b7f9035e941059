from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import select, func, text
from attendify.crud.base import CRUDBase
from attendify.models.attendance import Attendance

class CRUDAttendance(CRUDBase[Attendance]):
    def get_pair(self, db: Session, *, event_id: int, student_id: str) -> Optional[Attendance]:
        return db.execute(
            select(Attendance).where(
                Attendance.event_id == event_id,
                Attendance.student_id == student_id,
            )
        ).scalar_one_or_none()

    def count_for_student(self, db: Session, student_id: str) -> int:
        return db.scalar(select(func.count(Attendance.id)).where(Attendance.student_id == student_id)) or 0

    def count_for_event(self, db: Session, event_id: int) -> int:
        return db.scalar(select(func.count(Attendance.id)).where(Attendance.event_id == event_id)) or 0

    def list_for_event(self, db: Session, event_id: int) -> List[Attendance]:
        stmt = select(Attendance).where(Attendance.event_id == event_id).order_by(Attendance.created_at.desc(), Attendance.id.desc())
        return list(db.scalars(stmt).all())

    def list_for_student(
        self,
        db: Session,
        student_id: str,
        *,
        event_id: Optional[int] = None,
        status: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Attendance]:
        stmt = select(Attendance).where(Attendance.student_id == student_id)
        if event_id is not None:
            stmt = stmt.where(Attendance.event_id == event_id)
        if status:
            stmt = stmt.where(Attendance.status == status)
        if start is not None:
            stmt = stmt.where(Attendance.check_in_time >= start)
        if end is not None:
            stmt = stmt.where(Attendance.check_in_time <= end)
        stmt = stmt.order_by(Attendance.created_at.desc(), Attendance.id.desc())
        return list(db.scalars(stmt).all())

    def resync_sequence(self, db: Session) -> bool:
        """Realinha a sequence do PK com MAX(id). Só existe em PostgreSQL."""
        if db.get_bind().dialect.name != "postgresql":
            return False
        db.execute(text(
            "SELECT setval(pg_get_serial_sequence('attendances', 'id'), "
            "COALESCE((SELECT MAX(id) FROM attendances), 0) + 1, false)"
        ))
        db.commit()
        return True

attendance_crud = CRUDAttendance(Attendance)
