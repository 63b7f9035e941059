# attendify/services/stats.py
from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from typing import Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from attendify.crud.event import event_crud
from attendify.crud.user import user_crud
from attendify.models.attendance import Attendance, AttendanceStatus
from attendify.models.user import User

_STARTED_AT = time.monotonic()


@dataclass
class AttendanceStats:
    total: int = 0
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0
    rate: float = 0.0

    def as_dict(self) -> Dict:
        return asdict(self)


def attendance_rate(present: int, late: int, excused: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return (present + late + excused) * 100 / total


def compute_stats(db: Session, student_id: Optional[str] = None, event_id: Optional[int] = None) -> AttendanceStats:
    stmt = select(Attendance.status, func.count(Attendance.id)).group_by(Attendance.status)
    if student_id:
        stmt = stmt.where(Attendance.student_id == student_id)
    if event_id is not None:
        stmt = stmt.where(Attendance.event_id == event_id)

    counts = {s.value: 0 for s in AttendanceStatus}
    total = 0
    for status, n in db.execute(stmt).all():
        total += n
        if status in counts:
            counts[status] = n

    return AttendanceStats(
        total=total,
        present=counts["present"],
        absent=counts["absent"],
        late=counts["late"],
        excused=counts["excused"],
        rate=attendance_rate(counts["present"], counts["late"], counts["excused"], total),
    )


def system_stats(db: Session) -> Dict:
    return {
        "total_users": db.scalar(select(func.count(User.id))) or 0,
        "users_by_role": user_crud.count_by_role(db),
        "total_events": event_crud.count(db),
        "total_attendance": db.scalar(select(func.count(Attendance.id))) or 0,
        "uptime_seconds": int(time.monotonic() - _STARTED_AT),
    }
