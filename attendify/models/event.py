from enum import Enum
from typing import List, Optional
from datetime import date, datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, Date, DateTime, CheckConstraint, func
from attendify.db.base_class import Base

class EventStatus(str, Enum):
    scheduled = "scheduled"
    ongoing = "ongoing"
    completed = "completed"
    cancelled = "cancelled"

class Event(Base):
    __tablename__ = "events"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)
    event_date: Mapped[date] = mapped_column(Date())
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    location: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # restrições de público
    course: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    section: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    year_level: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    department: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    college: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    tagged_courses: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)  # CSV normalizado

    created_by: Mapped[str] = mapped_column(String(50), index=True)
    created_by_role: Mapped[str] = mapped_column(String(20))
    status: Mapped[str] = mapped_column(String(20), default=EventStatus.scheduled.value, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    qr_code_data: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    __table_args__ = (CheckConstraint("start_time < end_time", name="start_before_end"),)

    @property
    def tagged_course_list(self) -> List[str]:
        return parse_courses_csv(self.tagged_courses)


def normalize_course(value: Optional[str]) -> str:
    return (value or "").strip().upper()

def parse_courses_csv(csv: Optional[str]) -> List[str]:
    return [c for c in (normalize_course(p) for p in (csv or "").split(",")) if c]

def join_courses(courses: Optional[List[str]]) -> Optional[str]:
    cleaned: List[str] = []
    for c in courses or []:
        n = normalize_course(c)
        if n and n not in cleaned:
            cleaned.append(n)
    return ",".join(cleaned) if cleaned else None
