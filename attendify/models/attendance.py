from enum import Enum
from typing import Optional
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import ForeignKey, UniqueConstraint, DateTime, String, Text, Float, func
from attendify.db.base_class import Base

class AttendanceStatus(str, Enum):
    present = "present"
    absent = "absent"
    late = "late"
    excused = "excused"

class TimingStatus(str, Enum):
    early = "early"
    on_time = "on_time"
    late = "late"

class AttendanceAction(str, Enum):
    check_in = "check_in"
    check_out = "check_out"

class Attendance(Base):
    __tablename__ = "attendances"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), index=True)
    student_id: Mapped[str] = mapped_column(String(50), index=True)  # chave de negócio do User
    status: Mapped[str] = mapped_column(String(20), default=AttendanceStatus.present.value)
    marked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    marked_by: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    marked_by_role: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    method: Mapped[str] = mapped_column(String(20), default="qr_scan")
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)

    check_in_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    check_out_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    check_in_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    check_out_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    __table_args__ = (UniqueConstraint("event_id", "student_id", name="uq_attendance_event_student"),)
