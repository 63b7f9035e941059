from enum import Enum
from typing import Optional
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, Integer, DateTime, func
from attendify.db.base_class import Base

class Role(str, Enum):
    student = "student"
    faculty = "faculty"
    admin = "admin"
    superadmin = "superadmin"

# quem pode marcar presença de terceiros
STAFF_ROLES = frozenset({Role.faculty.value, Role.admin.value, Role.superadmin.value})

class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    student_id: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(160), unique=True, index=True)
    username: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(20), default=Role.student.value)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)

    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    middle_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    course: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    year_level: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    section: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    department: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    college: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    contact_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)

    # identidade QR (rotacionada por evento)
    qr_code_data: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)
    qr_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    qr_generated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    active_event_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    original_qr_code_data: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)
    original_qr_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        name = " ".join(p for p in parts if p)
        return name or (self.username or self.student_id)
