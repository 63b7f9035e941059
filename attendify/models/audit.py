from typing import Optional
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, DateTime, func
from attendify.db.base_class import Base

# ações registradas
USER_REGISTERED = "USER_REGISTERED"
USER_VERIFIED = "USER_VERIFIED"
USER_LOGIN = "USER_LOGIN"
USER_PROMOTED = "USER_PROMOTED"
USER_UPDATED = "USER_UPDATED"
USER_DELETED = "USER_DELETED"
ADMIN_CREATED = "ADMIN_CREATED"
PASSWORD_RESET = "PASSWORD_RESET"
EVENT_CREATED = "EVENT_CREATED"
EVENT_UPDATED = "EVENT_UPDATED"
EVENT_DELETED = "EVENT_DELETED"
ATTENDANCE_STATUS_UPDATED = "ATTENDANCE_STATUS_UPDATED"

class AuditLog(Base):
    __tablename__ = "audit_logs"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    action: Mapped[str] = mapped_column(String(50), index=True)
    actor_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    target_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    details: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
