# attendify/models/__init__.py
from attendify.models.user import User, Role  # noqa: F401
from attendify.models.pending_user import PendingUser  # noqa: F401
from attendify.models.password_reset import PasswordReset  # noqa: F401
from attendify.models.event import Event, EventStatus  # noqa: F401
from attendify.models.attendance import (  # noqa: F401
    Attendance, AttendanceAction, AttendanceStatus, TimingStatus,
)
from attendify.models.audit import AuditLog  # noqa: F401
