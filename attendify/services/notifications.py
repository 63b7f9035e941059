# attendify/services/notifications.py
from __future__ import annotations

import ssl
import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Dict, Iterable, List, Optional

from jinja2 import Environment, BaseLoader, TemplateNotFound, select_autoescape
from sqlalchemy.orm import sessionmaker

from attendify.core.config import settings
from attendify.core.timeutil import local_tz
from attendify.crud.event import event_crud
from attendify.crud.user import user_crud
from attendify.models.user import Role

logger = logging.getLogger(__name__)

LAYOUT = """<!doctype html>
<html><body style="font-family:Arial,sans-serif;color:#222">
  <span style="display:none">{{ preheader }}</span>
  <h2>{{ heading }}</h2>
  {% block content %}{% endblock %}
  <p style="color:#888;font-size:12px">This is an automated notification from the Attendance System.</p>
</body></html>"""

TEMPLATES: Dict[str, str] = {
    "attendance": """{% extends "layout" %}{% block content %}
  <p><strong>Event:</strong> {{ event_title }}</p>
  <p><strong>Student:</strong> {{ student_name }}</p>
  <p><strong>Student ID:</strong> {{ student_id }}</p>
  <p><strong>{{ label }} Time:</strong> {{ when }}</p>
  <p><strong>Status:</strong> {{ status_text }}</p>
  <p><strong>Location:</strong> {{ location or "-" }}</p>
{% endblock %}""",
    "verification": """{% extends "layout" %}{% block content %}
  <p>Hello {{ name }},</p>
  <p>Your verification code is <strong style="font-size:20px">{{ code }}</strong>.</p>
  <p>It expires in {{ ttl_minutes }} minutes.</p>
{% endblock %}""",
    "password_reset": """{% extends "layout" %}{% block content %}
  <p>We received a request to reset your password.</p>
  <p>Your reset code is <strong style="font-size:20px">{{ code }}</strong> (valid for {{ ttl_minutes }} minutes).</p>
  <p>If you did not request this, you can ignore this email.</p>
{% endblock %}""",
}

TIMING_TEXT = {
    "early": "Early (arrived before scheduled time)",
    "on_time": "On Time",
    "late": "Late",
}


class _DictLoader(BaseLoader):
    def get_source(self, environment, template):
        if template == "layout":
            return LAYOUT, None, lambda: True
        if template not in TEMPLATES:
            raise TemplateNotFound(template)
        return TEMPLATES[template], None, lambda: True


_env = Environment(loader=_DictLoader(), autoescape=select_autoescape(default=True), enable_async=False)


def render(template: str, **ctx) -> str:
    return _env.get_template(template).render(**ctx)


class Mailer:
    """Envio SMTP. Nunca levanta: falhas são logadas e retornam False."""

    def __init__(self, host: Optional[str] = None, port: Optional[int] = None, user: Optional[str] = None,
                 password: Optional[str] = None, sender: Optional[str] = None, use_tls: Optional[bool] = None):
        self.host = settings.SMTP_HOST if host is None else host
        self.port = port or settings.SMTP_PORT
        self.user = settings.SMTP_USER if user is None else user
        self.password = settings.SMTP_PASSWORD if password is None else password
        self.sender = sender or settings.SMTP_FROM
        self.use_tls = settings.SMTP_USE_TLS if use_tls is None else use_tls

    @property
    def configured(self) -> bool:
        return bool(self.host)

    def send(self, recipients: Iterable[str], subject: str, html: str) -> bool:
        to = [r for r in dict.fromkeys(recipients) if r]
        if not to:
            return False
        if not self.configured:
            logger.warning("SMTP not configured; skipping email %r to %d recipient(s)", subject, len(to))
            return False

        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = ", ".join(to)
        msg["Subject"] = subject
        msg.attach(MIMEText(html, "html"))
        try:
            with smtplib.SMTP(self.host, self.port, timeout=15) as server:
                if self.use_tls:
                    server.starttls(context=ssl.create_default_context())
                if self.user:
                    server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("failed to send email %r: %s", subject, exc)
            return False
        logger.info("email %r sent to %d recipient(s)", subject, len(to))
        return True


class NotificationService:
    def __init__(self, session_factory: sessionmaker, mailer: Optional[Mailer] = None):
        self.session_factory = session_factory
        self.mailer = mailer or Mailer()

    def attendance_recipients(self, db, event) -> List[str]:
        staff = user_crud.list_by_roles(db, [Role.admin.value, Role.superadmin.value])
        emails = [u.email for u in staff]
        creator = user_crud.get_by_student_id(db, event.created_by)
        if creator:
            emails.append(creator.email)
        return list(dict.fromkeys(e for e in emails if e))

    def notify_attendance(self, action: str, event_id: int, student_id: str, when: datetime, timing: Optional[str]) -> bool:
        with self.session_factory() as db:
            event = event_crud.get(db, event_id)
            student = user_crud.get_by_student_id(db, student_id)
            if not event or not student:
                return False
            recipients = self.attendance_recipients(db, event)
            label = "Check-In" if action == "check_in" else "Check-Out"
            html = render(
                "attendance",
                preheader=f"Student {label.lower()}",
                heading=f"Student {label} Notification",
                event_title=event.title,
                student_name=student.full_name,
                student_id=student.student_id,
                label=label,
                when=when.astimezone(local_tz()).strftime("%B %d, %Y %I:%M %p"),
                status_text=TIMING_TEXT.get(timing or "", timing or "-"),
                location=event.location,
            )
            subject = f"{label}: {student.full_name} - {event.title}"
        return self.mailer.send(recipients, subject, html)

    def send_verification_code(self, email: str, name: str, code: str) -> bool:
        html = render("verification", preheader="Verify your account", heading="Verify your email",
                      name=name, code=code, ttl_minutes=settings.VERIFICATION_CODE_TTL_MINUTES)
        return self.mailer.send([email], "Your verification code", html)

    def send_password_reset_code(self, email: str, code: str) -> bool:
        html = render("password_reset", preheader="Password reset", heading="Reset your password",
                      code=code, ttl_minutes=settings.RESET_CODE_TTL_MINUTES)
        return self.mailer.send([email], "Password reset code", html)
