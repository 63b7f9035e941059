# attendify/services/accounts.py
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from attendify.core.config import settings
from attendify.core.errors import (
    AccessDeniedError, AuthenticationError, ConflictError, NotFoundError, ValidationError,
)
from attendify.core.security import STUDENT_ID_RE, generate_numeric_code, password_policy_errors
from attendify.core.security_password import hash_password, verify_and_maybe_upgrade
from attendify.core.timeutil import ensure_aware, utcnow
from attendify.core.tokens import create_access_token, create_refresh_token, decode_refresh
from attendify.crud.user import normalize_email, user_crud
from attendify.models import audit as actions
from attendify.models.password_reset import PasswordReset
from attendify.models.pending_user import PendingUser
from attendify.models.user import Role, User
from attendify.schemas.user import AdminCreateIn, ProfileFields, RegisterIn, UserAdminUpdate
from attendify.services import audit
from attendify.services.qr import QR_TYPE_STUDENT, student_payload

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "invalid credentials"
PROMOTABLE_ROLES = {Role.student.value, Role.faculty.value, Role.admin.value}


def _check_password(password: str) -> None:
    problems = password_policy_errors(password)
    if problems:
        raise ValidationError(problems[0], details=problems)


def _generate_student_id(db: Session, now: datetime) -> str:
    prefix = now.strftime("%y%m%d")
    for _ in range(10):
        candidate = f"{prefix}-{secrets.randbelow(10000):04d}"
        if not user_crud.student_id_taken(db, candidate):
            return candidate
    raise ConflictError("failed to generate unique student ID")


def _profile(data: ProfileFields) -> dict:
    return data.model_dump(include=set(ProfileFields.model_fields))


def register(db: Session, payload: RegisterIn, *, dispatcher=None, notifier=None, now: Optional[datetime] = None) -> PendingUser:
    now = ensure_aware(now) if now else utcnow()
    email = normalize_email(payload.email)
    _check_password(payload.password)
    # cadastros expirados liberam e-mail e student_id
    purge_expired_pending(db, now)

    if payload.student_id:
        student_id = payload.student_id.strip().upper()
        if not STUDENT_ID_RE.match(student_id):
            raise ValidationError("invalid student ID format")
        if user_crud.student_id_taken(db, student_id):
            raise ConflictError("student_id already exists")
    else:
        student_id = _generate_student_id(db, now)

    if user_crud.get_by_email(db, email):
        raise ConflictError("email already registered")
    if db.scalar(select(PendingUser).where(PendingUser.email == email)):
        raise ConflictError("email already pending verification")

    code = generate_numeric_code(6)
    pending = PendingUser(
        student_id=student_id,
        email=email,
        password_hash=hash_password(payload.password),
        verification_code=code,
        expires_at=now + timedelta(minutes=settings.VERIFICATION_CODE_TTL_MINUTES),
        **_profile(payload),
    )
    db.add(pending)
    db.commit()
    db.refresh(pending)

    if dispatcher is not None and notifier is not None:
        dispatcher.submit(notifier.send_verification_code, email, payload.first_name or student_id, code)
    audit.record(db, actions.USER_REGISTERED, actor_id=student_id, target_id=student_id)
    return pending


def verify(db: Session, email: str, code: str, *, encoder, now: Optional[datetime] = None) -> User:
    now = ensure_aware(now) if now else utcnow()
    email = normalize_email(email)
    pending = db.scalar(select(PendingUser).where(PendingUser.email == email))
    if not pending:
        raise NotFoundError("registration not found")
    if now > ensure_aware(pending.expires_at):
        db.delete(pending)
        db.commit()
        raise ValidationError("verification code has expired. Please register again.")
    if not secrets.compare_digest(pending.verification_code, (code or "").strip()):
        raise ValidationError("invalid verification code")

    user = User(
        student_id=pending.student_id,
        email=pending.email,
        username=pending.student_id,
        password_hash=pending.password_hash,
        role=Role.student.value,
        is_verified=True,
        verified_at=now,
        qr_code_data=encoder(student_payload(pending.student_id)),
        qr_type=QR_TYPE_STUDENT,
        qr_generated_at=now,
        first_name=pending.first_name,
        last_name=pending.last_name,
        middle_name=pending.middle_name,
        course=(pending.course or "").strip().upper() or None,
        year_level=pending.year_level,
        section=pending.section,
        department=pending.department,
        college=pending.college,
        contact_number=pending.contact_number,
        address=pending.address,
    )
    db.add(user)
    db.delete(pending)
    db.commit()
    db.refresh(user)
    audit.record(db, actions.USER_VERIFIED, actor_id=user.student_id, target_id=user.student_id)
    return user


def issue_tokens(user: User) -> dict:
    claims = dict(student_id=user.student_id, email=user.email, role=user.role)
    return {
        "access_token": create_access_token(**claims),
        "refresh_token": create_refresh_token(**claims),
        "token_type": "bearer",
        "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    }


def login(db: Session, identifier: str, password: str, *, ip_address: Optional[str] = None) -> User:
    user = user_crud.get_by_login(db, identifier)
    if not user:
        raise AuthenticationError(INVALID_CREDENTIALS)
    ok, new_hash = verify_and_maybe_upgrade(password, user.password_hash)
    if not ok:
        raise AuthenticationError(INVALID_CREDENTIALS)
    if not user.is_verified:
        raise AccessDeniedError("account not verified")
    if new_hash:
        user.password_hash = new_hash
        db.commit()
    audit.record(db, actions.USER_LOGIN, actor_id=user.student_id, ip_address=ip_address)
    return user


def refresh(db: Session, refresh_token: str) -> User:
    payload = decode_refresh(refresh_token)
    if not payload:
        raise AuthenticationError("invalid or expired refresh token")
    user = user_crud.get_by_student_id(db, payload["student_id"])
    if not user or not user.is_verified:
        raise AuthenticationError("invalid or expired refresh token")
    return user


def forgot_password(db: Session, email: str, *, dispatcher=None, notifier=None, now: Optional[datetime] = None) -> None:
    """Não revela se o e-mail existe."""
    now = ensure_aware(now) if now else utcnow()
    email = normalize_email(email)
    user = user_crud.get_by_email(db, email)
    if not user:
        logger.info("password reset requested for unknown email")
        return

    db.execute(update(PasswordReset).where(PasswordReset.email == email, PasswordReset.used.is_(False)).values(used=True))
    code = generate_numeric_code(6)
    db.add(PasswordReset(email=email, code=code, expires_at=now + timedelta(minutes=settings.RESET_CODE_TTL_MINUTES)))
    db.commit()
    if dispatcher is not None and notifier is not None:
        dispatcher.submit(notifier.send_password_reset_code, email, code)


def reset_password(db: Session, email: str, code: str, new_password: str, *, now: Optional[datetime] = None) -> None:
    now = ensure_aware(now) if now else utcnow()
    email = normalize_email(email)
    reset = db.scalar(
        select(PasswordReset)
        .where(PasswordReset.email == email, PasswordReset.code == (code or "").strip(), PasswordReset.used.is_(False))
        .order_by(PasswordReset.id.desc())
    )
    if not reset or now > ensure_aware(reset.expires_at):
        raise ValidationError("invalid or expired reset code")
    _check_password(new_password)

    user = user_crud.get_by_email(db, email)
    if not user:
        raise NotFoundError("user not found")
    user.password_hash = hash_password(new_password)
    reset.used = True
    db.commit()
    audit.record(db, actions.PASSWORD_RESET, actor_id=user.student_id, target_id=user.student_id)


# ---------------- administração (superadmin) ----------------

def list_users(db: Session, role: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[User]:
    return user_crud.list_filtered(db, role=role, skip=skip, limit=limit)


def promote(db: Session, student_id: str, role: str, actor: User, *, ip_address: Optional[str] = None) -> User:
    if role not in PROMOTABLE_ROLES:
        raise ValidationError("role must be one of: student, faculty, admin")
    user = user_crud.get_by_student_id(db, student_id)
    if not user:
        raise NotFoundError("user not found")
    if user.role == Role.superadmin.value:
        raise AccessDeniedError("cannot change the role of a superadmin")
    previous = user.role
    user.role = role
    db.commit()
    audit.record(db, actions.USER_PROMOTED, actor_id=actor.student_id, target_id=student_id,
                 details=f"{previous} -> {role}", ip_address=ip_address)
    return user


def create_admin(db: Session, payload: AdminCreateIn, actor: User, *, encoder, ip_address: Optional[str] = None) -> User:
    _check_password(payload.password)
    student_id = payload.student_id.strip().upper()
    if not STUDENT_ID_RE.match(student_id):
        raise ValidationError("invalid student ID format")
    if user_crud.student_id_taken(db, student_id):
        raise ConflictError("student_id already exists")
    if user_crud.email_taken(db, payload.email):
        raise ConflictError("email already registered")

    now = utcnow()
    user = User(
        student_id=student_id,
        email=normalize_email(payload.email),
        username=student_id,
        password_hash=hash_password(payload.password),
        role=Role.admin.value,
        is_verified=True,
        verified_at=now,
        qr_code_data=encoder(student_payload(student_id)),
        qr_type=QR_TYPE_STUDENT,
        qr_generated_at=now,
        **_profile(payload),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    audit.record(db, actions.ADMIN_CREATED, actor_id=actor.student_id, target_id=student_id, ip_address=ip_address)
    return user


def update_user(db: Session, student_id: str, changes: UserAdminUpdate, actor: User, *, ip_address: Optional[str] = None) -> User:
    user = user_crud.get_by_student_id(db, student_id)
    if not user:
        raise NotFoundError("user not found")
    data = changes.model_dump(exclude_unset=True)
    if "email" in data:
        if not data["email"]:
            raise ValidationError("email cannot be empty")
        email = normalize_email(data["email"])
        other = user_crud.get_by_email(db, email)
        if other and other.id != user.id:
            raise ConflictError("email already registered")
        data["email"] = email
    if "is_verified" in data and data["is_verified"] is None:
        del data["is_verified"]
    user = user_crud.update(db, user, data)
    audit.record(db, actions.USER_UPDATED, actor_id=actor.student_id, target_id=student_id,
                 details=",".join(sorted(data)), ip_address=ip_address)
    return user


def delete_user(db: Session, student_id: str, actor: User, *, ip_address: Optional[str] = None) -> None:
    user = user_crud.get_by_student_id(db, student_id)
    if not user:
        raise NotFoundError("user not found")
    if user.role == Role.superadmin.value:
        raise AccessDeniedError("cannot delete a superadmin")
    db.delete(user)
    db.commit()
    audit.record(db, actions.USER_DELETED, actor_id=actor.student_id, target_id=student_id, ip_address=ip_address)


def purge_expired_pending(db: Session, now: Optional[datetime] = None) -> int:
    now = ensure_aware(now) if now else utcnow()
    result = db.execute(delete(PendingUser).where(PendingUser.expires_at < now))
    db.commit()
    return result.rowcount or 0
