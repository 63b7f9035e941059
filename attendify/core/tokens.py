# attendify/core/tokens.py
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError
from attendify.core.config import settings

def _now() -> datetime:
    return datetime.now(timezone.utc)

def _claims(kind: str, student_id: str, email: str, role: str, expires: datetime) -> Dict[str, Any]:
    return {
        "type": kind,
        "sub": student_id,
        "student_id": student_id,
        "email": email,
        "role": role,
        "jti": uuid.uuid4().hex,
        "iat": int(_now().timestamp()),
        "exp": int(expires.timestamp()),
    }

def create_access_token(*, student_id: str, email: str, role: str) -> str:
    """Access token curto (minutos), assinado com SECRET_KEY."""
    expires = _now() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return jwt.encode(_claims("access", student_id, email, role, expires), settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def create_refresh_token(*, student_id: str, email: str, role: str) -> str:
    """Refresh longo (dias)."""
    expires = _now() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return jwt.encode(_claims("refresh", student_id, email, role, expires), settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def _decode(token: str, kind: str) -> Optional[Dict[str, Any]]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if not isinstance(payload, dict):
        return None
    if payload.get("type") != kind:
        return None
    if not payload.get("student_id") or not payload.get("jti"):
        return None
    return payload

def decode_access(token: str) -> Optional[Dict[str, Any]]:
    return _decode(token, "access")

def decode_refresh(token: str) -> Optional[Dict[str, Any]]:
    return _decode(token, "refresh")
