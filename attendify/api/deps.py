from typing import Generator, Optional
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from attendify.core.tasks import BackgroundDispatcher
from attendify.core.tokens import decode_access
from attendify.crud.user import user_crud
from attendify.models.user import User
from attendify.services.notifications import NotificationService
from attendify.services.qr import QRRotationManager

# ----------------------------------------------------------------------
# Sessão por requisição, a partir da fábrica registrada em app.state
# ----------------------------------------------------------------------
def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()

def get_dispatcher(request: Request) -> BackgroundDispatcher:
    return request.app.state.dispatcher

def get_rotation(request: Request) -> QRRotationManager:
    return request.app.state.rotation

def get_notifier(request: Request) -> NotificationService:
    return request.app.state.notifier

def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None

# ----------------------------------------------------------------------
# Lê o Bearer do header Authorization (sem usar OAuth2PasswordBearer)
# ----------------------------------------------------------------------
def get_bearer_token(authorization: str = Header(None, alias="Authorization")) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid Authorization header")
    return parts[1]

def get_current_user(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
) -> User:
    payload = decode_access(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = user_crud.get_by_student_id(db, payload["student_id"])
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_verified:
        raise HTTPException(status_code=403, detail="Account not verified")
    return user
