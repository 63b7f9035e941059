# attendify/api/v1/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from attendify.api.deps import client_ip, get_current_user, get_db, get_dispatcher, get_notifier, get_rotation
from attendify.core.config import settings
from attendify.core.tokens import create_access_token
from attendify.models.user import User
from attendify.schemas.token import Token, TokenPair
from attendify.schemas.user import (
    ForgotPasswordIn, LoginIn, RefreshIn, RegisterIn, ResetPasswordIn, UserOut, VerifyIn,
)
from attendify.services import accounts

router = APIRouter()

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterIn,
    db: Session = Depends(get_db),
    dispatcher = Depends(get_dispatcher),
    notifier = Depends(get_notifier),
):
    pending = accounts.register(db, body, dispatcher=dispatcher, notifier=notifier)
    return {
        "message": "Registration received. Check your email for the verification code.",
        "student_id": pending.student_id,
        "email": pending.email,
        "expires_at": pending.expires_at,
    }

@router.post("/verify", response_model=TokenPair)
def verify(body: VerifyIn, db: Session = Depends(get_db), rotation = Depends(get_rotation)):
    user = accounts.verify(db, body.email, body.code, encoder=rotation.encoder)
    return TokenPair(user=UserOut.model_validate(user), **accounts.issue_tokens(user))

@router.post("/login", response_model=TokenPair)
def login(body: LoginIn, request: Request, db: Session = Depends(get_db)):
    user = accounts.login(db, body.identifier, body.password, ip_address=client_ip(request))
    return TokenPair(user=UserOut.model_validate(user), **accounts.issue_tokens(user))

@router.post("/refresh-token", response_model=Token)
def refresh_token(body: RefreshIn, db: Session = Depends(get_db)):
    user = accounts.refresh(db, body.refresh_token)
    return Token(access_token=create_access_token(student_id=user.student_id, email=user.email, role=user.role))

@router.post("/forgot-password")
def forgot_password(
    body: ForgotPasswordIn,
    db: Session = Depends(get_db),
    dispatcher = Depends(get_dispatcher),
    notifier = Depends(get_notifier),
):
    accounts.forgot_password(db, body.email, dispatcher=dispatcher, notifier=notifier)
    return {
        "message": "If the email is registered, a reset code has been sent.",
        "expires_in_minutes": settings.RESET_CODE_TTL_MINUTES,
    }

@router.post("/reset-password")
def reset_password(body: ResetPasswordIn, db: Session = Depends(get_db)):
    accounts.reset_password(db, body.email, body.code, body.new_password)
    return {"message": "Password updated successfully."}

@router.get("/profile", response_model=UserOut)
def profile(user: User = Depends(get_current_user)):
    return user
