# attendify/schemas/user.py
from __future__ import annotations
from typing import Literal, Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

PromotableRole = Literal["student", "faculty", "admin"]

class ProfileFields(BaseModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    middle_name: Optional[str] = Field(default=None, max_length=100)
    course: Optional[str] = Field(default=None, max_length=100)
    year_level: Optional[str] = Field(default=None, max_length=50)
    section: Optional[str] = Field(default=None, max_length=50)
    department: Optional[str] = Field(default=None, max_length=160)
    college: Optional[str] = Field(default=None, max_length=160)
    contact_number: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = None

class RegisterIn(ProfileFields):
    email: EmailStr
    password: str
    student_id: Optional[str] = None

class VerifyIn(BaseModel):
    email: EmailStr
    code: str = Field(min_length=6, max_length=6)

class LoginIn(BaseModel):
    # student_id ou e-mail
    identifier: str = Field(min_length=1)
    password: str

class RefreshIn(BaseModel):
    refresh_token: str

class ForgotPasswordIn(BaseModel):
    email: EmailStr

class ResetPasswordIn(BaseModel):
    email: EmailStr
    code: str = Field(min_length=6, max_length=6)
    new_password: str

class PromoteIn(BaseModel):
    student_id: str
    role: PromotableRole

class AdminCreateIn(ProfileFields):
    email: EmailStr
    password: str
    student_id: str

class UserAdminUpdate(ProfileFields):
    """Atualização parcial feita pelo superadmin; campos ausentes não mudam."""
    email: Optional[EmailStr] = None
    username: Optional[str] = Field(default=None, max_length=120)
    is_verified: Optional[bool] = None

class UserOut(BaseModel):
    id: int
    student_id: str
    email: str
    username: Optional[str] = None
    role: str
    is_verified: bool
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    middle_name: Optional[str] = None
    course: Optional[str] = None
    year_level: Optional[str] = None
    section: Optional[str] = None
    department: Optional[str] = None
    college: Optional[str] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None
    qr_type: Optional[str] = None
    active_event_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

class QRCodeOut(BaseModel):
    student_id: str
    qr_code_data: Optional[str] = None
    qr_type: Optional[str] = None
    active_event_id: Optional[int] = None
    qr_generated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

class AuditLogOut(BaseModel):
    id: int
    action: str
    actor_id: Optional[str] = None
    target_id: Optional[str] = None
    details: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
