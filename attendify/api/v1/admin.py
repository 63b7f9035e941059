# attendify/api/v1/admin.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from attendify.api.deps import client_ip, get_db, get_rotation
from attendify.core.rbac import ROLE_SUPERADMIN, require_roles
from attendify.models.user import User
from attendify.schemas.attendance import AttendanceOut
from attendify.schemas.user import AdminCreateIn, AuditLogOut, PromoteIn, UserAdminUpdate, UserOut
from attendify.crud.attendance import attendance_crud
from attendify.services import accounts, audit
from attendify.services.stats import system_stats

router = APIRouter()

superadmin_only = require_roles(ROLE_SUPERADMIN)

@router.get("/users", response_model=List[UserOut])
def list_users(
    role: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    _ = Depends(superadmin_only),
):
    return accounts.list_users(db, role=role, skip=skip, limit=limit)

@router.post("/promote", response_model=UserOut)
def promote(body: PromoteIn, request: Request, db: Session = Depends(get_db), actor: User = Depends(superadmin_only)):
    return accounts.promote(db, body.student_id, body.role, actor, ip_address=client_ip(request))

@router.post("/admins", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_admin(
    body: AdminCreateIn,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(superadmin_only),
    rotation = Depends(get_rotation),
):
    return accounts.create_admin(db, body, actor, encoder=rotation.encoder, ip_address=client_ip(request))

@router.patch("/users/{student_id}", response_model=UserOut)
def update_user(
    student_id: str,
    body: UserAdminUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(superadmin_only),
):
    return accounts.update_user(db, student_id, body, actor, ip_address=client_ip(request))

@router.delete("/users/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(student_id: str, request: Request, db: Session = Depends(get_db), actor: User = Depends(superadmin_only)):
    accounts.delete_user(db, student_id, actor, ip_address=client_ip(request))
    return None

@router.get("/stats")
def stats(db: Session = Depends(get_db), _ = Depends(superadmin_only)):
    return system_stats(db)

@router.get("/audit-logs", response_model=List[AuditLogOut])
def audit_logs(
    action: Optional[str] = None,
    actor_id: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    _ = Depends(superadmin_only),
):
    return audit.list_logs(db, action=action, actor_id=actor_id, limit=limit)

@router.get("/attendance", response_model=List[AttendanceOut])
def all_attendance(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    _ = Depends(superadmin_only),
):
    return attendance_crud.get_multi(db, skip=skip, limit=limit)
