# attendify/core/rbac.py
from fastapi import Depends, HTTPException, status
from attendify.api.deps import get_current_user
from attendify.models.user import Role

ROLE_STUDENT = Role.student.value
ROLE_FACULTY = Role.faculty.value
ROLE_ADMIN = Role.admin.value
ROLE_SUPERADMIN = Role.superadmin.value

_HIERARCHY = [ROLE_STUDENT, ROLE_FACULTY, ROLE_ADMIN, ROLE_SUPERADMIN]
_RANK = {name: idx for idx, name in enumerate(_HIERARCHY)}

def require_roles(*roles: str):
    allowed = set(roles)
    def dep(user = Depends(get_current_user)):
        if user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return user
    return dep

def require_min_role(min_role: str):
    if min_role not in _RANK:
        raise RuntimeError(f"Unknown role: {min_role}")
    need = _RANK[min_role]
    def dep(user = Depends(get_current_user)):
        if _RANK.get(user.role, -1) >= need:
            return user
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
    return dep
