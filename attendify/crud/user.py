from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import select, func, or_
from attendify.crud.base import CRUDBase
from attendify.models.user import User, Role
from attendify.models.pending_user import PendingUser

def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()

class CRUDUser(CRUDBase[User]):
    def get_by_student_id(self, db: Session, student_id: str) -> Optional[User]:
        return db.execute(select(User).where(User.student_id == student_id)).scalar_one_or_none()

    def get_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.execute(select(User).where(User.email == normalize_email(email))).scalar_one_or_none()

    def get_by_login(self, db: Session, identifier: str) -> Optional[User]:
        ident = (identifier or "").strip()
        stmt = select(User).where(or_(User.student_id == ident.upper(), User.student_id == ident, User.email == ident.lower()))
        return db.scalars(stmt.limit(1)).first()

    def list_by_roles(self, db: Session, roles: List[str]) -> List[User]:
        return list(db.scalars(select(User).where(User.role.in_(roles))).all())

    def list_filtered(self, db: Session, role: str | None = None, skip: int = 0, limit: int = 100) -> List[User]:
        stmt = select(User).order_by(User.id)
        if role:
            stmt = stmt.where(User.role == role)
        return list(db.scalars(stmt.offset(skip).limit(limit)).all())

    def count_by_role(self, db: Session) -> dict:
        rows = db.execute(select(User.role, func.count(User.id)).group_by(User.role)).all()
        counts = {r.value: 0 for r in Role}
        for role, n in rows:
            counts[role] = n
        return counts

    def student_id_taken(self, db: Session, student_id: str) -> bool:
        if self.get_by_student_id(db, student_id):
            return True
        return db.execute(select(PendingUser.id).where(PendingUser.student_id == student_id)).first() is not None

    def email_taken(self, db: Session, email: str) -> bool:
        email = normalize_email(email)
        if self.get_by_email(db, email):
            return True
        return db.execute(select(PendingUser.id).where(PendingUser.email == email)).first() is not None

user_crud = CRUDUser(User)
