from typing import TypeVar, Generic, Type, Any, Optional, List, Dict
from sqlalchemy import select
from sqlalchemy.orm import Session
from pydantic import BaseModel
from attendify.db.base_class import Base

ModelType = TypeVar("ModelType", bound=Base)

class CRUDBase(Generic[ModelType]):
    def __init__(self, model: Type[ModelType]): self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        return db.get(self.model, id)

    def get_multi(self, db: Session, skip=0, limit=100) -> List[ModelType]:
        stmt = select(self.model).order_by(self.model.id).offset(skip).limit(limit)
        return list(db.scalars(stmt).all())

    def update(self, db: Session, db_obj: ModelType, obj_in: BaseModel | Dict[str, Any]) -> ModelType:
        # parcial: só os campos presentes mudam
        data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)
        for field, value in data.items():
            setattr(db_obj, field, value)
        db.commit()
        db.refresh(db_obj)
        return db_obj
