"""
Base repository class for data access operations
"""
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Generic, TypeVar, Type, Optional, List
from leadpulse.database.models.base import BaseModel

ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Base repository class for database operations.
    Repositories handle direct database access and queries.
    """

    def __init__(self, db: Session, model: Type[ModelType]):
        self.db = db
        self.model = model

    def find_by_id(self, id: int) -> Optional[ModelType]:
        """Find a record by ID"""
        return self.db.query(self.model).filter(self.model.id == id).first()

    def count(self, *conditions) -> int:
        """Count records matching all conditions"""
        return self.db.query(func.count(self.model.id)).filter(*conditions).scalar() or 0

    def create(self, **kwargs) -> ModelType:
        """Create a new record; the session is rolled back if the commit fails"""
        db_obj = self.model(**kwargs)
        self.db.add(db_obj)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(db_obj)
        return db_obj

    def update(self, db_obj: ModelType, **kwargs) -> ModelType:
        """Update an existing record"""
        for key, value in kwargs.items():
            setattr(db_obj, key, value)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(db_obj)
        return db_obj

    def update_where(self, conditions: List, values: dict) -> int:
        """Apply the same values to every matching record and return the affected count"""
        try:
            affected = (
                self.db.query(self.model)
                .filter(*conditions)
                .update(values, synchronize_session=False)
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return affected
