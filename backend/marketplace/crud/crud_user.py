from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload
from typing import Optional

from .. import models
from ..utils.auth import normalize_email


class CRUDUser:
    def get_by_email(self, db: Session, email: str) -> Optional[models.User]:
        return (
            db.query(models.User)
            .options(joinedload(models.User.technician_profile))
            .filter(func.lower(models.User.email) == normalize_email(email))
            .first()
        )

    def get(self, db: Session, user_id: int) -> Optional[models.User]:
        return db.query(models.User).filter(models.User.id == user_id).first()


user = CRUDUser()
