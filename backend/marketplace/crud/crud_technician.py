from sqlalchemy import case
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional, Sequence

from .. import models
from ..models.technician_profile import TechnicianStatus

# Admin listings show active technicians first
_STATUS_ORDER = case(
    (models.TechnicianProfile.status == TechnicianStatus.ACTIVE, 0),
    (models.TechnicianProfile.status == TechnicianStatus.PENDING, 1),
    else_=2,
)


class CRUDTechnician:
    def get_profile(self, db: Session, technician_id: int) -> Optional[models.TechnicianProfile]:
        return (
            db.query(models.TechnicianProfile)
            .options(selectinload(models.TechnicianProfile.user))
            .filter(models.TechnicianProfile.user_id == technician_id)
            .first()
        )

    def get_profiles(
        self, db: Session, status: Optional[TechnicianStatus] = None
    ) -> List[models.TechnicianProfile]:
        query = db.query(models.TechnicianProfile).options(
            selectinload(models.TechnicianProfile.user)
        )
        if status is not None:
            query = query.filter(models.TechnicianProfile.status == status)
        return query.order_by(
            _STATUS_ORDER,
            models.TechnicianProfile.created_at.desc(),
            models.TechnicianProfile.user_id.desc(),
        ).all()

    def set_status_bulk(
        self, db: Session, technician_ids: Sequence[int], status: TechnicianStatus
    ) -> int:
        return (
            db.query(models.TechnicianProfile)
            .filter(models.TechnicianProfile.user_id.in_(list(technician_ids)))
            .update({models.TechnicianProfile.status: status}, synchronize_session=False)
        )

    def increment_completed_jobs(self, db: Session, technician_id: int) -> int:
        # SQL-side increment so concurrent completions never lose an update
        return (
            db.query(models.TechnicianProfile)
            .filter(models.TechnicianProfile.user_id == technician_id)
            .update(
                {models.TechnicianProfile.completed_jobs: models.TechnicianProfile.completed_jobs + 1},
                synchronize_session=False,
            )
        )

    def apply_new_review(self, db: Session, technician_id: int, rating) -> int:
        """Store a freshly recomputed rating and count one more review."""
        return (
            db.query(models.TechnicianProfile)
            .filter(models.TechnicianProfile.user_id == technician_id)
            .update(
                {
                    models.TechnicianProfile.rating: rating,
                    models.TechnicianProfile.review_count: models.TechnicianProfile.review_count + 1,
                },
                synchronize_session=False,
            )
        )


technician = CRUDTechnician()
