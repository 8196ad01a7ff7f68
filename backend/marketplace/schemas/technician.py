from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from ..models.technician_profile import TechnicianStatus
from .base import CamelModel, Envelope
from .booking import BookingDetail


# ─── Request bodies ────────────────────────────────────────────────────────────

class TechnicianActionRequest(CamelModel):
    technician_id: Optional[int] = None
    action: Optional[str] = None
    reason: Optional[str] = None


class BulkTechnicianActionRequest(CamelModel):
    action: Optional[str] = None
    technician_ids: Optional[List[int]] = None


# ─── Responses ─────────────────────────────────────────────────────────────────

class TechnicianDetail(CamelModel):
    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status: TechnicianStatus
    specialties: List[str] = []
    rating: float = 0
    review_count: int = 0
    completed_jobs: int = 0
    verified: bool = False
    internal_notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_profile(cls, profile) -> "TechnicianDetail":
        user = profile.user
        return cls(
            id=profile.user_id,
            name=user.name if user else None,
            email=user.email if user else None,
            phone=user.phone if user else None,
            status=profile.status,
            specialties=[s for s in (profile.specialties or []) if isinstance(s, str)],
            rating=profile.rating or 0,
            review_count=profile.review_count or 0,
            completed_jobs=profile.completed_jobs or 0,
            verified=bool(profile.verified),
            internal_notes=profile.internal_notes,
            created_at=profile.created_at,
        )


class TechnicianListStats(CamelModel):
    total: int
    active: int
    pending: int
    inactive: int
    suspended: int
    average_rating: float
    total_completed_jobs: int


class TechnicianListResponse(Envelope):
    technicians: List[TechnicianDetail]
    stats: TechnicianListStats


class TechnicianActionResponse(Envelope):
    technician: TechnicianDetail


class BulkTechnicianActionResponse(Envelope):
    count: int


class TechnicianPerformance(CamelModel):
    total_jobs: int
    completed_jobs: int
    completion_rate: int
    earnings: Decimal
    average_rating: float


class TechnicianPerformanceResponse(Envelope):
    stats: TechnicianPerformance


class TechnicianHistoryStats(CamelModel):
    total_jobs: int
    total_earnings: Decimal
    average_rating: float


class TechnicianHistoryResponse(Envelope):
    jobs: List[BookingDetail]
    stats: TechnicianHistoryStats
