from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from ..core.identity import CallerIdentity
from ..database import get_db
from ..schemas.review import (
    PublicReviewCreate,
    ReviewCreate,
    ReviewListResponse,
    ReviewResponse,
    ReviewStats,
    ReviewSubmitResponse,
    review_details,
)
from ..services import review_ratings
from .dependencies import require_client

router = APIRouter(tags=["reviews"])


@router.post(
    "/customer/bookings/{booking_id}/review",
    response_model=ReviewSubmitResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_review_for_booking(
    *,
    db: Session = Depends(get_db),
    booking_id: int = Path(..., title="The ID of the booking to review"),
    review_in: ReviewCreate,
    caller: CallerIdentity = Depends(require_client),
) -> ReviewSubmitResponse:
    """
    Review a completed booking as the client who made it.
    The review is published straight away.
    """
    review = review_ratings.submit_customer_review(db, booking_id, caller, review_in)
    return ReviewSubmitResponse(
        message="Review submitted successfully",
        review=ReviewResponse.model_validate(review),
    )


@router.post(
    "/reviews",
    response_model=ReviewSubmitResponse,
    status_code=status.HTTP_201_CREATED,
)
def submit_public_review(
    *,
    db: Session = Depends(get_db),
    review_in: PublicReviewCreate,
) -> ReviewSubmitResponse:
    """Public review form. Reviews wait for admin approval before they are listed."""
    review = review_ratings.submit_public_review(
        db, review_in.booking_id, review_in, photos=review_in.photos
    )
    return ReviewSubmitResponse(
        message="Review submitted successfully. It will be published after admin approval.",
        review=ReviewResponse.model_validate(review),
    )


@router.get("/reviews", response_model=ReviewListResponse)
def read_published_reviews(
    *,
    db: Session = Depends(get_db),
    service_id: Optional[int] = Query(None, alias="serviceId"),
    limit: Optional[int] = Query(None),
) -> ReviewListResponse:
    reviews, stats = review_ratings.list_published_reviews(db, service_id=service_id, limit=limit)
    return ReviewListResponse(
        reviews=[review_details(r) for r in reviews],
        stats=ReviewStats(**stats) if stats is not None else None,
    )
