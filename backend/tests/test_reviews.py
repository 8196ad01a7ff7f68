from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from marketplace import crud
from marketplace.core.exceptions import (
    Conflict,
    Forbidden,
    InternalError,
    NotFound,
    ValidationFailed,
)
from marketplace.core.identity import CallerIdentity
from marketplace.models import BookingStatus, Review, TechnicianProfile
from marketplace.schemas.review import PublicReviewCreate, ReviewCreate
from marketplace.services.review_ratings import (
    round_rating,
    submit_customer_review,
    submit_public_review,
)


def _seed_prior_reviews(db, make, client, tech, ratings):
    for rating in ratings:
        booking = make.booking(client, technician=tech, status=BookingStatus.COMPLETED)
        db.add(Review(booking_id=booking.id, client_id=client.id, overall_rating=rating, published=True))
    profile = db.get(TechnicianProfile, tech.id)
    profile.rating = round_rating(ratings)
    profile.review_count = len(ratings)
    db.commit()


def _profile(db, tech):
    db.expire_all()
    return db.get(TechnicianProfile, tech.id)


@pytest.mark.parametrize(
    "ratings,expected",
    [
        ([], "0.0"),
        ([5], "5.0"),
        ([4, 4, 4, 5], "4.3"),
        ([4, 5], "4.5"),
        ([1, 2, 2], "1.7"),
    ],
)
def test_round_rating_half_up(ratings, expected):
    assert round_rating(ratings) == Decimal(expected)


def test_customer_review_updates_technician_rating(db, make):
    client = make.client()
    tech = make.technician()
    _seed_prior_reviews(db, make, client, tech, [4, 4, 4])
    booking = make.booking(client, technician=tech, status=BookingStatus.COMPLETED)

    review = submit_customer_review(
        db, booking.id, CallerIdentity.from_user(client), ReviewCreate(overall_rating=5, comment="Spotless")
    )

    assert review.published is True
    assert review.verified_job is True
    profile = _profile(db, tech)
    assert profile.rating == Decimal("4.3")
    assert profile.review_count == 4


def test_customer_review_stores_sub_ratings(db, make):
    client = make.client()
    tech = make.technician()
    booking = make.booking(client, technician=tech, status=BookingStatus.COMPLETED)

    review = submit_customer_review(
        db,
        booking.id,
        CallerIdentity.from_user(client),
        ReviewCreate(
            overall_rating=4,
            quality_rating=5,
            timeliness_rating=3,
            communication_rating=4,
            value_rating=4,
            positives="Tidy",
            improvements="Arrive on time",
        ),
    )

    assert review.quality_rating == 5
    assert review.timeliness_rating == 3
    assert review.improvements == "Arrive on time"


def test_second_review_for_same_booking_conflicts(db, make):
    client = make.client()
    tech = make.technician()
    booking = make.booking(client, technician=tech, status=BookingStatus.COMPLETED)
    caller = CallerIdentity.from_user(client)

    submit_customer_review(db, booking.id, caller, ReviewCreate(overall_rating=5))
    with pytest.raises(Conflict):
        submit_customer_review(db, booking.id, caller, ReviewCreate(overall_rating=1))

    profile = _profile(db, tech)
    assert profile.review_count == 1
    assert profile.rating == Decimal("5.0")
    assert db.query(Review).count() == 1


@pytest.mark.parametrize("rating", [None, 0, 6])
def test_overall_rating_must_be_in_range(db, make, rating):
    client = make.client()
    booking = make.booking(client, status=BookingStatus.COMPLETED)

    with pytest.raises(ValidationFailed) as exc_info:
        submit_customer_review(
            db, booking.id, CallerIdentity.from_user(client), ReviewCreate(overall_rating=rating)
        )

    assert exc_info.value.message == "Valid overall rating (1-5) is required"


def test_sub_rating_out_of_range_is_rejected(db, make):
    client = make.client()
    booking = make.booking(client, status=BookingStatus.COMPLETED)

    with pytest.raises(ValidationFailed) as exc_info:
        submit_customer_review(
            db,
            booking.id,
            CallerIdentity.from_user(client),
            ReviewCreate(overall_rating=4, value_rating=9),
        )

    assert exc_info.value.field_errors == {"value_rating": "out_of_range"}


def test_review_requires_completed_booking(db, make):
    client = make.client()
    booking = make.booking(client, status=BookingStatus.IN_PROGRESS)

    with pytest.raises(NotFound):
        submit_customer_review(db, booking.id, CallerIdentity.from_user(client), ReviewCreate(overall_rating=5))


def test_review_of_someone_elses_booking_is_not_found(db, make):
    owner = make.client()
    other = make.client()
    booking = make.booking(owner, status=BookingStatus.COMPLETED)

    with pytest.raises(NotFound):
        submit_customer_review(db, booking.id, CallerIdentity.from_user(other), ReviewCreate(overall_rating=5))


def test_technician_cannot_use_customer_review(db, make):
    client = make.client()
    tech = make.technician()
    booking = make.booking(client, technician=tech, status=BookingStatus.COMPLETED)

    with pytest.raises(Forbidden):
        submit_customer_review(db, booking.id, CallerIdentity.from_user(tech), ReviewCreate(overall_rating=5))


def test_review_without_technician_touches_no_profile(db, make):
    client = make.client()
    booking = make.booking(client, status=BookingStatus.COMPLETED)

    review = submit_customer_review(db, booking.id, CallerIdentity.from_user(client), ReviewCreate(overall_rating=3))

    assert review.id is not None


# ─── Public form ───────────────────────────────────────────────────────────────

def test_public_review_is_held_for_moderation(db, make):
    client = make.client()
    tech = make.technician()
    booking = make.booking(client, technician=tech, status=BookingStatus.COMPLETED)
    review_in = PublicReviewCreate(booking_id=booking.id, overall_rating=2, photos=["https://cdn.test/a.jpg"])

    review = submit_public_review(db, review_in.booking_id, review_in, photos=review_in.photos)

    assert review.published is False
    assert review.client_id == client.id
    assert review.photos == ["https://cdn.test/a.jpg"]
    profile = _profile(db, tech)
    assert profile.review_count == 1
    assert profile.rating == Decimal("2.0")


def test_public_review_requires_booking_id(db):
    review_in = PublicReviewCreate(overall_rating=5)

    with pytest.raises(ValidationFailed) as exc_info:
        submit_public_review(db, None, review_in)

    assert exc_info.value.message == "Booking ID and overall rating are required"


def test_public_review_for_open_booking_is_not_found(db, make):
    client = make.client()
    booking = make.booking(client, status=BookingStatus.ASSIGNED)

    with pytest.raises(NotFound):
        submit_public_review(db, booking.id, PublicReviewCreate(booking_id=booking.id, overall_rating=5))


def test_public_and_customer_paths_share_the_one_review_slot(db, make):
    client = make.client()
    booking = make.booking(client, technician=make.technician(), status=BookingStatus.COMPLETED)

    submit_public_review(db, booking.id, PublicReviewCreate(booking_id=booking.id, overall_rating=4))
    with pytest.raises(Conflict):
        submit_customer_review(db, booking.id, CallerIdentity.from_user(client), ReviewCreate(overall_rating=5))


def test_rating_recompute_failure_stores_no_review(db, make, monkeypatch):
    client = make.client()
    tech = make.technician()
    _seed_prior_reviews(db, make, client, tech, [4, 4])
    booking = make.booking(client, technician=tech, status=BookingStatus.COMPLETED)

    def failing_apply(db, technician_id, rating):
        raise OperationalError("UPDATE technician_profiles", {}, Exception("database is locked"))

    monkeypatch.setattr(crud.technician, "apply_new_review", failing_apply)

    with pytest.raises(InternalError) as exc_info:
        submit_customer_review(
            db, booking.id, CallerIdentity.from_user(client), ReviewCreate(overall_rating=1)
        )

    assert exc_info.value.message == "Failed to submit review. Please try again."
    db.expire_all()
    assert db.query(Review).filter(Review.booking_id == booking.id).count() == 0
    assert db.query(Review).count() == 2
    profile = _profile(db, tech)
    assert profile.rating == Decimal("4.0")
    assert profile.review_count == 2


def test_public_review_recompute_failure_stores_nothing(db, make, monkeypatch):
    booking = make.booking(make.client(), technician=make.technician(), status=BookingStatus.COMPLETED)

    def failing_apply(db, technician_id, rating):
        raise OperationalError("UPDATE technician_profiles", {}, Exception("database is locked"))

    monkeypatch.setattr(crud.technician, "apply_new_review", failing_apply)

    with pytest.raises(InternalError):
        submit_public_review(
            db, booking.id, PublicReviewCreate(booking_id=booking.id, overall_rating=5)
        )

    db.expire_all()
    assert db.query(Review).count() == 0
