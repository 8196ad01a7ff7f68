from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from marketplace import crud
from marketplace.core.exceptions import Conflict, Forbidden, InternalError, InvalidState, NotFound
from marketplace.core.identity import CallerIdentity
from marketplace.models import (
    BookingStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    TechnicianProfile,
)
from marketplace.services.booking_lifecycle import complete_booking


def _profile(db, tech):
    db.expire_all()
    return db.get(TechnicianProfile, tech.id)


def test_technician_completes_with_cash_payment(db, make):
    client = make.client()
    tech = make.technician()
    booking = make.booking(
        client, technician=tech, status=BookingStatus.IN_PROGRESS, estimated_price=Decimal("25.000")
    )

    completed, payment = complete_booking(
        db, booking.id, CallerIdentity.from_user(tech), payment_received=True
    )

    assert completed.status == BookingStatus.COMPLETED
    assert completed.completed_at is not None
    assert completed.final_price == Decimal("25.000")
    assert payment is not None
    assert payment.method == PaymentMethod.CASH
    assert payment.status == PaymentStatus.PAID
    assert payment.amount == Decimal("25.000")
    assert payment.paid_at == completed.completed_at
    assert _profile(db, tech).completed_jobs == 1


def test_complete_without_payment_leaves_counters_alone(db, make):
    client = make.client()
    tech = make.technician()
    booking = make.booking(client, technician=tech, status=BookingStatus.ASSIGNED)

    completed, payment = complete_booking(db, booking.id, CallerIdentity.from_user(tech))

    assert completed.status == BookingStatus.COMPLETED
    assert payment is None
    assert db.query(Payment).count() == 0
    assert _profile(db, tech).completed_jobs == 0


def test_admin_completes_unassigned_booking(db, make):
    client = make.client()
    admin = make.admin()
    booking = make.booking(client, status=BookingStatus.CONFIRMED)

    completed, payment = complete_booking(
        db, booking.id, CallerIdentity.from_user(admin), payment_received=True
    )

    assert completed.status == BookingStatus.COMPLETED
    assert payment.amount == Decimal("25.000")


def test_missing_estimate_records_zero_amount(db, make):
    client = make.client()
    admin = make.admin()
    booking = make.booking(client, estimated_price=None)

    completed, payment = complete_booking(
        db, booking.id, CallerIdentity.from_user(admin), payment_received=True
    )

    assert completed.final_price is None
    assert payment.amount == Decimal("0")


def test_client_cannot_complete(db, make):
    client = make.client()
    booking = make.booking(client)

    with pytest.raises(Forbidden):
        complete_booking(db, booking.id, CallerIdentity.from_user(client))


def test_other_technician_cannot_complete(db, make):
    client = make.client()
    assigned = make.technician()
    other = make.technician()
    booking = make.booking(client, technician=assigned, status=BookingStatus.IN_PROGRESS)

    with pytest.raises(Forbidden):
        complete_booking(db, booking.id, CallerIdentity.from_user(other))


def test_missing_booking_is_not_found(db, make):
    admin = make.admin()

    with pytest.raises(NotFound):
        complete_booking(db, 404, CallerIdentity.from_user(admin))


@pytest.mark.parametrize(
    "status",
    [BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.REFUNDED],
)
def test_finished_bookings_cannot_be_completed_again(db, make, status):
    client = make.client()
    tech = make.technician()
    booking = make.booking(client, technician=tech, status=status)

    with pytest.raises(InvalidState):
        complete_booking(db, booking.id, CallerIdentity.from_user(tech), payment_received=True)

    assert db.query(Payment).count() == 0
    assert _profile(db, tech).completed_jobs == 0


def test_second_completion_records_no_second_payment(db, make):
    client = make.client()
    tech = make.technician()
    booking = make.booking(client, technician=tech, status=BookingStatus.IN_PROGRESS)
    caller = CallerIdentity.from_user(tech)

    complete_booking(db, booking.id, caller, payment_received=True)
    with pytest.raises(InvalidState):
        complete_booking(db, booking.id, caller, payment_received=True)

    assert db.query(Payment).filter(Payment.booking_id == booking.id).count() == 1
    assert _profile(db, tech).completed_jobs == 1


def test_existing_payment_rolls_back_the_whole_completion(db, make):
    client = make.client()
    tech = make.technician()
    booking = make.booking(client, technician=tech, status=BookingStatus.IN_PROGRESS)
    db.add(
        Payment(
            booking_id=booking.id,
            amount=Decimal("10.000"),
            method=PaymentMethod.CARD,
            status=PaymentStatus.PENDING,
        )
    )
    db.commit()

    with pytest.raises(Conflict):
        complete_booking(db, booking.id, CallerIdentity.from_user(tech), payment_received=True)

    db.expire_all()
    db.refresh(booking)
    assert booking.status == BookingStatus.IN_PROGRESS
    assert booking.completed_at is None
    assert _profile(db, tech).completed_jobs == 0


def test_database_failure_is_internal_and_rolls_back(db, make, monkeypatch):
    client = make.client()
    tech = make.technician()
    booking = make.booking(client, technician=tech, status=BookingStatus.ASSIGNED)

    def failing_increment(db, technician_id):
        raise OperationalError("UPDATE technician_profiles", {}, Exception("disk I/O error"))

    monkeypatch.setattr(crud.technician, "increment_completed_jobs", failing_increment)

    with pytest.raises(InternalError) as exc_info:
        complete_booking(db, booking.id, CallerIdentity.from_user(tech), payment_received=True)

    assert exc_info.value.message == "Failed to complete booking"
    assert "disk I/O" not in exc_info.value.message
    db.expire_all()
    db.refresh(booking)
    assert booking.status == BookingStatus.ASSIGNED
    assert booking.completed_at is None
    assert db.query(Payment).count() == 0
    assert _profile(db, tech).completed_jobs == 0
