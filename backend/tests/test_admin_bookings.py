from decimal import Decimal
import logging

import pytest

from marketplace.core.exceptions import Forbidden, InvalidState, NotFound, ValidationFailed
from marketplace.core.identity import CallerIdentity
from marketplace.models import BookingStatus, JobAssignment, TechnicianStatus
from marketplace.services.booking_lifecycle import (
    assign_technician,
    complete_booking,
    list_bookings_for_admin,
    override_booking_status,
)


# ─── Administrative override ───────────────────────────────────────────────────

def test_override_moves_completed_booking_back_to_pending(db, make):
    client = make.client()
    admin = make.admin()
    booking = make.booking(client, status=BookingStatus.COMPLETED)

    updated = override_booking_status(
        db, booking.id, CallerIdentity.from_user(admin), "pending", notes="Reopened"
    )

    assert updated.status == BookingStatus.PENDING
    assert updated.internal_notes == "Reopened"


def test_override_overwrites_notes_even_when_empty(db, make):
    client = make.client()
    admin = make.admin()
    booking = make.booking(client)
    booking.internal_notes = "old"
    db.commit()

    updated = override_booking_status(db, booking.id, CallerIdentity.from_user(admin), "CONFIRMED")

    assert updated.internal_notes is None


def test_override_reassigns_technician(db, make):
    client = make.client()
    admin = make.admin()
    first = make.technician()
    second = make.technician()
    booking = make.booking(client, technician=first, status=BookingStatus.ASSIGNED)

    updated = override_booking_status(
        db,
        booking.id,
        CallerIdentity.from_user(admin),
        BookingStatus.ASSIGNED,
        technician_id=second.id,
    )

    assert updated.technician_id == second.id


def test_override_logs_a_warning(db, make, caplog):
    client = make.client()
    admin = make.admin()
    booking = make.booking(client, status=BookingStatus.CANCELLED)

    caplog.set_level(logging.WARNING, logger="marketplace.services.booking_lifecycle")
    override_booking_status(db, booking.id, CallerIdentity.from_user(admin), "IN_PROGRESS")

    assert any("CANCELLED -> IN_PROGRESS" in r.getMessage() for r in caplog.records)


def test_override_rejects_unknown_status(db, make):
    client = make.client()
    admin = make.admin()
    booking = make.booking(client)

    with pytest.raises(ValidationFailed):
        override_booking_status(db, booking.id, CallerIdentity.from_user(admin), "ARCHIVED")


def test_override_requires_admin(db, make):
    client = make.client()
    booking = make.booking(client)

    with pytest.raises(Forbidden):
        override_booking_status(db, booking.id, CallerIdentity.from_user(client), "CANCELLED")


def test_override_unknown_booking_or_technician(db, make):
    client = make.client()
    admin = make.admin()
    booking = make.booking(client)
    caller = CallerIdentity.from_user(admin)

    with pytest.raises(NotFound):
        override_booking_status(db, 999, caller, "CONFIRMED")
    with pytest.raises(NotFound):
        override_booking_status(db, booking.id, caller, "ASSIGNED", technician_id=999)


def test_completing_after_reopen_counts_again(db, make):
    client = make.client()
    admin = make.admin()
    tech = make.technician()
    booking = make.booking(client, technician=tech, status=BookingStatus.IN_PROGRESS)
    caller = CallerIdentity.from_user(admin)

    complete_booking(db, booking.id, caller)
    override_booking_status(db, booking.id, caller, "IN_PROGRESS")
    completed, _ = complete_booking(db, booking.id, caller)

    assert completed.status == BookingStatus.COMPLETED


# ─── Technician assignment ─────────────────────────────────────────────────────

def test_assign_active_technician(db, make):
    client = make.client()
    admin = make.admin()
    tech = make.technician()
    booking = make.booking(client, status=BookingStatus.CONFIRMED)

    updated, assignment = assign_technician(
        db, booking.id, CallerIdentity.from_user(admin), tech.id
    )

    assert updated.status == BookingStatus.ASSIGNED
    assert updated.technician_id == tech.id
    assert assignment.assigned_by_id == admin.id
    assert assignment.notes == "Auto-assigned by system"
    assert db.query(JobAssignment).count() == 1


@pytest.mark.parametrize(
    "status",
    [BookingStatus.ASSIGNED, BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED, BookingStatus.CANCELLED],
)
def test_assign_requires_pending_or_confirmed(db, make, status):
    client = make.client()
    admin = make.admin()
    tech = make.technician()
    booking = make.booking(client, status=status)

    with pytest.raises(InvalidState):
        assign_technician(db, booking.id, CallerIdentity.from_user(admin), tech.id)


def test_assign_rejects_inactive_technician(db, make):
    client = make.client()
    admin = make.admin()
    tech = make.technician(status=TechnicianStatus.SUSPENDED)
    booking = make.booking(client)

    with pytest.raises(InvalidState):
        assign_technician(db, booking.id, CallerIdentity.from_user(admin), tech.id)


def test_assign_unknown_technician(db, make):
    client = make.client()
    admin = make.admin()
    booking = make.booking(client)

    with pytest.raises(NotFound):
        assign_technician(db, booking.id, CallerIdentity.from_user(admin), 999)


def test_assign_warns_on_specialty_mismatch(db, make, caplog):
    client = make.client()
    admin = make.admin()
    tech = make.technician(specialties=["Electrical"])
    booking = make.booking(client, service=make.service(name="AC Maintenance", category="hvac"))

    caplog.set_level(logging.WARNING, logger="marketplace.services.booking_lifecycle")
    updated, _ = assign_technician(db, booking.id, CallerIdentity.from_user(admin), tech.id)

    assert updated.status == BookingStatus.ASSIGNED
    assert any("outside their specialties" in r.getMessage() for r in caplog.records)


# ─── Listing ───────────────────────────────────────────────────────────────────

def test_admin_listing_with_stats(db, make):
    client = make.client()
    admin = make.admin()
    make.booking(client, status=BookingStatus.PENDING)
    make.booking(client, status=BookingStatus.ASSIGNED)
    done = make.booking(client, status=BookingStatus.IN_PROGRESS, estimated_price=Decimal("40.000"))
    caller = CallerIdentity.from_user(admin)
    complete_booking(db, done.id, caller)

    bookings, stats = list_bookings_for_admin(db, caller)

    assert len(bookings) == 3
    assert stats["pending"] == 1
    assert stats["assigned"] == 1
    assert stats["completed"] == 1
    assert Decimal(str(stats["total_revenue"])) == Decimal("40")
    assert stats["total_bookings"] == 3


def test_admin_listing_filters_by_status(db, make):
    client = make.client()
    admin = make.admin()
    make.booking(client, status=BookingStatus.PENDING)
    make.booking(client, status=BookingStatus.CANCELLED)

    bookings, stats = list_bookings_for_admin(db, CallerIdentity.from_user(admin), status_filter="cancelled")

    assert [b.status for b in bookings] == [BookingStatus.CANCELLED]
    assert stats["total_bookings"] == 1


def test_admin_listing_requires_admin(db, make):
    client = make.client()

    with pytest.raises(Forbidden):
        list_bookings_for_admin(db, CallerIdentity.from_user(client))
