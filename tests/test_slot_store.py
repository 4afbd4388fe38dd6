import logging
from datetime import datetime

import pytest

from app.booking_engine import BookingEngine
from app.errors import (
    CapacityConflictError,
    DuplicateSlotError,
    NotFoundError,
    PastSlotError,
    SlotNotFoundError,
)
from app.models import Booking, TimeSlot, OWNER_CLINIC, OWNER_HOSPITAL_DOCTOR
from app.schemas import CreateBookingBody
from app.slot_store import SlotStore


@pytest.fixture
def store(test_db_session, clock):
    return SlotStore(test_db_session, now=clock)


def test_create_slot_starts_empty_and_active(store):
    slot = store.create_slot(5, 1, "2025-06-01", "10:00", 3)
    assert slot.current_bookings == 0
    assert slot.max_bookings == 3
    assert slot.is_active is True
    assert slot.owner_kind == OWNER_HOSPITAL_DOCTOR


def test_create_slot_in_the_past_is_rejected(store, clock):
    clock.current = datetime(2025, 6, 1, 9, 5)
    with pytest.raises(PastSlotError):
        store.create_slot(5, 1, "2025-06-01", "09:00", 5)


def test_create_slot_at_exactly_now_is_rejected(store, clock):
    clock.current = datetime(2025, 6, 1, 9, 0)
    with pytest.raises(PastSlotError):
        store.create_slot(5, 1, "2025-06-01", "09:00", 5)


def test_duplicate_slot_is_rejected(store):
    store.create_slot(5, 1, "2025-06-01", "10:00", 5)
    with pytest.raises(DuplicateSlotError):
        store.create_slot(5, 1, "2025-06-01", "10:00", 2)
    # another doctor may use the same time
    assert store.create_slot(6, 1, "2025-06-01", "10:00", 2).doctor_id == 6


def test_capacity_defaults_come_from_the_facility(store, make_hospital, make_clinic):
    make_hospital(hospital_id=1, max_bookings_per_slot=7)
    make_clinic(clinic_id=501, max_bookings_per_slot=3)

    assert store.create_slot(5, 1, "2025-06-01", "10:00").max_bookings == 7

    clinic_slot = store.create_slot(501, 0, "2025-06-01", "10:00")
    assert clinic_slot.max_bookings == 3
    assert clinic_slot.owner_kind == OWNER_CLINIC

    # nothing on file for hospital 9
    assert store.create_slot(8, 9, "2025-06-01", "10:00").max_bookings == 5


def test_doctor_listing_shows_only_future_active_slots_in_order(store, make_slot):
    later = make_slot(date="2025-06-02", time="09:00")
    soon = make_slot(date="2025-06-01", time="10:00")
    make_slot(date="2025-06-01", time="07:00")  # passed, sweeper has not run
    make_slot(date="2025-06-03", time="09:00", is_active=False)
    make_slot(doctor_id=6, date="2025-06-01", time="11:00")

    assert [s.id for s in store.list_slots_for_doctor(5)] == [soon.id, later.id]


def test_slot_leaves_doctor_listing_as_soon_as_it_passes(store, make_slot, clock, test_db_session):
    slot = make_slot(date="2025-06-01", time="10:00")
    assert [s.id for s in store.list_slots_for_doctor(5)] == [slot.id]

    clock.current = datetime(2025, 6, 1, 10, 0, 30)
    assert store.list_slots_for_doctor(5) == []
    # the flag itself is the sweeper's job
    assert test_db_session.get(TimeSlot, slot.id).is_active is True


def test_facility_listing_keeps_todays_expired_slots(store, make_slot):
    make_slot(date="2025-05-31", time="10:00", is_active=False)
    expired_today = make_slot(date="2025-06-01", time="07:00", is_active=False)
    tomorrow = make_slot(date="2025-06-02", time="09:00")
    make_slot(hospital_id=2, date="2025-06-02", time="09:00")

    assert [s.id for s in store.list_slots_for_facility(1)] == [expired_today.id, tomorrow.id]


def test_moving_a_slot_reactivates_it(store, make_slot):
    slot = make_slot(date="2025-06-01", time="07:00", is_active=False)
    updated = store.update_slot(slot.id, date="2025-06-02")
    assert updated.date == "2025-06-02"
    assert updated.time == "07:00"
    assert updated.is_active is True


def test_moving_a_booked_slot_logs_the_stale_bookings(store, make_slot, test_db_session, clock, caplog):
    slot = make_slot(date="2025-06-01", time="10:00")
    engine = BookingEngine(test_db_session, now=clock)
    booking = engine.create_booking(
        CreateBookingBody(patient_id=1, patient_name="Jane", doctor_id=5, hospital_id=1, slot_id=slot.id)
    )

    with caplog.at_level(logging.WARNING, logger="app.slot_store"):
        store.update_slot(slot.id, time="11:00")
    assert "1 bookings still show the old time" in caplog.text
    assert test_db_session.get(Booking, booking.id).time == "10:00"

    caplog.clear()
    with caplog.at_level(logging.WARNING, logger="app.slot_store"):
        store.update_slot(slot.id, time="11:00", max_bookings=4)
    assert caplog.text == ""


def test_moving_a_slot_into_the_past_is_rejected(store, make_slot, test_db_session):
    slot = make_slot(date="2025-06-02", time="09:00")
    with pytest.raises(PastSlotError):
        store.update_slot(slot.id, date="2025-06-01", time="07:59")
    assert test_db_session.get(TimeSlot, slot.id).date == "2025-06-02"


def test_moving_onto_an_existing_slot_time_is_rejected(store, make_slot):
    make_slot(date="2025-06-02", time="09:00")
    other = make_slot(date="2025-06-02", time="10:00")
    with pytest.raises(DuplicateSlotError):
        store.update_slot(other.id, time="09:00")


def test_capacity_cannot_shrink_below_current_bookings(store, make_slot, test_db_session):
    slot = make_slot(max_bookings=5, current_bookings=3)
    with pytest.raises(CapacityConflictError):
        store.update_slot(slot.id, max_bookings=2)
    assert test_db_session.get(TimeSlot, slot.id).max_bookings == 5

    assert store.update_slot(slot.id, max_bookings=3).max_bookings == 3


def test_update_and_delete_unknown_slot(store):
    with pytest.raises(SlotNotFoundError):
        store.update_slot("missing", max_bookings=2)
    with pytest.raises(NotFoundError):
        store.delete_slot("missing")


def test_deleting_a_slot_orphans_its_bookings(store, make_slot, test_db_session, clock):
    slot = make_slot(date="2025-06-01", time="10:00")
    engine = BookingEngine(test_db_session, now=clock)
    booking = engine.create_booking(
        CreateBookingBody(patient_id=1, patient_name="Jane", doctor_id=5, hospital_id=1, slot_id=slot.id)
    )

    store.delete_slot(slot.id)

    assert test_db_session.get(TimeSlot, slot.id) is None
    orphan = test_db_session.get(Booking, booking.id)
    assert orphan.slot_id == slot.id
    assert (orphan.date, orphan.time) == ("2025-06-01", "10:00")
    assert engine.cancel_booking(booking.id).status == "cancelled"


def test_adjust_capacity_stays_within_bounds(store, make_slot, test_db_session):
    slot = make_slot(max_bookings=2, current_bookings=0)

    assert store.adjust_capacity(slot.id, -1) is False
    assert store.adjust_capacity(slot.id, +1) is True
    assert store.adjust_capacity(slot.id, +1) is True
    assert store.adjust_capacity(slot.id, +1) is False
    test_db_session.commit()

    assert test_db_session.get(TimeSlot, slot.id).current_bookings == 2


def test_adjust_capacity_refuses_seats_on_inactive_slot(store, make_slot):
    slot = make_slot(is_active=False)
    assert store.adjust_capacity(slot.id, +1) is False
