import logging
import secrets
import time as _time
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterable

from sqlalchemy import text
from sqlalchemy.orm import Session

from app import clock
from app.directory import get_clinic, resolve_booking_names
from app.errors import (
    AlreadyCancelledError,
    BookingNotFoundError,
    DuplicateDoctorDayError,
    DuplicateSlotBookingError,
    SlotExpiredError,
    SlotFullError,
    SlotInactiveError,
    SlotOwnerMismatchError,
)
from app.models import Booking, TimeSlot, STATUS_CANCELLED, STATUS_CONFIRMED
from app.schemas import CreateBookingBody
from app.slot_store import SlotStore

logger = logging.getLogger(__name__)


def new_booking_ref() -> str:
    return f"BK{int(_time.time() * 1000)}{secrets.token_hex(2).upper()}"


def is_clearable(booking: Booking, current: datetime) -> bool:
    """A booking may be purged from history once cancelled or once its time has passed."""
    if booking.status == STATUS_CANCELLED:
        return True
    return clock.slot_instant(booking.date, booking.time) < current


def list_bookings_clearable(bookings: Iterable[Booking], current: datetime) -> list[Booking]:
    return [b for b in bookings if is_clearable(b, current)]


class BookingEngine:
    """
    Booking lifecycle on top of the slot store.

    Every mutation runs as one session transaction: the booking row change
    and the slot counter deltas commit together or roll back together.
    Storage errors are not caught here; they propagate after the rollback.
    """

    def __init__(self, db: Session, now: Callable[[], datetime] = clock.now):
        self.db = db
        self.now = now
        self.slots = SlotStore(db, now)

    @contextmanager
    def _atomic(self):
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise BookingNotFoundError()
        return booking

    # —— checks ——

    def _check_owner(self, slot: TimeSlot, doctor_id: int, hospital_id: int) -> None:
        if slot.doctor_id != doctor_id or (hospital_id and slot.hospital_id != hospital_id):
            raise SlotOwnerMismatchError()

    def _check_bookable(self, slot: TimeSlot, current: datetime) -> None:
        if not slot.is_active:
            raise SlotInactiveError()
        if not clock.is_future(slot.date, slot.time, current):
            raise SlotExpiredError()
        if slot.current_bookings >= slot.max_bookings:
            raise SlotFullError()

    def _check_duplicates(self, slot: TimeSlot, doctor_id: int, patient_id: int, current: datetime) -> None:
        on_slot = (
            self.db.query(Booking)
            .filter(
                Booking.slot_id == slot.id,
                Booking.patient_id == patient_id,
                Booking.status != STATUS_CANCELLED,
            )
            .first()
        )
        if on_slot:
            raise DuplicateSlotBookingError()

        same_day = (
            self.db.query(Booking)
            .filter(
                Booking.doctor_id == doctor_id,
                Booking.patient_id == patient_id,
                Booking.date == slot.date,
                Booking.status != STATUS_CANCELLED,
            )
            .all()
        )
        # a same-day booking whose time has already passed is stale and does not block
        if any(clock.is_future(b.date, b.time, current) for b in same_day):
            raise DuplicateDoctorDayError(
                f"You already have an upcoming booking with this doctor on {slot.date}."
            )

    def _claim_seat(self, slot: TimeSlot) -> None:
        if self.slots.adjust_capacity(slot.id, +1):
            return
        # lost the race for the last seat, or the sweeper got there first
        self.db.refresh(slot)
        if not slot.is_active:
            raise SlotInactiveError()
        raise SlotFullError()

    # —— operations ——

    def create_booking(self, data: CreateBookingBody) -> Booking:
        with self._atomic():
            current = self.now()
            slot = self.slots.get_slot(data.slot_id)
            self._check_owner(slot, data.doctor_id, data.hospital_id)
            self._check_bookable(slot, current)
            if data.patient_id is not None:
                self._check_duplicates(slot, data.doctor_id, data.patient_id, current)

            names = resolve_booking_names(self.db, data.doctor_id, data.hospital_id)
            booking = Booking(
                id=str(uuid.uuid4()),
                booking_ref=new_booking_ref(),
                patient_id=data.patient_id,
                patient_name=data.patient_name,
                patient_age=data.patient_age,
                patient_contact=data.patient_contact,
                patient_description=data.patient_description,
                doctor_id=data.doctor_id,
                doctor_name=names.doctor_name,
                specialization=names.specialization,
                hospital_id=data.hospital_id,
                hospital_name=names.hospital_name,
                owner_kind=names.owner_kind,
                slot_id=slot.id,
                date=slot.date,
                time=slot.time,
                status=STATUS_CONFIRMED,
                created_at=current,
                updated_at=current,
            )
            self.db.add(booking)
            self.db.flush()
            self._claim_seat(slot)

        self.db.refresh(booking)
        logger.info(f"Booking {booking.booking_ref} confirmed on slot {booking.slot_id}")
        return booking

    def cancel_booking(self, booking_id: str) -> Booking:
        with self._atomic():
            booking = self.get_booking(booking_id)
            if booking.status == STATUS_CANCELLED:
                raise AlreadyCancelledError()
            res = self.db.execute(
                text("""
                    UPDATE bookings SET status = :cancelled, updated_at = :ts
                    WHERE id = :booking_id AND status != :cancelled
                """),
                {"booking_id": booking_id, "cancelled": STATUS_CANCELLED, "ts": self.now()},
            )
            # a concurrent cancel won; its decrement already happened
            if res.rowcount != 1:
                raise AlreadyCancelledError()
            slot_id = booking.slot_id
            if slot_id:
                self.slots.adjust_capacity(slot_id, -1)

        self.db.refresh(booking)
        logger.info(f"Booking {booking_id} cancelled")
        return booking

    def reschedule_booking(self, booking_id: str, new_slot_id: str) -> Booking:
        with self._atomic():
            booking = self.get_booking(booking_id)
            if booking.status == STATUS_CANCELLED:
                raise AlreadyCancelledError("Cannot reschedule a cancelled booking.")
            if booking.slot_id == new_slot_id:
                return booking

            new_slot = self.slots.get_slot(new_slot_id)
            self._check_owner(new_slot, booking.doctor_id, booking.hospital_id)
            self._check_bookable(new_slot, self.now())

            old_slot_id = booking.slot_id
            if old_slot_id:
                self.slots.adjust_capacity(old_slot_id, -1)
            self._claim_seat(new_slot)

            res = self.db.execute(
                text("""
                    UPDATE bookings
                    SET slot_id = :slot_id, date = :date, time = :time, updated_at = :ts
                    WHERE id = :booking_id AND status != :cancelled
                """),
                {
                    "booking_id": booking_id,
                    "slot_id": new_slot.id,
                    "date": new_slot.date,
                    "time": new_slot.time,
                    "ts": self.now(),
                    "cancelled": STATUS_CANCELLED,
                },
            )
            if res.rowcount != 1:
                raise AlreadyCancelledError("Cannot reschedule a cancelled booking.")

        self.db.refresh(booking)
        logger.info(f"Booking {booking_id} moved from slot {old_slot_id} to {new_slot_id}")
        return booking

    def _purge(self, booking: Booking) -> bool:
        res = self.db.execute(text("DELETE FROM bookings WHERE id = :booking_id"), {"booking_id": booking.id})
        if res.rowcount != 1:
            return False
        if booking.status != STATUS_CANCELLED and booking.slot_id:
            self.slots.adjust_capacity(booking.slot_id, -1)
        return True

    def hard_delete_booking(self, booking_id: str) -> None:
        with self._atomic():
            booking = self.get_booking(booking_id)
            if not self._purge(booking):
                raise BookingNotFoundError()
        self.db.expunge_all()
        logger.info(f"Booking {booking_id} permanently deleted")

    # —— listings ——

    def list_bookings_for_patient(self, patient_id: int) -> list[Booking]:
        return (
            self.db.query(Booking)
            .filter(Booking.patient_id == patient_id)
            .order_by(Booking.date.desc(), Booking.time.desc())
            .all()
        )

    def list_bookings_for_hospital(self, hospital_id: int) -> list[Booking]:
        return (
            self.db.query(Booking)
            .filter(Booking.hospital_id == hospital_id, Booking.status != STATUS_CANCELLED)
            .order_by(Booking.date.asc(), Booking.time.asc())
            .all()
        )

    def list_booking_history_for_hospital(self, hospital_id: int) -> list[Booking]:
        return (
            self.db.query(Booking)
            .filter(Booking.hospital_id == hospital_id)
            .order_by(Booking.date.desc(), Booking.time.asc())
            .all()
        )

    def list_bookings_for_clinic(self, clinic_id: int) -> list[Booking]:
        # clinic bookings carry the clinic id in doctor_id
        if not get_clinic(self.db, clinic_id):
            return []
        return (
            self.db.query(Booking)
            .filter(Booking.doctor_id == clinic_id, Booking.status != STATUS_CANCELLED)
            .order_by(Booking.date.asc(), Booking.time.asc())
            .all()
        )

    # —— history clearing ——

    def _clear(self, bookings: list[Booking]) -> int:
        removed = 0
        with self._atomic():
            for booking in list_bookings_clearable(bookings, self.now()):
                if self._purge(booking):
                    removed += 1
        self.db.expunge_all()
        return removed

    def clear_history_for_patient(self, patient_id: int) -> int:
        removed = self._clear(self.list_bookings_for_patient(patient_id))
        logger.info(f"Cleared {removed} bookings from patient {patient_id} history")
        return removed

    def clear_history_for_hospital(self, hospital_id: int) -> int:
        removed = self._clear(self.list_booking_history_for_hospital(hospital_id))
        logger.info(f"Cleared {removed} bookings from hospital {hospital_id} history")
        return removed

    def clear_history_for_clinic(self, clinic_id: int) -> int:
        bookings = (
            self.db.query(Booking).filter(Booking.doctor_id == clinic_id).all()
            if get_clinic(self.db, clinic_id)
            else []
        )
        removed = self._clear(bookings)
        logger.info(f"Cleared {removed} bookings from clinic {clinic_id} history")
        return removed
