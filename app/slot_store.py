import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import and_, or_, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import clock
from app.directory import default_capacity
from app.errors import (
    CapacityConflictError,
    DuplicateSlotError,
    PastSlotError,
    SlotNotFoundError,
)
from app.models import Booking, TimeSlot, OWNER_CLINIC, OWNER_HOSPITAL_DOCTOR, STATUS_CANCELLED

logger = logging.getLogger(__name__)


class SlotStore:
    """
    Owns TimeSlot rows: creation, listings, capacity bookkeeping and expiry.

    `create_slot`, `update_slot` and `delete_slot` commit their own work.
    `adjust_capacity` and `deactivate_expired` run inside the caller's
    transaction and leave committing to it.
    """

    def __init__(self, db: Session, now: Callable[[], datetime] = clock.now):
        self.db = db
        self.now = now

    def get_slot(self, slot_id: str) -> TimeSlot:
        slot = self.db.query(TimeSlot).filter(TimeSlot.id == slot_id).first()
        if not slot:
            raise SlotNotFoundError()
        return slot

    def create_slot(
        self,
        doctor_id: int,
        hospital_id: int,
        date: str,
        time: str,
        max_bookings: Optional[int] = None,
    ) -> TimeSlot:
        if not clock.is_future(date, time, self.now()):
            raise PastSlotError("Cannot create a slot in the past.")

        existing = (
            self.db.query(TimeSlot)
            .filter(TimeSlot.doctor_id == doctor_id, TimeSlot.date == date, TimeSlot.time == time)
            .first()
        )
        if existing:
            raise DuplicateSlotError()

        if max_bookings is None:
            max_bookings = default_capacity(self.db, doctor_id, hospital_id)
        if max_bookings < 1:
            raise ValueError("max_bookings must be positive")

        slot = TimeSlot(
            id=str(uuid.uuid4()),
            doctor_id=doctor_id,
            hospital_id=hospital_id or 0,
            owner_kind=OWNER_HOSPITAL_DOCTOR if hospital_id else OWNER_CLINIC,
            date=date,
            time=time,
            max_bookings=max_bookings,
            current_bookings=0,
            is_active=True,
        )
        self.db.add(slot)
        try:
            self.db.commit()
        except IntegrityError:
            # lost a race against an identical insert
            self.db.rollback()
            raise DuplicateSlotError()
        self.db.refresh(slot)
        logger.info(f"Created slot {slot.id} for doctor {doctor_id} at {date} {time} (capacity {max_bookings})")
        return slot

    def list_slots_for_doctor(self, doctor_id: int) -> list[TimeSlot]:
        """Bookable slots only: active and still ahead of the live clock."""
        today, minute = clock.today_and_minute(self.now())
        return (
            self.db.query(TimeSlot)
            .filter(
                TimeSlot.doctor_id == doctor_id,
                TimeSlot.is_active == True,  # noqa: E712
                or_(TimeSlot.date > today, and_(TimeSlot.date == today, TimeSlot.time > minute)),
            )
            .order_by(TimeSlot.date.asc(), TimeSlot.time.asc())
            .all()
        )

    def list_slots_for_facility(self, hospital_id: int) -> list[TimeSlot]:
        """Dashboard view: today onward in any state, so same-day expired slots stay visible."""
        today, _ = clock.today_and_minute(self.now())
        return (
            self.db.query(TimeSlot)
            .filter(TimeSlot.hospital_id == hospital_id, TimeSlot.date >= today)
            .order_by(TimeSlot.date.asc(), TimeSlot.time.asc())
            .all()
        )

    def update_slot(
        self,
        slot_id: str,
        date: Optional[str] = None,
        time: Optional[str] = None,
        max_bookings: Optional[int] = None,
    ) -> TimeSlot:
        slot = self.get_slot(slot_id)

        if date or time:
            new_date = date or slot.date
            new_time = time or slot.time
            if not clock.is_future(new_date, new_time, self.now()):
                self.db.rollback()
                raise PastSlotError()
            stale = (new_date, new_time) != (slot.date, slot.time) and (
                self.db.query(Booking)
                .filter(Booking.slot_id == slot_id, Booking.status != STATUS_CANCELLED)
                .count()
            )
            slot.date = new_date
            slot.time = new_time
            # a moved slot is a new future commitment
            slot.is_active = True
            if stale:
                # bookings keep the date/time they were made for
                logger.warning(f"Slot {slot_id} moved to {new_date} {new_time}; {stale} bookings still show the old time")

        if max_bookings is not None:
            res = self.db.execute(
                text("""
                    UPDATE time_slots SET max_bookings = :max_bookings
                    WHERE id = :slot_id AND current_bookings <= :max_bookings
                """),
                {"slot_id": slot_id, "max_bookings": max_bookings},
            )
            if res.rowcount != 1:
                self.db.rollback()
                raise CapacityConflictError()

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateSlotError()
        self.db.refresh(slot)
        logger.info(f"Updated slot {slot_id}")
        return slot

    def delete_slot(self, slot_id: str) -> None:
        """Remove the slot. Bookings that reference it keep their own date/time and are left in place."""
        slot = self.get_slot(slot_id)
        self.db.delete(slot)
        self.db.commit()
        logger.info(f"Deleted slot {slot_id}")

    def adjust_capacity(self, slot_id: str, delta: int) -> bool:
        """
        Apply `current_bookings += delta` as one conditional UPDATE.

        Increments only land on an active slot with room left; decrements
        never take the counter below zero. Returns False when no row changed.
        """
        if delta > 0:
            sql = text("""
                UPDATE time_slots SET current_bookings = current_bookings + :delta
                WHERE id = :slot_id
                  AND is_active = :active
                  AND current_bookings + :delta <= max_bookings
            """)
            params = {"slot_id": slot_id, "delta": delta, "active": True}
        else:
            sql = text("""
                UPDATE time_slots SET current_bookings = current_bookings + :delta
                WHERE id = :slot_id
                  AND current_bookings + :delta >= 0
            """)
            params = {"slot_id": slot_id, "delta": delta}
        res = self.db.execute(sql, params)
        return res.rowcount == 1

    def deactivate_expired(self, now: Optional[datetime] = None) -> int:
        """Flip `is_active` off for every active slot at or before the current minute."""
        today, minute = clock.today_and_minute(now or self.now())
        res = self.db.execute(
            text("""
                UPDATE time_slots SET is_active = :inactive
                WHERE is_active = :active
                  AND (date < :today OR (date = :today AND time <= :minute))
            """),
            {"inactive": False, "active": True, "today": today, "minute": minute},
        )
        return res.rowcount
