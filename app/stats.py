from datetime import datetime

from sqlalchemy.orm import Session

from app import clock
from app.directory import count_doctors, count_doctors_by_specialization
from app.models import Booking, TimeSlot, STATUS_CANCELLED, STATUS_CONFIRMED


def hospital_stats(db: Session, hospital_id: int, current: datetime | None = None) -> dict:
    """Dashboard counters for one hospital."""
    current = current or clock.now()
    today, _ = clock.today_and_minute(current)
    total_doctors, available_doctors = count_doctors(db, hospital_id)

    bookings = db.query(Booking).filter(Booking.hospital_id == hospital_id)
    return {
        "total_doctors": total_doctors,
        "available_doctors": available_doctors,
        "unavailable_doctors": total_doctors - available_doctors,
        "specializations": count_doctors_by_specialization(db, hospital_id),
        "today_bookings": bookings.filter(Booking.date == today, Booking.status == STATUS_CONFIRMED).count(),
        "total_bookings": bookings.filter(Booking.status != STATUS_CANCELLED).count(),
        "upcoming_slots": db.query(TimeSlot)
        .filter(TimeSlot.hospital_id == hospital_id, TimeSlot.is_active == True, TimeSlot.date >= today)  # noqa: E712
        .count(),
        # lets the client sync its displayed clock
        "server_time": current.isoformat(),
    }
