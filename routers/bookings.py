from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.booking_engine import BookingEngine
from app.db import get_db
from app.schemas import BookingOut, CreateBookingBody, RescheduleBody

router = APIRouter()


@router.post("", status_code=201, response_model=BookingOut)
def create_booking(body: CreateBookingBody, db: Session = Depends(get_db)):
    """
    Book a seat on a slot. The slot must exist, be active, lie in the future
    and have room; a known patient may not hold two seats on one slot nor two
    upcoming bookings with the same doctor on one day.
    """
    return BookingEngine(db).create_booking(body)


@router.get("/patient/{patient_id}", response_model=list[BookingOut])
def list_patient_bookings(patient_id: int, db: Session = Depends(get_db)):
    return BookingEngine(db).list_bookings_for_patient(patient_id)


@router.get("/hospital/{hospital_id}", response_model=list[BookingOut])
def list_hospital_bookings(hospital_id: int, db: Session = Depends(get_db)):
    return BookingEngine(db).list_bookings_for_hospital(hospital_id)


@router.get("/hospital/{hospital_id}/all", response_model=list[BookingOut])
def list_hospital_history(hospital_id: int, db: Session = Depends(get_db)):
    """Full history, cancelled bookings included."""
    return BookingEngine(db).list_booking_history_for_hospital(hospital_id)


@router.get("/clinic/{clinic_id}", response_model=list[BookingOut])
def list_clinic_bookings(clinic_id: int, db: Session = Depends(get_db)):
    return BookingEngine(db).list_bookings_for_clinic(clinic_id)


@router.delete("/patient/{patient_id}/history")
def clear_patient_history(patient_id: int, db: Session = Depends(get_db)):
    return {"removed": BookingEngine(db).clear_history_for_patient(patient_id)}


@router.delete("/hospital/{hospital_id}/history")
def clear_hospital_history(hospital_id: int, db: Session = Depends(get_db)):
    return {"removed": BookingEngine(db).clear_history_for_hospital(hospital_id)}


@router.delete("/clinic/{clinic_id}/history")
def clear_clinic_history(clinic_id: int, db: Session = Depends(get_db)):
    return {"removed": BookingEngine(db).clear_history_for_clinic(clinic_id)}


@router.get("/{booking_id}", response_model=BookingOut)
def get_booking(booking_id: str, db: Session = Depends(get_db)):
    return BookingEngine(db).get_booking(booking_id)


@router.delete("/{booking_id}")
def cancel_booking(booking_id: str, db: Session = Depends(get_db)):
    """Soft delete: status becomes cancelled and the seat goes back to the slot."""
    BookingEngine(db).cancel_booking(booking_id)
    return {"booking_id": booking_id, "status": "cancelled"}


@router.patch("/{booking_id}/reschedule", response_model=BookingOut)
def reschedule_booking(booking_id: str, body: RescheduleBody, db: Session = Depends(get_db)):
    return BookingEngine(db).reschedule_booking(booking_id, body.new_slot_id)


@router.delete("/{booking_id}/hard")
def hard_delete_booking(booking_id: str, db: Session = Depends(get_db)):
    BookingEngine(db).hard_delete_booking(booking_id)
    return {"booking_id": booking_id, "message": "Booking permanently deleted"}
