from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.schemas import CreateSlotBody, SlotOut, UpdateSlotBody
from app.slot_store import SlotStore

router = APIRouter()


@router.post("", status_code=201, response_model=SlotOut)
def create_slot(body: CreateSlotBody, db: Session = Depends(get_db)):
    """Dashboard action: open a future slot for a doctor."""
    return SlotStore(db).create_slot(body.doctor_id, body.hospital_id, body.date, body.time, body.max_bookings)


@router.get("/doctor/{doctor_id}", response_model=list[SlotOut])
def list_doctor_slots(doctor_id: int, db: Session = Depends(get_db)):
    """
    Patient-facing list: active slots still ahead of the clock, soonest first.
    Slots past their time are filtered here even if the sweeper has not flipped them yet.
    """
    return SlotStore(db).list_slots_for_doctor(doctor_id)


@router.get("/hospital/{hospital_id}", response_model=list[SlotOut])
def list_facility_slots(hospital_id: int, db: Session = Depends(get_db)):
    """Dashboard list: every slot from today onward, expired ones included."""
    return SlotStore(db).list_slots_for_facility(hospital_id)


@router.get("/{slot_id}", response_model=SlotOut)
def get_slot(slot_id: str, db: Session = Depends(get_db)):
    return SlotStore(db).get_slot(slot_id)


@router.put("/{slot_id}", response_model=SlotOut)
def update_slot(slot_id: str, body: UpdateSlotBody, db: Session = Depends(get_db)):
    return SlotStore(db).update_slot(slot_id, body.date, body.time, body.max_bookings)


@router.delete("/{slot_id}")
def delete_slot(slot_id: str, db: Session = Depends(get_db)):
    SlotStore(db).delete_slot(slot_id)
    return {"slot_id": slot_id, "message": "Slot removed"}
