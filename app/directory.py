"""Read-only lookups into the hospital/doctor/clinic directory."""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import DEFAULT_MAX_BOOKINGS
from app.models import Hospital, Doctor, Clinic, OWNER_HOSPITAL_DOCTOR, OWNER_CLINIC

UNKNOWN = "Unknown"


@dataclass
class ResolvedNames:
    doctor_name: str
    specialization: str
    hospital_name: str
    owner_kind: str


def get_hospital(db: Session, hospital_id: int) -> Optional[Hospital]:
    return db.query(Hospital).filter(Hospital.hospital_id == hospital_id).first()


def get_doctor(db: Session, doctor_id: int) -> Optional[Doctor]:
    return db.query(Doctor).filter(Doctor.doctor_id == doctor_id).first()


def get_clinic(db: Session, clinic_id: int) -> Optional[Clinic]:
    return db.query(Clinic).filter(Clinic.clinic_id == clinic_id).first()


def resolve_booking_names(db: Session, doctor_id: int, hospital_id: int) -> ResolvedNames:
    """
    Names stamped onto a booking.

    Hospital doctors and clinics share one id namespace: the doctor table is
    tried first, then the clinic table with `doctor_id` as the clinic id.
    A known hospital always supplies the facility name.
    """
    names = ResolvedNames(UNKNOWN, "", UNKNOWN, OWNER_HOSPITAL_DOCTOR)

    doctor = get_doctor(db, doctor_id)
    if doctor:
        names.doctor_name = doctor.name
        names.specialization = doctor.specialization or ""
    else:
        clinic = get_clinic(db, doctor_id)
        if clinic:
            names.doctor_name = clinic.doctor_name
            names.specialization = clinic.specialization or ""
            names.hospital_name = clinic.name or clinic.doctor_name
            names.owner_kind = OWNER_CLINIC

    hospital = get_hospital(db, hospital_id)
    if hospital:
        names.hospital_name = hospital.name
    return names


def default_capacity(db: Session, doctor_id: int, hospital_id: int) -> int:
    """Per-slot capacity of the owning facility, falling back to DEFAULT_MAX_BOOKINGS."""
    if hospital_id:
        hospital = get_hospital(db, hospital_id)
        if hospital and hospital.max_bookings_per_slot:
            return hospital.max_bookings_per_slot
    else:
        clinic = get_clinic(db, doctor_id)
        if clinic and clinic.max_bookings_per_slot:
            return clinic.max_bookings_per_slot
    return DEFAULT_MAX_BOOKINGS


def count_doctors(db: Session, hospital_id: int) -> tuple[int, int]:
    """(total, available) doctors on a hospital roster."""
    q = db.query(Doctor).filter(Doctor.hospital_id == hospital_id)
    return q.count(), q.filter(Doctor.available == True).count()  # noqa: E712


def count_doctors_by_specialization(db: Session, hospital_id: int) -> dict[str, int]:
    rows = (
        db.query(Doctor.specialization, func.count(Doctor.doctor_id))
        .filter(Doctor.hospital_id == hospital_id)
        .group_by(Doctor.specialization)
        .all()
    )
    return {specialization or "": count for specialization, count in rows}
