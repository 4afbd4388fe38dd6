from datetime import datetime

from sqlalchemy import Column, String, Integer, DateTime, Boolean, CheckConstraint, UniqueConstraint, Index
from app.db import Base

OWNER_HOSPITAL_DOCTOR = "hospital_doctor"
OWNER_CLINIC = "clinic"

STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"
STATUS_COMPLETED = "completed"


# Directory records: read-only for the booking core

class Hospital(Base):
    __tablename__ = "hospitals"
    hospital_id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    location = Column(String, nullable=False)
    type = Column(String, nullable=False, default="General")
    has_emergency = Column(Boolean, nullable=False, default=True)
    max_bookings_per_slot = Column(Integer, nullable=False, default=5)


class Doctor(Base):
    __tablename__ = "doctors"
    doctor_id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    specialization = Column(String, nullable=False)
    hospital_id = Column(Integer, nullable=False, index=True)
    available = Column(Boolean, nullable=False, default=True)


class Clinic(Base):
    __tablename__ = "clinics"
    clinic_id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    doctor_name = Column(String, nullable=False)
    specialization = Column(String, nullable=False)
    location = Column(String, nullable=False)
    available = Column(Boolean, nullable=False, default=True)
    max_bookings_per_slot = Column(Integer, nullable=False, default=3)


class Patient(Base):
    __tablename__ = "patients"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False)
    phone = Column(String, nullable=False)
    age = Column(Integer)


# Booking core

class TimeSlot(Base):
    __tablename__ = "time_slots"
    id = Column(String, primary_key=True)
    doctor_id = Column(Integer, nullable=False)
    hospital_id = Column(Integer, nullable=False, default=0)  # 0 for clinic-owned slots
    owner_kind = Column(String, nullable=False, default=OWNER_HOSPITAL_DOCTOR)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD, facility local
    time = Column(String(5), nullable=False)   # HH:MM, 24h
    max_bookings = Column(Integer, nullable=False, default=5)
    current_bookings = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.now)

    __table_args__ = (
        CheckConstraint("max_bookings > 0", name="slot_capacity_positive"),
        CheckConstraint("current_bookings >= 0", name="slot_bookings_non_negative"),
        UniqueConstraint("doctor_id", "date", "time", name="uniq_doctor_slot_time"),
        Index("ix_slot_doctor_active_date", "doctor_id", "is_active", "date"),
        Index("ix_slot_hospital_date", "hospital_id", "date"),
        Index("ix_slot_date_active", "date", "is_active"),
    )


class Booking(Base):
    __tablename__ = "bookings"
    id = Column(String, primary_key=True)
    booking_ref = Column(String, unique=True, nullable=False)
    patient_id = Column(Integer, nullable=True)  # null for guest bookings
    patient_name = Column(String, nullable=False)
    patient_age = Column(Integer, nullable=True)
    patient_contact = Column(String, nullable=False, default="")
    patient_description = Column(String, nullable=False, default="")
    doctor_id = Column(Integer, nullable=False)
    doctor_name = Column(String, nullable=False)
    specialization = Column(String, nullable=False, default="")
    hospital_id = Column(Integer, nullable=False)
    hospital_name = Column(String, nullable=False)
    owner_kind = Column(String, nullable=False, default=OWNER_HOSPITAL_DOCTOR)
    # no FK: deleting a slot leaves its bookings pointing at nothing
    slot_id = Column(String, nullable=True)
    date = Column(String(10), nullable=False)
    time = Column(String(5), nullable=False)
    status = Column(String, nullable=False, default=STATUS_CONFIRMED)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        CheckConstraint("status in ('confirmed','cancelled','completed')", name="booking_status_valid"),
        Index("ix_booking_patient", "patient_id"),
        Index("ix_booking_hospital_status", "hospital_id", "status"),
        Index("ix_booking_slot_patient", "slot_id", "patient_id"),
        Index("ix_booking_doctor_patient_date", "doctor_id", "patient_id", "date"),
    )
