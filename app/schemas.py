from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator


def _valid_date(v: str) -> str:
    datetime.strptime(v, "%Y-%m-%d")
    return v


def _valid_time(v: str) -> str:
    datetime.strptime(v, "%H:%M")
    return v


SlotDate = Annotated[str, Field(pattern=r"^\d{4}-\d{2}-\d{2}$"), AfterValidator(_valid_date)]
SlotTime = Annotated[str, Field(pattern=r"^\d{2}:\d{2}$"), AfterValidator(_valid_time)]


# —— Requests ——

class CreateSlotBody(BaseModel):
    doctor_id: int
    hospital_id: int = 0
    date: SlotDate
    time: SlotTime
    max_bookings: Optional[int] = Field(default=None, gt=0)


class UpdateSlotBody(BaseModel):
    date: Optional[SlotDate] = None
    time: Optional[SlotTime] = None
    max_bookings: Optional[int] = Field(default=None, gt=0)


class CreateBookingBody(BaseModel):
    patient_id: Optional[int] = None
    patient_name: str
    patient_age: Optional[int] = Field(default=None, ge=0)
    patient_contact: str = ""
    patient_description: str = ""
    doctor_id: int
    hospital_id: int = 0
    slot_id: str = Field(min_length=1)

    @field_validator("patient_name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("patient_name is required")
        return v


class RescheduleBody(BaseModel):
    new_slot_id: str = Field(min_length=1)


# —— Responses ——

class SlotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    doctor_id: int
    hospital_id: int
    owner_kind: str
    date: str
    time: str
    max_bookings: int
    current_bookings: int
    is_active: bool


class BookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    booking_ref: str
    patient_id: Optional[int]
    patient_name: str
    patient_age: Optional[int]
    patient_contact: str
    patient_description: str
    doctor_id: int
    doctor_name: str
    specialization: str
    hospital_id: int
    hospital_name: str
    owner_kind: str
    slot_id: Optional[str]
    date: str
    time: str
    status: str


class HospitalStats(BaseModel):
    total_doctors: int
    available_doctors: int
    unavailable_doctors: int
    specializations: dict[str, int]
    today_bookings: int
    total_bookings: int
    upcoming_slots: int
    server_time: str
