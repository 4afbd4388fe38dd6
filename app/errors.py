class BookingSystemError(Exception):
    """Base for every state/lookup failure raised by the slot store and booking engine."""
    code = "booking_error"
    status_code = 400
    message = "Booking operation failed."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class NotFoundError(BookingSystemError):
    code = "not_found"
    status_code = 404
    message = "Not found."


class SlotNotFoundError(NotFoundError):
    code = "slot_not_found"
    message = "Time slot not found."


class BookingNotFoundError(NotFoundError):
    code = "booking_not_found"
    message = "Booking not found."


class PastSlotError(BookingSystemError):
    code = "past_slot"
    status_code = 400
    message = "Cannot set a slot to a past date/time."


class DuplicateSlotError(BookingSystemError):
    code = "duplicate_slot"
    status_code = 409
    message = "Slot already exists for this doctor at this date/time."


class CapacityConflictError(BookingSystemError):
    code = "capacity_conflict"
    status_code = 409
    message = "Slot capacity cannot go below its current bookings."


class SlotInactiveError(BookingSystemError):
    code = "slot_inactive"
    status_code = 409
    message = "This slot is no longer active."


class SlotExpiredError(BookingSystemError):
    code = "slot_expired"
    status_code = 410
    message = "This slot has already passed, please choose another time."


class SlotFullError(BookingSystemError):
    code = "slot_full"
    status_code = 409
    message = "This slot is fully booked."


class DuplicateSlotBookingError(BookingSystemError):
    code = "duplicate_slot_booking"
    status_code = 409
    message = "You have already booked this time slot."


class DuplicateDoctorDayError(BookingSystemError):
    code = "duplicate_doctor_day"
    status_code = 409
    message = "You already have an upcoming booking with this doctor on this date."


class AlreadyCancelledError(BookingSystemError):
    code = "already_cancelled"
    status_code = 409
    message = "Booking is already cancelled."


class SlotOwnerMismatchError(BookingSystemError):
    code = "slot_owner_mismatch"
    status_code = 400
    message = "The slot does not belong to this doctor or facility."
