from vetdirectory.models.clinic import AvailabilityRule, Clinic, ClinicType, VerificationStatus
from vetdirectory.models.booking import BookedSlot, BookingStatus

__all__ = [
    "Clinic",
    "ClinicType",
    "VerificationStatus",
    "AvailabilityRule",
    "BookedSlot",
    "BookingStatus",
]
