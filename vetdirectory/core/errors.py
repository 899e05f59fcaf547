"""Domain errors raised by the services and translated to HTTP responses in main."""
from collections.abc import Iterable

from fastapi import status


class ServiceError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str = "Bad request"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MissingField(ServiceError):
    def __init__(self, fields: Iterable[str]) -> None:
        self.fields = list(fields)
        super().__init__(f"Missing required fields: {', '.join(self.fields)}")


class InvalidDate(ServiceError):
    message = "Invalid date format. Use YYYY-MM-DD"


class InvalidTime(ServiceError):
    message = "Invalid time format. Use HH:MM"


class PastDate(ServiceError):
    message = "Cannot book appointment for past dates"


class SlotNotOffered(ServiceError):
    message = "Requested time is not an available slot for this clinic"


class ClinicNotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Clinic not found"


class BookingNotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Booking not found"


class SlotAlreadyBooked(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    message = "This time slot is already booked"


class DuplicateClinic(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    message = "Clinic with this email already exists"


class InvalidStatusTransition(ServiceError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot change booking status from '{current}' to '{requested}'")


class PersistenceFailure(ServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Could not save changes, please retry"
