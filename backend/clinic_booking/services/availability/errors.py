# backend/clinic_booking/services/availability/errors.py
"""Request-level failures surfaced by the availability endpoints."""


class AvailabilityError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequestError(AvailabilityError):
    status_code = 400


class NotFoundError(AvailabilityError):
    status_code = 404


class ConflictError(AvailabilityError):
    status_code = 409


class StorageError(AvailabilityError):
    """A data fetch failed; nothing derived from it may be cached."""
    status_code = 500
