"""Failure conditions raised by the reservation core.

Each error carries the HTTP status and a stable machine-readable ``code`` so the
web layer can render it without knowing the individual types.
"""


class ReservationError(Exception):
    status_code = 500
    code = "error"
    message = "Unexpected error"

    def __init__(self, message=None, details=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = details or {}

    def to_dict(self):
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class InvalidRequest(ReservationError):
    """Malformed, missing or out-of-range input. ``details`` maps field -> message."""
    status_code = 400
    code = "invalid_request"
    message = "Invalid data"


class SlotAlreadyTaken(ReservationError):
    """Lost the race for a timeslot. The customer should pick another time."""
    status_code = 409
    code = "slot_taken"
    message = "This time slot has already been booked. Please select another time."


class NotFound(ReservationError):
    # Same shape for unknown id and wrong token, so ids can't be enumerated
    status_code = 404
    code = "not_found"
    message = "Booking not found"


class InvalidTransition(ReservationError):
    status_code = 409
    code = "invalid_transition"
    message = "Booking can no longer be changed"


class Unavailable(ReservationError):
    """Storage or dependency outage. Never reported as success."""
    status_code = 503
    code = "unavailable"
    message = "Booking service temporarily unavailable. Please try again shortly."
    retry_after_seconds = 5
