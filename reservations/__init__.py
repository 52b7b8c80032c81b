from .errors import (
    ReservationError,
    InvalidRequest,
    SlotAlreadyTaken,
    NotFound,
    InvalidTransition,
    Unavailable,
)
from .engine import (
    ClaimResult,
    claim,
    lookup,
    release,
    transition,
    set_payment_status,
    list_available_timeslots,
)
from .generator import GenerationResult, generate_timeslots, generate_rolling_horizon
