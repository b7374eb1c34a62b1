"""Domain models for bookings."""

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID


class BookingStatus(StrEnum):
    """Lifecycle of a booking row."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class BookingErrorCode(StrEnum):
    """Reason a booking call was rejected."""

    FULL = "FULL"
    ALREADY_BOOKED = "ALREADY_BOOKED"
    SESSION_ENDED = "SESSION_ENDED"
    UNAUTHORIZED = "UNAUTHORIZED"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class BookingRecord:
    """A user's booking for a session or one of its slots."""

    id: UUID
    user_id: UUID
    photo_session_id: UUID
    status: BookingStatus
    slot_id: UUID | None = None


@dataclass(frozen=True)
class BookingResult:
    """Outcome of a session booking call."""

    success: bool
    booking_id: UUID | None = None
    error: str | None = None
    error_code: BookingErrorCode | None = None

    @classmethod
    def failed(cls, error: str, code: BookingErrorCode) -> "BookingResult":
        return cls(success=False, error=error, error_code=code)


@dataclass(frozen=True)
class SlotBookingResult:
    """Outcome of a slot booking call, as returned by the backend procedure."""

    success: bool
    booking_id: UUID | None = None
    message: str | None = None
