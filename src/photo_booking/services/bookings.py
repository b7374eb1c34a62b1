"""Booking actions backed by the backend's capacity-guarded procedures."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable
from uuid import UUID

from photo_booking import messages
from photo_booking.domain.bookings import (
    BookingErrorCode,
    BookingRecord,
    BookingResult,
    BookingStatus,
    SlotBookingResult,
)
from photo_booking.errors import BackendError

_logger = logging.getLogger(__name__)

_ERROR_MARKERS: tuple[tuple[str, BookingErrorCode, str], ...] = (
    ("満席", BookingErrorCode.FULL, messages.BOOKING_FULL),
    ("既に予約済み", BookingErrorCode.ALREADY_BOOKED, messages.BOOKING_ALREADY_BOOKED),
    ("終了", BookingErrorCode.SESSION_ENDED, messages.BOOKING_SESSION_ENDED),
)


class BookingRepository(Protocol):
    """Persistence interface for bookings.

    Creation and cancellation go through backend procedures that check and
    update participant counts atomically.
    """

    def create_photo_session_booking(self, session_id: UUID, user_id: UUID) -> UUID:
        """Book a whole session and return the booking id."""

    def create_slot_booking(self, slot_id: UUID, user_id: UUID) -> SlotBookingResult:
        """Book one slot."""

    def cancel_photo_session_booking(self, booking_id: UUID, user_id: UUID) -> None:
        """Cancel a session booking and release its seat."""

    def cancel_slot_booking(
        self, booking_id: UUID, user_id: UUID
    ) -> SlotBookingResult:
        """Cancel a slot booking and release its seat."""

    def get_booking(self, booking_id: UUID) -> BookingRecord | None:
        """Return a booking by id, if present."""

    def update_status(self, booking_id: UUID, status: BookingStatus) -> None:
        """Set a booking's status."""


class Booker(Protocol):
    """Anything that can turn a selection into a booking."""

    def book(
        self, session_id: UUID, user_id: UUID, slot_id: UUID | None = None
    ) -> BookingResult:
        """Book the session, or one of its slots."""


@runtime_checkable
class BatchBooker(Booker, Protocol):
    """A booker that handles several slots of one session as a single order."""

    def book_many(
        self, session_id: UUID, user_id: UUID, slot_ids: Sequence[UUID]
    ) -> list[BookingResult]:
        """Book every slot; results follow the order of ``slot_ids``."""


@dataclass
class BookingService:
    """Create and cancel bookings, mapping backend failures to results."""

    repository: BookingRepository

    def create_photo_session_booking(
        self, session_id: UUID, user_id: UUID
    ) -> BookingResult:
        """Book a session that has no slots."""
        try:
            booking_id = self.repository.create_photo_session_booking(
                session_id, user_id
            )
        except BackendError as exc:
            _logger.warning(
                "Session booking rejected: %s", exc, extra={"session_id": str(session_id)}
            )
            return _map_backend_error(str(exc))
        except Exception:
            _logger.exception(
                "Session booking failed", extra={"session_id": str(session_id)}
            )
            return BookingResult.failed(
                messages.UNEXPECTED_ERROR, BookingErrorCode.UNKNOWN
            )
        return BookingResult(success=True, booking_id=booking_id)

    def create_slot_booking(self, slot_id: UUID, user_id: UUID) -> SlotBookingResult:
        """Book one slot."""
        try:
            return self.repository.create_slot_booking(slot_id, user_id)
        except Exception:
            _logger.exception("Slot booking failed", extra={"slot_id": str(slot_id)})
            return SlotBookingResult(
                success=False, message=messages.SLOT_BOOKING_FAILED
            )

    def book(
        self, session_id: UUID, user_id: UUID, slot_id: UUID | None = None
    ) -> BookingResult:
        """Book a slot when one is given, otherwise the whole session."""
        if slot_id is None:
            return self.create_photo_session_booking(session_id, user_id)
        result = self.create_slot_booking(slot_id, user_id)
        if result.success:
            return BookingResult(success=True, booking_id=result.booking_id)
        message = result.message or messages.SLOT_BOOKING_FAILED
        mapped = _map_backend_error(message)
        return BookingResult.failed(message, mapped.error_code or BookingErrorCode.UNKNOWN)

    def get_booking(self, booking_id: UUID) -> BookingRecord | None:
        return self.repository.get_booking(booking_id)

    def cancel_booking(self, booking_id: UUID, user_id: UUID) -> BookingResult:
        """Cancel a booking owned by the user."""
        booking = self.repository.get_booking(booking_id)
        if booking is None or booking.user_id != user_id:
            return BookingResult.failed(
                messages.BOOKING_CANCEL_FAILED, BookingErrorCode.UNAUTHORIZED
            )
        try:
            if booking.slot_id is not None:
                outcome = self.repository.cancel_slot_booking(booking_id, user_id)
                if not outcome.success:
                    return BookingResult.failed(
                        outcome.message or messages.BOOKING_CANCEL_FAILED,
                        BookingErrorCode.UNKNOWN,
                    )
            else:
                self.repository.cancel_photo_session_booking(booking_id, user_id)
        except Exception:
            _logger.exception(
                "Booking cancellation failed", extra={"booking_id": str(booking_id)}
            )
            return BookingResult.failed(
                messages.BOOKING_CANCEL_FAILED, BookingErrorCode.UNKNOWN
            )
        return BookingResult(success=True, booking_id=booking_id)


def _map_backend_error(message: str) -> BookingResult:
    """Translate a backend rejection into a coded result."""
    for marker, code, text in _ERROR_MARKERS:
        if marker in message:
            return BookingResult.failed(text, code)
    return BookingResult.failed(messages.BOOKING_FAILED, BookingErrorCode.UNKNOWN)
