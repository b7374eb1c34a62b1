"""Tests for booking creation and cancellation."""

from uuid import uuid4

import pytest

from photo_booking import messages
from photo_booking.domain.bookings import BookingErrorCode, BookingStatus
from photo_booking.services.bookings import BookingService
from tests.conftest import InMemoryBookingRepository


@pytest.mark.parametrize(
    ("backend_message", "code", "error"),
    [
        ("この撮影会は満席です", BookingErrorCode.FULL, messages.BOOKING_FULL),
        (
            "既に予約済みです",
            BookingErrorCode.ALREADY_BOOKED,
            messages.BOOKING_ALREADY_BOOKED,
        ),
        ("撮影会は終了しました", BookingErrorCode.SESSION_ENDED, messages.BOOKING_SESSION_ENDED),
        ("deadlock detected", BookingErrorCode.UNKNOWN, messages.BOOKING_FAILED),
    ],
)
def test_session_booking_maps_backend_errors(
    booking_repository: InMemoryBookingRepository,
    backend_message: str,
    code: BookingErrorCode,
    error: str,
) -> None:
    booking_repository.backend_error = backend_message
    result = BookingService(booking_repository).create_photo_session_booking(
        uuid4(), uuid4()
    )

    assert not result.success
    assert result.error_code is code
    assert result.error == error


def test_session_booking_succeeds_then_reports_duplicate(
    booking_repository: InMemoryBookingRepository,
) -> None:
    service = BookingService(booking_repository)
    session_id, user_id = uuid4(), uuid4()

    first = service.book(session_id, user_id)
    second = service.book(session_id, user_id)

    assert first.success
    assert first.booking_id in booking_repository.bookings
    assert second.error_code is BookingErrorCode.ALREADY_BOOKED


def test_last_seat_goes_to_one_user(
    booking_repository: InMemoryBookingRepository,
) -> None:
    service = BookingService(booking_repository)
    slot_id = uuid4()
    booking_repository.seats[slot_id] = 1

    winner = service.book(uuid4(), uuid4(), slot_id)
    loser = service.book(uuid4(), uuid4(), slot_id)

    assert winner.success
    assert not loser.success
    assert loser.error == "満席です"
    assert loser.error_code is BookingErrorCode.FULL
    assert booking_repository.seats[slot_id] == 0


def test_slot_booking_exception_returns_failure() -> None:
    class BrokenRepository(InMemoryBookingRepository):
        def create_slot_booking(self, slot_id, user_id):  # type: ignore[no-untyped-def]
            raise RuntimeError("connection reset")

    result = BookingService(BrokenRepository()).create_slot_booking(uuid4(), uuid4())

    assert not result.success
    assert result.message == messages.SLOT_BOOKING_FAILED


def test_cancel_releases_seat(booking_repository: InMemoryBookingRepository) -> None:
    service = BookingService(booking_repository)
    slot_id, user_id = uuid4(), uuid4()
    booking_repository.seats[slot_id] = 1
    booked = service.book(uuid4(), user_id, slot_id)
    assert booked.booking_id is not None

    result = service.cancel_booking(booked.booking_id, user_id)

    assert result.success
    assert booking_repository.seats[slot_id] == 1
    assert (
        booking_repository.bookings[booked.booking_id].status
        is BookingStatus.CANCELLED
    )


def test_cancel_other_users_booking_is_rejected(
    booking_repository: InMemoryBookingRepository,
) -> None:
    service = BookingService(booking_repository)
    booked = service.book(uuid4(), uuid4())
    assert booked.booking_id is not None

    result = service.cancel_booking(booked.booking_id, uuid4())

    assert result.error_code is BookingErrorCode.UNAUTHORIZED
