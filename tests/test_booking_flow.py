"""Tests for the select, confirm and complete booking flow."""

from dataclasses import dataclass, field
from datetime import timedelta
from uuid import UUID, uuid4

import pytest

from photo_booking import messages
from photo_booking.domain.bookings import BookingErrorCode, BookingResult
from photo_booking.domain.pricing import DiscountType
from photo_booking.services.booking_flow import (
    BookingFlow,
    BookingStep,
    InvalidTransition,
    Presentation,
    SelectionRequired,
    SlotNotSelectable,
    presentation_for,
)
from photo_booking.services.bookings import BookingService
from tests.conftest import BASE_START, InMemoryBookingRepository, make_session, make_slot


@dataclass
class ScriptedBooker:
    """Returns queued results and records each call."""

    results: list[BookingResult] = field(default_factory=list)
    calls: list[UUID | None] = field(default_factory=list)

    def book(
        self, session_id: UUID, user_id: UUID, slot_id: UUID | None = None
    ) -> BookingResult:
        self.calls.append(slot_id)
        if self.results:
            return self.results.pop(0)
        return BookingResult(success=True, booking_id=uuid4())


@dataclass
class ScriptedBatchBooker(ScriptedBooker):
    """Receives the whole selection in one call."""

    batches: list[list[UUID]] = field(default_factory=list)

    def book_many(
        self, session_id: UUID, user_id: UUID, slot_ids: list[UUID]
    ) -> list[BookingResult]:
        self.batches.append(list(slot_ids))
        return [self.book(session_id, user_id, slot_id) for slot_id in slot_ids]


class ExplodingBooker:
    def book(self, session_id, user_id, slot_id=None):  # type: ignore[no-untyped-def]
        raise RuntimeError("network down")


def test_single_slot_happy_path() -> None:
    slot = make_slot(price=5000)
    flow = BookingFlow(make_session(), uuid4(), slots=[slot])

    flow.select_slot(slot.id)
    assert flow.proceed() is BookingStep.CONFIRM
    assert flow.confirm_price() == 5000

    booker = ScriptedBooker()
    assert flow.submit(booker) is BookingStep.COMPLETE
    assert booker.calls == [slot.id]
    assert len(flow.booking_ids) == 1
    assert flow.error is None


def test_confirm_price_applies_slot_discount() -> None:
    slot = make_slot(price=5000, discount_type=DiscountType.PERCENTAGE, discount_value=10)
    flow = BookingFlow(make_session(), uuid4(), slots=[slot])
    flow.select_slot(slot.id)
    flow.proceed()

    assert flow.confirm_price() == 4500


def test_failed_booking_stays_on_confirm() -> None:
    slot = make_slot()
    flow = BookingFlow(make_session(), uuid4(), slots=[slot])
    flow.select_slot(slot.id)
    flow.proceed()

    booker = ScriptedBooker(
        results=[BookingResult.failed("満席です", BookingErrorCode.FULL)]
    )

    assert flow.submit(booker) is BookingStep.CONFIRM
    assert flow.error == "満席です"
    assert not flow.is_submitting


def test_booking_exception_is_reported() -> None:
    slot = make_slot()
    flow = BookingFlow(make_session(), uuid4(), slots=[slot])
    flow.select_slot(slot.id)
    flow.proceed()

    assert flow.submit(ExplodingBooker()) is BookingStep.CONFIRM
    assert flow.error == messages.UNEXPECTED_ERROR


def test_full_slot_is_never_selectable() -> None:
    full = make_slot(capacity=2, current_participants=2)
    open_slot = make_slot(2, BASE_START + timedelta(hours=1))
    flow = BookingFlow(make_session(), uuid4(), slots=[full, open_slot])

    assert flow.selectable_slots() == [open_slot]
    with pytest.raises(SlotNotSelectable):
        flow.select_slot(full.id)
    assert flow.selected_slot_ids == []


def test_proceed_requires_selection_when_slots_exist() -> None:
    flow = BookingFlow(make_session(), uuid4(), slots=[make_slot()])

    with pytest.raises(SelectionRequired):
        flow.proceed()
    assert flow.step is BookingStep.SELECT
    assert flow.error == messages.SLOT_REQUIRED


def test_session_without_slots_books_the_session() -> None:
    repository = InMemoryBookingRepository()
    session = make_session(price_per_person=3000)
    flow = BookingFlow(session, uuid4())

    flow.proceed()
    assert flow.confirm_price() == 3000
    assert flow.submit(BookingService(repository)) is BookingStep.COMPLETE
    assert repository.calls == [("session", session.id)]


def test_single_booking_mode_replaces_selection() -> None:
    first = make_slot(1)
    second = make_slot(2, BASE_START + timedelta(hours=1))
    flow = BookingFlow(make_session(), uuid4(), slots=[first, second])

    flow.select_slot(first.id)
    flow.select_slot(second.id)

    assert flow.selected_slot_ids == [second.id]


def test_multiple_bookings_toggle_and_discount() -> None:
    session = make_session(
        allow_multiple_bookings=True,
        booking_settings={
            "multi_slot_discount": {
                "min_slots": 2,
                "discount_type": "percentage",
                "discount_value": 10,
            }
        },
    )
    first = make_slot(1, price=5000)
    second = make_slot(2, BASE_START + timedelta(hours=1), price=5000)
    flow = BookingFlow(session, uuid4(), slots=[first, second])

    flow.select_slot(first.id)
    flow.select_slot(second.id)
    flow.proceed()
    assert flow.confirm_price() == 9000

    flow.back()
    flow.select_slot(second.id)
    flow.proceed()
    assert flow.confirm_price() == 5000


def test_multiple_bookings_complete_when_any_succeeds() -> None:
    session = make_session(allow_multiple_bookings=True)
    first = make_slot(1)
    second = make_slot(2, BASE_START + timedelta(hours=1))
    flow = BookingFlow(session, uuid4(), slots=[first, second])
    flow.select_slot(first.id)
    flow.select_slot(second.id)
    flow.proceed()

    booker = ScriptedBooker(
        results=[
            BookingResult(success=True, booking_id=uuid4()),
            BookingResult.failed("満席です", BookingErrorCode.FULL),
        ]
    )

    assert flow.submit(booker) is BookingStep.COMPLETE
    assert flow.booked_count == 1
    assert flow.failed_count == 1
    assert flow.error == "満席です"


def test_batch_booker_gets_the_whole_selection_at_once() -> None:
    session = make_session(allow_multiple_bookings=True)
    first = make_slot(1)
    second = make_slot(2, BASE_START + timedelta(hours=1))
    flow = BookingFlow(session, uuid4(), slots=[first, second])
    flow.select_slot(second.id)
    flow.select_slot(first.id)
    flow.proceed()

    booker = ScriptedBatchBooker(
        results=[
            BookingResult(success=True, booking_id=uuid4()),
            BookingResult.failed("満席です", BookingErrorCode.FULL),
        ]
    )

    assert flow.submit(booker) is BookingStep.COMPLETE
    assert booker.batches == [[second.id, first.id]]
    assert flow.booked_count == 1
    assert flow.failed_count == 1
    assert flow.error == "満席です"


def test_submit_outside_confirm_is_rejected() -> None:
    flow = BookingFlow(make_session(), uuid4())
    with pytest.raises(InvalidTransition):
        flow.submit(ScriptedBooker())


@pytest.mark.parametrize(
    ("width", "expected"),
    [(375, Presentation.ACTION_SHEET), (768, Presentation.STEPPER), (1280, Presentation.STEPPER)],
)
def test_presentation_by_viewport(width: int, expected: Presentation) -> None:
    assert presentation_for(width) is expected
    flow = BookingFlow(make_session(), uuid4(), viewport_width=width)
    assert flow.presentation is expected
